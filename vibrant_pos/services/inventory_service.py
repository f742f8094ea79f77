# ==============================================================================
# SERVICIO DE INVENTARIO
# ==============================================================================
# Centraliza toda la lógica de negocio relacionada con productos y stock.
# Las ventas y anulaciones ajustan el stock desde el servicio de ventas,
# dentro de su propia transacción; aquí vive el ajuste manual.
# ==============================================================================

from typing import Any, Dict, List, Optional

from vibrant_pos.errors import NotFoundError, ValidationError
from vibrant_pos.models import Product
from vibrant_pos.repositories.base import as_text
from vibrant_pos.repositories.interfaces import IProductRepository
from vibrant_pos.services.audit_service import AuditService
from vibrant_pos.services.pricing_service import money, to_number


class InventoryService:
    """
    Servicio para gestión del catálogo.

    Responsabilidades:
    - CRUD de productos con validación de campos
    - Búsqueda por nombre/código
    - Ajuste atómico de stock (nunca por debajo de 0)
    """

    # Campos editables de un producto
    ALLOWED_FIELDS = ('name', 'code', 'buy_price', 'sell_price', 'quantity')

    def __init__(
        self,
        product_repo: IProductRepository,
        audit_service: Optional[AuditService] = None
    ):
        """
        Args:
            product_repo: Repositorio de productos
            audit_service: Servicio de auditoría (opcional)
        """
        self.product_repo = product_repo
        self.audit_service = audit_service

    # =========================================================================
    # VALIDACIÓN
    # =========================================================================

    @staticmethod
    def _parse_quantity(value: Any) -> int:
        number = to_number(value)
        if number != number.to_integral_value():
            raise ValidationError('Quantidade deve ser um número inteiro.')
        if number < 0:
            raise ValidationError('Quantidade não pode ser negativa.')
        return int(number)

    def _normalize(self, data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
        """
        Filtra y normaliza campos de producto.
        Precios y cantidad vacíos cuentan como 0.

        Raises:
            ValidationError: Si falta el nombre o la cantidad no es entera
        """
        fields = {k: v for k, v in data.items() if k in self.ALLOWED_FIELDS}
        if not partial:
            for key in self.ALLOWED_FIELDS:
                fields.setdefault(key, '')

        if 'name' in fields:
            fields['name'] = str(fields['name'] or '').strip()
            if not fields['name']:
                raise ValidationError('Nome do produto é obrigatório.')
        if 'code' in fields:
            fields['code'] = str(fields['code'] or '').strip()
        for key in ('buy_price', 'sell_price'):
            if key in fields:
                fields[key] = money(fields[key])
        if 'quantity' in fields:
            fields['quantity'] = self._parse_quantity(fields['quantity'])
        return fields

    # =========================================================================
    # OPERACIONES DE PRODUCTOS
    # =========================================================================

    def get_all_products(self) -> List[Dict[str, Any]]:
        """Productos ordenados por nombre."""
        return sorted(self.product_repo.list_all(), key=lambda p: str(p.get('name', '')).lower())

    def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        return self.product_repo.get_by_id(product_id)

    def require_product(self, product_id: str) -> Dict[str, Any]:
        """
        Raises:
            NotFoundError: Si el producto no existe
        """
        product = self.get_product(product_id)
        if not product:
            raise NotFoundError('Produto não encontrado.')
        return product

    def create_product(self, data: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Crea un producto.

        Args:
            data: name, code, buy_price, sell_price, quantity
            user: Operador que crea (para auditoría)

        Returns:
            Producto creado, con su id
        """
        fields = self._normalize(data)
        product_id = self.product_repo.create(fields)
        product = Product.from_dict(dict(fields, id=product_id)).to_dict()

        if self.audit_service and user:
            self.audit_service.log_product_change(user, product_id, product['name'], 'criado')
        return product

    def update_product(self, product_id: str, updates: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Actualiza solo los campos indicados.

        Raises:
            NotFoundError: Si el producto no existe
            ValidationError: Si algún campo es inválido
        """
        product = self.require_product(product_id)
        fields = self._normalize(updates, partial=True)
        if fields:
            self.product_repo.update(product_id, fields)
            product.update(fields)

        if self.audit_service and user:
            self.audit_service.log_product_change(user, product_id, product.get('name', ''), 'atualizado')
        return product

    def delete_product(self, product_id: str, user: str = None) -> Dict[str, Any]:
        """
        Elimina un producto. Las ventas pasadas conservan su copia.

        Raises:
            NotFoundError: Si el producto no existe
        """
        removed = self.product_repo.delete(product_id)
        if removed is None:
            raise NotFoundError('Produto não encontrado.')

        if self.audit_service and user:
            self.audit_service.log_product_change(user, product_id, removed.get('name', ''), 'excluído')
        return removed

    # =========================================================================
    # STOCK
    # =========================================================================

    def adjust_stock(self, product_id: str, delta: Any, user: str = None) -> int:
        """
        Suma delta al stock de forma atómica; el resultado nunca es negativo.

        Returns:
            Nueva cantidad

        Raises:
            NotFoundError: Si el producto no existe
            ValidationError: Si delta no es entero
        """
        number = to_number(delta)
        if number != number.to_integral_value():
            raise ValidationError('Ajuste de estoque deve ser inteiro.')
        product = self.require_product(product_id)

        new_quantity = self.product_repo.adjust_quantity(product_id, int(number), minimum=0)

        if self.audit_service and user:
            self.audit_service.log_stock_adjusted(
                user, product_id, product.get('name', ''), int(number), new_quantity
            )
        return new_quantity

    # =========================================================================
    # BÚSQUEDA
    # =========================================================================

    def search(self, query: str) -> List[Dict[str, Any]]:
        """
        Búsqueda por subcadena en nombre o código, sin distinguir mayúsculas.

        Returns:
            Lista de productos ([] si la consulta está vacía)
        """
        query = as_text(query)
        if not query:
            return []
        return self.product_repo.search(query)

    def find_by_code(self, code: str) -> Optional[Dict[str, Any]]:
        """Producto con el código exacto (recortado), o None."""
        return self.product_repo.find_by_code(as_text(code))
