# ==============================================================================
# SERVICIO DE CARRITO
# ==============================================================================
# El carrito vive en la sesión de Flask (session['cart']) y nunca se persiste.
# Cada línea congela nombre y precio al momento de agregar; el stock NO se
# reserva. Solo se vacía después de una venta finalizada con éxito.
# ==============================================================================

from typing import Any, Dict, List

from flask import session

from vibrant_pos.errors import NotFoundError
from vibrant_pos.models import CartLine, PaymentMethod, Product
from vibrant_pos.services.inventory_service import InventoryService
from vibrant_pos.services.pricing_service import (
    PricingService,
    line_total,
    money,
    to_number,
    to_quantity,
)


class CartService:
    """
    Servicio para gestión del carrito de compras.

    Responsabilidades:
    - Agregar productos (por ID o por código escaneado)
    - Cambiar cantidad y descuento de una línea
    - Quitar líneas y vaciar el carrito
    - Mostrar el carrito con totales para un método de pago
    """

    SESSION_KEY = 'cart'

    def __init__(self, inventory_service: InventoryService, pricing_service: PricingService):
        """
        Args:
            inventory_service: Servicio de inventario
            pricing_service: Calculadora de totales
        """
        self.inventory_service = inventory_service
        self.pricing_service = pricing_service

    def _save(self, lines: List[CartLine]) -> None:
        session[self.SESSION_KEY] = [line.to_dict() for line in lines]
        session.modified = True

    def get_lines(self) -> List[CartLine]:
        """Líneas actuales del carrito."""
        return [CartLine.from_dict(d) for d in session.get(self.SESSION_KEY, [])]

    # =========================================================================
    # OPERACIONES
    # =========================================================================

    def add_product(self, product_id: str) -> List[CartLine]:
        """
        Agrega un producto; si ya está en el carrito suma 1 a la cantidad.

        Raises:
            NotFoundError: Si el producto no existe
        """
        product = Product.from_dict(self.inventory_service.require_product(product_id))
        lines = self.get_lines()
        for line in lines:
            if line.product_id == product.id:
                line.quantity += 1
                break
        else:
            lines.append(CartLine.from_product(product))
        self._save(lines)
        return lines

    def add_by_code(self, code: str) -> List[CartLine]:
        """
        Agrega el producto con el código escaneado o tipeado.

        Raises:
            NotFoundError: Si ningún producto tiene ese código
        """
        product = self.inventory_service.find_by_code(code)
        if not product:
            raise NotFoundError(f'Produto não encontrado: {code}')
        return self.add_product(product['id'])

    def update_line(self, product_id: str, quantity: Any = None, discount: Any = None) -> List[CartLine]:
        """
        Cambia cantidad (mínimo 1) y/o descuento por unidad (mínimo 0).

        Raises:
            NotFoundError: Si el producto no está en el carrito
        """
        lines = self.get_lines()
        for line in lines:
            if line.product_id == product_id:
                if quantity is not None:
                    line.quantity = to_quantity(quantity)
                if discount is not None:
                    line.discount = max(0.0, money(to_number(discount)))
                break
        else:
            raise NotFoundError('Item não está no carrinho.')
        self._save(lines)
        return lines

    def remove_line(self, product_id: str) -> List[CartLine]:
        lines = [line for line in self.get_lines() if line.product_id != product_id]
        self._save(lines)
        return lines

    def clear(self) -> None:
        """Vacía el carrito."""
        session.pop(self.SESSION_KEY, None)
        session.modified = True

    # =========================================================================
    # VISTA
    # =========================================================================

    def get_cart(self, payment_method: Any = PaymentMethod.PIX) -> Dict[str, Any]:
        """
        Carrito con totales calculados.

        Returns:
            Dict con items, items_count, total_items, subtotal, fee y total
        """
        lines = self.get_lines()
        breakdown = self.pricing_service.totals(lines, payment_method)
        items = [dict(line.to_dict(), line_total=money(line_total(line))) for line in lines]
        return dict(
            breakdown.to_dict(),
            items=items,
            items_count=len(lines),
            total_items=sum(line.quantity for line in lines),
        )
