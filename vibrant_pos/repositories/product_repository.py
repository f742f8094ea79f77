# ==============================================================================
# REPOSITORIO DE PRODUCTOS
# ==============================================================================
# Colección "products" del árbol:
#   {"<id>": {"name", "code", "buy_price", "sell_price", "quantity"}}
# ==============================================================================

from typing import Any, Dict, List, Optional

from .base import CollectionRepository


class ProductRepository(CollectionRepository):
    """Repositorio del catálogo de productos."""

    collection = 'products'

    def quantity_path(self, product_id: str) -> str:
        """Ruta del contador de stock de un producto."""
        return f'{self.path(product_id)}/quantity'

    def find_by_code(self, code: str) -> Optional[Dict[str, Any]]:
        """
        Busca un producto por código exacto.

        Args:
            code: Código de barras / QR (ya recortado)

        Returns:
            Primer producto con ese código o None
        """
        if not code:
            return None
        for product in self.list_all():
            if str(product.get('code', '')).strip() == code:
                return product
        return None

    def search(self, query: str) -> List[Dict[str, Any]]:
        """Búsqueda por subcadena (sin distinguir mayúsculas) en nombre o código."""
        query_lower = query.lower()
        return [
            p for p in self.list_all()
            if query_lower in str(p.get('name', '')).lower()
            or query_lower in str(p.get('code', '')).lower()
        ]

    def adjust_quantity(self, product_id: str, delta: int, minimum: Optional[int] = 0) -> int:
        """Ajuste atómico de stock. Retorna la cantidad resultante."""
        return self.store.adjust(self.quantity_path(product_id), delta, minimum)
