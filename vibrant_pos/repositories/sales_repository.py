# ==============================================================================
# REPOSITORIO DE VENTAS
# ==============================================================================
# Colección "sales" del árbol:
#   {"<id>": {"timestamp", "seller_id", "status", "items": [...],
#             "total", "payment_method", "installments": [...], ...}}
#
# Las ventas nunca se editan en sus ítems; solo cambian "status" y las
# cuotas. La escritura de la venta junto con el stock la hace el servicio
# dentro de una transacción del store.
# ==============================================================================

from typing import Any, Dict, List

from .base import CollectionRepository


class SalesRepository(CollectionRepository):
    """Repositorio del historial de ventas."""

    collection = 'sales'

    def load(self) -> List[Dict[str, Any]]:
        """
        Carga todas las ventas.

        Returns:
            Lista de ventas (más recientes primero)
        """
        return sorted(self.list_all(), key=lambda s: s.get('timestamp', ''), reverse=True)

