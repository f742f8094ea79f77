# ==============================================================================
# REPOSITORIO DE CLIENTES
# ==============================================================================
# Colección "customers" del árbol: {"<id>": {"name", "contact"}}
# ==============================================================================

from typing import Any, Dict, List

from .base import CollectionRepository


class CustomerRepository(CollectionRepository):
    """Repositorio de clientes."""

    collection = 'customers'

    def list_sorted(self) -> List[Dict[str, Any]]:
        """Clientes ordenados por nombre."""
        return sorted(self.list_all(), key=lambda c: str(c.get('name', '')).lower())
