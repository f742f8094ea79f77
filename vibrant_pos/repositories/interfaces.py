# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Protocolos que describen lo que los servicios esperan de cada
# repositorio. Los servicios dependen de estos contratos, no del store JSON:
#
# 1. INDEPENDENCIA DE ALMACENAMIENTO
#    - Cambiar el árbol JSON por otra base solo requiere nuevas clases
#
# 2. TESTING
#    - Fácil crear dobles que cumplan estos protocolos
#
# ==============================================================================

from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class ICollectionRepository(Protocol):
    """Operaciones mínimas de una colección {id: documento}."""

    def valid_id(self, record_id: Any) -> bool:
        ...

    def get_all(self) -> Dict[str, Dict[str, Any]]:
        ...

    def list_all(self) -> List[Dict[str, Any]]:
        ...

    def get_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        ...

    def create(self, data: Dict[str, Any]) -> str:
        ...

    def update(self, record_id: str, updates: Dict[str, Any]) -> None:
        ...

    def delete(self, record_id: str) -> Optional[Dict[str, Any]]:
        ...

    def subscribe(self, callback: Callable[[List[Dict[str, Any]]], None]) -> Callable[[], None]:
        ...


@runtime_checkable
class IProductRepository(ICollectionRepository, Protocol):
    """Catálogo con búsqueda y ajuste atómico de stock."""

    def quantity_path(self, product_id: str) -> str:
        ...

    def find_by_code(self, code: str) -> Optional[Dict[str, Any]]:
        ...

    def search(self, query: str) -> List[Dict[str, Any]]:
        ...

    def adjust_quantity(self, product_id: str, delta: int, minimum: Optional[int] = 0) -> int:
        ...


@runtime_checkable
class ICustomerRepository(ICollectionRepository, Protocol):

    def list_sorted(self) -> List[Dict[str, Any]]:
        ...


@runtime_checkable
class ISalesRepository(ICollectionRepository, Protocol):
    """Historial de ventas, más recientes primero."""

    def load(self) -> List[Dict[str, Any]]:
        ...


@runtime_checkable
class IUserRepository(ICollectionRepository, Protocol):

    def get_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        ...

    def get_admins(self) -> List[Dict[str, Any]]:
        ...


@runtime_checkable
class ISettingsRepository(Protocol):

    def load(self) -> Dict[str, Any]:
        ...

    def update(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        ...


@runtime_checkable
class IAuditRepository(Protocol):

    def load(self) -> List[Dict[str, Any]]:
        ...

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Optional[Dict[str, Any]] = None
    ) -> str:
        ...
