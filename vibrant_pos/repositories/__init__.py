# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Todas las colecciones viven en un único árbol JSON (store.json) manejado
# por JsonDocumentStore. Cada repositorio envuelve una colección.
#
# ESTRUCTURA:
# ├── interfaces.py           → Protocolos (contratos de cada repositorio)
# ├── base.py                 → JsonDocumentStore, transacciones, CollectionRepository
# ├── product_repository.py   → products/<id>
# ├── customer_repository.py  → customers/<id>
# ├── sales_repository.py     → sales/<id>
# ├── user_repository.py      → users/<id>
# ├── settings_repository.py  → settings
# └── audit_repository.py     → audit/<id>
# ==============================================================================

from .interfaces import (
    ICollectionRepository,
    IProductRepository,
    ICustomerRepository,
    ISalesRepository,
    IUserRepository,
    ISettingsRepository,
    IAuditRepository,
)

from .base import JsonDocumentStore, StoreTransaction, CollectionRepository
from .product_repository import ProductRepository
from .customer_repository import CustomerRepository
from .sales_repository import SalesRepository
from .user_repository import UserRepository
from .settings_repository import SettingsRepository
from .audit_repository import AuditRepository

__all__ = [
    # Interfaces
    'ICollectionRepository',
    'IProductRepository',
    'ICustomerRepository',
    'ISalesRepository',
    'IUserRepository',
    'ISettingsRepository',
    'IAuditRepository',

    # Store
    'JsonDocumentStore',
    'StoreTransaction',
    'CollectionRepository',

    # Colecciones
    'ProductRepository',
    'CustomerRepository',
    'SalesRepository',
    'UserRepository',
    'SettingsRepository',
    'AuditRepository',
]
