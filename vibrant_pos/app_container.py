# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Punto único donde se construyen el store, los repositorios y los
# servicios. Facilita:
#   - Inyección de dependencias (los servicios reciben repos, no archivos)
#   - Testing (cada app de test tiene su propio contenedor y su store)
#   - Cambiar el almacenamiento sin tocar servicios
#
# Hay un contenedor por aplicación Flask (app.extensions['container']),
# creado en create_app() a partir de app.config.
# ==============================================================================

import os
from typing import Any, Mapping, Optional

from flask import current_app

# ═══════════════════════════════════════════════════════════════════════════════
# REPOSITORIOS - Capa de persistencia
# ═══════════════════════════════════════════════════════════════════════════════
from vibrant_pos.repositories import (
    JsonDocumentStore,
    ProductRepository,
    CustomerRepository,
    SalesRepository,
    UserRepository,
    SettingsRepository,
    AuditRepository,
)

# ═══════════════════════════════════════════════════════════════════════════════
# SERVICIOS - Capa de lógica de negocio
# ═══════════════════════════════════════════════════════════════════════════════
from vibrant_pos.services import (
    PricingService,
    AuditService,
    InventoryService,
    CustomerService,
    UserService,
    SalesService,
    CartService,
    InsightsService,
)

STORE_FILE = 'store.json'


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.
    Cada repositorio y servicio se crea la primera vez que se pide.

    Uso:
        container = AppContainer(app.config)
        sales_service = container.sales_service
    """

    def __init__(self, config: Mapping[str, Any]):
        """
        Args:
            config: Configuración (app.config o un dict con las mismas claves)
        """
        self._config = config

        self._store: Optional[JsonDocumentStore] = None

        self._product_repo: Optional[ProductRepository] = None
        self._customer_repo: Optional[CustomerRepository] = None
        self._sales_repo: Optional[SalesRepository] = None
        self._user_repo: Optional[UserRepository] = None
        self._settings_repo: Optional[SettingsRepository] = None
        self._audit_repo: Optional[AuditRepository] = None

        self._pricing_service: Optional[PricingService] = None
        self._audit_service: Optional[AuditService] = None
        self._inventory_service: Optional[InventoryService] = None
        self._customer_service: Optional[CustomerService] = None
        self._user_service: Optional[UserService] = None
        self._sales_service: Optional[SalesService] = None
        self._cart_service: Optional[CartService] = None
        self._insights_service: Optional[InsightsService] = None

    # =========================================================================
    # STORE Y REPOSITORIOS
    # =========================================================================

    @property
    def store(self) -> JsonDocumentStore:
        """Store JSON compartido por todos los repositorios."""
        if self._store is None:
            self._store = JsonDocumentStore(os.path.join(self._config['DATA_DIR'], STORE_FILE))
        return self._store

    @property
    def product_repo(self) -> ProductRepository:
        if self._product_repo is None:
            self._product_repo = ProductRepository(self.store)
        return self._product_repo

    @property
    def customer_repo(self) -> CustomerRepository:
        if self._customer_repo is None:
            self._customer_repo = CustomerRepository(self.store)
        return self._customer_repo

    @property
    def sales_repo(self) -> SalesRepository:
        if self._sales_repo is None:
            self._sales_repo = SalesRepository(self.store)
        return self._sales_repo

    @property
    def user_repo(self) -> UserRepository:
        if self._user_repo is None:
            self._user_repo = UserRepository(self.store)
        return self._user_repo

    @property
    def settings_repo(self) -> SettingsRepository:
        if self._settings_repo is None:
            self._settings_repo = SettingsRepository(self.store)
        return self._settings_repo

    @property
    def audit_repo(self) -> AuditRepository:
        if self._audit_repo is None:
            self._audit_repo = AuditRepository(self.store)
        return self._audit_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def pricing_service(self) -> PricingService:
        if self._pricing_service is None:
            self._pricing_service = PricingService(self._config['CREDIARIO_FEE_RATE'])
        return self._pricing_service

    @property
    def audit_service(self) -> AuditService:
        """Servicio de auditoría."""
        if self._audit_service is None:
            self._audit_service = AuditService(self.audit_repo)
        return self._audit_service

    @property
    def inventory_service(self) -> InventoryService:
        """Servicio de inventario."""
        if self._inventory_service is None:
            self._inventory_service = InventoryService(self.product_repo, self.audit_service)
        return self._inventory_service

    @property
    def customer_service(self) -> CustomerService:
        if self._customer_service is None:
            self._customer_service = CustomerService(self.customer_repo)
        return self._customer_service

    @property
    def user_service(self) -> UserService:
        """Servicio de usuarios."""
        if self._user_service is None:
            self._user_service = UserService(
                self.user_repo,
                self.audit_service,
                master_user=self._config['MASTER_USER'],
                master_pin=self._config['MASTER_PIN'],
                master_name=self._config['MASTER_NAME'],
                void_code=self._config['VOID_CODE'],
            )
        return self._user_service

    @property
    def sales_service(self) -> SalesService:
        """Servicio de ventas."""
        if self._sales_service is None:
            self._sales_service = SalesService(
                self.store,
                self.sales_repo,
                self.product_repo,
                self.customer_repo,
                self.audit_service,
                fee_rate=self._config['CREDIARIO_FEE_RATE'],
                installment_cadence=self._config['INSTALLMENT_CADENCE'],
                installment_step_days=int(self._config['INSTALLMENT_STEP_DAYS']),
                max_installments=int(self._config['MAX_INSTALLMENTS']),
                allow_oversell=bool(self._config['ALLOW_OVERSELL']),
            )
        return self._sales_service

    @property
    def cart_service(self) -> CartService:
        """Servicio de carrito."""
        if self._cart_service is None:
            self._cart_service = CartService(self.inventory_service, self.pricing_service)
        return self._cart_service

    @property
    def insights_service(self) -> InsightsService:
        if self._insights_service is None:
            self._insights_service = InsightsService(self._config.get('INSIGHTS_SUMMARIZER'))
        return self._insights_service


def get_container() -> AppContainer:
    """Contenedor de la aplicación Flask activa."""
    return current_app.extensions['container']
