# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Entidades del dominio como dataclasses, independientes del almacenamiento.
# ==============================================================================

from .entities import (
    # Operadores
    User,
    UserRole,
    Settings,

    # Catálogo y clientes
    Product,
    Customer,

    # Carrito
    CartLine,

    # Ventas
    Sale,
    SaleItem,
    SaleStatus,
    PaymentMethod,

    # Crediário
    Installment,
    InstallmentStatus,

    # Auditoría
    AuditType,
)

__all__ = [
    'User',
    'UserRole',
    'Settings',
    'Product',
    'Customer',
    'CartLine',
    'Sale',
    'SaleItem',
    'SaleStatus',
    'PaymentMethod',
    'Installment',
    'InstallmentStatus',
    'AuditType',
]
