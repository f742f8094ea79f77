# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# PRINCIPIOS:
# 1. Los servicios orquestan operaciones entre repositorios
# 2. Aplican reglas de negocio y validaciones (lanzan errores de errors.py)
# 3. Las rutas (controllers) solo llaman a servicios
#
# ESTRUCTURA:
# ├── pricing_service.py     → Subtotal, recargo del crediário, total, vuelto
# ├── installment_service.py → Cronograma de cuotas
# ├── sales_service.py       → Finalizar, anular, cuotas, reportes
# ├── inventory_service.py   → Productos y stock
# ├── customer_service.py    → Clientes
# ├── cart_service.py        → Carrito en sesión
# ├── user_service.py        → Operadores, login, autorización de anulaciones
# ├── scanner_service.py     → Validación de texto escaneado
# ├── receipt_service.py     → Comprobantes, etiquetas, crachás
# ├── insights_service.py    → Resumen para el summarizer externo
# └── audit_service.py       → Logs de actividad
# ==============================================================================

from vibrant_pos.services.pricing_service import PricingService, PriceBreakdown, calculate_totals
from vibrant_pos.services.installment_service import generate_installments, summarize_installments
from vibrant_pos.services.audit_service import AuditService
from vibrant_pos.services.inventory_service import InventoryService
from vibrant_pos.services.customer_service import CustomerService
from vibrant_pos.services.user_service import UserService, VoidAuthorization
from vibrant_pos.services.sales_service import SalesService
from vibrant_pos.services.cart_service import CartService
from vibrant_pos.services.scanner_service import ScanResult, parse_scan
from vibrant_pos.services.receipt_service import build_labels, build_login_card, build_receipt
from vibrant_pos.services.insights_service import InsightsService, build_sales_summary

__all__ = [
    'PricingService',
    'PriceBreakdown',
    'calculate_totals',
    'generate_installments',
    'summarize_installments',
    'AuditService',
    'InventoryService',
    'CustomerService',
    'UserService',
    'VoidAuthorization',
    'SalesService',
    'CartService',
    'ScanResult',
    'parse_scan',
    'build_receipt',
    'build_labels',
    'build_login_card',
    'InsightsService',
    'build_sales_summary',
]
