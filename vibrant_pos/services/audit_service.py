# ==============================================================================
# SERVICIO DE AUDITORÍA
# ==============================================================================
# Centraliza el registro de eventos de negocio con mensajes humanizados.
#
# La regla de oro: si entra o sale dinero, o se toca el stock, queda un log.
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional

from vibrant_pos.models import AuditType
from vibrant_pos.repositories.interfaces import IAuditRepository

logger = logging.getLogger(__name__)


def _brl(value: float) -> str:
    return f"R$ {value:.2f}"


class AuditService:
    """
    Servicio para registro y consulta de auditoría.

    Categorías: VENTA, PAGO, ESTOQUE, PRODUTO, SEGURANCA, SISTEMA.
    """

    def __init__(self, audit_repo: IAuditRepository):
        """
        Args:
            audit_repo: Repositorio de auditoría
        """
        self.audit_repo = audit_repo

    # =========================================================================
    # REGISTRO DE EVENTOS
    # =========================================================================

    def log(
        self,
        log_type: AuditType,
        user: str,
        message: str,
        related_id: str = '',
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Registra un evento de auditoría genérico.

        Args:
            log_type: Categoría del evento
            user: Operador que realizó la acción
            message: Mensaje descriptivo humanizado
            related_id: ID relacionado (venta, producto, etc.)
            details: Detalles adicionales
        """
        self.audit_repo.log(log_type.value, user, message, related_id, details)
        logger.info("[%s] %s", log_type.value, message)

    def log_sale_finalized(self, user: str, sale_id: str, total: float, method: str, items_count: int) -> None:
        message = f"Venda {sale_id} finalizada por {user} - Total: {_brl(total)} - {items_count} itens - {method}"
        self.log(
            AuditType.VENTA, user, message, sale_id,
            {'total': total, 'payment_method': method, 'items_count': items_count}
        )

    def log_sale_voided(self, user: str, sale_id: str, total: float) -> None:
        message = f"Venda {sale_id} cancelada por {user} - Estorno de {_brl(total)}"
        self.log(AuditType.VENTA, user, message, sale_id, {'total': total})

    def log_sales_deleted(self, user: str, sale_ids: List[str]) -> None:
        message = f"{len(sale_ids)} venda(s) excluída(s) por {user}"
        self.log(AuditType.VENTA, user, message, '', {'sale_ids': sale_ids})

    def log_installment_status(self, user: str, sale_id: str, number: int, status: str, value: float) -> None:
        """Cambio de estado de una cuota (PAGO si entra dinero)."""
        if status == 'pago':
            message = f"Parcela {number} da venda {sale_id} paga ({_brl(value)}) - registrado por {user}"
        else:
            message = f"Parcela {number} da venda {sale_id} reaberta por {user}"
        self.log(AuditType.PAGO, user, message, sale_id, {'number': number, 'status': status, 'value': value})

    def log_stock_adjusted(self, user: str, product_id: str, name: str, delta: int, new_quantity: int) -> None:
        sign = '+' if delta >= 0 else ''
        message = f"Estoque de {name}: {sign}{delta} (agora {new_quantity}) por {user}"
        self.log(
            AuditType.ESTOQUE, user, message, product_id,
            {'delta': delta, 'quantity': new_quantity}
        )

    def log_product_change(self, user: str, product_id: str, name: str, action: str) -> None:
        """action: criado / atualizado / excluído"""
        self.log(AuditType.PRODUTO, user, f"Produto {name} {action} por {user}", product_id, {'action': action})

    def log_security(self, user: str, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Logins, altas/bajas de equipo y autorizaciones (también las fallidas)."""
        self.log(AuditType.SEGURANCA, user, message, '', details)

    # =========================================================================
    # CONSULTA
    # =========================================================================

    def get_recent(self, limit: int = 100, log_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Logs más recientes, opcionalmente filtrados por tipo.

        Args:
            limit: Número máximo de logs
            log_type: Categoría a filtrar
        """
        logs = self.audit_repo.load()
        if log_type:
            logs = [log for log in logs if log.get('type') == log_type]
        return logs[:limit]
