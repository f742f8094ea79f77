# ==============================================================================
# REPOSITORIO DE AUDITORÍA
# ==============================================================================
# Colección "audit" del árbol: {"<id>": {type, user, message, timestamp,
# related_id, details}}. Solo se agrega; al superar MAX_LOGS se descartan
# los más antiguos.
# ==============================================================================

from datetime import datetime
from typing import Any, Dict, List, Optional

from .base import CollectionRepository


class AuditRepository(CollectionRepository):
    """
    Repositorio del log de auditoría.

    Formato de cada evento:
    {
        "type": "VENTA",
        "user": "admin",
        "message": "Venda 3f2a... finalizada por admin",
        "timestamp": "2024-01-01 10:00:00.123456",
        "related_id": "3f2a...",
        "details": {...}
    }
    """

    collection = 'audit'

    # Límite de registros para evitar archivos muy grandes
    MAX_LOGS = 10000

    def load(self) -> List[Dict[str, Any]]:
        """
        Carga todos los logs de auditoría.

        Returns:
            Lista de logs (más recientes primero)
        """
        return sorted(self.list_all(), key=lambda x: x.get('timestamp', ''), reverse=True)

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Registra un nuevo evento de auditoría.

        Args:
            log_type: Tipo de evento (VENTA, PAGO, ESTOQUE, PRODUTO, SEGURANCA, SISTEMA)
            user: Operador que realizó la acción
            message: Mensaje descriptivo humanizado
            related_id: ID relacionado (venta, producto, etc.)
            details: Detalles adicionales

        Returns:
            Clave del evento creado
        """
        log_entry = {
            'type': log_type,
            'user': user or 'sistema',
            'message': message,
            'timestamp': datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f"),
            'related_id': related_id or '',
            'details': details or {},
        }
        with self.store.transaction() as txn:
            key = txn.create(self.collection, log_entry)
            logs = txn.get(self.collection) or {}
            if len(logs) > self.MAX_LOGS:
                oldest = sorted(logs.items(), key=lambda kv: kv[1].get('timestamp', ''))
                for old_key, _ in oldest[:len(logs) - self.MAX_LOGS]:
                    txn.delete(self.path(old_key))
        return key

