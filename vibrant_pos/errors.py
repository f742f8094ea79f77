# ==============================================================================
# ERRORES DE NEGOCIO
# ==============================================================================
# Jerarquía única de excepciones que lanzan servicios y repositorios.
# Las rutas las traducen a respuestas JSON {"success": false, "error": ...}
# con el código HTTP indicado en cada clase.
# ==============================================================================


class PosError(Exception):
    """Error base del punto de venta."""
    status_code = 500

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message


class ValidationError(PosError):
    """Datos inválidos: la operación se rechaza antes de persistir nada."""
    status_code = 400


class InsufficientStockError(ValidationError):
    """La venta dejaría stock negativo y la configuración no lo permite."""
    pass


class AuthenticationError(PosError):
    """No hay operador autenticado o las credenciales no coinciden."""
    status_code = 401


class AuthorizationError(PosError):
    """El operador no tiene permiso (p. ej. anulación sin código válido)."""
    status_code = 403


class NotFoundError(PosError):
    """El registro solicitado no existe."""
    status_code = 404


class PersistenceError(PosError):
    """El almacenamiento rechazó la escritura; nada quedó aplicado."""
    status_code = 503
