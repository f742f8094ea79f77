# ==============================================================================
# CONFIGURACIÓN DE LA APLICACIÓN
# ==============================================================================
# Todos los valores se leen de variables de entorno con valores por defecto
# para desarrollo local.
#
# PRODUCCIÓN: definir como mínimo
#   export POS_SECRET_KEY="clave_larga_y_aleatoria"
#   export POS_MASTER_PIN="..."  y  export POS_VOID_CODE="..."
# ==============================================================================

import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    # Sesiones Flask
    DEFAULT_SECRET_KEY = 'vibrant_pos_dev_secret_change_in_production'
    SECRET_KEY = os.environ.get('POS_SECRET_KEY', DEFAULT_SECRET_KEY)
    PERMANENT_SESSION_LIFETIME = int(os.environ.get('POS_SESSION_LIFETIME', '43200'))
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # Carpeta donde vive el árbol JSON (store.json)
    DATA_DIR = os.environ.get(
        'POS_DATA_DIR',
        os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data'),
    )

    # Crediário: recargo fijo y calendario de cuotas
    CREDIARIO_FEE_RATE = os.environ.get('POS_CREDIARIO_FEE_RATE', '0.055')
    INSTALLMENT_CADENCE = os.environ.get('POS_INSTALLMENT_CADENCE', 'days')  # 'days' | 'months'
    INSTALLMENT_STEP_DAYS = int(os.environ.get('POS_INSTALLMENT_STEP_DAYS', '30'))
    MAX_INSTALLMENTS = int(os.environ.get('POS_MAX_INSTALLMENTS', '12'))

    # False = rechazar ventas que dejarían stock negativo
    ALLOW_OVERSELL = _env_bool('POS_ALLOW_OVERSELL', True)

    # Administrador maestro (siempre disponible, no vive en el store)
    MASTER_USER = os.environ.get('POS_MASTER_USER', 'admin')
    MASTER_PIN = os.environ.get('POS_MASTER_PIN', '1234')
    MASTER_NAME = os.environ.get('POS_MASTER_NAME', 'Administrador Mestre')

    # Código de autorización para anular ventas (además del PIN de un admin)
    VOID_CODE = os.environ.get('POS_VOID_CODE', '')

    LOG_LEVEL = os.environ.get('POS_LOG_LEVEL', 'INFO')

    # Función externa (resumen -> texto) para insights; None = deshabilitado
    INSIGHTS_SUMMARIZER = None
