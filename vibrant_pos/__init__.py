# ==============================================================================
# VIBRANT POS - Punto de venta (catálogo, carrito, ventas y crediário)
# ==============================================================================
# Paquete principal. La aplicación Flask se construye con create_app()
# en vibrant_pos.main; el contenedor de dependencias vive en app_container.
# ==============================================================================

__version__ = '1.0.0'
