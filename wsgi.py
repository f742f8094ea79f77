# ==============================================================================
# PUNTO DE ENTRADA
# ==============================================================================
# Producción: gunicorn wsgi:app  (o waitress-serve wsgi:app)
# Desarrollo: python wsgi.py
# ==============================================================================

import os

from vibrant_pos.main import create_app

app = create_app()

if __name__ == '__main__':
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'
    HOST = os.environ.get('FLASK_HOST', '0.0.0.0')
    PORT = int(os.environ.get('FLASK_PORT', 5000))
    app.run(host=HOST, port=PORT, debug=DEBUG)
