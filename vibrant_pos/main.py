# ==============================================================================
# APLICACIÓN WEB - API JSON del punto de venta
# ==============================================================================
# Las rutas solo orquestan: request → servicio → respuesta JSON.
# Toda la lógica de negocio vive en services/.
#
# Respuestas:
#   éxito → {"success": true, ...}
#   error → {"success": false, "error": "mensaje"} con el código HTTP del
#           error de negocio (400, 401, 403, 404, 503)
#
# Seguridad:
#   - Sesión Flask (login_required / role_required)
#   - Token CSRF obligatorio en todo POST (header X-CSRF-Token o campo
#     "csrf_token" del JSON); se obtiene en GET /api/session
#   - Headers de seguridad en cada respuesta
# ==============================================================================

import json
import logging
import uuid
from functools import wraps
from typing import Any, Mapping, Optional

from flask import Blueprint, Flask, Response, request, session, stream_with_context
from werkzeug.exceptions import HTTPException

from vibrant_pos.app_container import AppContainer, get_container
from vibrant_pos.config import Config
from vibrant_pos.errors import AuthenticationError, NotFoundError, PosError, ValidationError
from vibrant_pos.models import PaymentMethod, Product, Settings, User, UserRole
from vibrant_pos.services import build_labels, build_login_card, build_receipt, parse_scan
from vibrant_pos.services.scanner_service import KIND_LOGIN

logger = logging.getLogger(__name__)

bp = Blueprint('pos', __name__, url_prefix='/api')

# Colecciones que se pueden seguir en vivo (users queda fuera: tiene hashes)
STREAMABLE_COLLECTIONS = frozenset(['products', 'customers', 'sales', 'settings'])

# Campos de configuración editables
SETTINGS_FIELDS = ('company_name', 'logo_url', 'pix_qr_url')


# ═══════════════════════════════════════════════════════════════════════════════
# SESIÓN Y DECORADORES
# ═══════════════════════════════════════════════════════════════════════════════

def generate_csrf_token() -> str:
    if 'csrf_token' not in session:
        session['csrf_token'] = uuid.uuid4().hex
    return session['csrf_token']


def current_operator() -> Optional[User]:
    """Operador de la sesión, o None."""
    data = session.get('user')
    if not data:
        return None
    return User.from_dict(data)


def login_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if 'user' not in session:
            return {'success': False, 'error': 'Faça login para continuar.'}, 401
        return f(*args, **kwargs)
    return wrapper


def role_required(role_name):
    def deco(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if session.get('role') != role_name:
                return {'success': False, 'error': 'Permissão negada.'}, 403
            return f(*args, **kwargs)
        return wrapper
    return deco


def verify_csrf(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if request.method == 'POST':
            token = session.get('csrf_token')
            form_token = (
                request.headers.get('X-CSRF-Token') or
                request.headers.get('X-CSRFToken')
            )
            if not form_token and request.is_json:
                json_data = request.get_json(silent=True) or {}
                form_token = json_data.get('csrf_token')

            if not token or not form_token or token != form_token:
                return {'success': False, 'error': 'Token CSRF inválido.'}, 403
        return f(*args, **kwargs)
    return wrapper


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _start_session(user: User) -> None:
    session.permanent = True
    session['user'] = user.to_public_dict()
    session['role'] = user.role.value


def _settings() -> Settings:
    return Settings.from_dict(get_container().settings_repo.load())


# ═══════════════════════════════════════════════════════════════════════════════
# SESIÓN: login / logout
# ═══════════════════════════════════════════════════════════════════════════════

@bp.get('/session')
def api_session():
    """Operador actual y token CSRF para los POST siguientes."""
    return {
        'success': True,
        'user': session.get('user'),
        'csrf_token': generate_csrf_token(),
    }


@bp.post('/login')
@verify_csrf
def api_login():
    data = _json_body()
    user = get_container().user_service.authenticate(data.get('name'), data.get('pin'))
    _start_session(user)
    return {'success': True, 'user': user.to_public_dict()}


@bp.post('/login/badge')
@verify_csrf
def api_login_badge():
    """Login con el token leído del crachá."""
    scan = parse_scan(_json_body().get('token'))
    user = get_container().user_service.authenticate_badge(scan.value)
    _start_session(user)
    return {'success': True, 'user': user.to_public_dict()}


@bp.post('/logout')
@login_required
@verify_csrf
def api_logout():
    user = session.get('user', {}).get('name')
    session.clear()
    logger.info("Logout de %s", user)
    return {'success': True}


# ═══════════════════════════════════════════════════════════════════════════════
# PRODUCTOS
# ═══════════════════════════════════════════════════════════════════════════════

@bp.get('/products')
@login_required
def api_products():
    """Catálogo completo, o búsqueda con ?q=."""
    inventory_service = get_container().inventory_service
    query = request.args.get('q')
    if query is not None:
        return {'success': True, 'products': inventory_service.search(query)}
    return {'success': True, 'products': inventory_service.get_all_products()}


@bp.get('/products/code/<path:code>')
@login_required
def api_product_by_code(code):
    product = get_container().inventory_service.find_by_code(code)
    if not product:
        raise NotFoundError('Produto não cadastrado.')
    return {'success': True, 'product': product}


@bp.post('/products')
@login_required
@role_required('admin')
@verify_csrf
def api_create_product():
    product = get_container().inventory_service.create_product(
        _json_body(), user=session['user']['name']
    )
    return {'success': True, 'product': product}, 201


@bp.post('/products/<product_id>')
@login_required
@role_required('admin')
@verify_csrf
def api_update_product(product_id):
    product = get_container().inventory_service.update_product(
        product_id, _json_body(), user=session['user']['name']
    )
    return {'success': True, 'product': product}


@bp.post('/products/<product_id>/delete')
@login_required
@role_required('admin')
@verify_csrf
def api_delete_product(product_id):
    get_container().inventory_service.delete_product(product_id, user=session['user']['name'])
    return {'success': True}


@bp.post('/products/<product_id>/stock')
@login_required
@role_required('admin')
@verify_csrf
def api_adjust_stock(product_id):
    quantity = get_container().inventory_service.adjust_stock(
        product_id, _json_body().get('delta'), user=session['user']['name']
    )
    return {'success': True, 'quantity': quantity}


# ═══════════════════════════════════════════════════════════════════════════════
# CLIENTES
# ═══════════════════════════════════════════════════════════════════════════════

@bp.get('/customers')
@login_required
def api_customers():
    return {'success': True, 'customers': get_container().customer_service.list_customers()}


@bp.post('/customers')
@login_required
@verify_csrf
def api_create_customer():
    customer = get_container().customer_service.create_customer(_json_body())
    return {'success': True, 'customer': customer}, 201


@bp.post('/customers/<customer_id>')
@login_required
@verify_csrf
def api_update_customer(customer_id):
    customer = get_container().customer_service.update_customer(customer_id, _json_body())
    return {'success': True, 'customer': customer}


# ═══════════════════════════════════════════════════════════════════════════════
# CARRITO
# ═══════════════════════════════════════════════════════════════════════════════

def _cart_response(status: int = 200):
    method = request.args.get('payment_method') or _json_body().get('payment_method') or PaymentMethod.PIX.value
    return {'success': True, 'cart': get_container().cart_service.get_cart(method)}, status


@bp.get('/cart')
@login_required
def api_cart():
    """Carrito con totales para ?payment_method= (pix por defecto)."""
    return _cart_response()


@bp.post('/cart/add')
@login_required
@verify_csrf
def api_cart_add():
    """Agrega por product_id o por code (texto escaneado)."""
    data = _json_body()
    cart_service = get_container().cart_service
    if data.get('product_id'):
        cart_service.add_product(data['product_id'])
    else:
        scan = parse_scan(data.get('code'))
        if scan.kind == KIND_LOGIN:
            raise ValidationError('Crachá não é um código de produto.')
        cart_service.add_by_code(scan.value)
    return _cart_response()


@bp.post('/cart/update')
@login_required
@verify_csrf
def api_cart_update():
    data = _json_body()
    get_container().cart_service.update_line(
        data.get('product_id'), quantity=data.get('quantity'), discount=data.get('discount')
    )
    return _cart_response()


@bp.post('/cart/remove')
@login_required
@verify_csrf
def api_cart_remove():
    get_container().cart_service.remove_line(_json_body().get('product_id'))
    return _cart_response()


@bp.post('/cart/clear')
@login_required
@verify_csrf
def api_cart_clear():
    get_container().cart_service.clear()
    return _cart_response()


@bp.post('/cart/checkout')
@login_required
@verify_csrf
def api_cart_checkout():
    """
    Finaliza la venta con el carrito de la sesión.

    Body JSON:
    {
        "payment_method": "pix|dinheiro|debito|credito|crediario",
        "customer_id": "...",          (obligatorio en crediario)
        "amount_received": 25.00,      (obligatorio en dinheiro)
        "installment_count": 2         (crediario)
    }

    El carrito se vacía solo si la venta se registró.
    """
    container = get_container()
    data = _json_body()
    sale = container.sales_service.finalize_sale(
        container.cart_service.get_lines(),
        current_operator(),
        data.get('payment_method'),
        customer_id=data.get('customer_id') or None,
        amount_received=data.get('amount_received'),
        installment_count=data.get('installment_count'),
    )
    container.cart_service.clear()
    return {
        'success': True,
        'sale': sale.to_dict(),
        'receipt': build_receipt(sale, _settings()),
    }, 201


# ═══════════════════════════════════════════════════════════════════════════════
# VENTAS Y CREDIÁRIO
# ═══════════════════════════════════════════════════════════════════════════════

@bp.get('/sales')
@login_required
def api_sales():
    return {'success': True, 'sales': get_container().sales_service.list_sales()}


@bp.get('/sales/<sale_id>')
@login_required
def api_sale(sale_id):
    return {'success': True, 'sale': get_container().sales_service.get_sale(sale_id).to_dict()}


@bp.get('/sales/<sale_id>/receipt')
@login_required
def api_sale_receipt(sale_id):
    sale = get_container().sales_service.get_sale(sale_id)
    return {'success': True, 'receipt': build_receipt(sale, _settings())}


@bp.post('/sales/<sale_id>/void')
@login_required
@verify_csrf
def api_void_sale(sale_id):
    """Anula una venta. Requiere el código de autorización o el PIN de un admin."""
    container = get_container()
    authorization = container.user_service.authorize_void(
        _json_body().get('authorization_code'), session['user']['name']
    )
    sale = container.sales_service.void_sale(sale_id, authorization)
    return {'success': True, 'changed': sale is not None, 'sale': sale.to_dict() if sale else None}


@bp.post('/sales/<sale_id>/installments/<int:number>')
@login_required
@verify_csrf
def api_installment_status(sale_id, number):
    sale = get_container().sales_service.set_installment_status(
        sale_id, number, _json_body().get('status'), user=session['user']['name']
    )
    return {'success': True, 'sale': sale.to_dict()}


@bp.post('/sales/delete')
@login_required
@role_required('admin')
@verify_csrf
def api_delete_sales():
    """Borra ventas seleccionadas sin tocar el stock (todo o nada)."""
    deleted = get_container().sales_service.delete_sales(
        _json_body().get('sale_ids') or [], user=session['user']['name']
    )
    return {'success': True, 'deleted': deleted}


@bp.get('/reports/stats')
@login_required
def api_stats():
    return {'success': True, 'stats': get_container().sales_service.compute_stats()}


@bp.get('/reports/crediario')
@login_required
def api_crediario():
    return {'success': True, 'accounts': get_container().sales_service.get_crediario_accounts()}


@bp.get('/insights')
@login_required
def api_insights():
    container = get_container()
    return dict(success=True, **container.insights_service.get_insights(container.sales_service.list_sales()))


# ═══════════════════════════════════════════════════════════════════════════════
# ETIQUETAS Y ESCÁNER
# ═══════════════════════════════════════════════════════════════════════════════

@bp.get('/labels')
@login_required
def api_labels():
    """?product_id=&copies= para un producto; sin parámetros, todo el catálogo."""
    inventory_service = get_container().inventory_service
    product_id = request.args.get('product_id')
    if product_id:
        product = Product.from_dict(inventory_service.require_product(product_id))
        labels = build_labels(product, request.args.get('copies', default=1, type=int))
    else:
        labels = build_labels([Product.from_dict(p) for p in inventory_service.get_all_products()])
    return {'success': True, 'labels': labels}


@bp.post('/scan')
@verify_csrf
def api_scan():
    """
    Procesa texto del escáner: un crachá inicia sesión; un código de
    producto lo agrega al carrito (requiere sesión).
    """
    scan = parse_scan(_json_body().get('text'))
    container = get_container()
    if scan.kind == KIND_LOGIN:
        user = container.user_service.authenticate_badge(scan.value)
        _start_session(user)
        return {'success': True, 'scan': scan.to_dict(), 'user': user.to_public_dict()}

    if 'user' not in session:
        raise AuthenticationError('Faça login para continuar.')
    container.cart_service.add_by_code(scan.value)
    return {
        'success': True,
        'scan': scan.to_dict(),
        'cart': container.cart_service.get_cart(),
    }


# ═══════════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN, EQUIPO Y AUDITORÍA
# ═══════════════════════════════════════════════════════════════════════════════

@bp.get('/settings')
@login_required
def api_settings():
    return {'success': True, 'settings': _settings().to_dict()}


@bp.post('/settings')
@login_required
@role_required('admin')
@verify_csrf
def api_update_settings():
    data = _json_body()
    updates = {}
    for key in SETTINGS_FIELDS:
        if key in data:
            value = str(data[key] or '').strip()
            updates[key] = value or None
    if 'company_name' in updates and not updates['company_name']:
        raise ValidationError('Nome da empresa é obrigatório.')
    settings = get_container().settings_repo.update(updates)
    return {'success': True, 'settings': Settings.from_dict(settings).to_dict()}


@bp.get('/users')
@login_required
@role_required('admin')
def api_users():
    return {'success': True, 'users': get_container().user_service.list_users()}


@bp.post('/users')
@login_required
@role_required('admin')
@verify_csrf
def api_create_user():
    """Crea un operador y devuelve su crachá (única vez que el PIN está disponible)."""
    data = _json_body()
    user = get_container().user_service.create_user(
        data.get('name'), data.get('pin'),
        role=data.get('role') or UserRole.VENDEDOR.value,
        admin_user=session['user']['name'],
    )
    card = build_login_card(user['name'], str(data.get('pin')).strip(), _settings())
    return {'success': True, 'user': user, 'login_card': card}, 201


@bp.post('/users/<user_id>/delete')
@login_required
@role_required('admin')
@verify_csrf
def api_delete_user(user_id):
    if user_id == session['user']['id']:
        raise ValidationError('Você não pode remover a própria conta.')
    get_container().user_service.delete_user(user_id, admin_user=session['user']['name'])
    return {'success': True}


@bp.get('/audit')
@login_required
@role_required('admin')
def api_audit():
    limit = request.args.get('limit', default=100, type=int) or 100
    logs = get_container().audit_service.get_recent(limit, request.args.get('type'))
    return {'success': True, 'logs': logs}


# ═══════════════════════════════════════════════════════════════════════════════
# CAMBIOS EN VIVO (Server-Sent Events)
# ═══════════════════════════════════════════════════════════════════════════════

@bp.get('/stream/<collection>')
@login_required
def api_stream(collection):
    """Snapshot completo de la colección ahora y después de cada cambio."""
    if collection not in STREAMABLE_COLLECTIONS:
        raise NotFoundError('Coleção não encontrada.')
    store = get_container().store

    def events():
        for snapshot in store.snapshots(collection):
            if collection != 'settings':
                snapshot = [dict(v, id=k) for k, v in (snapshot or {}).items() if isinstance(v, dict)]
            yield f"data: {json.dumps(snapshot, ensure_ascii=False)}\n\n"

    return Response(stream_with_context(events()), mimetype='text/event-stream')


# ═══════════════════════════════════════════════════════════════════════════════
# FÁBRICA DE LA APLICACIÓN
# ═══════════════════════════════════════════════════════════════════════════════

def _configure_logging(level_name: str) -> None:
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    logging.getLogger('vibrant_pos').setLevel(level)


def create_app(config_overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    """
    Crea la aplicación Flask.

    Args:
        config_overrides: Valores que reemplazan a Config (p. ej. en tests)
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    _configure_logging(app.config['LOG_LEVEL'])
    if app.config['SECRET_KEY'] == Config.DEFAULT_SECRET_KEY and not app.testing:
        logger.warning("POS_SECRET_KEY no definida: usando clave de desarrollo")

    app.extensions['container'] = AppContainer(app.config)
    app.register_blueprint(bp)

    @app.errorhandler(PosError)
    def handle_pos_error(error):
        if error.status_code >= 500:
            logger.error("%s: %s", type(error).__name__, error.message)
        return {'success': False, 'error': error.message}, error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return {'success': False, 'error': error.description}, error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        logger.exception("Error interno en %s", request.path)
        return {'success': False, 'error': 'Erro interno. Tente novamente.'}, 500

    @app.after_request
    def set_security_headers(response):
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'
        response.headers['Permissions-Policy'] = 'geolocation=(), microphone=()'
        if request.is_secure:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    logger.info("Vibrant POS iniciado (datos en %s)", app.config['DATA_DIR'])
    return app
