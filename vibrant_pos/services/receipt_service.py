# ==============================================================================
# SERVICIO DE COMPROBANTES Y ETIQUETAS
# ==============================================================================
# Arma los datos completos que necesita el renderizador externo (imagen del
# comprobante, PDF de etiquetas, crachá de acceso). Aquí no se dibuja nada:
# solo se decide QUÉ va en cada documento y dónde.
#
# Etiquetas: hoja A4, 3 columnas × 9 filas, 60 × 30 mm cada una.
# ==============================================================================

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from vibrant_pos.errors import ValidationError
from vibrant_pos.models import PaymentMethod, Product, Sale, Settings
from vibrant_pos.services.pricing_service import line_total, money
from vibrant_pos.services.user_service import build_badge_token

# Geometría de etiquetas (mm)
LABEL_WIDTH = 60
LABEL_HEIGHT = 30
LABEL_MARGIN_X = 10
LABEL_MARGIN_Y = 13
LABEL_SPACING_X = 2
LABEL_SPACING_Y = 1
LABEL_COLS = 3
LABEL_ROWS = 9
LABELS_PER_PAGE = LABEL_COLS * LABEL_ROWS

MAX_LABEL_COPIES = 500
ITEM_NAME_LENGTH = 28

FOOTER_LINES = ('ESTE NÃO É UM DOCUMENTO FISCAL', 'OBRIGADO PELA PREFERÊNCIA!')
PIX_METHODS = (PaymentMethod.PIX, PaymentMethod.CREDIARIO)


def format_brl(value: Any) -> str:
    """Monto con prefijo R$ y dos decimales."""
    return f"R$ {money(value):.2f}"


def _format_date(value: str, with_time: bool = False) -> str:
    try:
        dt = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return value or ''
    return dt.strftime('%d/%m/%Y %H:%M' if with_time else '%d/%m/%Y')


def short_order_id(sale_id: str) -> str:
    return '#' + (sale_id or '')[:8].upper()


# ==============================================================================
# COMPROBANTE
# ==============================================================================

def build_receipt(sale: Sale, settings: Settings) -> Dict[str, Any]:
    """
    Datos completos del comprobante de una venta.

    El QR de PIX solo aparece en ventas pix o crediário y si la tienda
    tiene una imagen configurada.
    """
    items = []
    for item in sale.items:
        items.append({
            'name': item.name.upper()[:ITEM_NAME_LENGTH],
            'quantity': item.quantity,
            'detail': f"{item.quantity} un x {format_brl(item.price)}",
            'discount': item.discount,
            'total': money(line_total(item)),
            'total_text': format_brl(line_total(item)),
        })

    installments = [
        {
            'number': inst.number,
            'label': f"{inst.number}ª Parc. - {_format_date(inst.due_date)}",
            'value': inst.value,
            'value_text': format_brl(inst.value),
            'status': inst.status.value,
        }
        for inst in sale.installments
    ]

    show_pix = bool(settings.pix_qr_url) and sale.payment_method in PIX_METHODS

    return {
        'file_name': f"recibo-{(sale.id or '')[:8]}.png",
        'header': {
            'company_name': settings.company_name.upper(),
            'logo_url': settings.logo_url,
            'title': 'COMPROVANTE DE VENDA',
        },
        'order': {
            'id': sale.id,
            'short_id': short_order_id(sale.id),
            'date': _format_date(sale.timestamp, with_time=True),
            'seller': sale.seller_name.upper(),
            'customer': sale.customer_name.upper() if sale.customer_name else None,
            'status': sale.status.value,
        },
        'items': items,
        'totals': {
            'subtotal': sale.subtotal,
            'subtotal_text': format_brl(sale.subtotal),
            'fee': sale.fee,
            'fee_text': format_brl(sale.fee) if sale.fee else None,
            'total': sale.total,
            'total_text': format_brl(sale.total),
            'amount_paid': sale.amount_paid,
            'change': sale.change,
        },
        'payment_method': sale.payment_method.value.upper(),
        'installments': installments,
        'pix_qr_url': settings.pix_qr_url if show_pix else None,
        'footer': list(FOOTER_LINES),
    }


# ==============================================================================
# ETIQUETAS
# ==============================================================================

def _label_position(index: int) -> Dict[str, int]:
    slot = index % LABELS_PER_PAGE
    col = slot % LABEL_COLS
    row = slot // LABEL_COLS
    return {
        'page': index // LABELS_PER_PAGE,
        'col': col,
        'row': row,
        'x': LABEL_MARGIN_X + col * (LABEL_WIDTH + LABEL_SPACING_X),
        'y': LABEL_MARGIN_Y + row * (LABEL_HEIGHT + LABEL_SPACING_Y),
    }


def build_labels(
    products: Union[Product, Sequence[Product]],
    copies: Optional[int] = None
) -> Dict[str, Any]:
    """
    Etiquetas de góndola distribuidas en páginas A4.

    Args:
        products: Un producto (se repite `copies` veces) o una lista
            (una etiqueta por producto)
        copies: Copias del producto único

    Returns:
        Dict con width/height de etiqueta y la lista de páginas

    Raises:
        ValidationError: Si no hay etiquetas que generar o copies es inválido
    """
    if isinstance(products, Product):
        if copies is None:
            copies = 1
        if not isinstance(copies, int) or copies < 1 or copies > MAX_LABEL_COPIES:
            raise ValidationError(f'Quantidade de etiquetas deve estar entre 1 e {MAX_LABEL_COPIES}.')
        sequence = [products] * copies
    else:
        sequence = list(products)
    if not sequence:
        raise ValidationError('Nenhum produto para gerar etiquetas.')

    pages: List[List[Dict[str, Any]]] = []
    for index, product in enumerate(sequence):
        position = _label_position(index)
        if position['page'] == len(pages):
            pages.append([])
        pages[-1].append(dict(
            position,
            product_id=product.id,
            name=product.name.upper(),
            code_text=f"COD: {product.code}",
            qr_data=product.code,
            price_text=format_brl(product.sell_price),
        ))

    return {
        'page_size': 'A4',
        'label_width': LABEL_WIDTH,
        'label_height': LABEL_HEIGHT,
        'count': len(sequence),
        'pages': pages,
    }


# ==============================================================================
# CRACHÁ DE ACCESO
# ==============================================================================

def build_login_card(name: str, pin: str, settings: Settings) -> Dict[str, Any]:
    """Crachá con el token de login que lee el escáner."""
    return {
        'company_name': settings.company_name.upper(),
        'logo_url': settings.logo_url,
        'title': 'CRACHÁ DE ACESSO',
        'name': name.upper(),
        'qr_data': build_badge_token(name, pin),
    }
