import pytest

from vibrant_pos.errors import ValidationError
from vibrant_pos.models import Installment, PaymentMethod, Product, Sale, SaleItem, Settings
from vibrant_pos.services.receipt_service import (
    LABELS_PER_PAGE,
    build_labels,
    build_login_card,
    build_receipt,
    format_brl,
    short_order_id,
)

SETTINGS = Settings(company_name='Loja da Ana', pix_qr_url='https://example.com/pix.png')


def make_sale(method=PaymentMethod.PIX, **kwargs):
    data = dict(
        id='3f2a9c1e77b04d0e',
        timestamp='2024-05-10T14:30:00+00:00',
        seller_id='u1',
        seller_name='Ana',
        payment_method=method,
        items=[SaleItem(product_id='p1', name='Camiseta estampada tamanho grande azul', quantity=2, price=10.0)],
        subtotal=20.0,
        total=20.0,
        amount_paid=20.0,
    )
    data.update(kwargs)
    return Sale(**data)


def test_receipt_layout():
    receipt = build_receipt(make_sale(), SETTINGS)

    assert receipt['file_name'] == 'recibo-3f2a9c1e.png'
    assert receipt['header']['company_name'] == 'LOJA DA ANA'
    assert receipt['header']['title'] == 'COMPROVANTE DE VENDA'
    assert receipt['order']['short_id'] == '#3F2A9C1E'
    assert receipt['order']['date'] == '10/05/2024 14:30'
    assert receipt['order']['seller'] == 'ANA'
    assert receipt['items'][0]['name'] == 'CAMISETA ESTAMPADA TAMANHO G'
    assert receipt['items'][0]['detail'] == '2 un x R$ 10.00'
    assert receipt['items'][0]['total_text'] == 'R$ 20.00'
    assert receipt['totals']['fee_text'] is None
    assert receipt['footer'] == ['ESTE NÃO É UM DOCUMENTO FISCAL', 'OBRIGADO PELA PREFERÊNCIA!']


@pytest.mark.parametrize('method,shows_pix', [
    (PaymentMethod.PIX, True),
    (PaymentMethod.CREDIARIO, True),
    (PaymentMethod.DINHEIRO, False),
    (PaymentMethod.DEBITO, False),
    (PaymentMethod.CREDITO, False),
])
def test_pix_qr_only_for_pix_and_crediario(method, shows_pix):
    receipt = build_receipt(make_sale(method), SETTINGS)
    assert (receipt['pix_qr_url'] is not None) == shows_pix


def test_no_pix_qr_without_configured_image():
    receipt = build_receipt(make_sale(), Settings(company_name='Loja'))
    assert receipt['pix_qr_url'] is None


def test_receipt_lists_installments():
    sale = make_sale(
        PaymentMethod.CREDIARIO,
        fee=1.1,
        total=21.1,
        customer_name='Maria',
        installments=[
            Installment(number=1, value=10.55, due_date='2024-06-09'),
            Installment(number=2, value=10.55, due_date='2024-07-09'),
        ],
    )
    receipt = build_receipt(sale, SETTINGS)
    assert receipt['totals']['fee_text'] == 'R$ 1.10'
    assert receipt['order']['customer'] == 'MARIA'
    assert [i['label'] for i in receipt['installments']] == [
        '1ª Parc. - 09/06/2024',
        '2ª Parc. - 09/07/2024',
    ]


def test_helpers():
    assert format_brl(3.9) == 'R$ 3.90'
    assert format_brl(None) == 'R$ 0.00'
    assert short_order_id('abc') == '#ABC'


def test_labels_fill_pages_in_grid():
    product = Product(id='p1', name='Boné', code='B1', sell_price=25.0)
    labels = build_labels(product, copies=28)

    assert labels['count'] == 28
    assert len(labels['pages']) == 2
    assert len(labels['pages'][0]) == LABELS_PER_PAGE == 27
    first, last_on_page = labels['pages'][0][0], labels['pages'][0][-1]
    assert (first['x'], first['y']) == (10, 13)
    assert (last_on_page['col'], last_on_page['row']) == (2, 8)
    assert (last_on_page['x'], last_on_page['y']) == (134, 261)
    assert labels['pages'][1][0]['page'] == 1
    assert first['price_text'] == 'R$ 25.00'
    assert first['code_text'] == 'COD: B1'
    assert first['qr_data'] == 'B1'


def test_labels_for_catalog_and_invalid_input():
    products = [Product(id='p1', name='Boné', code='B1'), Product(id='p2', name='Meia', code='M1')]
    assert [label['product_id'] for label in build_labels(products)['pages'][0]] == ['p1', 'p2']

    with pytest.raises(ValidationError):
        build_labels([])
    with pytest.raises(ValidationError):
        build_labels(products[0], copies=0)
    with pytest.raises(ValidationError):
        build_labels(products[0], copies=501)


def test_login_card_carries_badge_token():
    card = build_login_card('Joana', '4321', SETTINGS)
    assert card['name'] == 'JOANA'
    assert card['qr_data'] == 'TENDA-LOGIN|Joana|4321'
