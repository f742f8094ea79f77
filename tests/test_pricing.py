from decimal import Decimal

import pytest

from vibrant_pos.errors import ValidationError
from vibrant_pos.models import CartLine, PaymentMethod
from vibrant_pos.services.pricing_service import (
    PricingService,
    calculate_change,
    calculate_fee,
    calculate_totals,
    check_cash_tender,
    money,
    round_money,
    to_number,
    to_quantity,
)


def two_shirts():
    return [CartLine(product_id='p1', name='Camiseta', unit_price=10.0, quantity=2)]


def test_pix_has_no_fee():
    totals = calculate_totals(two_shirts(), PaymentMethod.PIX)
    assert totals.to_dict() == {'subtotal': 20.0, 'fee': 0.0, 'total': 20.0}


def test_crediario_adds_fee():
    totals = calculate_totals(two_shirts(), 'crediario')
    assert totals.subtotal == Decimal('20.00')
    assert totals.fee == Decimal('1.10')
    assert totals.total == Decimal('21.10')


@pytest.mark.parametrize('method', ['pix', 'dinheiro', 'debito', 'credito'])
def test_fee_only_for_crediario(method):
    assert calculate_fee(Decimal('100'), method) == Decimal('0.00')


def test_cash_tender_and_change():
    with pytest.raises(ValidationError):
        check_cash_tender(Decimal('21.10'), '20.00')
    check_cash_tender(Decimal('21.10'), 25)
    assert calculate_change(Decimal('21.10'), 25) == Decimal('3.90')
    assert calculate_change(Decimal('21.10'), 21.10) == Decimal('0.00')
    assert calculate_change(Decimal('21.10'), 10) == Decimal('0.00')


def test_blank_or_invalid_inputs_never_produce_nan():
    lines = [
        {'unit_price': '', 'quantity': 2},
        {'unit_price': 'abc', 'quantity': 1},
        {'unit_price': float('nan'), 'quantity': 1},
        {'unit_price': 5, 'quantity': None, 'discount': ''},
    ]
    totals = calculate_totals(lines, 'crediario')
    assert totals.subtotal == Decimal('5.00')
    assert totals.total == Decimal('5.28')


def test_discount_larger_than_price_is_not_clamped():
    lines = [
        CartLine(product_id='p1', name='Brinde', unit_price=2.0, quantity=1, discount=5.0),
        CartLine(product_id='p2', name='Camiseta', unit_price=10.0, quantity=1),
    ]
    assert calculate_totals(lines, 'pix').subtotal == Decimal('7.00')


def test_sale_items_use_price_field():
    items = [{'price': 3.33, 'quantity': 3, 'discount': 0}]
    assert calculate_totals(items, 'pix').total == Decimal('9.99')


def test_rounding_is_half_up():
    assert round_money('0.125') == Decimal('0.13')
    assert money('2.675') == 2.68


def test_conversions():
    assert to_number(None) == 0
    assert to_number(True) == 0
    assert to_number('inf') == 0
    assert to_quantity('3') == 3
    assert to_quantity(0) == 1
    assert to_quantity('x') == 1


def test_pricing_service_uses_configured_rate():
    service = PricingService('0.10')
    assert service.totals(two_shirts(), 'crediario').fee == Decimal('2.00')
