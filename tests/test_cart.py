import pytest

from conftest import add_product
from vibrant_pos.app_container import get_container
from vibrant_pos.errors import NotFoundError


@pytest.fixture
def ctx(app):
    with app.test_request_context():
        yield get_container()


def test_add_increments_existing_line(ctx):
    product = add_product(ctx, quantity=5)
    ctx.cart_service.add_product(product['id'])
    lines = ctx.cart_service.add_product(product['id'])
    assert len(lines) == 1
    assert lines[0].quantity == 2
    assert lines[0].unit_price == 10.0


def test_add_by_code_and_unknown_code(ctx):
    product = add_product(ctx, code='789123')
    lines = ctx.cart_service.add_by_code(' 789123 ')
    assert lines[0].product_id == product['id']
    with pytest.raises(NotFoundError):
        ctx.cart_service.add_by_code('000')


def test_price_is_frozen_when_added(ctx):
    product = add_product(ctx, price=10.0)
    ctx.cart_service.add_product(product['id'])
    ctx.inventory_service.update_product(product['id'], {'sell_price': 99})
    assert ctx.cart_service.get_lines()[0].unit_price == 10.0


def test_update_line_floors_quantity_and_discount(ctx):
    product = add_product(ctx)
    ctx.cart_service.add_product(product['id'])
    lines = ctx.cart_service.update_line(product['id'], quantity=0, discount=-3)
    assert lines[0].quantity == 1
    assert lines[0].discount == 0.0

    lines = ctx.cart_service.update_line(product['id'], quantity='4', discount='1.5')
    assert (lines[0].quantity, lines[0].discount) == (4, 1.5)

    with pytest.raises(NotFoundError):
        ctx.cart_service.update_line('missing', quantity=2)


def test_cart_totals_for_payment_method(ctx):
    product = add_product(ctx)
    ctx.cart_service.add_product(product['id'])
    ctx.cart_service.add_product(product['id'])

    cart = ctx.cart_service.get_cart('crediario')
    assert (cart['subtotal'], cart['fee'], cart['total']) == (20.0, 1.1, 21.1)
    assert cart['items_count'] == 1
    assert cart['total_items'] == 2
    assert cart['items'][0]['line_total'] == 20.0


def test_remove_and_clear(ctx):
    first = add_product(ctx, name='Boné', code='B1')
    second = add_product(ctx, name='Meia', code='M1')
    ctx.cart_service.add_product(first['id'])
    ctx.cart_service.add_product(second['id'])

    lines = ctx.cart_service.remove_line(first['id'])
    assert [line.product_id for line in lines] == [second['id']]

    ctx.cart_service.clear()
    assert ctx.cart_service.get_cart()['items'] == []
    assert ctx.cart_service.get_cart()['total'] == 0.0
