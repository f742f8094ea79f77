from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import add_product, cart_line, make_config
from vibrant_pos.app_container import AppContainer
from vibrant_pos.errors import (
    AuthenticationError,
    AuthorizationError,
    InsufficientStockError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from vibrant_pos.models import InstallmentStatus, PaymentMethod, SaleStatus


def stock(container, product_id):
    return container.product_repo.get_by_id(product_id)['quantity']


def crediario_sale(container, operator, count=3, quantity=2):
    product = add_product(container)
    customer = container.customer_service.create_customer({'name': 'Maria', 'contact': '9999'})
    sale = container.sales_service.finalize_sale(
        [cart_line(product, quantity=quantity)], operator, 'crediario',
        customer_id=customer['id'], installment_count=count,
    )
    return sale, product, customer


# ------------------------------------------------------------------------------
# Finalización
# ------------------------------------------------------------------------------

def test_finalize_decrements_stock_and_persists(container, operator):
    product = add_product(container, quantity=5)
    sale = container.sales_service.finalize_sale([cart_line(product, quantity=2)], operator, 'pix')

    assert stock(container, product['id']) == 3
    stored = container.sales_repo.get_by_id(sale.id)
    assert stored['status'] == 'finalizada'
    assert stored['total'] == 20.0
    assert stored['seller_name'] == 'Ana'
    assert stored['customer_name'] == 'Consumidor Final'
    assert stored['items'] == [
        {'product_id': product['id'], 'name': 'Camiseta', 'quantity': 2, 'price': 10.0, 'discount': 0.0}
    ]
    assert 'installments' not in stored


def test_crediario_sale_has_fee_and_schedule(container, operator):
    sale, _, customer = crediario_sale(container, operator, count=2)

    assert sale.payment_method == PaymentMethod.CREDIARIO
    assert (sale.subtotal, sale.fee, sale.total) == (20.0, 1.1, 21.1)
    assert sale.customer_id == customer['id']
    assert sale.customer_name == 'Maria'
    assert [i.value for i in sale.installments] == [10.55, 10.55]

    issued = datetime.fromisoformat(sale.timestamp).date()
    assert sale.installments[0].due_date == (issued + timedelta(days=30)).isoformat()
    assert sale.installments[1].due_date == (issued + timedelta(days=60)).isoformat()


def test_cash_sale_records_change(container, operator):
    product = add_product(container, price=10.55)
    sale = container.sales_service.finalize_sale(
        [cart_line(product, quantity=2)], operator, 'dinheiro', amount_received='25'
    )
    assert sale.total == 21.1
    assert sale.amount_paid == 25.0
    assert sale.change == 3.9


@pytest.mark.parametrize('kwargs,error', [
    ({'payment_method': 'dinheiro', 'amount_received': '20.00'}, ValidationError),
    ({'payment_method': 'dinheiro'}, ValidationError),
    ({'payment_method': 'crediario'}, ValidationError),
    ({'payment_method': 'crediario', 'customer_id': 'nope'}, ValidationError),
    ({'payment_method': 'boleto'}, ValidationError),
])
def test_rejected_sale_changes_nothing(container, operator, kwargs, error):
    product = add_product(container, price=10.55, quantity=5)
    kwargs = dict(kwargs)
    method = kwargs.pop('payment_method')
    with pytest.raises(error):
        container.sales_service.finalize_sale([cart_line(product, quantity=2)], operator, method, **kwargs)

    assert stock(container, product['id']) == 5
    assert container.sales_service.list_sales() == []


def test_empty_cart_and_missing_operator(container, operator):
    product = add_product(container)
    with pytest.raises(ValidationError):
        container.sales_service.finalize_sale([], operator, 'pix')
    with pytest.raises(AuthenticationError):
        container.sales_service.finalize_sale([cart_line(product)], None, 'pix')
    assert container.sales_service.list_sales() == []


def test_invalid_installment_count_changes_nothing(container, operator):
    product = add_product(container)
    customer = container.customer_service.create_customer({'name': 'Maria'})
    with pytest.raises(ValidationError):
        container.sales_service.finalize_sale(
            [cart_line(product)], operator, 'crediario', customer_id=customer['id'], installment_count=0
        )
    assert container.sales_service.list_sales() == []


def test_oversell_clamps_stock_at_zero(container, operator):
    product = add_product(container, quantity=1)
    container.sales_service.finalize_sale([cart_line(product, quantity=3)], operator, 'pix')
    assert stock(container, product['id']) == 0


def test_oversell_rejected_when_disabled(tmp_path, operator):
    container = AppContainer(make_config(tmp_path, ALLOW_OVERSELL=False))
    product = add_product(container, quantity=1)
    with pytest.raises(InsufficientStockError):
        container.sales_service.finalize_sale([cart_line(product, quantity=3)], operator, 'pix')
    assert stock(container, product['id']) == 1
    assert container.sales_service.list_sales() == []


def test_sale_of_deleted_product_is_recorded(container, operator):
    product = add_product(container)
    container.inventory_service.delete_product(product['id'])
    sale = container.sales_service.finalize_sale([cart_line(product)], operator, 'pix')
    assert container.sales_repo.get_by_id(sale.id) is not None
    assert container.product_repo.get_by_id(product['id']) is None


def test_repeated_product_lines_are_summed(container, operator):
    product = add_product(container, quantity=10)
    lines = [cart_line(product, quantity=2), cart_line(product, quantity=3)]
    container.sales_service.finalize_sale(lines, operator, 'debito')
    assert stock(container, product['id']) == 5


# ------------------------------------------------------------------------------
# Anulación
# ------------------------------------------------------------------------------

def test_void_restores_stock_once(container, operator, authorization):
    product = add_product(container, quantity=5)
    sale = container.sales_service.finalize_sale([cart_line(product, quantity=2)], operator, 'pix')
    assert stock(container, product['id']) == 3

    voided = container.sales_service.void_sale(sale.id, authorization)
    assert voided.status == SaleStatus.CANCELADA
    assert voided.voided_by == 'Ana'
    assert stock(container, product['id']) == 5

    assert container.sales_service.void_sale(sale.id, authorization) is None
    assert stock(container, product['id']) == 5
    assert container.sales_repo.get_by_id(sale.id)['status'] == 'cancelada'


def test_void_missing_sale_is_noop(container, authorization):
    assert container.sales_service.void_sale('missing', authorization) is None
    assert container.sales_service.void_sale('', authorization) is None


def test_void_requires_authorization(container, operator):
    product = add_product(container, quantity=5)
    sale = container.sales_service.finalize_sale([cart_line(product)], operator, 'pix')
    with pytest.raises(AuthorizationError):
        container.sales_service.void_sale(sale.id, None)
    assert stock(container, product['id']) == 4


def test_void_skips_deleted_products(container, operator, authorization):
    kept = add_product(container, name='Boné', code='B1', quantity=5)
    gone = add_product(container, name='Meia', code='M1', quantity=5)
    sale = container.sales_service.finalize_sale(
        [cart_line(kept), cart_line(gone)], operator, 'pix'
    )
    container.inventory_service.delete_product(gone['id'])

    assert container.sales_service.void_sale(sale.id, authorization) is not None
    assert stock(container, kept['id']) == 5
    assert container.product_repo.get_by_id(gone['id']) is None


# ------------------------------------------------------------------------------
# Cuotas
# ------------------------------------------------------------------------------

def test_installment_toggle_round_trip(container, operator):
    sale, _, _ = crediario_sale(container, operator, count=3)
    before = container.sales_repo.get_by_id(sale.id)

    paid = container.sales_service.set_installment_status(sale.id, 1, 'pago', user='Ana')
    first = paid.get_installment(1)
    assert first.status == InstallmentStatus.PAGO
    assert first.paid_at
    assert paid.get_installment(2).status == InstallmentStatus.PENDENTE

    back = container.sales_service.set_installment_status(sale.id, 1, InstallmentStatus.PENDENTE)
    assert back.get_installment(1).paid_at is None
    assert container.sales_repo.get_by_id(sale.id) == before


def test_paying_twice_keeps_first_paid_at(container, operator):
    sale, _, _ = crediario_sale(container, operator, count=2)
    first = container.sales_service.set_installment_status(sale.id, 2, 'pago')
    second = container.sales_service.set_installment_status(sale.id, 2, 'pago')
    assert second.get_installment(2).paid_at == first.get_installment(2).paid_at


def test_installment_errors(container, operator, authorization):
    sale, _, _ = crediario_sale(container, operator, count=2)
    with pytest.raises(ValidationError):
        container.sales_service.set_installment_status(sale.id, 1, 'quitado')
    with pytest.raises(NotFoundError):
        container.sales_service.set_installment_status(sale.id, 5, 'pago')
    with pytest.raises(NotFoundError):
        container.sales_service.set_installment_status('missing', 1, 'pago')

    container.sales_service.void_sale(sale.id, authorization)
    with pytest.raises(ValidationError):
        container.sales_service.set_installment_status(sale.id, 1, 'pago')


# ------------------------------------------------------------------------------
# Consultas y administración
# ------------------------------------------------------------------------------

def test_stats_exclude_voided_sales(container, operator, authorization):
    product = add_product(container, quantity=50)
    container.sales_service.finalize_sale([cart_line(product, quantity=2)], operator, 'pix')
    container.sales_service.finalize_sale(
        [cart_line(product, quantity=1)], operator, 'dinheiro', amount_received=10
    )
    voided = container.sales_service.finalize_sale([cart_line(product, quantity=4)], operator, 'credito')
    container.sales_service.void_sale(voided.id, authorization)

    stats = container.sales_service.compute_stats()
    assert stats['sales_count'] == 2
    assert stats['voided_count'] == 1
    assert stats['revenue'] == 30.0
    assert stats['average_ticket'] == 15.0
    assert stats['by_payment_method']['pix'] == 20.0
    assert stats['by_payment_method']['dinheiro'] == 10.0
    assert stats['by_payment_method']['credito'] == 0.0


def test_crediario_accounts(container, operator, authorization):
    open_sale, _, _ = crediario_sale(container, operator, count=2)
    settled, _, _ = crediario_sale(container, operator, count=1)
    container.sales_service.set_installment_status(settled.id, 1, 'pago')
    voided, _, _ = crediario_sale(container, operator, count=2)
    container.sales_service.void_sale(voided.id, authorization)

    accounts = container.sales_service.get_crediario_accounts()
    assert [a['sale_id'] for a in accounts] == [open_sale.id]
    assert accounts[0]['pending_count'] == 2
    assert accounts[0]['overdue'] is False

    later = date.today() + timedelta(days=45)
    overdue = container.sales_service.get_crediario_accounts(today=later)
    assert overdue[0]['overdue'] is True
    assert overdue[0]['overdue_count'] == 1


def test_delete_sales_is_all_or_nothing(container, operator):
    product = add_product(container, quantity=10)
    first = container.sales_service.finalize_sale([cart_line(product)], operator, 'pix')
    second = container.sales_service.finalize_sale([cart_line(product)], operator, 'pix')

    with pytest.raises(NotFoundError):
        container.sales_service.delete_sales([first.id, 'missing'], user='admin')
    assert len(container.sales_service.list_sales()) == 2

    with pytest.raises(ValidationError):
        container.sales_service.delete_sales([], user='admin')

    assert container.sales_service.delete_sales([first.id, second.id], user='admin') == 2
    assert container.sales_service.list_sales() == []
    assert stock(container, product['id']) == 8


def test_domain_events_are_audited(container, operator, authorization):
    product = add_product(container)
    sale = container.sales_service.finalize_sale([cart_line(product)], operator, 'pix')
    container.sales_service.void_sale(sale.id, authorization)

    logs = container.audit_service.get_recent(limit=10, log_type='VENTA')
    assert len(logs) == 2
    assert all(log['related_id'] == sale.id for log in logs)


def test_audit_failure_does_not_fail_committed_operations(container, operator, authorization, monkeypatch):
    def broken_log(*args, **kwargs):
        raise PersistenceError('disco cheio')

    product = add_product(container, quantity=5)
    customer = container.customer_service.create_customer({'name': 'Maria'})
    monkeypatch.setattr(container.audit_repo, 'log', broken_log)

    sale = container.sales_service.finalize_sale(
        [cart_line(product, quantity=2)], operator, 'crediario',
        customer_id=customer['id'], installment_count=2,
    )

    assert container.sales_repo.get_by_id(sale.id) is not None
    assert len(container.sales_service.list_sales()) == 1
    assert stock(container, product['id']) == 3

    paid = container.sales_service.set_installment_status(sale.id, 1, 'pago', user='Ana')
    assert paid.get_installment(1).status == InstallmentStatus.PAGO

    assert container.sales_service.void_sale(sale.id, authorization).status == SaleStatus.CANCELADA
    assert stock(container, product['id']) == 5
