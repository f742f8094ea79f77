from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from vibrant_pos.errors import ValidationError
from vibrant_pos.models import InstallmentStatus
from vibrant_pos.services.installment_service import (
    generate_installments,
    parse_installment_count,
    summarize_installments,
)

ISSUE = datetime(2024, 1, 31, 15, 0, tzinfo=timezone.utc)


def test_two_installments_every_30_days():
    installments = generate_installments(Decimal('21.10'), 2, issue_date=ISSUE)
    assert [i.number for i in installments] == [1, 2]
    assert [i.value for i in installments] == [10.55, 10.55]
    assert [i.due_date for i in installments] == ['2024-03-01', '2024-03-31']
    assert all(i.status == InstallmentStatus.PENDENTE for i in installments)
    assert all(i.paid_at is None for i in installments)


@pytest.mark.parametrize('total,count', [('100', 3), ('10', 3), ('0.05', 2), ('1234.57', 7)])
def test_values_sum_to_total(total, count):
    installments = generate_installments(Decimal(total), count, issue_date=ISSUE)
    assert len(installments) == count
    assert sum(Decimal(str(i.value)) for i in installments) == Decimal(total)


def test_last_installment_absorbs_remainder():
    installments = generate_installments(100, 3, issue_date=ISSUE)
    assert [i.value for i in installments] == [33.33, 33.33, 33.34]


@pytest.mark.parametrize('total', ['0.00', '0.01', '0.05', '0.07', '0.11', '0.13'])
def test_small_totals_never_give_negative_installments(total):
    installments = generate_installments(Decimal(total), 12, issue_date=ISSUE)
    values = [Decimal(str(i.value)) for i in installments]
    assert all(v >= 0 for v in values)
    assert sum(values) == Decimal(total)


def test_small_total_split_keeps_remainder_on_last():
    installments = generate_installments(Decimal('0.07'), 12, issue_date=ISSUE)
    assert [i.value for i in installments] == [0.0] * 11 + [0.07]


def test_due_dates_strictly_increase():
    installments = generate_installments(50, 12, issue_date=ISSUE)
    dates = [i.due_date for i in installments]
    assert dates == sorted(dates)
    assert len(set(dates)) == 12


def test_monthly_cadence_clamps_to_month_end():
    installments = generate_installments(30, 3, issue_date=ISSUE, cadence='months')
    assert [i.due_date for i in installments] == ['2024-02-29', '2024-03-31', '2024-04-30']


@pytest.mark.parametrize('value', [0, -1, '2.5', 'abc', None, ''])
def test_invalid_count_rejected(value):
    with pytest.raises(ValidationError):
        generate_installments(10, value, issue_date=ISSUE)


def test_count_above_maximum_rejected():
    assert parse_installment_count('12', max_count=12) == 12
    with pytest.raises(ValidationError):
        parse_installment_count(13, max_count=12)


def test_unknown_cadence_rejected():
    with pytest.raises(ValidationError):
        generate_installments(10, 2, issue_date=ISSUE, cadence='weeks')


def test_summary_counts_overdue_and_next_due():
    installments = [
        {'number': 1, 'value': 10.0, 'due_date': '2024-01-10', 'status': 'pago', 'paid_at': '2024-01-09'},
        {'number': 2, 'value': 10.0, 'due_date': '2024-02-10', 'status': 'pendente'},
        {'number': 3, 'value': 10.01, 'due_date': '2024-03-10', 'status': 'pendente'},
    ]
    summary = summarize_installments(installments, today=date(2024, 2, 20))
    assert summary == {
        'paid_amount': 10.0,
        'outstanding_amount': 20.01,
        'paid_count': 1,
        'pending_count': 2,
        'overdue_count': 1,
        'next_due_date': '2024-02-10',
    }
