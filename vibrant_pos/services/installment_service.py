# ==============================================================================
# SERVICIO DE CUOTAS (CREDIÁRIO)
# ==============================================================================
# Genera el cronograma de cuotas de una venta a crediário y resume su estado.
#
# REGLAS:
# - Cada cuota vale total / n redondeado a centavos (ROUND_HALF_UP)
# - La última cuota absorbe la diferencia: Σ valores == total exacto
# - Si el redondeo hacia arriba dejara la última negativa (totales chicos
#   en muchas cuotas), la base se trunca: ninguna cuota es negativa
# - Vencimiento de la cuota i = emisión + i × paso
#   ('days' → paso en días, por defecto 30; 'months' → meses calendario)
# - Todas nacen 'pendente'; el cronograma nunca se regenera
# ==============================================================================

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_DOWN
from typing import Any, Dict, Iterable, List, Optional, Union

from dateutil.relativedelta import relativedelta

from vibrant_pos.errors import ValidationError
from vibrant_pos.models import Installment, InstallmentStatus
from vibrant_pos.services.pricing_service import CENT, Number, money, round_money, to_number

CADENCE_DAYS = 'days'
CADENCE_MONTHS = 'months'
CADENCES = frozenset([CADENCE_DAYS, CADENCE_MONTHS])


def parse_installment_count(value: Any, max_count: Optional[int] = None) -> int:
    """
    Valida el número de cuotas.

    Raises:
        ValidationError: Si no es un entero entre 1 y max_count
    """
    number = to_number(value)
    if number != number.to_integral_value() or number < 1:
        raise ValidationError('Número de parcelas inválido.')
    count = int(number)
    if max_count is not None and count > max_count:
        raise ValidationError(f'Máximo de {max_count} parcelas.')
    return count


def _due_date(issue: datetime, number: int, cadence: str, step_days: int) -> date:
    if cadence == CADENCE_MONTHS:
        return (issue + relativedelta(months=number)).date()
    return (issue + timedelta(days=step_days * number)).date()


def generate_installments(
    total: Number,
    count: Any,
    issue_date: Optional[datetime] = None,
    cadence: str = CADENCE_DAYS,
    step_days: int = 30,
    max_count: Optional[int] = None
) -> List[Installment]:
    """
    Genera el cronograma de cuotas.

    Args:
        total: Total de la venta (con recargo)
        count: Número de cuotas (>= 1)
        issue_date: Fecha de emisión (por defecto ahora, UTC)
        cadence: 'days' o 'months'
        step_days: Días entre cuotas cuando cadence == 'days'
        max_count: Límite de cuotas permitido

    Returns:
        Lista de Installment numeradas 1..n, todas pendientes

    Raises:
        ValidationError: Si count o cadence son inválidos
    """
    count = parse_installment_count(count, max_count)
    if cadence not in CADENCES:
        raise ValidationError(f'Cadência de parcelas inválida: {cadence}')
    if cadence == CADENCE_DAYS and step_days < 1:
        raise ValidationError('Intervalo entre parcelas inválido.')

    issue = issue_date or datetime.now(timezone.utc)
    total_dec = round_money(total)
    base = round_money(total_dec / count)
    if base * (count - 1) > total_dec:
        base = (total_dec / count).quantize(CENT, rounding=ROUND_DOWN)
    last = total_dec - base * (count - 1)

    installments = []
    for number in range(1, count + 1):
        value = last if number == count else base
        installments.append(Installment(
            number=number,
            value=money(value),
            due_date=_due_date(issue, number, cadence, step_days).isoformat(),
            status=InstallmentStatus.PENDENTE,
        ))
    return installments


def _as_date(value: Union[str, date, None]) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value)).date()
    except ValueError:
        return None


def summarize_installments(
    installments: Iterable[Dict[str, Any]],
    today: Optional[date] = None
) -> Dict[str, Any]:
    """
    Resume cuotas guardadas (formato del store).

    Returns:
        Dict con paid_amount, outstanding_amount, pending_count,
        paid_count, overdue_count y next_due_date
    """
    today = today or datetime.now(timezone.utc).date()
    paid = Decimal(0)
    outstanding = Decimal(0)
    paid_count = pending_count = overdue_count = 0
    next_due = None

    for inst in installments:
        value = to_number(inst.get('value'))
        if inst.get('status') == InstallmentStatus.PAGO.value:
            paid += value
            paid_count += 1
            continue
        outstanding += value
        pending_count += 1
        due = _as_date(inst.get('due_date'))
        if due is None:
            continue
        if due < today:
            overdue_count += 1
        if next_due is None or due < next_due:
            next_due = due

    return {
        'paid_amount': money(paid),
        'outstanding_amount': money(outstanding),
        'paid_count': paid_count,
        'pending_count': pending_count,
        'overdue_count': overdue_count,
        'next_due_date': next_due.isoformat() if next_due else None,
    }
