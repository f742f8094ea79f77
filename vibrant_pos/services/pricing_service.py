# ==============================================================================
# SERVICIO DE PRECIOS
# ==============================================================================
# Cálculo de totales del carrito: subtotal, recargo del crediário, total y
# vuelto. Funciones puras sobre Decimal con redondeo comercial (ROUND_HALF_UP);
# los resultados se exponen como float de 2 decimales.
#
#   subtotal = Σ (precio − descuento) × cantidad      (sin piso en cero)
#   fee      = round(subtotal × tasa, 2)              (solo crediário)
#   total    = subtotal + fee
#   vuelto   = max(0, recibido − total)               (solo dinheiro)
#
# Entradas vacías o no numéricas cuentan como 0: el total nunca es NaN.
# ==============================================================================

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Union

from vibrant_pos.errors import ValidationError
from vibrant_pos.models import PaymentMethod

CENT = Decimal('0.01')
DEFAULT_FEE_RATE = Decimal('0.055')

Number = Union[Decimal, float, int, str, None]


# ==============================================================================
# CONVERSIONES
# ==============================================================================

def to_number(value: Any) -> Decimal:
    """
    Convierte una entrada a Decimal. Vacíos, textos inválidos, NaN e
    infinitos cuentan como 0.
    """
    if value is None or isinstance(value, bool):
        return Decimal(0)
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return Decimal(0)
    if not number.is_finite():
        return Decimal(0)
    return number


def to_quantity(value: Any) -> int:
    """Cantidad entera de una línea; inválida o menor que 1 cuenta como 1."""
    quantity = int(to_number(value))
    return quantity if quantity >= 1 else 1


def round_money(value: Number) -> Decimal:
    """Redondeo a centavos, mitad hacia arriba (no bancario)."""
    return to_number(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money(value: Number) -> float:
    """Monto redondeado como float, para persistir y responder en JSON."""
    return float(round_money(value))


def _line_field(line: Any, *names: str) -> Any:
    for name in names:
        if isinstance(line, dict):
            if name in line:
                return line[name]
        elif hasattr(line, name):
            return getattr(line, name)
    return None


def _is_crediario(payment_method: Any) -> bool:
    value = getattr(payment_method, 'value', payment_method)
    return value == PaymentMethod.CREDIARIO.value


# ==============================================================================
# CÁLCULOS
# ==============================================================================

def line_total(line: Any) -> Decimal:
    """(precio − descuento) × cantidad de una línea, sin redondear."""
    price = to_number(_line_field(line, 'unit_price', 'price'))
    discount = to_number(_line_field(line, 'discount'))
    quantity = to_quantity(_line_field(line, 'quantity'))
    return (price - discount) * quantity


def calculate_subtotal(lines: Iterable[Any]) -> Decimal:
    """
    Suma de las líneas del carrito.

    Un descuento mayor al precio produce una contribución negativa; no se
    recorta a cero.
    """
    return round_money(sum((line_total(line) for line in lines), Decimal(0)))


def calculate_fee(subtotal: Number, payment_method: Any, rate: Number = DEFAULT_FEE_RATE) -> Decimal:
    """Recargo del crediário; 0 para cualquier otro método."""
    if not _is_crediario(payment_method):
        return Decimal('0.00')
    return round_money(to_number(subtotal) * to_number(rate))


def calculate_change(total: Number, amount_received: Number) -> Decimal:
    """Vuelto en efectivo, nunca negativo."""
    change = to_number(amount_received) - to_number(total)
    return round_money(max(Decimal(0), change))


def check_cash_tender(total: Number, amount_received: Number) -> None:
    """
    Raises:
        ValidationError: Si el monto recibido no cubre el total
    """
    if to_number(amount_received) < to_number(total):
        raise ValidationError('Valor recebido é menor que o total da venda.')


@dataclass
class PriceBreakdown:
    """Totales de un carrito para un método de pago."""
    subtotal: Decimal
    fee: Decimal
    total: Decimal

    def to_dict(self) -> Dict[str, float]:
        return {
            'subtotal': float(self.subtotal),
            'fee': float(self.fee),
            'total': float(self.total),
        }


def calculate_totals(
    lines: Iterable[Any],
    payment_method: Any,
    rate: Number = DEFAULT_FEE_RATE
) -> PriceBreakdown:
    """
    Calcula subtotal, recargo y total.

    Args:
        lines: CartLine, SaleItem o diccionarios con unit_price/price,
            quantity y discount
        payment_method: PaymentMethod o su valor ('pix', 'crediario', ...)
        rate: Tasa del recargo del crediário

    Returns:
        PriceBreakdown con montos redondeados a centavos
    """
    subtotal = calculate_subtotal(lines)
    fee = calculate_fee(subtotal, payment_method, rate)
    return PriceBreakdown(subtotal=subtotal, fee=fee, total=round_money(subtotal + fee))


class PricingService:
    """Calculadora con la tasa del crediário configurada."""

    def __init__(self, fee_rate: Number = DEFAULT_FEE_RATE):
        self.fee_rate = to_number(fee_rate)

    def totals(self, lines: Iterable[Any], payment_method: Any) -> PriceBreakdown:
        return calculate_totals(lines, payment_method, self.fee_rate)
