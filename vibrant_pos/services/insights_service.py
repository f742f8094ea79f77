# ==============================================================================
# SERVICIO DE INSIGHTS
# ==============================================================================
# Arma un resumen acotado de las ventas recientes (máximo 50 registros) y se
# lo entrega a un "summarizer" externo (p. ej. un modelo generativo) que
# devuelve un comentario en texto libre. Es solo consultivo: no modifica
# ningún dato.
# ==============================================================================

import logging
from collections import Counter
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional

from vibrant_pos.models import SaleStatus
from vibrant_pos.services.pricing_service import money, to_number

logger = logging.getLogger(__name__)

SUMMARY_LIMIT = 50
TOP_PRODUCTS = 5

Summarizer = Callable[[Dict[str, Any]], str]


def build_sales_summary(sales: Iterable[Dict[str, Any]], limit: int = SUMMARY_LIMIT) -> Dict[str, Any]:
    """
    Resumen de las `limit` ventas más recientes.

    Args:
        sales: Ventas en formato del store (cualquier orden)
        limit: Máximo de registros incluidos (tope 50)

    Returns:
        Dict con totales, métodos de pago, productos más vendidos y los
        registros resumidos
    """
    limit = max(0, min(int(limit), SUMMARY_LIMIT))
    recent = sorted(sales, key=lambda s: s.get('timestamp', ''), reverse=True)[:limit]

    revenue = Decimal(0)
    methods: Counter = Counter()
    products: Counter = Counter()
    records: List[Dict[str, Any]] = []
    voided = 0

    for sale in recent:
        is_voided = sale.get('status') == SaleStatus.CANCELADA.value
        items = sale.get('items') or []
        records.append({
            'timestamp': sale.get('timestamp', ''),
            'total': sale.get('total', 0.0),
            'payment_method': sale.get('payment_method', ''),
            'status': sale.get('status', ''),
            'items': sum(int(to_number(i.get('quantity'))) for i in items),
        })
        if is_voided:
            voided += 1
            continue
        revenue += to_number(sale.get('total'))
        methods[sale.get('payment_method', '')] += 1
        for item in items:
            products[item.get('name', '')] += int(to_number(item.get('quantity')))

    count = len(recent) - voided
    return {
        'sales_considered': len(recent),
        'sales_count': count,
        'voided_count': voided,
        'revenue': money(revenue),
        'average_ticket': money(revenue / count) if count else 0.0,
        'payment_methods': dict(methods),
        'top_products': [{'name': n, 'quantity': q} for n, q in products.most_common(TOP_PRODUCTS)],
        'records': records,
    }


class InsightsService:
    """Comentarios sobre las ventas recientes mediante un summarizer externo."""

    def __init__(self, summarizer: Optional[Summarizer] = None):
        """
        Args:
            summarizer: Función que recibe el resumen y devuelve texto
                (None = insights deshabilitados)
        """
        self.summarizer = summarizer

    def get_insights(self, sales: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Returns:
            Dict con 'summary' y 'text' (None si no hay summarizer o falló)
        """
        summary = build_sales_summary(sales)
        text = None
        if self.summarizer is not None and summary['sales_considered']:
            try:
                text = self.summarizer(summary)
            except Exception:
                logger.exception("El summarizer de insights falló")
        return {'summary': summary, 'text': text}
