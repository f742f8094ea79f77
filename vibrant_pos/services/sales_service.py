# ==============================================================================
# SERVICIO DE VENTAS
# ==============================================================================
# Centraliza toda la lógica de negocio relacionada con ventas:
#
#   finalize_sale          → valida, registra la venta y descuenta stock
#   void_sale              → devuelve el stock y marca la venta 'cancelada'
#   set_installment_status → marca una cuota como paga / pendiente
#
# Registrar la venta y ajustar el stock ocurre en UNA transacción del store:
# o se aplica todo, o nada. La venta se escribe antes que los ajustes.
#
# Una venta anulada nunca se borra: queda visible, fuera de los totales y
# de la lista de crediário activa.
# ==============================================================================

import logging
from collections import OrderedDict
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from vibrant_pos.errors import (
    AuthenticationError,
    AuthorizationError,
    InsufficientStockError,
    NotFoundError,
    PosError,
    ValidationError,
)
from vibrant_pos.models import (
    CartLine,
    InstallmentStatus,
    PaymentMethod,
    Sale,
    SaleItem,
    SaleStatus,
    User,
)
from vibrant_pos.repositories.base import JsonDocumentStore, as_number
from vibrant_pos.repositories.interfaces import (
    ICustomerRepository,
    IProductRepository,
    ISalesRepository,
)
from vibrant_pos.services.audit_service import AuditService
from vibrant_pos.services.installment_service import (
    CADENCE_DAYS,
    generate_installments,
    summarize_installments,
)
from vibrant_pos.services.pricing_service import (
    DEFAULT_FEE_RATE,
    Number,
    calculate_change,
    calculate_totals,
    check_cash_tender,
    money,
    to_number,
    to_quantity,
)
from vibrant_pos.services.user_service import VoidAuthorization

logger = logging.getLogger(__name__)

DEFAULT_CUSTOMER_NAME = 'Consumidor Final'


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_payment_method(value: Any) -> PaymentMethod:
    """
    Raises:
        ValidationError: Si el método no existe
    """
    try:
        return PaymentMethod(getattr(value, 'value', value))
    except ValueError:
        raise ValidationError(f'Forma de pagamento inválida: {value}')


def _quantities_by_product(items: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    """Suma las cantidades vendidas por producto, en orden de aparición."""
    totals: Dict[str, int] = OrderedDict()
    for item in items:
        product_id = item.get('product_id')
        if not product_id:
            continue
        totals[product_id] = totals.get(product_id, 0) + int(as_number(item.get('quantity')))
    return totals


class SalesService:
    """
    Servicio para gestión de ventas.

    Responsabilidades:
    - Finalizar ventas desde el carrito (con cuotas si es crediário)
    - Anular ventas devolviendo el stock exactamente una vez
    - Estado de cada cuota
    - Estadísticas, crediário activo y borrado administrativo
    """

    def __init__(
        self,
        store: JsonDocumentStore,
        sales_repo: ISalesRepository,
        product_repo: IProductRepository,
        customer_repo: ICustomerRepository,
        audit_service: Optional[AuditService] = None,
        fee_rate: Number = DEFAULT_FEE_RATE,
        installment_cadence: str = CADENCE_DAYS,
        installment_step_days: int = 30,
        max_installments: int = 12,
        allow_oversell: bool = True
    ):
        """
        Args:
            store: Store compartido (para las transacciones)
            sales_repo / product_repo / customer_repo: Colecciones usadas
            audit_service: Servicio de auditoría (opcional)
            fee_rate: Recargo del crediário
            installment_cadence: 'days' o 'months'
            installment_step_days: Días entre cuotas (cadence 'days')
            max_installments: Máximo de cuotas por venta
            allow_oversell: False = rechazar ventas sin stock suficiente
        """
        self.store = store
        self.sales_repo = sales_repo
        self.product_repo = product_repo
        self.customer_repo = customer_repo
        self.audit_service = audit_service
        self.fee_rate = to_number(fee_rate)
        self.installment_cadence = installment_cadence
        self.installment_step_days = installment_step_days
        self.max_installments = max_installments
        self.allow_oversell = allow_oversell

    def _audit(self, event: str, *args) -> None:
        """
        Registra un evento de auditoría después del commit.

        La operación ya está en disco: un fallo al auditar se loguea y no se
        propaga, para que el llamador no la reintente.
        """
        if not self.audit_service:
            return
        try:
            getattr(self.audit_service, event)(*args)
        except PosError:
            logger.exception("No se pudo registrar la auditoría (%s)", event)

    # =========================================================================
    # FINALIZACIÓN
    # =========================================================================

    @staticmethod
    def _build_items(cart_lines: Iterable[Any]) -> List[SaleItem]:
        """Copias congeladas de las líneas del carrito."""
        items = []
        for raw in cart_lines:
            line = raw if isinstance(raw, CartLine) else CartLine.from_dict(raw)
            if not line.product_id:
                raise ValidationError('Item do carrinho sem produto.')
            items.append(SaleItem(
                product_id=line.product_id,
                name=line.name,
                quantity=to_quantity(line.quantity),
                price=money(line.unit_price),
                discount=money(line.discount),
            ))
        return items

    def _resolve_customer(self, customer_id: Optional[str], method: PaymentMethod) -> Dict[str, Any]:
        if not customer_id:
            if method == PaymentMethod.CREDIARIO:
                raise ValidationError('Selecione um cliente para vendas no crediário.')
            return {}
        customer = self.customer_repo.get_by_id(customer_id)
        if not customer:
            raise ValidationError('Cliente não encontrado.')
        return customer

    def _check_stock(self, txn, quantities: Dict[str, int]) -> None:
        shortages = []
        for product_id, quantity in quantities.items():
            product = txn.get(self.product_repo.path(product_id))
            if product is None:
                continue
            available = as_number(product.get('quantity'))
            if quantity > available:
                shortages.append(f"{product.get('name', product_id)} (disponível: {available})")
        if shortages:
            raise InsufficientStockError('Estoque insuficiente: ' + ', '.join(shortages))

    def finalize_sale(
        self,
        cart_lines: List[Any],
        operator: Optional[User],
        payment_method: Any,
        customer_id: Optional[str] = None,
        amount_received: Number = None,
        installment_count: Any = None
    ) -> Sale:
        """
        Registra una venta y descuenta el stock en una sola transacción.

        Args:
            cart_lines: Líneas del carrito (CartLine o diccionarios)
            operator: Operador autenticado
            payment_method: PaymentMethod o su valor
            customer_id: Cliente (obligatorio en crediário)
            amount_received: Monto entregado (obligatorio en dinheiro)
            installment_count: Número de cuotas (crediário, por defecto 1)

        Returns:
            Venta persistida, con su id

        Raises:
            ValidationError: Carrito vacío, efectivo insuficiente, crediário
                sin cliente o número de cuotas inválido
            AuthenticationError: Si no hay operador
            InsufficientStockError: Si allow_oversell es False y falta stock
            PersistenceError: Si el store rechaza la escritura
        """
        if not cart_lines:
            raise ValidationError('O carrinho está vazio.')
        if operator is None:
            raise AuthenticationError('Nenhum operador autenticado.')

        method = parse_payment_method(payment_method)
        items = self._build_items(cart_lines)
        breakdown = calculate_totals(items, method, self.fee_rate)
        customer = self._resolve_customer(customer_id, method)

        amount_paid = breakdown.total
        change = Decimal('0.00')
        if method == PaymentMethod.DINHEIRO:
            check_cash_tender(breakdown.total, amount_received)
            amount_paid = to_number(amount_received)
            change = calculate_change(breakdown.total, amount_received)

        timestamp = datetime.now(timezone.utc)
        installments = []
        if method == PaymentMethod.CREDIARIO:
            installments = generate_installments(
                breakdown.total,
                installment_count if installment_count not in (None, '') else 1,
                issue_date=timestamp,
                cadence=self.installment_cadence,
                step_days=self.installment_step_days,
                max_count=self.max_installments,
            )

        quantities = _quantities_by_product(item.to_dict() for item in items)

        with self.store.transaction() as txn:
            if not self.allow_oversell:
                self._check_stock(txn, quantities)

            sale = Sale(
                id=txn.create_key(self.sales_repo.collection),
                timestamp=timestamp.isoformat(),
                seller_id=operator.id,
                seller_name=operator.name,
                payment_method=method,
                items=items,
                subtotal=float(breakdown.subtotal),
                fee=float(breakdown.fee),
                total=float(breakdown.total),
                amount_paid=money(amount_paid),
                change=float(change),
                customer_id=customer.get('id'),
                customer_name=customer.get('name') or DEFAULT_CUSTOMER_NAME,
                installments=installments,
            )
            txn.write(self.sales_repo.path(sale.id), sale.to_dict())

            for product_id, quantity in quantities.items():
                path = self.product_repo.path(product_id)
                product = txn.get(path)
                if product is None:
                    logger.warning("Venta %s: producto %s ya no existe, stock sin ajustar", sale.id, product_id)
                    continue
                before = as_number(product.get('quantity'))
                txn.adjust(self.product_repo.quantity_path(product_id), -quantity, minimum=0)
                if quantity > before:
                    logger.warning(
                        "Venta %s: %s vendido sin stock (%s de %s), stock queda en 0",
                        sale.id, product_id, quantity, before
                    )

        logger.info("Venta %s finalizada por %s: %s (%s)", sale.id, operator.name, sale.total, method.value)
        self._audit('log_sale_finalized', operator.name, sale.id, sale.total, method.value, len(items))
        return sale

    # =========================================================================
    # ANULACIÓN
    # =========================================================================

    def void_sale(self, sale_id: str, authorization: VoidAuthorization) -> Optional[Sale]:
        """
        Anula una venta: devuelve el stock y la marca 'cancelada'.

        No hace nada si la venta no existe o ya estaba anulada, así que el
        stock vuelve exactamente una vez.

        Args:
            sale_id: ID de la venta
            authorization: Permiso emitido por UserService.authorize_void()

        Returns:
            Venta anulada, o None si no hubo cambios

        Raises:
            AuthorizationError: Sin autorización válida
        """
        if not isinstance(authorization, VoidAuthorization):
            raise AuthorizationError('Cancelamento requer autorização.')
        if not self.sales_repo.valid_id(sale_id):
            logger.info("Anulación ignorada: venta '%s' inexistente", sale_id)
            return None

        path = self.sales_repo.path(sale_id)
        with self.store.transaction() as txn:
            data = txn.get(path)
            if not isinstance(data, dict):
                logger.info("Anulación ignorada: venta '%s' inexistente", sale_id)
                return None
            if data.get('status') == SaleStatus.CANCELADA.value:
                logger.info("Anulación ignorada: venta %s ya estaba cancelada", sale_id)
                return None

            for product_id, quantity in _quantities_by_product(data.get('items', [])).items():
                if txn.get(self.product_repo.path(product_id)) is None:
                    logger.warning("Anulación %s: producto %s ya no existe, stock sin devolver", sale_id, product_id)
                    continue
                txn.adjust(self.product_repo.quantity_path(product_id), quantity)

            changes = {
                'status': SaleStatus.CANCELADA.value,
                'voided_at': _now_iso(),
                'voided_by': authorization.operator,
            }
            txn.patch(path, changes)
            data.update(changes)

        sale = Sale.from_dict(dict(data, id=sale_id))
        logger.info("Venta %s cancelada por %s", sale_id, authorization.operator)
        self._audit('log_sale_voided', authorization.operator, sale_id, sale.total)
        return sale

    # =========================================================================
    # CUOTAS
    # =========================================================================

    def set_installment_status(
        self,
        sale_id: str,
        number: Any,
        status: Any,
        user: str = None
    ) -> Sale:
        """
        Cambia el estado de una cuota; las demás no se tocan.
        Al pasar a 'pago' se registra paid_at; al volver a 'pendente' se borra.

        Raises:
            ValidationError: Estado inválido o venta anulada
            NotFoundError: Venta o cuota inexistente
        """
        try:
            new_status = InstallmentStatus(getattr(status, 'value', status))
        except ValueError:
            raise ValidationError(f'Status de parcela inválido: {status}')
        wanted = to_number(number)
        if not self.sales_repo.valid_id(sale_id):
            raise NotFoundError('Venda não encontrada.')

        path = self.sales_repo.path(sale_id)
        with self.store.transaction() as txn:
            data = txn.get(path)
            if not isinstance(data, dict):
                raise NotFoundError('Venda não encontrada.')
            if data.get('status') == SaleStatus.CANCELADA.value:
                raise ValidationError('Venda cancelada: parcelas não podem ser alteradas.')

            installments = data.get('installments') or []
            target = None
            for inst in installments:
                if to_number(inst.get('number')) == wanted:
                    target = inst
                    break
            if target is None:
                raise NotFoundError('Parcela não encontrada.')

            if new_status == InstallmentStatus.PAGO:
                if target.get('status') != InstallmentStatus.PAGO.value or not target.get('paid_at'):
                    target['paid_at'] = _now_iso()
            else:
                target.pop('paid_at', None)
            target['status'] = new_status.value
            txn.write(f'{path}/installments', installments)

        self._audit(
            'log_installment_status',
            user, sale_id, int(wanted), new_status.value, float(to_number(target.get('value')))
        )
        return Sale.from_dict(dict(data, id=sale_id))

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def list_sales(self) -> List[Dict[str, Any]]:
        """Historial completo, más recientes primero (incluye anuladas)."""
        return self.sales_repo.load()

    def get_sale(self, sale_id: str) -> Sale:
        """
        Raises:
            NotFoundError: Si la venta no existe
        """
        data = self.sales_repo.get_by_id(sale_id)
        if not data:
            raise NotFoundError('Venda não encontrada.')
        return Sale.from_dict(data)

    def delete_sales(self, sale_ids: List[str], user: str = None) -> int:
        """
        Borra registros de venta sin tocar el stock. Todo o nada: si algún
        ID no existe no se borra ninguno.

        Returns:
            Número de ventas borradas

        Raises:
            ValidationError: Lista vacía
            NotFoundError: Algún ID inexistente
        """
        ids = list(OrderedDict.fromkeys(str(s) for s in (sale_ids or []) if s))
        if not ids:
            raise ValidationError('Nenhuma venda selecionada.')

        with self.store.transaction() as txn:
            for sale_id in ids:
                if not self.sales_repo.valid_id(sale_id) or not txn.delete(self.sales_repo.path(sale_id)):
                    raise NotFoundError(f'Venda não encontrada: {sale_id}')

        logger.info("%s ventas borradas por %s", len(ids), user)
        self._audit('log_sales_deleted', user, ids)
        return len(ids)

    def compute_stats(self) -> Dict[str, Any]:
        """
        Estadísticas de ventas; las anuladas no suman.

        Returns:
            Dict con sales_count, revenue, fees, average_ticket,
            by_payment_method y voided_count
        """
        revenue = Decimal(0)
        fees = Decimal(0)
        count = voided = 0
        by_method: Dict[str, Decimal] = OrderedDict((m.value, Decimal(0)) for m in PaymentMethod)

        for sale in self.sales_repo.list_all():
            if sale.get('status') == SaleStatus.CANCELADA.value:
                voided += 1
                continue
            total = to_number(sale.get('total'))
            count += 1
            revenue += total
            fees += to_number(sale.get('fee'))
            method = sale.get('payment_method')
            by_method[method] = by_method.get(method, Decimal(0)) + total

        return {
            'sales_count': count,
            'revenue': money(revenue),
            'fees': money(fees),
            'average_ticket': money(revenue / count) if count else 0.0,
            'by_payment_method': {k: money(v) for k, v in by_method.items()},
            'voided_count': voided,
        }

    def get_crediario_accounts(self, today: Optional[date] = None) -> List[Dict[str, Any]]:
        """
        Ventas a crediário activas: finalizadas y con alguna cuota pendiente.

        Returns:
            Lista de cuentas (vencimiento más próximo primero)
        """
        accounts = []
        for sale in self.sales_repo.load():
            if sale.get('status') == SaleStatus.CANCELADA.value:
                continue
            if sale.get('payment_method') != PaymentMethod.CREDIARIO.value:
                continue
            summary = summarize_installments(sale.get('installments') or [], today)
            if not summary['pending_count']:
                continue
            accounts.append({
                'sale_id': sale['id'],
                'timestamp': sale.get('timestamp', ''),
                'customer_id': sale.get('customer_id'),
                'customer_name': sale.get('customer_name', DEFAULT_CUSTOMER_NAME),
                'total': sale.get('total', 0.0),
                'installments': sale.get('installments') or [],
                'overdue': summary['overdue_count'] > 0,
                **summary,
            })
        return sorted(accounts, key=lambda a: a['next_due_date'] or '9999-12-31')

