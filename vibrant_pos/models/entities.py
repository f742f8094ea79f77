# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio.
# Diseñadas para ser independientes del mecanismo de persistencia:
# to_dict() produce el documento que se guarda en el árbol JSON y
# from_dict() reconstruye la entidad desde ese documento.
# ==============================================================================

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from enum import Enum


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class UserRole(str, Enum):
    """Roles de operador disponibles en el sistema."""
    ADMIN = "admin"
    VENDEDOR = "vendedor"


class SaleStatus(str, Enum):
    """Estados posibles de una venta."""
    FINALIZADA = "finalizada"   # Venta registrada, stock descontado
    CANCELADA = "cancelada"     # Venta anulada, stock devuelto


class PaymentMethod(str, Enum):
    """Métodos de pago aceptados."""
    PIX = "pix"
    DINHEIRO = "dinheiro"       # Efectivo: exige monto recibido y calcula vuelto
    DEBITO = "debito"
    CREDITO = "credito"
    CREDIARIO = "crediario"     # Pago diferido en cuotas, con recargo


class InstallmentStatus(str, Enum):
    """Estado de una cuota del crediário."""
    PENDENTE = "pendente"
    PAGO = "pago"


def _enum_value(enum_cls, raw, default):
    """Convierte un valor crudo al enum, usando default si es inválido."""
    try:
        return enum_cls(raw)
    except ValueError:
        return default


# ==============================================================================
# CATÁLOGO Y CLIENTES
# ==============================================================================

@dataclass
class Product:
    """
    Producto del catálogo.

    Attributes:
        id: Clave asignada por el store
        name: Nombre del producto
        code: Código de barras / QR (clave de búsqueda, unicidad no forzada)
        buy_price: Precio de costo
        sell_price: Precio de venta
        quantity: Stock actual (no negativo por convención)
    """
    id: str
    name: str
    code: str = ''
    buy_price: float = 0.0
    sell_price: float = 0.0
    quantity: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'name': self.name,
            'code': self.code,
            'buy_price': self.buy_price,
            'sell_price': self.sell_price,
            'quantity': self.quantity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        """Crea instancia desde diccionario."""
        return cls(
            id=data.get('id', ''),
            name=data.get('name', ''),
            code=data.get('code', ''),
            buy_price=data.get('buy_price', 0.0),
            sell_price=data.get('sell_price', 0.0),
            quantity=data.get('quantity', 0),
        )


@dataclass
class Customer:
    """Cliente registrado (deudor en ventas a crediário)."""
    id: str
    name: str
    contact: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'contact': self.contact}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Customer':
        return cls(
            id=data.get('id', ''),
            name=data.get('name', ''),
            contact=data.get('contact', ''),
        )


# ==============================================================================
# OPERADORES Y CONFIGURACIÓN
# ==============================================================================

@dataclass
class User:
    """
    Operador del punto de venta.

    Attributes:
        id: Identificador (clave en el store, o 'admin' para el maestro)
        name: Nombre usado para el login
        role: Rol que define sus permisos
        pin_hash: Hash del PIN (nunca se guarda en texto plano)
    """
    id: str
    name: str
    role: UserRole = UserRole.VENDEDOR
    pin_hash: str = ''

    def is_admin(self) -> bool:
        """Verifica si el operador tiene permisos de administrador."""
        return self.role == UserRole.ADMIN

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'name': self.name,
            'role': self.role.value,
            'pin': self.pin_hash,
        }

    def to_public_dict(self) -> Dict[str, Any]:
        """Versión sin el hash del PIN, para sesiones y respuestas."""
        return {'id': self.id, 'name': self.name, 'role': self.role.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        return cls(
            id=data.get('id', ''),
            name=data.get('name', ''),
            role=_enum_value(UserRole, data.get('role', 'vendedor'), UserRole.VENDEDOR),
            pin_hash=data.get('pin', ''),
        )


@dataclass
class Settings:
    """Datos de la tienda usados en comprobantes y etiquetas."""
    company_name: str = 'Vibrant POS'
    logo_url: Optional[str] = None
    pix_qr_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {'company_name': self.company_name}
        if self.logo_url:
            d['logo_url'] = self.logo_url
        if self.pix_qr_url:
            d['pix_qr_url'] = self.pix_qr_url
        return d

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Settings':
        data = data or {}
        return cls(
            company_name=data.get('company_name') or 'Vibrant POS',
            logo_url=data.get('logo_url'),
            pix_qr_url=data.get('pix_qr_url'),
        )


# ==============================================================================
# CARRITO (solo en sesión, nunca se persiste)
# ==============================================================================

@dataclass
class CartLine:
    """
    Línea del carrito. Precio y nombre se congelan al agregar;
    el stock NO se reserva.

    Attributes:
        product_id: ID del producto
        name: Nombre al momento de agregar
        code: Código del producto
        unit_price: Precio de venta al momento de agregar
        quantity: Cantidad (>= 1)
        discount: Descuento absoluto por unidad (>= 0, puede superar el precio)
    """
    product_id: str
    name: str
    unit_price: float
    quantity: int = 1
    discount: float = 0.0
    code: str = ''

    @classmethod
    def from_product(cls, product: Product) -> 'CartLine':
        return cls(
            product_id=product.id,
            name=product.name,
            code=product.code,
            unit_price=product.sell_price,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para la sesión."""
        return {
            'product_id': self.product_id,
            'name': self.name,
            'code': self.code,
            'unit_price': self.unit_price,
            'quantity': self.quantity,
            'discount': self.discount,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CartLine':
        return cls(
            product_id=data.get('product_id', ''),
            name=data.get('name', ''),
            code=data.get('code', ''),
            unit_price=data.get('unit_price', 0.0),
            quantity=data.get('quantity', 1),
            discount=data.get('discount', 0.0),
        )


# ==============================================================================
# VENTAS Y CREDIÁRIO
# ==============================================================================

@dataclass
class SaleItem:
    """
    Copia congelada de una línea vendida. Desacoplada del producto vivo:
    el historial no cambia si el catálogo cambia después.
    """
    product_id: str
    name: str
    quantity: int
    price: float
    discount: float = 0.0

    @property
    def line_total(self) -> float:
        return round((self.price - self.discount) * self.quantity, 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_id': self.product_id,
            'name': self.name,
            'quantity': self.quantity,
            'price': self.price,
            'discount': self.discount,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SaleItem':
        return cls(
            product_id=data.get('product_id', ''),
            name=data.get('name', ''),
            quantity=data.get('quantity', 0),
            price=data.get('price', 0.0),
            discount=data.get('discount', 0.0),
        )


@dataclass
class Installment:
    """
    Cuota de una venta a crediário.

    Attributes:
        number: Número de cuota (1..n, secuencial, sin huecos)
        value: Monto de la cuota
        due_date: Vencimiento (ISO 8601)
        status: pendente / pago
        paid_at: Timestamp ISO del pago (solo si status == pago)
    """
    number: int
    value: float
    due_date: str
    status: InstallmentStatus = InstallmentStatus.PENDENTE
    paid_at: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.status == InstallmentStatus.PAGO

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'number': self.number,
            'value': self.value,
            'due_date': self.due_date,
            'status': self.status.value,
        }
        if self.paid_at:
            d['paid_at'] = self.paid_at
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Installment':
        return cls(
            number=data.get('number', 0),
            value=data.get('value', 0.0),
            due_date=data.get('due_date', ''),
            status=_enum_value(
                InstallmentStatus, data.get('status', 'pendente'), InstallmentStatus.PENDENTE
            ),
            paid_at=data.get('paid_at'),
        )


@dataclass
class Sale:
    """
    Venta registrada. Los ítems no cambian después de creada; solo
    cambian el estado (finalizada → cancelada, una sola vez) y el
    estado de cada cuota.

    Attributes:
        id: Clave asignada por el store
        timestamp: Fecha y hora de registro (ISO 8601, UTC)
        seller_id / seller_name: Copia del operador autenticado
        customer_id / customer_name: Copia del cliente (opcional)
        status: finalizada / cancelada
        items: Copias congeladas de los productos vendidos
        subtotal, fee, total: Totales calculados
        amount_paid: Monto recibido (efectivo) o total
        change: Vuelto (solo efectivo)
        payment_method: Método de pago
        installments: Cronograma de cuotas (solo crediário)
    """
    id: str
    timestamp: str
    seller_id: str
    seller_name: str
    payment_method: PaymentMethod
    items: List[SaleItem] = field(default_factory=list)
    subtotal: float = 0.0
    fee: float = 0.0
    total: float = 0.0
    amount_paid: float = 0.0
    change: float = 0.0
    status: SaleStatus = SaleStatus.FINALIZADA
    customer_id: Optional[str] = None
    customer_name: str = 'Consumidor Final'
    installments: List[Installment] = field(default_factory=list)
    voided_at: Optional[str] = None
    voided_by: Optional[str] = None

    @property
    def is_voided(self) -> bool:
        """Verifica si la venta fue anulada."""
        return self.status == SaleStatus.CANCELADA

    def get_installment(self, number: int) -> Optional[Installment]:
        """Busca una cuota por su número."""
        for inst in self.installments:
            if inst.number == number:
                return inst
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia JSON."""
        d = {
            'id': self.id,
            'timestamp': self.timestamp,
            'seller_id': self.seller_id,
            'seller_name': self.seller_name,
            'status': self.status.value,
            'items': [item.to_dict() for item in self.items],
            'subtotal': self.subtotal,
            'fee': self.fee,
            'total': self.total,
            'amount_paid': self.amount_paid,
            'change': self.change,
            'payment_method': self.payment_method.value,
            'customer_name': self.customer_name,
        }
        if self.customer_id:
            d['customer_id'] = self.customer_id
        if self.installments:
            d['installments'] = [inst.to_dict() for inst in self.installments]
        if self.voided_at:
            d['voided_at'] = self.voided_at
        if self.voided_by:
            d['voided_by'] = self.voided_by
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Sale':
        """Crea instancia desde diccionario (formato del store)."""
        return cls(
            id=data.get('id', ''),
            timestamp=data.get('timestamp', ''),
            seller_id=data.get('seller_id', ''),
            seller_name=data.get('seller_name', ''),
            payment_method=_enum_value(
                PaymentMethod, data.get('payment_method', 'pix'), PaymentMethod.PIX
            ),
            items=[SaleItem.from_dict(i) for i in data.get('items', [])],
            subtotal=data.get('subtotal', 0.0),
            fee=data.get('fee', 0.0),
            total=data.get('total', 0.0),
            amount_paid=data.get('amount_paid', 0.0),
            change=data.get('change', 0.0),
            status=_enum_value(
                SaleStatus, data.get('status', 'finalizada'), SaleStatus.FINALIZADA
            ),
            customer_id=data.get('customer_id'),
            customer_name=data.get('customer_name', 'Consumidor Final'),
            installments=[Installment.from_dict(i) for i in data.get('installments', [])],
            voided_at=data.get('voided_at'),
            voided_by=data.get('voided_by'),
        )


# ==============================================================================
# AUDITORÍA
# ==============================================================================

class AuditType(str, Enum):
    """Tipos de eventos de auditoría."""
    VENTA = "VENTA"
    PAGO = "PAGO"
    ESTOQUE = "ESTOQUE"
    PRODUTO = "PRODUTO"
    SEGURANCA = "SEGURANCA"
    SISTEMA = "SISTEMA"
