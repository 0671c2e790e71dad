"""
Domain records shared by every layer: products, cart items and sales.

Records are frozen dataclasses. Changes (a stock decrement, resolving a
pending sale) produce new instances through ``dataclasses.replace`` so a
sale's item snapshots never change after checkout.
"""
import enum
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple


class PaymentMethod(str, enum.Enum):
    """Payment method tag of a sale."""
    CASH = 'cash'
    CARD = 'card'
    PIX = 'pix'
    PENDING = 'pending'  # fiado: recorded before payment is received
    IFOOD = 'ifood'


# Methods a pending sale may be resolved to
SETTLED_METHODS = frozenset({
    PaymentMethod.CASH, PaymentMethod.CARD, PaymentMethod.PIX, PaymentMethod.IFOOD
})


class AppView(str, enum.Enum):
    """Top-level screen currently shown to the user."""
    DASHBOARD = 'dashboard'
    POS = 'pos'
    INVENTORY = 'inventory'
    AI_ASSISTANT = 'ai_assistant'


class DateRange(str, enum.Enum):
    """Dashboard time window."""
    TODAY = 'today'
    WEEK = 'week'
    MONTH = 'month'
    ALL = 'all'


class PaymentFilter(str, enum.Enum):
    """Dashboard payment-method filter."""
    ALL = 'all'
    CASH = 'cash'
    CARD = 'card'
    PIX = 'pix'
    IFOOD = 'ifood'
    PENDING = 'pending'


def to_decimal(value: Any, default: Decimal = Decimal('0')) -> Decimal:
    """Convert a stored money value (str, int, float, Decimal) to Decimal."""
    if value is None or value == '':
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (ValueError, TypeError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Product:
    """
    Inventory product.

    Attributes:
        id: Opaque unique identifier
        name: Display name
        category: Free-form category (e.g. "Doces", "Chocolates")
        price: Sale price
        cost: Purchase cost
        stock: Units on hand, never negative at rest
        image_url: Optional public image URL
    """
    id: str
    name: str
    category: str = 'Doces'
    price: Decimal = Decimal('0')
    cost: Decimal = Decimal('0')
    stock: int = 0
    image_url: Optional[str] = None

    def with_stock(self, stock: int) -> 'Product':
        return replace(self, stock=stock)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe dict (money as decimal strings)."""
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'price': str(self.price),
            'cost': str(self.cost),
            'stock': self.stock,
            'image_url': self.image_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        return cls(
            id=str(data['id']),
            name=data.get('name', ''),
            category=data.get('category') or '',
            price=to_decimal(data.get('price')),
            cost=to_decimal(data.get('cost')),
            stock=int(data.get('stock') or 0),
            image_url=data.get('image_url') or None,
        )


@dataclass(frozen=True)
class CartItem(Product):
    """A product snapshot plus the quantity being sold."""
    quantity: int = 1

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1) -> 'CartItem':
        return cls(
            id=product.id,
            name=product.name,
            category=product.category,
            price=product.price,
            cost=product.cost,
            stock=product.stock,
            image_url=product.image_url,
            quantity=quantity,
        )

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity

    def with_quantity(self, quantity: int) -> 'CartItem':
        return replace(self, quantity=quantity)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['quantity'] = self.quantity
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CartItem':
        product = Product.from_dict(data)
        return cls.from_product(product, int(data.get('quantity') or 0))


@dataclass(frozen=True)
class Sale:
    """
    Completed (or pending) transaction.

    ``total`` is fixed at checkout and never recomputed from ``items``.
    Only ``payment_method`` may change, once, from pending to a settled
    method.
    """
    id: str
    items: Tuple[CartItem, ...] = field(default_factory=tuple)
    total: Decimal = Decimal('0')
    date: str = ''
    payment_method: PaymentMethod = PaymentMethod.CASH
    observation: str = ''

    @property
    def is_pending(self) -> bool:
        return self.payment_method == PaymentMethod.PENDING

    @property
    def timestamp(self) -> Optional[datetime]:
        return parse_timestamp(self.date)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def with_payment_method(self, method: PaymentMethod) -> 'Sale':
        return replace(self, payment_method=PaymentMethod(method))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'items': [item.to_dict() for item in self.items],
            'total': str(self.total),
            'date': self.date,
            'payment_method': self.payment_method.value,
            'observation': self.observation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Sale':
        try:
            method = PaymentMethod(data.get('payment_method', 'cash'))
        except ValueError:
            method = PaymentMethod.CASH
        return cls(
            id=str(data['id']),
            items=tuple(CartItem.from_dict(i) for i in data.get('items') or []),
            total=to_decimal(data.get('total')),
            date=data.get('date') or '',
            payment_method=method,
            observation=data.get('observation') or '',
        )
