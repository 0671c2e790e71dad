"""Cart service - in-progress sale and checkout."""
import uuid
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from docegestao.domain import CartItem, PaymentMethod, Product, Sale, utc_now_iso
from docegestao.utils.formatters import money_br
from docegestao.utils.number_format import parse_delivery_cost

CART_SESSION_KEY = 'cart'


class Cart:
    """
    Items being sold plus the checkout form fields.

    Quantities never exceed the stock ceiling of the product; items whose
    quantity drops to zero are removed.
    """

    def __init__(self, items: Optional[List[CartItem]] = None,
                 payment_method: PaymentMethod = PaymentMethod.CASH,
                 observation: str = '', delivery_cost: str = ''):
        self.items: List[CartItem] = list(items or [])
        self.payment_method = PaymentMethod(payment_method)
        self.observation = observation
        self.delivery_cost = delivery_cost

    def __len__(self):
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def _index(self, item_id: str) -> Optional[int]:
        for index, item in enumerate(self.items):
            if item.id == item_id:
                return index
        return None

    def get_item(self, item_id: str) -> Optional[CartItem]:
        index = self._index(item_id)
        return self.items[index] if index is not None else None

    def add_item(self, product: Product) -> bool:
        """Add one unit of product. Returns False when nothing changed."""
        if product.stock <= 0:
            return False
        index = self._index(product.id)
        if index is None:
            self.items.append(CartItem.from_product(product, 1))
            return True
        current = self.items[index]
        if current.quantity >= product.stock:
            return False
        self.items[index] = current.with_quantity(current.quantity + 1)
        return True

    def change_quantity(self, item_id: str, delta: int,
                        products: Iterable[Product] = ()) -> bool:
        """
        Adjust quantity by delta, clamped to [0, live stock].

        The stock ceiling comes from the current product collection; when
        the product no longer exists the snapshot's stock is used.
        """
        index = self._index(item_id)
        if index is None:
            return False
        item = self.items[index]
        live = next((p for p in products if p.id == item_id), None)
        ceiling = live.stock if live is not None else item.stock
        new_quantity = max(0, min(item.quantity + int(delta), max(0, ceiling)))
        if new_quantity == 0:
            del self.items[index]
            return True
        if new_quantity == item.quantity:
            return False
        self.items[index] = item.with_quantity(new_quantity)
        return True

    def remove_item(self, item_id: str) -> bool:
        index = self._index(item_id)
        if index is None:
            return False
        del self.items[index]
        return True

    def clear(self):
        self.items = []
        self.reset_form()

    def reset_form(self):
        self.payment_method = PaymentMethod.CASH
        self.observation = ''
        self.delivery_cost = ''

    # Totals

    @property
    def products_total(self) -> Decimal:
        return sum((item.subtotal for item in self.items), Decimal('0'))

    @property
    def delivery_value(self) -> Decimal:
        return parse_delivery_cost(self.delivery_cost)

    @property
    def final_total(self) -> Decimal:
        return self.products_total + self.delivery_value

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def checkout(self, payment_method: Optional[PaymentMethod] = None,
                 observation: Optional[str] = None,
                 delivery_cost: Optional[str] = None) -> Optional[Sale]:
        """
        Finalize the cart into a Sale.

        Arguments left as None fall back to the cart's form fields. An empty
        cart is a no-op: returns None and leaves the form untouched.
        """
        if self.is_empty:
            return None

        method = PaymentMethod(payment_method) if payment_method is not None else self.payment_method
        note = str((observation if observation is not None else self.observation) or '').strip()
        delivery_raw = delivery_cost if delivery_cost is not None else self.delivery_cost

        products_total = self.products_total
        delivery_value = parse_delivery_cost(delivery_raw)
        total = products_total + delivery_value

        if delivery_value > 0:
            annotation = f"[Entrega: {money_br(delivery_value)}]"
            note = f"{note} {annotation}" if note else annotation

        sale = Sale(
            id=str(uuid.uuid4()),
            items=tuple(self.items),
            total=total,
            date=utc_now_iso(),
            payment_method=method,
            observation=note,
        )
        self.clear()
        return sale

    def to_dict(self) -> Dict[str, Any]:
        return {
            'items': [item.to_dict() for item in self.items],
            'payment_method': self.payment_method.value,
            'observation': self.observation,
            'delivery_cost': self.delivery_cost,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Cart':
        if not data:
            return cls()
        try:
            method = PaymentMethod(data.get('payment_method', 'cash'))
        except ValueError:
            method = PaymentMethod.CASH
        return cls(
            items=[CartItem.from_dict(item) for item in data.get('items') or []],
            payment_method=method,
            observation=data.get('observation') or '',
            delivery_cost=data.get('delivery_cost') or '',
        )

    def summary(self) -> Dict[str, Any]:
        """JSON view of the cart with computed totals."""
        data = self.to_dict()
        data.update({
            'products_total': str(self.products_total),
            'delivery_value': str(self.delivery_value),
            'final_total': str(self.final_total),
            'item_count': self.item_count,
        })
        return data


def load_cart(session) -> Cart:
    """Rebuild the cart stored in the Flask session."""
    return Cart.from_dict(session.get(CART_SESSION_KEY))


def save_cart(session, cart: Cart):
    session[CART_SESSION_KEY] = cart.to_dict()
    session.modified = True
