"""
Store controller - owns the in-memory product and sale collections.

Every action updates memory first, under a lock, and returns. The matching
persistence call is queued on a single background worker so calls reach
the backend in the order the actions happened. Failed calls are logged and
counted; memory is never rolled back, so it can diverge from the backend
until the next load().
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Tuple

from docegestao.domain import SETTLED_METHODS, PaymentMethod, Product, Sale
from docegestao.exceptions import BusinessLogicError, NotFoundError
from docegestao.metrics import sales_recorded_total, sync_failures_total
from docegestao.services.data_service import DataService

logger = logging.getLogger(__name__)


class StoreController:
    """
    Usage:
        store = StoreController(get_data_service())
        store.load()
        store.complete_sale(sale)
        store.flush()
    """

    def __init__(self, data_service: DataService):
        self.data_service = data_service
        self._products: List[Product] = []
        self._sales: List[Sale] = []
        self._lock = threading.RLock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='docegestao-sync')
        self._pending: List[Future] = []
        self.loaded = False

    # Read-only views

    @property
    def products(self) -> Tuple[Product, ...]:
        with self._lock:
            return tuple(self._products)

    @property
    def sales(self) -> Tuple[Sale, ...]:
        with self._lock:
            return tuple(self._sales)

    def get_product(self, product_id: str) -> Optional[Product]:
        with self._lock:
            return next((p for p in self._products if p.id == product_id), None)

    def get_sale(self, sale_id: str) -> Optional[Sale]:
        with self._lock:
            return next((s for s in self._sales if s.id == sale_id), None)

    # Lifecycle

    def load(self):
        """Replace memory with a full read from the backend."""
        products = self.data_service.fetch_products()
        sales = self.data_service.fetch_sales()
        with self._lock:
            self._products = list(products)
            self._sales = list(sales)
            self.loaded = True
        logger.info(f"[SYNC] Loaded {len(products)} products and {len(sales)} sales "
                    f"({self.data_service.mode})")

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued persistence calls. Returns False on timeout."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        done, not_done = wait(pending, timeout=timeout)
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()]
        return not not_done

    def shutdown(self, wait_for_pending: bool = True):
        self._executor.shutdown(wait=wait_for_pending)

    # Actions

    def add_product(self, product: Product) -> Product:
        with self._lock:
            if any(p.id == product.id for p in self._products):
                raise BusinessLogicError(f'Já existe um produto com o id {product.id}.')
            self._products.append(product)
            self._after_change()
            self._submit('create_product', self.data_service.create_product, product)
        return product

    def update_product(self, product: Product) -> Product:
        with self._lock:
            index = self._product_index(product.id)
            self._products[index] = product
            self._after_change()
            self._submit('update_product', self.data_service.update_product, product)
        return product

    def delete_product(self, product_id: str):
        with self._lock:
            index = self._product_index(product_id)
            del self._products[index]
            self._after_change()
            self._submit('delete_product', self.data_service.delete_product, product_id)

    def complete_sale(self, sale: Sale) -> Sale:
        """
        Record a sale and decrement stock for every product it contains.

        All decrements are applied in one pass; products that no longer
        exist are skipped. Raises BusinessLogicError, recording nothing, when
        a product has less stock than the sale takes.
        """
        quantities: Dict[str, int] = {}
        for item in sale.items:
            quantities[item.id] = quantities.get(item.id, 0) + item.quantity

        with self._lock:
            for product in self._products:
                if product.id in quantities and product.stock < quantities[product.id]:
                    raise BusinessLogicError(
                        f'Estoque insuficiente para {product.name}: '
                        f'{product.stock} disponível, {quantities[product.id]} no carrinho.'
                    )
            self._sales.append(sale)

            updates = []
            for index, product in enumerate(self._products):
                if product.id in quantities:
                    new_stock = product.stock - quantities[product.id]
                    self._products[index] = replace(product, stock=new_stock)
                    updates.append({'id': product.id, 'stock': new_stock})

            self._after_change()
            self._submit('create_sale', self.data_service.create_sale, sale)
            if updates:
                self._submit('update_stock_batch', self.data_service.update_stock_batch, updates)

        sales_recorded_total.labels(payment_method=sale.payment_method.value).inc()
        logger.info(f"[SYNC] Sale {sale.id} recorded ({sale.payment_method.value}, "
                    f"{len(updates)} stock updates)")
        return sale

    def resolve_pending_sale(self, sale_id: str, method: PaymentMethod) -> bool:
        """
        Move a pending sale to a settled payment method.

        Returns False, changing nothing, when the sale does not exist, is
        not pending, or the target method is not a settled one.
        """
        try:
            method = PaymentMethod(method)
        except ValueError:
            return False
        if method not in SETTLED_METHODS:
            return False

        with self._lock:
            for index, sale in enumerate(self._sales):
                if sale.id == sale_id:
                    break
            else:
                return False
            if not sale.is_pending:
                return False
            self._sales[index] = sale.with_payment_method(method)
            self._after_change()
            self._submit('update_sale_payment', self.data_service.update_sale_payment, sale_id, method)
        logger.info(f"[SYNC] Sale {sale_id} resolved to {method.value}")
        return True

    # Internals

    def _product_index(self, product_id: str) -> int:
        for index, product in enumerate(self._products):
            if product.id == product_id:
                return index
        raise NotFoundError('Produto não encontrado.')

    def _after_change(self):
        """Mirror both collections (a no-op on the remote backend)."""
        try:
            self.data_service.mirror(self._products, self._sales)
        except OSError as e:
            sync_failures_total.labels(operation='mirror').inc()
            logger.error(f"[SYNC] ✗ Failed to mirror local storage: {e}")

    def _submit(self, operation: str, fn: Callable, *args):
        future = self._executor.submit(self._run, operation, fn, *args)
        self._pending = [f for f in self._pending if not f.done()]
        self._pending.append(future)
        return future

    @staticmethod
    def _run(operation: str, fn: Callable, *args):
        try:
            fn(*args)
        except Exception as e:
            sync_failures_total.labels(operation=operation).inc()
            logger.error(f"[SYNC] ✗ {operation} failed, local state kept: {e}")


def init_store(app, data_service: DataService) -> StoreController:
    """Create the app's store controller and load the initial state."""
    store = StoreController(data_service)
    store.load()
    app.extensions['store'] = store
    return store


def get_store() -> StoreController:
    from flask import current_app
    return current_app.extensions['store']


def search_products(products, query: Optional[str]) -> List[Product]:
    """Case-insensitive match on name or category; blank query returns all."""
    needle = (query or '').strip().lower()
    if not needle:
        return list(products)
    return [
        p for p in products
        if needle in p.name.lower() or needle in (p.category or '').lower()
    ]
