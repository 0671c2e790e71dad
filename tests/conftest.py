import pytest
import uuid
from decimal import Decimal
from datetime import datetime, timezone

from docegestao import create_app
from docegestao.domain import CartItem, PaymentMethod, Product, Sale


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application instance for testing (local storage mode)."""
    app = create_app('config.TestingConfig', {'LOCAL_STORAGE_DIR': str(tmp_path / 'storage')})
    yield app
    app.extensions['store'].shutdown()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def auth_client(client):
    """Test client with a logged-in operator."""
    response = client.post('/login', json={'username': 'admin', 'password': 'admin'})
    assert response.status_code == 200
    return client


@pytest.fixture(scope='function')
def store(app):
    """Store controller of the test app."""
    return app.extensions['store']


@pytest.fixture(scope='function')
def remote_url(tmp_path):
    """File-backed SQLite URL (shared by the request and sync threads)."""
    return f"sqlite:///{tmp_path / 'docegestao.db'}"


class FakeDataService:
    """Records every call; optionally fails chosen write operations."""

    mode = 'fake'

    def __init__(self, products=(), sales=(), fail_on=()):
        self.products = list(products)
        self.sales = list(sales)
        self.fail_on = set(fail_on)
        self.calls = []
        self.mirrors = []

    @property
    def is_remote(self):
        return True

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail_on:
            raise RuntimeError(f'{name} failed')

    def fetch_products(self):
        return list(self.products)

    def fetch_sales(self):
        return list(self.sales)

    def create_product(self, product):
        self._record('create_product', product)

    def update_product(self, product):
        self._record('update_product', product)

    def delete_product(self, product_id):
        self._record('delete_product', product_id)

    def create_sale(self, sale):
        self._record('create_sale', sale)

    def update_sale_payment(self, sale_id, method):
        self._record('update_sale_payment', sale_id, method)

    def delete_sale(self, sale_id):
        self._record('delete_sale', sale_id)

    def update_stock_batch(self, updates):
        self._record('update_stock_batch', list(updates))

    def upload_image(self, file):
        self._record('upload_image', file)
        return 'http://example.test/images/x.png'

    def mirror(self, products, sales):
        self.mirrors.append((tuple(products), tuple(sales)))


@pytest.fixture
def fake_data_service():
    return FakeDataService


def make_product(id=None, name='Brigadeiro', category='Doces', price='3.50',
                 cost='1.20', stock=10, image_url=None):
    return Product(
        id=id or str(uuid.uuid4()),
        name=name,
        category=category,
        price=Decimal(price),
        cost=Decimal(cost),
        stock=stock,
        image_url=image_url,
    )


def make_sale(total='10.00', when=None, method=PaymentMethod.CASH, items=(), id=None, observation=''):
    when = when or datetime.now(timezone.utc)
    return Sale(
        id=id or str(uuid.uuid4()),
        items=tuple(items),
        total=Decimal(total),
        date=when.isoformat(),
        payment_method=method,
        observation=observation,
    )


def make_item(product, quantity=1):
    return CartItem.from_product(product, quantity)


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture
def sale_factory():
    return make_sale


@pytest.fixture
def item_factory():
    return make_item
