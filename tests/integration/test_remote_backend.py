"""
Integration tests for the app running against a remote (SQL) backend.
"""

import os

import pytest

from docegestao import create_app, database
from docegestao.models import ProductRecord, SaleRecord
from docegestao.services.auth_service import create_app_user


@pytest.fixture
def remote_app(tmp_path, remote_url):
    app = create_app('config.TestingConfig', {
        'DATABASE_URL': remote_url,
        'SQLALCHEMY_DATABASE_URI': remote_url,
        'LOCAL_STORAGE_DIR': str(tmp_path / 'storage'),
    })
    database.create_tables()
    yield app
    app.extensions['store'].shutdown()
    database.engine.dispose()


@pytest.fixture
def remote_client(remote_app):
    client = remote_app.test_client()
    client.post('/login', json={'username': 'admin', 'password': 'admin'})
    return client


class TestRemoteMode:
    """The same API persisting through SQLAlchemy."""

    def test_backend_selected_once(self, remote_app):
        assert remote_app.extensions['data_service'].is_remote
        assert remote_app.test_client().get('/').get_json()['backend'] == 'remote'

    def test_health_checks_database(self, remote_app):
        data = remote_app.test_client().get('/health').get_json()
        assert data['status'] == 'healthy'
        assert data['database'] == 'connected'

    def test_empty_database_has_no_seed_products(self, remote_app):
        remote_app.extensions['store'].load()
        assert remote_app.extensions['store'].products == ()

    def test_checkout_persists_sale_and_stock(self, remote_app, remote_client):
        store = remote_app.extensions['store']
        response = remote_client.post('/inventory/products', json={
            'name': 'Brigadeiro Gourmet', 'price': '3.50', 'cost': '1.20', 'stock': 10,
        })
        product_id = response.get_json()['product']['id']

        remote_client.post('/pos/cart/add', json={'product_id': product_id})
        remote_client.post('/pos/cart/update', json={'product_id': product_id, 'delta': 2})
        sale = remote_client.post('/pos/checkout', json={'payment_method': 'pending'}).get_json()['sale']
        remote_client.post(f"/dashboard/sales/{sale['id']}/resolve", json={'payment_method': 'card'})
        assert store.flush(timeout=10)

        session = database.get_session()
        try:
            record = session.get(ProductRecord, product_id)
            assert record.stock == 7
            sale_record = session.get(SaleRecord, sale['id'])
            assert sale_record.payment_method == 'card'
            assert sale_record.items[0]['quantity'] == 3
        finally:
            session.remove()

        store.load()
        assert store.get_product(product_id).stock == 7
        assert store.get_sale(sale['id']).payment_method.value == 'card'

    def test_local_files_not_written(self, remote_app, remote_client):
        remote_client.post('/inventory/products', json={'name': 'Trufa', 'price': '4.50'})
        storage_dir = remote_app.config['LOCAL_STORAGE_DIR']
        assert not any(name.endswith('.json') for name in _listdir(storage_dir))

    def test_app_users_login(self, remote_app):
        create_app_user(database.get_session(), 'caixa', 'doce-123')
        client = remote_app.test_client()
        assert client.post('/login', json={'username': 'caixa', 'password': 'doce-123'}).status_code == 200
        response = client.post('/login', json={'username': 'caixa', 'password': 'errada'})
        assert response.status_code == 401


def _listdir(path):
    return os.listdir(path) if os.path.isdir(path) else []
