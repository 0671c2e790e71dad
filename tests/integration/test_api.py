"""
Integration tests for the HTTP API in local storage mode.
"""

import io
import json
import os
from decimal import Decimal

from docegestao.services.backends import PRODUCTS_KEY, SALES_KEY


def _seed_id(client, name):
    products = client.get('/inventory/products').get_json()['products']
    return next(p['id'] for p in products if p['name'] == name)


class TestAuthFlow:
    """Tests for login/logout."""

    def test_requires_login(self, client):
        response = client.get('/pos/cart')
        assert response.status_code == 401
        assert response.get_json()['status'] == 'error'

    def test_wrong_credentials(self, client):
        response = client.post('/login', json={'username': 'admin', 'password': 'x'})
        assert response.status_code == 401
        assert response.get_json()['message'] == 'Usuário ou senha incorretos.'

    def test_missing_fields(self, client):
        response = client.post('/login', json={'username': ''})
        assert response.status_code == 400

    def test_login_and_logout(self, client):
        assert client.post('/login', json={'username': 'admin', 'password': 'admin'}).status_code == 200
        assert client.get('/login').get_json()['user'] == 'admin'
        assert client.post('/logout').status_code == 200
        assert client.get('/pos/cart').status_code == 401


class TestShell:
    """Tests for the shell state endpoints."""

    def test_index_defaults(self, client):
        data = client.get('/').get_json()
        assert data['view'] == 'pos'
        assert data['backend'] == 'local'
        assert data['user'] is None
        assert data['csrf_token']

    def test_switch_view(self, auth_client):
        assert auth_client.post('/view', json={'view': 'dashboard'}).status_code == 200
        assert auth_client.get('/').get_json()['view'] == 'dashboard'
        assert auth_client.post('/view', json={'view': 'settings'}).status_code == 400

    def test_health(self, client):
        data = client.get('/health').get_json()
        assert data['status'] == 'healthy'
        assert data['backend'] == 'local'

    def test_metrics(self, client):
        client.get('/health')
        response = client.get('/metrics')
        assert response.status_code == 200
        assert b'http_requests_total' in response.data


class TestPointOfSale:
    """Tests for the cart and checkout endpoints."""

    def test_search_products(self, auth_client):
        data = auth_client.get('/pos/products?q=choco').get_json()
        assert {p['name'] for p in data['products']} == {'Trufa de Maracujá', 'Barra de Chocolate 100g'}

    def test_add_respects_stock(self, auth_client):
        bolo = _seed_id(auth_client, 'Bolo de Pote Ninho')  # stock 2
        for _ in range(3):
            response = auth_client.post('/pos/cart/add', json={'product_id': bolo})
        data = response.get_json()
        assert data['changed'] is False
        assert data['cart']['items'][0]['quantity'] == 2

    def test_add_unknown_product(self, auth_client):
        assert auth_client.post('/pos/cart/add', json={'product_id': 'nope'}).status_code == 404

    def test_update_and_remove(self, auth_client):
        agua = _seed_id(auth_client, 'Água Mineral')
        auth_client.post('/pos/cart/add', json={'product_id': agua})
        data = auth_client.post('/pos/cart/update', json={'product_id': agua, 'delta': 4}).get_json()
        assert data['cart']['item_count'] == 5
        data = auth_client.post('/pos/cart/remove', json={'product_id': agua}).get_json()
        assert data['cart']['items'] == []

    def test_checkout_records_sale_and_decrements_stock(self, app, auth_client):
        brigadeiro = _seed_id(auth_client, 'Brigadeiro Gourmet')
        bolo = _seed_id(auth_client, 'Bolo de Pote Ninho')
        auth_client.post('/pos/cart/add', json={'product_id': brigadeiro})
        auth_client.post('/pos/cart/add', json={'product_id': brigadeiro})
        auth_client.post('/pos/cart/add', json={'product_id': bolo})

        response = auth_client.post('/pos/checkout', json={
            'payment_method': 'pix',
            'observation': '',
            'delivery_cost': '5,00',
        })

        assert response.status_code == 201
        data = response.get_json()
        assert Decimal(data['sale']['total']) == Decimal('22.00')
        assert data['sale']['observation'] == '[Entrega: R$ 5,00]'
        assert data['cart']['items'] == []
        assert data['cart']['payment_method'] == 'cash'

        store = app.extensions['store']
        assert store.get_product(brigadeiro).stock == 48
        assert store.get_product(bolo).stock == 1

        storage_dir = app.config['LOCAL_STORAGE_DIR']
        with open(os.path.join(storage_dir, f'{SALES_KEY}.json'), encoding='utf-8') as f:
            saved_sales = json.load(f)
        with open(os.path.join(storage_dir, f'{PRODUCTS_KEY}.json'), encoding='utf-8') as f:
            saved_products = {p['id']: p['stock'] for p in json.load(f)}
        assert saved_sales[0]['id'] == data['sale']['id']
        assert saved_products[brigadeiro] == 48

    def test_checkout_uses_form_fields(self, auth_client):
        agua = _seed_id(auth_client, 'Água Mineral')
        auth_client.post('/pos/cart/add', json={'product_id': agua})
        auth_client.post('/pos/cart/form', json={'payment_method': 'pending', 'observation': 'Dona Rita'})
        sale = auth_client.post('/pos/checkout', json={}).get_json()['sale']
        assert sale['payment_method'] == 'pending'
        assert sale['observation'] == 'Dona Rita'

    def test_empty_checkout(self, auth_client):
        auth_client.post('/pos/cart/form', json={'observation': 'guardado'})
        response = auth_client.post('/pos/checkout', json={})
        assert response.status_code == 400
        assert auth_client.get('/pos/cart').get_json()['cart']['observation'] == 'guardado'

    def test_invalid_payment_method(self, auth_client):
        response = auth_client.post('/pos/cart/form', json={'payment_method': 'cheque'})
        assert response.status_code == 400

    def test_checkout_after_stock_lowered_keeps_cart(self, app, auth_client):
        product = auth_client.post('/inventory/products', json={
            'name': 'Cocada', 'price': '2,00', 'stock': 2,
        }).get_json()['product']
        auth_client.post('/pos/cart/add', json={'product_id': product['id']})
        auth_client.post('/pos/cart/add', json={'product_id': product['id']})
        auth_client.put(f"/inventory/products/{product['id']}", json={'stock': 1})

        response = auth_client.post('/pos/checkout', json={'payment_method': 'pix'})

        assert response.status_code == 400
        assert 'Cocada' in response.get_json()['message']
        assert app.extensions['store'].get_product(product['id']).stock == 1
        assert app.extensions['store'].sales == ()
        cart = auth_client.get('/pos/cart').get_json()['cart']
        assert cart['items'][0]['quantity'] == 2

    def test_two_carts_cannot_oversell(self, app, auth_client):
        product = auth_client.post('/inventory/products', json={
            'name': 'Pudim', 'price': '8,00', 'stock': 1,
        }).get_json()['product']
        other_client = app.test_client()
        other_client.post('/login', json={'username': 'admin', 'password': 'admin'})
        auth_client.post('/pos/cart/add', json={'product_id': product['id']})
        other_client.post('/pos/cart/add', json={'product_id': product['id']})

        assert auth_client.post('/pos/checkout', json={}).status_code == 201
        assert other_client.post('/pos/checkout', json={}).status_code == 400
        assert app.extensions['store'].get_product(product['id']).stock == 0

    def test_non_text_observation(self, auth_client):
        agua = _seed_id(auth_client, 'Água Mineral')
        auth_client.post('/pos/cart/add', json={'product_id': agua})
        assert auth_client.post('/pos/cart/form', json={'observation': 5}).status_code == 200
        sale = auth_client.post('/pos/checkout', json={'observation': 42}).get_json()['sale']
        assert sale['observation'] == '42'


class TestInventory:
    """Tests for the product editor."""

    def test_create_update_delete(self, app, auth_client):
        response = auth_client.post('/inventory/products', json={
            'name': 'Pé de Moleque', 'price': '2,50', 'cost': '0,80', 'stock': 40,
        })
        assert response.status_code == 201
        product = response.get_json()['product']
        assert product['category'] == 'Doces'
        assert product['price'] == '2.50'

        response = auth_client.put(f"/inventory/products/{product['id']}", json={'stock': 12})
        assert response.get_json()['product']['stock'] == 12
        assert response.get_json()['product']['name'] == 'Pé de Moleque'

        assert auth_client.delete(f"/inventory/products/{product['id']}").status_code == 200
        assert app.extensions['store'].get_product(product['id']) is None
        assert auth_client.delete(f"/inventory/products/{product['id']}").status_code == 404

    def test_validation(self, auth_client):
        assert auth_client.post('/inventory/products', json={'price': '2'}).status_code == 400
        assert auth_client.post('/inventory/products', json={'name': 'X'}).status_code == 400
        response = auth_client.post('/inventory/products', json={'name': 'X', 'price': '1', 'stock': -1})
        assert response.status_code == 400

    def test_non_text_name_is_coerced(self, auth_client):
        response = auth_client.post('/inventory/products', json={'name': 123, 'price': '1', 'category': 7})
        assert response.status_code == 201
        assert response.get_json()['product']['name'] == '123'
        assert response.get_json()['product']['category'] == '7'

    def test_image_upload_rejected_locally(self, auth_client):
        response = auth_client.post(
            '/inventory/images',
            data={'image': (io.BytesIO(b'png'), 'foto.png', 'image/png')},
            content_type='multipart/form-data',
        )
        assert response.status_code == 400
        assert 'modo Online' in response.get_json()['message']


class TestDashboard:
    """Tests for the dashboard endpoints."""

    def _sell(self, client, method):
        agua = _seed_id(client, 'Água Mineral')
        client.post('/pos/cart/add', json={'product_id': agua})
        return client.post('/pos/checkout', json={'payment_method': method}).get_json()['sale']

    def test_summary(self, auth_client):
        self._sell(auth_client, 'cash')
        self._sell(auth_client, 'pending')

        data = auth_client.get('/dashboard/?range=today').get_json()
        assert data['sales_count'] == 2
        assert Decimal(data['total_received']) == Decimal('3.00')
        assert Decimal(data['total_pending']) == Decimal('3.00')
        assert len(data['chart_series']) == 14
        assert data['sales'][0]['payment_label'] in ('Dinheiro', 'Pendente')
        assert data['low_stock_count'] == 1
        assert data['low_stock_alert'] is False

    def test_default_range_is_week(self, auth_client):
        data = auth_client.get('/dashboard/').get_json()
        assert data['range'] == 'week'
        assert len(data['chart_series']) == 7

    def test_invalid_filter(self, auth_client):
        assert auth_client.get('/dashboard/?range=year').status_code == 400

    def test_resolve_pending_sale_once(self, auth_client):
        sale = self._sell(auth_client, 'pending')
        url = f"/dashboard/sales/{sale['id']}/resolve"

        response = auth_client.post(url, json={'payment_method': 'pix'})
        assert response.status_code == 200
        assert response.get_json()['sale']['payment_method'] == 'pix'

        assert auth_client.post(url, json={'payment_method': 'cash'}).status_code == 400
        assert auth_client.post('/dashboard/sales/nope/resolve', json={'payment_method': 'pix'}).status_code == 404


class TestAssistant:
    """Tests for the insights endpoint."""

    def test_blank_question(self, auth_client):
        assert auth_client.post('/assistant/ask', json={'question': '   '}).status_code == 400

    def test_missing_key_returns_apology(self, auth_client):
        data = auth_client.post('/assistant/ask', json={'question': 'Como vão as vendas?'}).get_json()
        assert data['status'] == 'ok'
        assert data['answer'].startswith('Não foi possível conectar com a IA')

    def test_answer_from_client(self, app, auth_client):
        class StubClient:
            def ask(self, products, sales, question):
                return f'{len(products)} produtos: {question}'

        app.extensions['insights_client'] = StubClient()
        data = auth_client.post('/assistant/ask', json={'question': 'Resumo'}).get_json()
        assert data['answer'] == '6 produtos: Resumo'
