"""
Unit tests for the store controller (optimistic updates + background sync).
"""

import threading

import pytest
from prometheus_client import REGISTRY

from docegestao.domain import PaymentMethod
from docegestao.exceptions import BusinessLogicError, NotFoundError
from docegestao.services.store_service import StoreController, search_products


@pytest.fixture
def controller_factory(fake_data_service):
    controllers = []

    def factory(**kwargs):
        data = fake_data_service(**kwargs)
        controller = StoreController(data)
        controller.load()
        controllers.append(controller)
        return controller, data

    yield factory
    for controller in controllers:
        controller.shutdown()


class TestLoad:
    """Tests for StoreController.load."""

    def test_load_replaces_memory(self, controller_factory, product_factory, sale_factory):
        products = [product_factory(), product_factory()]
        sales = [sale_factory()]
        controller, _ = controller_factory(products=products, sales=sales)
        assert controller.products == tuple(products)
        assert controller.sales == tuple(sales)
        assert controller.loaded is True

    def test_views_are_tuples(self, controller_factory, product_factory):
        controller, _ = controller_factory(products=[product_factory()])
        assert isinstance(controller.products, tuple)
        assert isinstance(controller.sales, tuple)


class TestProductActions:
    """Tests for product create/update/delete."""

    def test_add_product_is_visible_before_persistence(self, controller_factory, product_factory):
        controller, data = controller_factory()
        product = product_factory()
        controller.add_product(product)
        assert controller.get_product(product.id) == product
        assert controller.flush(timeout=5)
        assert data.calls == [('create_product', product)]

    def test_duplicate_id_rejected(self, controller_factory, product_factory):
        product = product_factory()
        controller, _ = controller_factory(products=[product])
        with pytest.raises(BusinessLogicError):
            controller.add_product(product)

    def test_update_and_delete(self, controller_factory, product_factory):
        product = product_factory(stock=3)
        controller, data = controller_factory(products=[product])
        updated = product.with_stock(9)
        controller.update_product(updated)
        controller.delete_product(product.id)
        controller.flush(timeout=5)

        assert controller.get_product(product.id) is None
        assert data.calls == [('update_product', updated), ('delete_product', product.id)]

    def test_missing_product(self, controller_factory, product_factory):
        controller, _ = controller_factory()
        with pytest.raises(NotFoundError):
            controller.delete_product('nope')
        with pytest.raises(NotFoundError):
            controller.update_product(product_factory())

    def test_every_change_is_mirrored(self, controller_factory, product_factory):
        controller, data = controller_factory()
        controller.add_product(product_factory())
        controller.add_product(product_factory())
        assert len(data.mirrors) == 2
        assert len(data.mirrors[-1][0]) == 2


class TestCompleteSale:
    """Tests for recording sales."""

    def test_stock_decremented_in_one_pass(self, controller_factory, product_factory,
                                           sale_factory, item_factory):
        brigadeiro = product_factory(name='Brigadeiro', stock=50)
        trufa = product_factory(name='Trufa', stock=30)
        agua = product_factory(name='Água', stock=100)
        controller, data = controller_factory(products=[brigadeiro, trufa, agua])
        sale = sale_factory(items=[item_factory(brigadeiro, 2), item_factory(trufa, 5)])

        controller.complete_sale(sale)

        assert controller.get_product(brigadeiro.id).stock == 48
        assert controller.get_product(trufa.id).stock == 25
        assert controller.get_product(agua.id).stock == 100
        assert controller.sales[-1] == sale

        controller.flush(timeout=5)
        assert data.calls[0] == ('create_sale', sale)
        assert data.calls[1] == ('update_stock_batch', [
            {'id': brigadeiro.id, 'stock': 48},
            {'id': trufa.id, 'stock': 25},
        ])

    def test_sales_are_appended(self, controller_factory, sale_factory):
        first = sale_factory()
        controller, _ = controller_factory(sales=[first])
        second = sale_factory()
        controller.complete_sale(second)
        assert controller.sales == (first, second)

    def test_deleted_product_is_skipped(self, controller_factory, product_factory,
                                        sale_factory, item_factory):
        gone = product_factory()
        controller, data = controller_factory()
        controller.complete_sale(sale_factory(items=[item_factory(gone, 1)]))
        controller.flush(timeout=5)
        assert [call[0] for call in data.calls] == ['create_sale']

    def test_failed_write_keeps_local_state(self, controller_factory, product_factory,
                                            sale_factory, item_factory):
        product = product_factory(stock=10)
        controller, data = controller_factory(products=[product], fail_on={'create_sale'})
        sale = sale_factory(items=[item_factory(product, 4)])

        controller.complete_sale(sale)
        controller.flush(timeout=5)

        assert controller.get_sale(sale.id) == sale
        assert controller.get_product(product.id).stock == 6
        # The stock update is still attempted after the failed insert
        assert [call[0] for call in data.calls] == ['create_sale', 'update_stock_batch']

    def test_sale_beyond_stock_rejected(self, controller_factory, product_factory,
                                        sale_factory, item_factory):
        bolo = product_factory(name='Bolo de Pote', stock=1)
        agua = product_factory(name='Água', stock=10)
        controller, data = controller_factory(products=[bolo, agua])
        sale = sale_factory(items=[item_factory(agua, 1), item_factory(bolo, 2)])

        with pytest.raises(BusinessLogicError) as excinfo:
            controller.complete_sale(sale)

        assert 'Bolo de Pote' in excinfo.value.message
        assert controller.get_product(bolo.id).stock == 1
        assert controller.get_product(agua.id).stock == 10
        assert controller.sales == ()
        controller.flush(timeout=5)
        assert data.calls == []

    def test_last_unit_sold_only_once(self, controller_factory, product_factory,
                                      sale_factory, item_factory):
        product = product_factory(stock=1)
        controller, _ = controller_factory(products=[product])
        controller.complete_sale(sale_factory(items=[item_factory(product, 1)]))

        with pytest.raises(BusinessLogicError):
            controller.complete_sale(sale_factory(items=[item_factory(product, 1)]))

        assert controller.get_product(product.id).stock == 0
        assert len(controller.sales) == 1

    def test_failed_write_counted(self, controller_factory, product_factory,
                                  sale_factory, item_factory):
        labels = {'operation': 'create_sale'}
        before = REGISTRY.get_sample_value('docegestao_sync_failures_total', labels) or 0
        product = product_factory(stock=5)
        controller, _ = controller_factory(products=[product], fail_on={'create_sale'})

        controller.complete_sale(sale_factory(items=[item_factory(product, 1)]))
        controller.flush(timeout=5)

        assert REGISTRY.get_sample_value('docegestao_sync_failures_total', labels) == before + 1


class TestResolvePendingSale:
    """Tests for resolving fiado sales."""

    def test_pending_sale_resolved_once(self, controller_factory, sale_factory):
        sale = sale_factory(method=PaymentMethod.PENDING)
        controller, data = controller_factory(sales=[sale])

        assert controller.resolve_pending_sale(sale.id, PaymentMethod.PIX) is True
        assert controller.get_sale(sale.id).payment_method == PaymentMethod.PIX

        assert controller.resolve_pending_sale(sale.id, PaymentMethod.CASH) is False
        assert controller.get_sale(sale.id).payment_method == PaymentMethod.PIX

        controller.flush(timeout=5)
        assert data.calls == [('update_sale_payment', sale.id, PaymentMethod.PIX)]

    def test_cannot_resolve_to_pending(self, controller_factory, sale_factory):
        sale = sale_factory(method=PaymentMethod.PENDING)
        controller, data = controller_factory(sales=[sale])
        assert controller.resolve_pending_sale(sale.id, PaymentMethod.PENDING) is False
        assert controller.resolve_pending_sale(sale.id, 'cheque') is False
        assert controller.get_sale(sale.id).is_pending
        assert data.mirrors == []

    def test_unknown_sale(self, controller_factory):
        controller, _ = controller_factory()
        assert controller.resolve_pending_sale('missing', PaymentMethod.PIX) is False

    def test_settled_sale_untouched(self, controller_factory, sale_factory):
        sale = sale_factory(method=PaymentMethod.CARD)
        controller, _ = controller_factory(sales=[sale])
        assert controller.resolve_pending_sale(sale.id, PaymentMethod.PIX) is False
        assert controller.get_sale(sale.id) == sale


class TestOrdering:
    """Persistence calls run one at a time in action order."""

    def test_calls_keep_issue_order(self, controller_factory, product_factory):
        controller, data = controller_factory()
        products = [product_factory(name=f'P{i}') for i in range(20)]
        for product in products:
            controller.add_product(product)
        controller.flush(timeout=5)
        assert [call[1] for call in data.calls] == products

    def test_concurrent_sales_keep_stock_consistent(self, controller_factory, product_factory,
                                                     sale_factory, item_factory):
        product = product_factory(stock=100)
        controller, _ = controller_factory(products=[product])

        def sell():
            for _ in range(10):
                controller.complete_sale(sale_factory(items=[item_factory(product, 1)]))

        threads = [threading.Thread(target=sell) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert controller.get_product(product.id).stock == 50
        assert len(controller.sales) == 50


class TestSearchProducts:
    """Tests for search_products."""

    def test_matches_name_or_category_case_insensitive(self, product_factory):
        trufa = product_factory(name='Trufa de Maracujá', category='Chocolates')
        agua = product_factory(name='Água Mineral', category='Bebidas')
        assert search_products([trufa, agua], 'CHOCO') == [trufa]
        assert search_products([trufa, agua], 'mineral') == [agua]
        assert search_products([trufa, agua], '  ') == [trufa, agua]
