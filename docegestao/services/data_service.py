"""
Data service: one read/write interface over whichever backend is active.

The backend is chosen once, in init_data_service(), and never re-checked:
remote when DATABASE_URL is configured and an engine can be built,
otherwise local JSON storage.
"""
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from docegestao.domain import PaymentMethod, Product, Sale
from docegestao.services.backends import LocalBackend, RemoteBackend

logger = logging.getLogger(__name__)


class DataService:
    """Thin facade over RemoteBackend / LocalBackend."""

    def __init__(self, backend):
        self.backend = backend

    @property
    def is_remote(self) -> bool:
        return self.backend.is_remote

    @property
    def mode(self) -> str:
        return 'remote' if self.is_remote else 'local'

    def fetch_products(self) -> List[Product]:
        return self.backend.fetch_products()

    def create_product(self, product: Product):
        return self.backend.create_product(product)

    def update_product(self, product: Product):
        return self.backend.update_product(product)

    def delete_product(self, product_id: str):
        return self.backend.delete_product(product_id)

    def fetch_sales(self) -> List[Sale]:
        return self.backend.fetch_sales()

    def create_sale(self, sale: Sale):
        return self.backend.create_sale(sale)

    def update_sale_payment(self, sale_id: str, method: PaymentMethod):
        return self.backend.update_sale_payment(sale_id, method)

    def delete_sale(self, sale_id: str):
        return self.backend.delete_sale(sale_id)

    def update_stock_batch(self, updates: Iterable[Dict]):
        return self.backend.update_stock_batch(list(updates))

    def upload_image(self, file) -> str:
        return self.backend.upload_image(file)

    def mirror(self, products, sales):
        return self.backend.mirror(products, sales)


_data_service: Optional[DataService] = None


def init_data_service(app) -> DataService:
    """
    Select the backend for this process and store the service on the app.
    """
    global _data_service
    from docegestao import database

    backend = None
    if app.config.get('DATABASE_URL') or app.config.get('SQLALCHEMY_DATABASE_URI'):
        try:
            if database.init_db(app):
                backend = RemoteBackend(database.db_session)
                logger.info("[DATA] ✓ Remote backend configured")
        except (ArgumentError, SQLAlchemyError, ImportError) as e:
            logger.error(f"[DATA] ✗ Could not configure remote backend, using local storage: {e}")
            backend = None

    if backend is None:
        backend = LocalBackend(app.config['LOCAL_STORAGE_DIR'])
        logger.info(f"[DATA] Local storage mode ({app.config['LOCAL_STORAGE_DIR']})")

    _data_service = DataService(backend)
    app.extensions['data_service'] = _data_service
    return _data_service


def get_data_service() -> DataService:
    """Return the data service of the current app."""
    from flask import current_app, has_app_context
    if has_app_context() and 'data_service' in current_app.extensions:
        return current_app.extensions['data_service']
    if _data_service is None:
        raise RuntimeError('Data service not initialized. Call init_data_service(app) first.')
    return _data_service
