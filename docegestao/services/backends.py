"""
Storage backends behind the data service.

RemoteBackend talks to the relational database through SQLAlchemy and to
the image bucket through StorageService. LocalBackend keeps the two
collections as JSON blobs on disk; its write operations are no-ops because
the whole collections are mirrored after every change instead.
"""
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from decimal import Decimal
from typing import Dict, Iterable, List

from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy.exc import SQLAlchemyError

from docegestao.domain import PaymentMethod, Product, Sale
from docegestao.exceptions import NotFoundError, UploadError

logger = logging.getLogger(__name__)

PRODUCTS_KEY = 'docegestao_products'
SALES_KEY = 'docegestao_sales'

LOCAL_UPLOAD_MESSAGE = (
    'O upload de imagens só funciona no modo Online (banco remoto configurado).'
)

SEED_PRODUCTS = (
    Product(id='1', name='Brigadeiro Gourmet', category='Doces',
            price=Decimal('3.50'), cost=Decimal('1.20'), stock=50),
    Product(id='2', name='Trufa de Maracujá', category='Chocolates',
            price=Decimal('4.50'), cost=Decimal('1.80'), stock=30),
    Product(id='3', name='Coxinha de Morango', category='Doces',
            price=Decimal('6.00'), cost=Decimal('2.50'), stock=15),
    Product(id='4', name='Barra de Chocolate 100g', category='Chocolates',
            price=Decimal('12.00'), cost=Decimal('6.00'), stock=8),
    Product(id='5', name='Bolo de Pote Ninho', category='Doces',
            price=Decimal('10.00'), cost=Decimal('4.00'), stock=2),
    Product(id='6', name='Água Mineral', category='Bebidas',
            price=Decimal('3.00'), cost=Decimal('1.00'), stock=100),
)


class RemoteBackend:
    """Relational tables plus the S3-compatible image bucket."""

    is_remote = True

    def __init__(self, session_factory, storage_factory=None):
        """
        Args:
            session_factory: scoped_session from docegestao.database
            storage_factory: callable returning a StorageService
        """
        self._session_factory = session_factory
        if storage_factory is None:
            from docegestao.services.storage_service import get_storage_service
            storage_factory = get_storage_service
        self._storage_factory = storage_factory

    @contextmanager
    def _session_scope(self):
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            self._session_factory.remove()

    # Reads degrade to an empty collection

    def fetch_products(self) -> List[Product]:
        from docegestao.models import ProductRecord
        try:
            with self._session_scope() as session:
                rows = session.query(ProductRecord).order_by(ProductRecord.name).all()
                return [row.to_domain() for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"[DATA] ✗ Failed to fetch products: {e}")
            return []

    def fetch_sales(self) -> List[Sale]:
        from docegestao.models import SaleRecord
        try:
            with self._session_scope() as session:
                rows = session.query(SaleRecord).order_by(SaleRecord.date).all()
                return [row.to_domain() for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"[DATA] ✗ Failed to fetch sales: {e}")
            return []

    # Writes raise to the caller

    def create_product(self, product: Product):
        from docegestao.models import ProductRecord
        with self._session_scope() as session:
            session.add(ProductRecord.from_domain(product))

    def update_product(self, product: Product):
        from docegestao.models import ProductRecord
        with self._session_scope() as session:
            record = session.get(ProductRecord, product.id)
            if record is None:
                raise NotFoundError(f"Produto {product.id} não encontrado")
            record.apply(product)

    def delete_product(self, product_id: str):
        from docegestao.models import ProductRecord
        with self._session_scope() as session:
            session.query(ProductRecord).filter_by(id=product_id).delete()

    def create_sale(self, sale: Sale):
        from docegestao.models import SaleRecord
        with self._session_scope() as session:
            session.add(SaleRecord.from_domain(sale))

    def update_sale_payment(self, sale_id: str, method: PaymentMethod):
        from docegestao.models import SaleRecord
        with self._session_scope() as session:
            record = session.get(SaleRecord, sale_id)
            if record is None:
                raise NotFoundError(f"Venda {sale_id} não encontrada")
            record.payment_method = PaymentMethod(method).value

    def delete_sale(self, sale_id: str):
        from docegestao.models import SaleRecord
        with self._session_scope() as session:
            session.query(SaleRecord).filter_by(id=sale_id).delete()

    def update_stock_batch(self, updates: Iterable[Dict]):
        """
        Apply {'id', 'stock'} updates one product at a time.

        Each update commits on its own; a failure stops the remaining ones.
        """
        from docegestao.models import ProductRecord
        for update in updates:
            with self._session_scope() as session:
                session.query(ProductRecord).filter_by(id=update['id']).update(
                    {'stock': int(update['stock'])}, synchronize_session=False
                )

    def upload_image(self, file) -> str:
        try:
            storage = self._storage_factory()
        except (ClientError, BotoCoreError) as e:
            logger.error(f"[STORAGE] ✗ Storage unavailable: {e}")
            raise UploadError(
                'Erro ao enviar imagem. Verifique se o Bucket "images" foi criado e é Público.'
            ) from e
        return storage.upload_image(file)

    def mirror(self, products, sales):
        """Remote data is persisted per operation; nothing to mirror."""
        return None


class LocalBackend:
    """JSON blobs on disk, one per collection."""

    is_remote = False

    def __init__(self, storage_dir: str):
        self.storage_dir = storage_dir
        os.makedirs(storage_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.storage_dir, f"{key}.json")

    def _read(self, key: str):
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"[DATA] Unreadable local blob {path}: {e}")
            return None

    def _write(self, key: str, payload):
        """Write atomically: temp file in the same directory, then replace."""
        path = self._path(key)
        fd, tmp_path = tempfile.mkstemp(dir=self.storage_dir, prefix=f".{key}.", suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def fetch_products(self) -> List[Product]:
        data = self._read(PRODUCTS_KEY)
        if not isinstance(data, list):
            return list(SEED_PRODUCTS)
        try:
            return [Product.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"[DATA] Corrupt local products blob, using sample products: {e}")
            return list(SEED_PRODUCTS)

    def fetch_sales(self) -> List[Sale]:
        data = self._read(SALES_KEY)
        if not isinstance(data, list):
            return []
        try:
            return [Sale.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"[DATA] Corrupt local sales blob, starting empty: {e}")
            return []

    def create_product(self, product):
        return None

    def update_product(self, product):
        return None

    def delete_product(self, product_id):
        return None

    def create_sale(self, sale):
        return None

    def update_sale_payment(self, sale_id, method):
        return None

    def delete_sale(self, sale_id):
        return None

    def update_stock_batch(self, updates):
        return None

    def upload_image(self, file) -> str:
        raise UploadError(LOCAL_UPLOAD_MESSAGE)

    def mirror(self, products, sales):
        """Persist both collections in full."""
        self._write(PRODUCTS_KEY, [p.to_dict() for p in products])
        self._write(SALES_KEY, [s.to_dict() for s in sales])
