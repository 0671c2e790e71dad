"""Product table."""
from sqlalchemy import Column, String, Integer, Numeric, DateTime
from sqlalchemy.sql import func
from docegestao.database import Base
from docegestao.domain import Product, to_decimal


class ProductRecord(Base):
    """Product row. Mirrors docegestao.domain.Product."""

    __tablename__ = 'products'

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    category = Column(String(100), nullable=False, default='Doces', server_default='Doces')
    price = Column(Numeric(10, 2), nullable=False, default=0, server_default='0.00')
    cost = Column(Numeric(10, 2), nullable=False, default=0, server_default='0.00')  # Preço de custo
    stock = Column(Integer, nullable=False, default=0, server_default='0')
    image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<ProductRecord(id={self.id}, name='{self.name}', stock={self.stock})>"

    def to_domain(self) -> Product:
        return Product(
            id=self.id,
            name=self.name,
            category=self.category or '',
            price=to_decimal(self.price),
            cost=to_decimal(self.cost),
            stock=int(self.stock or 0),
            image_url=self.image_url or None,
        )

    def apply(self, product: Product):
        """Copy editable fields from a domain product."""
        self.name = product.name
        self.category = product.category
        self.price = product.price
        self.cost = product.cost
        self.stock = product.stock
        self.image_url = product.image_url

    @classmethod
    def from_domain(cls, product: Product) -> 'ProductRecord':
        record = cls(id=product.id)
        record.apply(product)
        return record
