"""Sale table."""
from sqlalchemy import Column, String, Numeric, Text, JSON, DateTime
from sqlalchemy.sql import func
from docegestao.database import Base
from docegestao.domain import CartItem, PaymentMethod, Sale, to_decimal


class SaleRecord(Base):
    """
    Sale row.

    Item snapshots are stored as a JSON list on the sale itself, taken at
    checkout time, so later product edits never change a recorded sale.
    """

    __tablename__ = 'sales'

    id = Column(String(64), primary_key=True)
    items = Column(JSON, nullable=False, default=list)
    total = Column(Numeric(10, 2), nullable=False)
    date = Column(String(40), nullable=False, index=True)  # ISO-8601 UTC
    payment_method = Column(String(20), nullable=False, default='cash', server_default='cash')
    observation = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<SaleRecord(id={self.id}, total={self.total}, method='{self.payment_method}')>"

    def to_domain(self) -> Sale:
        try:
            method = PaymentMethod(self.payment_method)
        except ValueError:
            method = PaymentMethod.CASH
        return Sale(
            id=self.id,
            items=tuple(CartItem.from_dict(item) for item in (self.items or [])),
            total=to_decimal(self.total),
            date=self.date,
            payment_method=method,
            observation=self.observation or '',
        )

    @classmethod
    def from_domain(cls, sale: Sale) -> 'SaleRecord':
        return cls(
            id=sale.id,
            items=[item.to_dict() for item in sale.items],
            total=sale.total,
            date=sale.date,
            payment_method=sale.payment_method.value,
            observation=sale.observation or None,
        )
