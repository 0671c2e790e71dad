"""
Dashboard service.
Filters the sale history and derives the totals, chart series and stock
alerts shown on the dashboard. Everything here is a pure function of its
arguments; "now" can be injected for deterministic results.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from docegestao.domain import DateRange, PaymentFilter, PaymentMethod, Product, Sale
from docegestao.utils.formatters import day_label, hour_label

LOW_STOCK_THRESHOLD = 5
LOW_STOCK_ALERT_COUNT = 5
CHART_FIRST_HOUR = 8
CHART_LAST_HOUR = 21

METHOD_LABELS = {
    PaymentMethod.CASH: 'Dinheiro',
    PaymentMethod.CARD: 'Cartão',
    PaymentMethod.PIX: 'PIX',
    PaymentMethod.IFOOD: 'iFood',
    PaymentMethod.PENDING: 'Pendente',
}


@dataclass(frozen=True)
class ChartPoint:
    label: str
    total: Decimal

    def to_dict(self):
        return {'label': self.label, 'total': str(self.total)}


@dataclass(frozen=True)
class SalesSummary:
    """Result of aggregate_sales()."""
    filtered_sales: List[Sale] = field(default_factory=list)
    total_received: Decimal = Decimal('0')
    total_pending: Decimal = Decimal('0')
    sales_count: int = 0
    chart_series: List[ChartPoint] = field(default_factory=list)

    def to_dict(self, history_limit: Optional[int] = 50):
        history = recent_sales(self.filtered_sales, limit=history_limit)
        return {
            'total_received': str(self.total_received),
            'total_pending': str(self.total_pending),
            'sales_count': self.sales_count,
            'chart_series': [point.to_dict() for point in self.chart_series],
            'sales': [
                dict(sale.to_dict(), payment_label=method_label(sale.payment_method))
                for sale in history
            ],
        }


def _local_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now().astimezone()
    if now.tzinfo is None:
        return now.astimezone()
    return now


def range_cutoff(date_range: DateRange, now: datetime) -> Optional[datetime]:
    """Lower bound for a date range; None means no bound."""
    date_range = DateRange(date_range)
    if date_range == DateRange.TODAY:
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if date_range == DateRange.WEEK:
        return now - timedelta(days=7)
    if date_range == DateRange.MONTH:
        return now - timedelta(days=30)
    return None


def filter_sales(sales: Iterable[Sale], date_range: DateRange,
                 payment_filter: PaymentFilter, now: Optional[datetime] = None) -> List[Sale]:
    """Sales inside the date range whose method matches the filter."""
    now = _local_now(now)
    cutoff = range_cutoff(date_range, now)
    payment_filter = PaymentFilter(payment_filter)

    result = []
    for sale in sales:
        if cutoff is not None:
            stamp = sale.timestamp
            if stamp is None or stamp < cutoff:
                continue
        if payment_filter != PaymentFilter.ALL and sale.payment_method.value != payment_filter.value:
            continue
        result.append(sale)
    return result


def _hourly_series(sales: Sequence[Sale], now: datetime) -> List[ChartPoint]:
    buckets = {hour: Decimal('0') for hour in range(CHART_FIRST_HOUR, CHART_LAST_HOUR + 1)}
    for sale in sales:
        stamp = sale.timestamp
        if stamp is None:
            continue
        hour = stamp.astimezone(now.tzinfo).hour
        if hour in buckets:
            buckets[hour] += sale.total
    return [ChartPoint(hour_label(hour), total) for hour, total in buckets.items()]


def _daily_series(sales: Sequence[Sale], now: datetime, days: Optional[int]) -> List[ChartPoint]:
    # dicts keep insertion order: seeded days first, then unseen days as met
    buckets: Dict[str, Decimal] = {}
    if days:
        for offset in range(days - 1, -1, -1):
            buckets[day_label(now - timedelta(days=offset))] = Decimal('0')
    for sale in sales:
        stamp = sale.timestamp
        if stamp is None:
            continue
        label = day_label(stamp.astimezone(now.tzinfo))
        buckets[label] = buckets.get(label, Decimal('0')) + sale.total
    return [ChartPoint(label, total) for label, total in buckets.items()]


def chart_series(sales: Sequence[Sale], date_range: DateRange,
                 now: Optional[datetime] = None) -> List[ChartPoint]:
    """
    Time-bucketed totals for the chart.

    today: one point per hour 8h..21h, zero-filled.
    week/month: one point per calendar day of the last 7/30 days, oldest
    first, zero-filled.
    all: one point per distinct day in order of first occurrence.
    """
    now = _local_now(now)
    date_range = DateRange(date_range)
    if date_range == DateRange.TODAY:
        return _hourly_series(sales, now)
    if date_range == DateRange.WEEK:
        return _daily_series(sales, now, 7)
    if date_range == DateRange.MONTH:
        return _daily_series(sales, now, 30)
    return _daily_series(sales, now, None)


def aggregate_sales(sales: Iterable[Sale], date_range: DateRange = DateRange.WEEK,
                    payment_filter: PaymentFilter = PaymentFilter.ALL,
                    now: Optional[datetime] = None) -> SalesSummary:
    """
    Filter the sale history and compute dashboard totals.

    total_received and total_pending partition the filtered sales: pending
    sales count only toward total_pending.
    """
    now = _local_now(now)
    filtered = filter_sales(sales, date_range, payment_filter, now=now)

    received = Decimal('0')
    pending = Decimal('0')
    for sale in filtered:
        if sale.is_pending:
            pending += sale.total
        else:
            received += sale.total

    return SalesSummary(
        filtered_sales=filtered,
        total_received=received,
        total_pending=pending,
        sales_count=len(filtered),
        chart_series=chart_series(filtered, date_range, now=now),
    )


def low_stock_products(products: Iterable[Product],
                       threshold: int = LOW_STOCK_THRESHOLD) -> List[Product]:
    return [p for p in products if p.stock < threshold]


def low_stock_count(products: Iterable[Product], threshold: int = LOW_STOCK_THRESHOLD) -> int:
    return len(low_stock_products(products, threshold))


def is_low_stock_alert(products: Iterable[Product], threshold: int = LOW_STOCK_THRESHOLD,
                       alert_count: int = LOW_STOCK_ALERT_COUNT) -> bool:
    """True when at least alert_count products are below the threshold."""
    return low_stock_count(products, threshold) >= alert_count


def recent_sales(sales: Iterable[Sale], limit: Optional[int] = 50) -> List[Sale]:
    """Newest first; sales with unreadable dates go last."""
    def sort_key(sale):
        stamp = sale.timestamp
        return (stamp is not None, stamp.timestamp() if stamp else 0.0)

    ordered = sorted(sales, key=sort_key, reverse=True)
    return ordered[:limit] if limit is not None else ordered


def method_label(method: PaymentMethod) -> str:
    return METHOD_LABELS.get(PaymentMethod(method), str(method))
