"""
Formatting helpers in Brazilian style.
Money, numbers and the short day labels used by the dashboard chart.
"""
from decimal import Decimal, InvalidOperation
from datetime import date, datetime
from typing import Union


def money_br(value: Union[int, float, Decimal, str, None], symbol: bool = True) -> str:
    """
    Format a monetary amount in pt-BR style with exactly 2 decimals.

    Args:
        value: Amount to format
        symbol: Prefix with "R$ "

    Returns:
        Formatted string, or "-" if invalid

    Examples:
        money_br(5) -> "R$ 5,00"
        money_br(1234.5) -> "R$ 1.234,50"
        money_br(1234.5, symbol=False) -> "1.234,50"
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value)).quantize(Decimal('0.01'))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    sign = "-" if num < 0 else ""
    num = abs(num)

    integer_part, decimal_part = f"{num:.2f}".split(".")
    reversed_int = integer_part[::-1]
    groups = [reversed_int[i:i+3] for i in range(0, len(reversed_int), 3)]
    integer_formatted = '.'.join(groups)[::-1]

    formatted = f"{sign}{integer_formatted},{decimal_part}"
    return f"R$ {formatted}" if symbol else formatted


def day_label(value: Union[date, datetime]) -> str:
    """
    Short day label used for chart buckets: DD/MM

    Examples:
        day_label(date(2026, 1, 12)) -> "12/01"
    """
    return value.strftime("%d/%m")


def hour_label(hour: int) -> str:
    """Hour bucket label: 8 -> "8h"."""
    return f"{hour}h"
