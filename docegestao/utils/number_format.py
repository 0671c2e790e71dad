"""Number parsing utilities for Brazilian formats."""
import re
from decimal import Decimal, InvalidOperation
from typing import Optional

BR_NUMBER_PATTERN = re.compile(r"^-?(?:\d{1,3}(?:\.\d{3})+|\d+)(?:,\d+)?$")
PLAIN_NUMBER_PATTERN = re.compile(r"^-?\d+(?:\.\d+)?$")
DOTTED_DECIMAL_PATTERN = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)$")


def parse_br_number(value: Optional[str]) -> Decimal:
    """
    Parse a number typed by the user into a Decimal.

    Accepts both the Brazilian format (1.234,56 / 5,00) and the plain
    dotted format (5.00). A lone dot followed by exactly three digits
    ("1.234") is read as a thousands separator.

    Raises:
        ValueError: if the value is empty or not a number.
    """
    if value is None:
        raise ValueError('Formato inválido. Use 1.234,56')

    cleaned = str(value).strip().replace('R$', '').replace(' ', '')
    if not cleaned:
        raise ValueError('Formato inválido. Use 1.234,56')

    if ',' in cleaned or re.match(r"^-?\d{1,3}(?:\.\d{3})+$", cleaned):
        if not BR_NUMBER_PATTERN.match(cleaned):
            raise ValueError('Formato inválido. Use 1.234,56')
        normalized = cleaned.replace('.', '').replace(',', '.')
    elif PLAIN_NUMBER_PATTERN.match(cleaned):
        normalized = cleaned
    else:
        raise ValueError('Formato inválido. Use 1.234,56')

    try:
        return Decimal(normalized)
    except (InvalidOperation, ValueError):
        raise ValueError('Formato inválido. Use 1.234,56')


def parse_delivery_cost(value: Optional[str]) -> Decimal:
    """
    Parse the free-text delivery cost of the checkout form.

    Without a comma the period is the decimal point ("7.500" is 7,50 and
    "5." is 5); with a comma the Brazilian grouping applies ("1.234,56").
    Unparsable or empty text counts as zero and negatives clamp to zero.
    """
    cleaned = str(value or '').strip().replace('R$', '').replace(' ', '')
    try:
        if ',' not in cleaned and DOTTED_DECIMAL_PATTERN.match(cleaned):
            amount = Decimal(cleaned)
        else:
            amount = parse_br_number(cleaned)
    except (InvalidOperation, ValueError):
        return Decimal('0')
    return max(Decimal('0'), amount)


def parse_money(value, field_name: str = 'valor') -> Decimal:
    """
    Parse a non-negative money value from a JSON payload or form field.

    Numbers (int/float/Decimal) are accepted as-is; strings go through
    parse_br_number.

    Raises:
        ValueError: if the value is missing, invalid or negative.
    """
    if value is None or value == '':
        raise ValueError(f'O campo {field_name} é obrigatório')
    if isinstance(value, bool):
        raise ValueError(f'O campo {field_name} é inválido')
    if isinstance(value, (int, float, Decimal)):
        amount = Decimal(str(value))
    else:
        amount = parse_br_number(value)
    if amount < 0:
        raise ValueError(f'O campo {field_name} não pode ser negativo')
    return amount.quantize(Decimal('0.01'))
