"""Money rounding and comparison helpers"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from microlend.errors import InvalidAmount

TWO_PLACES = Decimal('0.01')
ZERO = Decimal('0.00')

# Balances closer than a cent are treated as settled
CENT_TOLERANCE = Decimal('0.01')
# Submitted payments may overshoot the amount due by less than one currency unit
PAYMENT_TOLERANCE = Decimal('1')

def to_decimal(value):
    """Convert int, float, str or Decimal to Decimal; None counts as zero"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise InvalidAmount(f'Not a valid amount: {value!r}')
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidAmount(f'Not a valid amount: {value!r}')
    if not result.is_finite():
        raise InvalidAmount(f'Not a valid amount: {value!r}')
    return result

def round_money(value):
    """Round to cents, half up"""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)

def amounts_match(first, second, tolerance=CENT_TOLERANCE):
    return abs(to_decimal(first) - to_decimal(second)) < tolerance

def is_settled(balance):
    return to_decimal(balance) <= CENT_TOLERANCE
