"""Validation of credit amounts."""

import math
from numbers import Real

from meterly.core.exceptions import InvalidAmountException

# Largest single amount, cost or token count; the range of a 32-bit column.
MAX_AMOUNT = 2**31 - 1


def validate_amount(amount: object) -> int:
    """Return ``amount`` as a positive int no larger than ``MAX_AMOUNT``.

    Integral floats such as ``3.0`` are accepted. Booleans, strings, NaN,
    infinities, fractions, zero, negatives and oversized values are rejected.

    Raises:
        InvalidAmountException: If the amount is not a finite positive integer
            within ``MAX_AMOUNT``.
    """
    if isinstance(amount, bool) or not isinstance(amount, Real):
        raise InvalidAmountException(amount)
    if isinstance(amount, float) and not math.isfinite(amount):
        raise InvalidAmountException(amount)
    if amount <= 0 or amount > MAX_AMOUNT or int(amount) != amount:
        raise InvalidAmountException(amount)
    return int(amount)
