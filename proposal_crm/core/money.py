from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")


def to_decimal(value: Any, default: Any = None) -> Decimal:
    """
    Convert int/float/str/Decimal to Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of
    0.1000000000000000055511151231257827...
    None or unparsable input returns `default` when one is given,
    otherwise raises ValueError.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if value is None or (isinstance(value, str) and not value.strip()):
        if default is not None:
            return to_decimal(default)
        raise ValueError(f"Not a number: {value!r}")
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError):
        if default is not None:
            return to_decimal(default)
        raise ValueError(f"Not a number: {value!r}") from None
    if not d.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return d
