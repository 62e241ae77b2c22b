"""
Input guards for the row editors.

The aggregator itself never validates: it is total over whatever numbers it
gets. Everything that builds or edits rows (models, proposal_service, the
API schemas) goes through these helpers first.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from proposal_crm.core.money import HUNDRED, ZERO, to_decimal


class ProposalValidationError(ValueError):
    """Raised when a row is built or edited with out-of-domain input."""

    def __init__(self, field: str, value: Any, message: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"{field}: {message} (got {value!r})")


class MissingProductError(ProposalValidationError):
    """A proposal line must reference a product."""

    def __init__(self) -> None:
        super().__init__("product", None, "a proposal item needs a product")


class RowNotFoundError(LookupError):
    """Edit or delete addressed a row index that does not exist."""

    def __init__(self, collection: str, index: int) -> None:
        self.collection = collection
        self.index = index
        super().__init__(f"No {collection} row at index {index}")


def _number(field: str, value: Any) -> Decimal:
    try:
        return to_decimal(value)
    except ValueError:
        raise ProposalValidationError(field, value, "must be a number") from None


def require_number(field: str, value: Any) -> Decimal:
    return _number(field, value)


def require_positive(field: str, value: Any) -> Decimal:
    d = _number(field, value)
    if d <= ZERO:
        raise ProposalValidationError(field, value, "must be greater than 0")
    return d


def require_non_negative(field: str, value: Any) -> Decimal:
    d = _number(field, value)
    if d < ZERO:
        raise ProposalValidationError(field, value, "must not be negative")
    return d


def require_percent(field: str, value: Any) -> Decimal:
    """Percent values (discount, tax rate, payment share) live in [0, 100]."""
    d = _number(field, value)
    if d < ZERO or d > HUNDRED:
        raise ProposalValidationError(field, value, "must be between 0 and 100")
    return d
