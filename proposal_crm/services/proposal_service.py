from __future__ import annotations

import functools
import logging
import threading
import weakref
from decimal import Decimal
from typing import Any, Dict, List, Optional

from proposal_crm.core.aggregator import implied_multiplier
from proposal_crm.core.models import (
    CustomTax,
    Engineering,
    Expense,
    PaymentTerm,
    Product,
    Proposal,
    ProposalItem,
)
from proposal_crm.core.money import HUNDRED, ZERO
from proposal_crm.core.validation import (
    ProposalValidationError,
    RowNotFoundError,
    require_non_negative,
    require_number,
    require_percent,
    require_positive,
)

logger = logging.getLogger(__name__)

# Payment plans offered as one-click templates. Percentages per plan add up to 100.
PAYMENT_TEMPLATES: Dict[str, List[Dict[str, Any]]] = {
    "50/50": [
        {"name": "Advance Payment", "percentage": 50, "due_condition": "Upon signing"},
        {"name": "Final Payment", "percentage": 50, "due_days": 30},
    ],
    "progressive": [
        {"name": "Deposit", "percentage": 20, "due_condition": "Upon signing"},
        {"name": "Progress Payment", "percentage": 30, "due_condition": "Upon delivery"},
        {"name": "Final Payment", "percentage": 50, "due_days": 30},
    ],
}


# ==============================
# LOCKING
# ==============================

class ProposalLock:
    """Re-entrant lock that can be held in a WeakValueDictionary."""

    __slots__ = ("_lock", "__weakref__")

    def __init__(self) -> None:
        self._lock = threading.RLock()

    def __enter__(self) -> "ProposalLock":
        self._lock.acquire()
        return self

    def __exit__(self, *exc: Any) -> None:
        self._lock.release()


# number -> lock, dropped once nobody holds or waits on it
_LOCKS: "weakref.WeakValueDictionary[str, ProposalLock]" = weakref.WeakValueDictionary()
_LOCKS_GUARD = threading.Lock()


def proposal_lock(number: str) -> ProposalLock:
    """
    One lock per proposal number. Every edit below holds it around
    mutate + recompute; other proposals never wait.
    """
    with _LOCKS_GUARD:
        lock = _LOCKS.get(number)
        if lock is None:
            lock = ProposalLock()
            _LOCKS[number] = lock
        return lock


def _lock_key(proposal: Proposal) -> str:
    # unnumbered drafts lock on their own identity
    return proposal.number or f"#{id(proposal)}"


def locked(fn):
    """Run a proposal edit while holding that proposal's lock."""
    @functools.wraps(fn)
    def wrapper(proposal: Proposal, *args: Any, **kwargs: Any) -> Any:
        with proposal_lock(_lock_key(proposal)):
            return fn(proposal, *args, **kwargs)
    return wrapper


# ==============================
# HELPERS
# ==============================

def _row(rows: List[Any], index: int, collection: str) -> Any:
    if index < 0 or index >= len(rows):
        raise RowNotFoundError(collection, index)
    return rows[index]


def _pop(rows: List[Any], index: int, collection: str) -> Any:
    _row(rows, index, collection)
    return rows.pop(index)


# ==============================
# PRODUCT LINES
# ==============================

@locked
def add_item(
    proposal: Proposal,
    product: Product,
    quantity: Any,
    *,
    multiplier: Any = 1,
    discount: Any = 0,
    apply_custom_tax: bool = False,
) -> ProposalItem:
    item = ProposalItem.create(
        product,
        quantity,
        multiplier=multiplier,
        discount=discount,
        apply_custom_tax=apply_custom_tax,
    )
    proposal.items.append(item)
    proposal.recompute(changed=item)
    logger.debug("added item %s x%s to proposal %s", product.code, item.quantity, proposal.number)
    return item


@locked
def update_item(
    proposal: Proposal,
    index: int,
    *,
    quantity: Any = None,
    multiplier: Any = None,
    discount: Any = None,
    apply_custom_tax: Optional[bool] = None,
    customer_unit_price: Any = None,
) -> ProposalItem:
    """
    Edit a product line and recompute.

    customer_unit_price: the per-unit price the customer should pay; the
    multiplier is solved from it at the (possibly new) discount. With a zero
    list price or a 100 % discount there is nothing to solve, so the line
    keeps price * quantity as a manual amount instead.
    """
    item = _row(proposal.items, index, "item")

    new_quantity = require_positive("quantity", quantity) if quantity is not None else item.quantity
    new_discount = require_percent("discount", discount) if discount is not None else item.discount
    new_multiplier = require_positive("multiplier", multiplier) if multiplier is not None else item.multiplier

    manual_amount = None
    if customer_unit_price is not None:
        price = require_non_negative("customer_unit_price", customer_unit_price)
        if item.product.list_price > ZERO and new_discount < HUNDRED:
            new_multiplier = implied_multiplier(item.product.list_price, new_discount, price)
            if new_multiplier <= ZERO:
                raise ProposalValidationError("customer_unit_price", customer_unit_price, "must be greater than 0")
        else:
            manual_amount = price * new_quantity

    item.quantity = new_quantity
    item.discount = new_discount
    item.multiplier = new_multiplier
    if apply_custom_tax is not None:
        item.apply_custom_tax = bool(apply_custom_tax)

    if manual_amount is None:
        proposal.recompute(changed=item)
    else:
        item.amount = manual_amount
        proposal.recompute()
    return item


@locked
def override_item_amount(proposal: Proposal, index: int, amount: Any) -> ProposalItem:
    """Manual line total. Kept until the line itself is edited again."""
    item = _row(proposal.items, index, "item")
    item.amount = require_number("amount", amount)
    proposal.recompute()
    return item


@locked
def remove_item(proposal: Proposal, index: int) -> ProposalItem:
    item = _pop(proposal.items, index, "item")
    proposal.recompute()
    return item


# ==============================
# ENGINEERING
# ==============================

@locked
def add_engineering(proposal: Proposal, desc: str, days: Any, rate: Any) -> Engineering:
    row = Engineering(desc=desc, days=days, rate=rate)
    proposal.engineering.append(row)
    proposal.recompute(changed=row)
    return row


@locked
def update_engineering(
    proposal: Proposal,
    index: int,
    *,
    desc: Optional[str] = None,
    days: Any = None,
    rate: Any = None,
) -> Engineering:
    row = _row(proposal.engineering, index, "engineering")
    new_days = require_non_negative("days", days) if days is not None else row.days
    new_rate = require_non_negative("rate", rate) if rate is not None else row.rate
    row.days, row.rate = new_days, new_rate
    if desc is not None:
        row.desc = desc
    proposal.recompute(changed=row)
    return row


@locked
def remove_engineering(proposal: Proposal, index: int) -> Engineering:
    row = _pop(proposal.engineering, index, "engineering")
    proposal.recompute()
    return row


# ==============================
# EXPENSES
# ==============================

@locked
def add_expense(proposal: Proposal, desc: str, amount: Any) -> Expense:
    row = Expense(desc=desc, amount=amount)
    proposal.expenses.append(row)
    proposal.recompute()
    return row


@locked
def update_expense(proposal: Proposal, index: int, *, desc: Optional[str] = None, amount: Any = None) -> Expense:
    row = _row(proposal.expenses, index, "expense")
    if amount is not None:
        row.amount = require_number("amount", amount)
    if desc is not None:
        row.desc = desc
    proposal.recompute()
    return row


@locked
def remove_expense(proposal: Proposal, index: int) -> Expense:
    row = _pop(proposal.expenses, index, "expense")
    proposal.recompute()
    return row


# ==============================
# CUSTOM TAXES
# ==============================

@locked
def add_tax(proposal: Proposal, name: str, rate: Any) -> CustomTax:
    tax = CustomTax(name=name, rate=rate)
    proposal.taxes.append(tax)
    proposal.recompute()
    return tax


@locked
def update_tax(proposal: Proposal, index: int, *, name: Optional[str] = None, rate: Any = None) -> CustomTax:
    tax = _row(proposal.taxes, index, "tax")
    if rate is not None:
        tax.rate = require_percent("rate", rate)
    if name is not None:
        tax.name = name
    proposal.recompute()
    return tax


@locked
def remove_tax(proposal: Proposal, index: int) -> CustomTax:
    tax = _pop(proposal.taxes, index, "tax")
    proposal.recompute()
    return tax


# ==============================
# PAYMENT TERMS
# ==============================

@locked
def add_payment_term(
    proposal: Proposal,
    name: str,
    percentage: Any,
    *,
    due_condition: str = "",
    due_days: Optional[int] = None,
) -> PaymentTerm:
    term = PaymentTerm(name=name, percentage=percentage, due_condition=due_condition, due_days=due_days)
    proposal.payment_terms.append(term)
    proposal.recompute()
    return term


@locked
def remove_payment_term(proposal: Proposal, index: int) -> PaymentTerm:
    term = _pop(proposal.payment_terms, index, "payment term")
    proposal.recompute()
    return term


@locked
def apply_payment_template(proposal: Proposal, name: str) -> List[PaymentTerm]:
    """Replace all payment terms with one of PAYMENT_TEMPLATES."""
    template = PAYMENT_TEMPLATES.get(name)
    if template is None:
        raise ProposalValidationError(
            "template", name, f"unknown payment template, expected one of {sorted(PAYMENT_TEMPLATES)}"
        )
    proposal.payment_terms = [PaymentTerm(**row) for row in template]
    proposal.recompute()
    return proposal.payment_terms


def deposit_amount(total: Any, *, deposit_percentage: Any = 0, deposit_amount: Any = 0) -> Decimal:
    """Percentage of the total when a percentage is set, otherwise the fixed amount."""
    pct = require_percent("deposit_percentage", deposit_percentage)
    if pct > ZERO:
        return require_number("total", total) * pct / HUNDRED
    return require_non_negative("deposit_amount", deposit_amount)
