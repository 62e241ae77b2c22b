"""
Proposal financial aggregation.

Everything here is a pure function over the proposal's four child
collections (items, engineering, expenses, taxes) plus payment terms.
Rows are read by attribute, so any object with the right fields works
(the dataclasses in core.models, or test doubles).

The only function that writes is recompute(), and it is the one entry
point callers use after an edit. Order inside it:

  1. refresh the changed product/engineering line's own amount
  2. products + engineering + expenses subtotals (the tax base)
  3. custom taxes from that fresh base
  4. total_amount = base + taxes
  5. payment terms from the new total

Taxes are never computed against a cached base, and there is no way to
set total_amount without step 3 having run first.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from proposal_crm.core.money import HUNDRED, ONE, ZERO, to_decimal

logger = logging.getLogger(__name__)


# ==============================
# LINE LEVEL
# ==============================

def compute_line_amount(product: Any, quantity: Any, multiplier: Any = ONE, discount: Any = ZERO) -> Decimal:
    """list_price * multiplier * (1 - discount/100) * quantity (not clamped)."""
    list_price = to_decimal(product.list_price)
    return (
        list_price
        * to_decimal(multiplier)
        * (ONE - to_decimal(discount) / HUNDRED)
        * to_decimal(quantity)
    )


def compute_engineering_amount(days: Any, rate: Any) -> Decimal:
    return to_decimal(days) * to_decimal(rate)


def price_after_discount(list_price: Any, discount: Any) -> Decimal:
    return to_decimal(list_price) * (ONE - to_decimal(discount) / HUNDRED)


def tax_amount(amount: Any, rate: Any) -> Decimal:
    return to_decimal(amount) * (to_decimal(rate) / HUNDRED)


def implied_multiplier(list_price: Any, discount: Any, customer_unit_price: Any) -> Decimal:
    """
    The multiplier that turns list_price into customer_unit_price at the
    given discount. Falls back to 1 when list price or the discount factor
    is zero (nothing to solve for).
    """
    lp = to_decimal(list_price)
    factor = ONE - to_decimal(discount) / HUNDRED
    if lp <= ZERO or factor <= ZERO:
        return ONE
    return to_decimal(customer_unit_price) / (lp * factor)


# ==============================
# SUBTOTALS
# ==============================

def _sum_amounts(rows: Iterable[Any]) -> Decimal:
    total = ZERO
    for row in rows or []:
        total += to_decimal(row.amount)
    return total


def subtotal_products(items: Iterable[Any]) -> Decimal:
    """Sum of the stored item amounts. Not re-derived, so manual overrides count."""
    return _sum_amounts(items)


def subtotal_engineering(rows: Iterable[Any]) -> Decimal:
    return _sum_amounts(rows)


def subtotal_expenses(rows: Iterable[Any]) -> Decimal:
    return _sum_amounts(rows)


def subtotal_taxes(taxes: Iterable[Any]) -> Decimal:
    return _sum_amounts(taxes)


def tax_base(items: Iterable[Any], engineering: Iterable[Any], expenses: Iterable[Any]) -> Decimal:
    return subtotal_products(items) + subtotal_engineering(engineering) + subtotal_expenses(expenses)


def taxable_products_amount(items: Iterable[Any]) -> Decimal:
    """
    Partner-price value of the lines flagged apply_custom_tax.
    Reported in the summary only; the tax base is always tax_base().
    """
    total = ZERO
    for item in items or []:
        if item.apply_custom_tax:
            total += to_decimal(item.product.partner_price) * to_decimal(item.quantity)
    return total


def recalculate_custom_taxes(taxes: List[Any], base: Any) -> List[Any]:
    """Set every tax row's amount to rate/100 * base. Mutates and returns the rows."""
    b = to_decimal(base)
    for tax in taxes or []:
        tax.amount = tax_amount(b, tax.rate)
    return taxes


def recalculate_payment_terms(terms: List[Any], total: Any) -> List[Any]:
    t = to_decimal(total)
    for term in terms or []:
        term.amount = t * to_decimal(term.percentage) / HUNDRED
    return terms


# ==============================
# PROPOSAL LEVEL
# ==============================

def total_amount(proposal: Any) -> Decimal:
    """
    Sum of the four subtotals. Reads the stored tax amounts, so it is only
    meaningful once recalculate_custom_taxes() has run (recompute() does both).
    """
    return (
        subtotal_products(proposal.items)
        + subtotal_engineering(proposal.engineering)
        + subtotal_expenses(proposal.expenses)
        + subtotal_taxes(proposal.taxes)
    )


def total_cost(proposal: Any) -> Decimal:
    """Products at partner price plus expenses. Engineering is never a cost."""
    cost = ZERO
    for item in proposal.items or []:
        cost += to_decimal(item.product.partner_price) * to_decimal(item.quantity)
    return cost + subtotal_expenses(proposal.expenses)


def gross_profit(proposal: Any) -> Decimal:
    return to_decimal(proposal.total_amount) - total_cost(proposal)


def profit_margin_of(revenue: Any, cost: Any) -> Decimal:
    r = to_decimal(revenue)
    if r == ZERO:
        return ZERO
    return (r - to_decimal(cost)) / r * HUNDRED


def profit_margin(proposal: Any) -> Decimal:
    total = to_decimal(proposal.total_amount)
    if total == ZERO:
        return ZERO
    return gross_profit(proposal) / total * HUNDRED


def break_even_discount(list_price: Any, partner_price: Any) -> Decimal:
    """Discount percentage at which the customer price equals the partner cost."""
    lp = to_decimal(list_price)
    if lp == ZERO:
        return ZERO
    return (lp - to_decimal(partner_price)) / lp * HUNDRED


@dataclass
class ProposalSummary:
    subtotal_products: Decimal
    subtotal_engineering: Decimal
    subtotal_expenses: Decimal
    tax_base: Decimal
    subtotal_taxes: Decimal
    total_amount: Decimal
    total_cost: Decimal
    gross_profit: Decimal
    profit_margin: Decimal
    taxable_products_amount: Decimal

    def to_dict(self) -> Dict[str, Decimal]:
        return asdict(self)


def summarize(proposal: Any) -> ProposalSummary:
    """Read-only snapshot of the proposal's cached and derived figures."""
    products = subtotal_products(proposal.items)
    engineering = subtotal_engineering(proposal.engineering)
    expenses = subtotal_expenses(proposal.expenses)
    return ProposalSummary(
        subtotal_products=products,
        subtotal_engineering=engineering,
        subtotal_expenses=expenses,
        tax_base=products + engineering + expenses,
        subtotal_taxes=subtotal_taxes(proposal.taxes),
        total_amount=to_decimal(proposal.total_amount),
        total_cost=total_cost(proposal),
        gross_profit=gross_profit(proposal),
        profit_margin=profit_margin(proposal),
        taxable_products_amount=taxable_products_amount(proposal.items),
    )


# ==============================
# RECOMPUTE
# ==============================

def _refresh_line(row: Any) -> None:
    if hasattr(row, "product"):
        row.amount = compute_line_amount(row.product, row.quantity, row.multiplier, row.discount)
    elif hasattr(row, "days") and hasattr(row, "rate"):
        row.amount = compute_engineering_amount(row.days, row.rate)


def recompute(proposal: Any, *, changed: Optional[Any] = None, refresh_lines: bool = False) -> ProposalSummary:
    """
    Bring every cached field of the proposal up to date, in one call.

    changed:       the product/engineering row that was just added or edited;
                   its amount is re-derived before anything is summed.
    refresh_lines: re-derive the amount of every product and engineering
                   line (drops manual amount overrides).
    """
    if refresh_lines:
        for row in list(proposal.items or []) + list(proposal.engineering or []):
            _refresh_line(row)
    elif changed is not None:
        _refresh_line(changed)

    base = tax_base(proposal.items, proposal.engineering, proposal.expenses)
    recalculate_custom_taxes(proposal.taxes, base)
    proposal.total_amount = base + subtotal_taxes(proposal.taxes)
    recalculate_payment_terms(getattr(proposal, "payment_terms", None), proposal.total_amount)

    logger.debug(
        "recompute proposal=%s base=%s taxes=%s total=%s",
        getattr(proposal, "number", None),
        base,
        proposal.total_amount - base,
        proposal.total_amount,
    )
    return summarize(proposal)
