"""
Proposal entities, reduced to the fields the financial engine reads.

Child rows are owned values inside the Proposal lists; they carry no
reference back to their proposal. Cached amounts are filled at
construction and refreshed through Proposal.recompute().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional

from proposal_crm.core import aggregator
from proposal_crm.core.money import HUNDRED, ONE, ZERO, to_decimal
from proposal_crm.core.validation import (
    MissingProductError,
    require_non_negative,
    require_number,
    require_percent,
    require_positive,
)


@dataclass
class Product:
    code: str
    name: str
    list_price: Decimal
    partner_price: Decimal
    category: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        self.list_price = require_non_negative("list_price", self.list_price)
        self.partner_price = require_non_negative("partner_price", self.partner_price)


@dataclass
class ProposalItem:
    product: Product
    quantity: Decimal
    unit_price: Optional[Decimal] = None
    multiplier: Decimal = ONE
    discount: Decimal = ZERO
    amount: Optional[Decimal] = None
    apply_custom_tax: bool = False
    custom_description: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.product, Product):
            raise MissingProductError()
        self.quantity = require_positive("quantity", self.quantity)
        self.multiplier = require_positive("multiplier", self.multiplier)
        self.discount = require_percent("discount", self.discount)
        if self.unit_price is None:
            self.unit_price = self.product.list_price
        else:
            self.unit_price = require_non_negative("unit_price", self.unit_price)
        if self.amount is None:
            self.amount = self.extended_customer_price
        else:
            self.amount = require_number("amount", self.amount)

    @classmethod
    def create(cls, product: Product, quantity: Any, multiplier: Any = ONE, discount: Any = ZERO,
               apply_custom_tax: bool = False) -> "ProposalItem":
        """Fresh line priced from the product's current list price."""
        return cls(
            product=product,
            quantity=quantity,
            multiplier=multiplier,
            discount=discount,
            apply_custom_tax=apply_custom_tax,
        )

    @property
    def extended_list_price(self) -> Decimal:
        return self.product.list_price * self.quantity

    @property
    def extended_partner_price(self) -> Decimal:
        return self.product.partner_price * self.quantity

    @property
    def extended_customer_price(self) -> Decimal:
        return aggregator.compute_line_amount(self.product, self.quantity, self.multiplier, self.discount)

    @property
    def calculated_profit(self) -> Decimal:
        return self.amount - self.extended_partner_price

    @property
    def profit_margin(self) -> Decimal:
        if self.amount <= ZERO:
            return ZERO
        return self.calculated_profit / self.amount * HUNDRED


@dataclass
class Engineering:
    desc: str
    days: Decimal
    rate: Decimal
    amount: Optional[Decimal] = None

    def __post_init__(self) -> None:
        self.days = require_non_negative("days", self.days)
        self.rate = require_non_negative("rate", self.rate)
        if self.amount is None:
            self.amount = aggregator.compute_engineering_amount(self.days, self.rate)
        else:
            self.amount = require_number("amount", self.amount)


@dataclass
class Expense:
    desc: str
    amount: Decimal

    def __post_init__(self) -> None:
        self.amount = require_number("amount", self.amount)


@dataclass
class CustomTax:
    name: str
    rate: Decimal
    amount: Decimal = ZERO

    def __post_init__(self) -> None:
        self.rate = require_percent("rate", self.rate)
        self.amount = to_decimal(self.amount, default=ZERO)


@dataclass
class PaymentTerm:
    name: str
    percentage: Decimal
    amount: Decimal = ZERO
    due_condition: str = ""
    due_days: Optional[int] = None

    def __post_init__(self) -> None:
        self.percentage = require_percent("percentage", self.percentage)
        self.amount = to_decimal(self.amount, default=ZERO)


@dataclass
class Proposal:
    number: str = ""
    status: str = "Draft"
    items: List[ProposalItem] = field(default_factory=list)
    engineering: List[Engineering] = field(default_factory=list)
    expenses: List[Expense] = field(default_factory=list)
    taxes: List[CustomTax] = field(default_factory=list)
    payment_terms: List[PaymentTerm] = field(default_factory=list)
    total_amount: Decimal = ZERO

    def __post_init__(self) -> None:
        self.total_amount = to_decimal(self.total_amount, default=ZERO)

    def recompute(self, *, changed: Any = None, refresh_lines: bool = False) -> aggregator.ProposalSummary:
        return aggregator.recompute(self, changed=changed, refresh_lines=refresh_lines)

    # Read-only views, same numbers the aggregator uses.
    @property
    def subtotal_products(self) -> Decimal:
        return aggregator.subtotal_products(self.items)

    @property
    def subtotal_engineering(self) -> Decimal:
        return aggregator.subtotal_engineering(self.engineering)

    @property
    def subtotal_expenses(self) -> Decimal:
        return aggregator.subtotal_expenses(self.expenses)

    @property
    def subtotal_taxes(self) -> Decimal:
        return aggregator.subtotal_taxes(self.taxes)

    @property
    def total_cost(self) -> Decimal:
        return aggregator.total_cost(self)

    @property
    def gross_profit(self) -> Decimal:
        return aggregator.gross_profit(self)

    @property
    def profit_margin(self) -> Decimal:
        return aggregator.profit_margin(self)
