from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ProductIn(BaseModel):
    code: str
    name: str
    list_price: Decimal = Field(ge=0)
    partner_price: Decimal = Field(ge=0)
    category: str = ""
    description: str = ""


class ProposalItemIn(BaseModel):
    """
    One product line. product is required: a line without a product is
    rejected with 422 instead of being priced as zero.
    amount=None -> priced from the product (list * multiplier * (1 - discount%) * qty).
    """
    product: ProductIn
    quantity: Decimal = Field(gt=0)
    multiplier: Decimal = Field(default=Decimal("1"), gt=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    amount: Optional[Decimal] = None
    apply_custom_tax: bool = False
    custom_description: str = ""


class ProposalItemOut(ProposalItemIn):
    extended_list_price: Decimal
    extended_partner_price: Decimal
    calculated_profit: Decimal
    profit_margin: Decimal


class EngineeringIn(BaseModel):
    desc: str = ""
    days: Decimal = Field(ge=0)
    rate: Decimal = Field(ge=0)
    amount: Optional[Decimal] = None


class ExpenseIn(BaseModel):
    desc: str = ""
    amount: Decimal


class CustomTaxIn(BaseModel):
    name: str
    rate: Decimal = Field(ge=0, le=100)
    amount: Optional[Decimal] = None   # always recalculated from the tax base


class PaymentTermIn(BaseModel):
    name: str
    percentage: Decimal = Field(ge=0, le=100)
    amount: Optional[Decimal] = None   # always recalculated from the total
    due_condition: str = ""
    due_days: Optional[int] = Field(default=None, ge=0)


class ProposalIn(BaseModel):
    number: str = ""
    status: str = "Draft"
    items: List[ProposalItemIn] = []
    engineering: List[EngineeringIn] = []
    expenses: List[ExpenseIn] = []
    taxes: List[CustomTaxIn] = []
    payment_terms: List[PaymentTermIn] = []
    # True -> re-derive every product/engineering amount, dropping manual overrides
    refresh_lines: bool = False


class SummaryOut(BaseModel):
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


class ProposalOut(BaseModel):
    number: str
    status: str
    items: List[ProposalItemOut]
    engineering: List[EngineeringIn]
    expenses: List[ExpenseIn]
    taxes: List[CustomTaxIn]
    payment_terms: List[PaymentTermIn]
    total_amount: Decimal
    summary: SummaryOut
    formatted: Dict[str, str]


class LineAmountIn(BaseModel):
    list_price: Decimal = Field(ge=0)
    partner_price: Decimal = Field(default=Decimal("0"), ge=0)
    quantity: Decimal = Field(gt=0)
    multiplier: Decimal = Field(default=Decimal("1"), gt=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0, le=100)


class LineAmountOut(BaseModel):
    amount: Decimal
    extended_partner_price: Decimal
    profit: Decimal
    profit_margin: Decimal
    break_even_discount: Decimal


class BreakEvenIn(BaseModel):
    list_price: Decimal = Field(ge=0)
    partner_price: Decimal = Field(ge=0)


class BreakEvenOut(BaseModel):
    break_even_discount: Decimal
