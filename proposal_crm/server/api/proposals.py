from decimal import Decimal

from fastapi import APIRouter, HTTPException

from proposal_crm.core import aggregator
from proposal_crm.core.formatting import format_currency, format_percent
from proposal_crm.core.models import (
    CustomTax,
    Engineering,
    Expense,
    PaymentTerm,
    Product,
    Proposal,
    ProposalItem,
)
from proposal_crm.core.validation import ProposalValidationError
from proposal_crm.server.schemas.proposal import (
    BreakEvenIn,
    BreakEvenOut,
    LineAmountIn,
    LineAmountOut,
    ProposalIn,
    ProposalOut,
)
from proposal_crm.server.settings.config import settings

router = APIRouter(prefix="/proposals", tags=["proposals"])


# ==============================
# HELPERS
# ==============================

def _build_proposal(payload: ProposalIn) -> Proposal:
    """ProposalIn -> domain Proposal. Model guards raise ProposalValidationError."""
    items = [
        ProposalItem(
            product=Product(**i.product.model_dump()),
            quantity=i.quantity,
            unit_price=i.unit_price,
            multiplier=i.multiplier,
            discount=i.discount,
            amount=i.amount,
            apply_custom_tax=i.apply_custom_tax,
            custom_description=i.custom_description,
        )
        for i in payload.items
    ]
    return Proposal(
        number=payload.number,
        status=payload.status,
        items=items,
        engineering=[Engineering(desc=e.desc, days=e.days, rate=e.rate, amount=e.amount) for e in payload.engineering],
        expenses=[Expense(desc=e.desc, amount=e.amount) for e in payload.expenses],
        taxes=[CustomTax(name=t.name, rate=t.rate) for t in payload.taxes],
        payment_terms=[
            PaymentTerm(name=t.name, percentage=t.percentage, due_condition=t.due_condition, due_days=t.due_days)
            for t in payload.payment_terms
        ],
    )


def _serialize_proposal(p: Proposal, summary: aggregator.ProposalSummary) -> dict:
    money = lambda v: format_currency(v, symbol=settings.currency_symbol)  # noqa: E731
    return {
        "number": p.number,
        "status": p.status,
        "items": [
            {
                "product": {
                    "code": i.product.code,
                    "name": i.product.name,
                    "list_price": i.product.list_price,
                    "partner_price": i.product.partner_price,
                    "category": i.product.category,
                    "description": i.product.description,
                },
                "quantity": i.quantity,
                "multiplier": i.multiplier,
                "discount": i.discount,
                "unit_price": i.unit_price,
                "amount": i.amount,
                "apply_custom_tax": i.apply_custom_tax,
                "custom_description": i.custom_description,
                "extended_list_price": i.extended_list_price,
                "extended_partner_price": i.extended_partner_price,
                "calculated_profit": i.calculated_profit,
                "profit_margin": i.profit_margin,
            }
            for i in p.items
        ],
        "engineering": [{"desc": e.desc, "days": e.days, "rate": e.rate, "amount": e.amount} for e in p.engineering],
        "expenses": [{"desc": e.desc, "amount": e.amount} for e in p.expenses],
        "taxes": [{"name": t.name, "rate": t.rate, "amount": t.amount} for t in p.taxes],
        "payment_terms": [
            {
                "name": t.name,
                "percentage": t.percentage,
                "amount": t.amount,
                "due_condition": t.due_condition,
                "due_days": t.due_days,
            }
            for t in p.payment_terms
        ],
        "total_amount": p.total_amount,
        "summary": summary.to_dict(),
        "formatted": {
            "subtotal_products": money(summary.subtotal_products),
            "subtotal_engineering": money(summary.subtotal_engineering),
            "subtotal_expenses": money(summary.subtotal_expenses),
            "subtotal_taxes": money(summary.subtotal_taxes),
            "total_amount": money(summary.total_amount),
            "total_cost": money(summary.total_cost),
            "gross_profit": money(summary.gross_profit),
            "profit_margin": format_percent(summary.profit_margin),
        },
    }


# ==============================
# ENDPOINTS
# ==============================

@router.post("/recalculate", response_model=ProposalOut, summary="Recompute all cached proposal figures")
def recalculate(payload: ProposalIn):
    try:
        proposal = _build_proposal(payload)
    except ProposalValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    # request-local object, nothing to lock
    summary = proposal.recompute(refresh_lines=payload.refresh_lines)
    return _serialize_proposal(proposal, summary)


@router.post("/line-amount", response_model=LineAmountOut, summary="Price a single product line")
def line_amount(payload: LineAmountIn):
    product = Product(code="", name="", list_price=payload.list_price, partner_price=payload.partner_price)
    amount = aggregator.compute_line_amount(product, payload.quantity, payload.multiplier, payload.discount)
    cost = payload.partner_price * payload.quantity
    return {
        "amount": amount,
        "extended_partner_price": cost,
        "profit": amount - cost,
        "profit_margin": aggregator.profit_margin_of(amount, cost) if amount > 0 else Decimal("0"),
        "break_even_discount": aggregator.break_even_discount(payload.list_price, payload.partner_price),
    }


@router.post("/break-even", response_model=BreakEvenOut, summary="Discount at which price equals partner cost")
def break_even(payload: BreakEvenIn):
    return {"break_even_discount": aggregator.break_even_discount(payload.list_price, payload.partner_price)}
