from decimal import Decimal

import pytest

from proposal_crm.core.models import CustomTax, Engineering, PaymentTerm, Product, ProposalItem
from proposal_crm.core.validation import MissingProductError, ProposalValidationError


def test_fresh_item_amount_matches_customer_price(switch):
    item = ProposalItem.create(switch, 3, multiplier=Decimal("1.2"), discount=5)
    assert item.amount == item.extended_customer_price
    assert item.unit_price == switch.list_price


def test_fresh_item_without_markup_is_list_times_quantity(switch):
    item = ProposalItem.create(switch, 4)
    assert item.amount == switch.list_price * 4


def test_item_derived_prices(switch):
    item = ProposalItem.create(switch, 2, discount=10)
    assert item.extended_list_price == Decimal("200")
    assert item.extended_partner_price == Decimal("120")
    assert item.calculated_profit == Decimal("60")
    assert round(item.profit_margin, 4) == Decimal("33.3333")


def test_item_margin_is_zero_without_revenue(switch):
    item = ProposalItem(product=switch, quantity=1, amount=0)
    assert item.profit_margin == 0


def test_float_input_keeps_decimal_value(switch):
    item = ProposalItem.create(switch, 0.1)
    assert item.quantity == Decimal("0.1")
    assert item.amount == Decimal("10.0")


def test_item_requires_product():
    with pytest.raises(MissingProductError):
        ProposalItem(product=None, quantity=1)


@pytest.mark.parametrize("field,value", [
    ("quantity", 0),
    ("quantity", -1),
    ("multiplier", 0),
    ("discount", 101),
    ("discount", -5),
])
def test_item_rejects_out_of_domain_input(switch, field, value):
    kwargs = {"product": switch, "quantity": 1, field: value}
    with pytest.raises(ProposalValidationError) as exc:
        ProposalItem(**kwargs)
    assert exc.value.field == field


def test_product_rejects_negative_prices():
    with pytest.raises(ProposalValidationError):
        Product(code="X", name="X", list_price=-1, partner_price=0)


def test_engineering_amount_filled_on_construction():
    assert Engineering(desc="Setup", days="1.5", rate=400).amount == Decimal("600.0")
    with pytest.raises(ProposalValidationError):
        Engineering(desc="Setup", days=-1, rate=400)


def test_tax_and_payment_term_rates_are_percentages():
    with pytest.raises(ProposalValidationError):
        CustomTax(name="VAT", rate=120)
    with pytest.raises(ProposalValidationError):
        PaymentTerm(name="Deposit", percentage=-10)


def test_non_numeric_input_is_a_validation_error(switch):
    with pytest.raises(ProposalValidationError):
        ProposalItem(product=switch, quantity="two")
