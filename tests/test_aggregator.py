from decimal import Decimal

from proposal_crm.core import aggregator
from proposal_crm.core.models import CustomTax, Expense, Product, Proposal, ProposalItem


def test_line_amount_applies_multiplier_and_discount(switch):
    assert aggregator.compute_line_amount(switch, 2, 1, 10) == Decimal("180")
    assert aggregator.compute_line_amount(switch, 1, Decimal("1.5"), 0) == Decimal("150")


def test_line_amount_is_not_clamped():
    p = Product(code="X", name="X", list_price=100, partner_price=0)
    assert aggregator.compute_line_amount(p, 1, 1, 150) == Decimal("-50")


def test_engineering_amount():
    assert aggregator.compute_engineering_amount(2, 500) == Decimal("1000")
    assert aggregator.compute_engineering_amount(0, 500) == Decimal("0")


def test_example_proposal_figures(example_proposal):
    s = aggregator.summarize(example_proposal)
    assert s.subtotal_products == Decimal("180")
    assert s.subtotal_engineering == Decimal("1000")
    assert s.subtotal_expenses == Decimal("50")
    assert s.tax_base == Decimal("1230")
    assert example_proposal.taxes[0].amount == Decimal("233.70")
    assert s.total_amount == Decimal("1463.70")
    assert s.total_cost == Decimal("170")
    assert s.gross_profit == Decimal("1293.70")
    assert Decimal("88.38") < s.profit_margin < Decimal("88.39")


def test_total_is_sum_of_subtotals(example_proposal):
    p = example_proposal
    assert p.total_amount == p.subtotal_products + p.subtotal_engineering + p.subtotal_expenses + p.subtotal_taxes
    assert aggregator.total_amount(p) == p.total_amount


def test_tax_follows_expense_change(example_proposal):
    p = example_proposal
    p.expenses[0].amount = Decimal("150")
    p.recompute()
    assert p.taxes[0].amount == Decimal("0.19") * (180 + 1000 + 150)
    assert p.total_amount == Decimal("1582.70")


def test_stale_tax_base_shows_up_without_recalculation(example_proposal):
    # Summing without refreshing taxes first gives the old tax on a new base.
    p = example_proposal
    p.expenses[0].amount = Decimal("150")
    stale_total = aggregator.total_amount(p)
    assert stale_total == Decimal("1563.70")
    assert p.recompute().total_amount == Decimal("1582.70")


def test_every_tax_uses_the_current_base(example_proposal):
    p = example_proposal
    p.taxes.append(CustomTax(name="Local levy", rate=2))
    p.recompute()
    base = aggregator.tax_base(p.items, p.engineering, p.expenses)
    for tax in p.taxes:
        assert tax.amount == tax.rate / 100 * base
    # taxes never compound
    assert p.taxes[1].amount == Decimal("24.60")


def test_recompute_is_idempotent(example_proposal):
    p = example_proposal
    first = p.recompute()
    taxes_first = [t.amount for t in p.taxes]
    second = p.recompute()
    assert first == second
    assert [t.amount for t in p.taxes] == taxes_first


def test_recompute_refreshes_changed_line_only(example_proposal):
    p = example_proposal
    item = p.items[0]
    item.quantity = Decimal("3")
    p.recompute()
    assert item.amount == Decimal("180")   # stored amount wins until the line is refreshed
    p.recompute(changed=item)
    assert item.amount == Decimal("270")
    assert p.subtotal_products == Decimal("270")


def test_refresh_lines_drops_manual_override(example_proposal):
    p = example_proposal
    p.items[0].amount = Decimal("200")
    assert p.recompute().subtotal_products == Decimal("200")
    assert p.recompute(refresh_lines=True).subtotal_products == Decimal("180")


def test_recalculate_custom_taxes_returns_rows():
    taxes = [CustomTax(name="A", rate=10), CustomTax(name="B", rate=5)]
    out = aggregator.recalculate_custom_taxes(taxes, 200)
    assert out is taxes
    assert [t.amount for t in taxes] == [Decimal("20"), Decimal("10")]


def test_zero_denominators_return_zero():
    assert aggregator.profit_margin_of(0, 123) == 0
    assert aggregator.break_even_discount(0, 40) == 0
    assert aggregator.profit_margin(Proposal()) == 0


def test_break_even_and_margin_helpers():
    assert aggregator.break_even_discount(100, 60) == Decimal("40")
    assert aggregator.profit_margin_of(200, 150) == Decimal("25")
    assert aggregator.price_after_discount(80, 25) == Decimal("60")
    assert aggregator.tax_amount(1230, 19) == Decimal("233.7")


def test_implied_multiplier():
    assert aggregator.implied_multiplier(100, 10, 99) == Decimal("1.1")
    assert aggregator.implied_multiplier(0, 10, 99) == 1
    assert aggregator.implied_multiplier(100, 100, 99) == 1


def test_engineering_is_never_a_cost(example_proposal):
    p = example_proposal
    p.engineering[0].days = Decimal("10")
    p.recompute(changed=p.engineering[0])
    assert p.total_cost == Decimal("170")


def test_taxable_products_amount_is_informational(switch):
    p = Proposal(
        items=[
            ProposalItem.create(switch, 2, apply_custom_tax=True),
            ProposalItem.create(switch, 1),
        ],
        taxes=[CustomTax(name="VAT", rate=10)],
    )
    s = p.recompute()
    assert s.taxable_products_amount == Decimal("120")
    assert p.taxes[0].amount == Decimal("30")   # 10 % of the full 300 product subtotal


def test_empty_proposal():
    s = Proposal(taxes=[CustomTax(name="VAT", rate=19)]).recompute()
    assert s.total_amount == 0
    assert s.profit_margin == 0


def test_negative_expense_lowers_base():
    p = Proposal(expenses=[Expense(desc="credit", amount=-100), Expense(desc="x", amount=300)],
                 taxes=[CustomTax(name="VAT", rate=10)])
    assert p.recompute().total_amount == Decimal("220")
