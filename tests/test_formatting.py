from decimal import Decimal

from proposal_crm.core.formatting import format_currency, format_multiplier, format_percent


def test_currency_two_decimals_and_grouping():
    assert format_currency(Decimal("1463.7")) == "€1,463.70"
    assert format_currency(0) == "€0.00"
    assert format_currency(1234567.891) == "€1,234,567.89"


def test_currency_negative_and_rounding():
    assert format_currency(-5) == "-€5.00"
    assert format_currency(Decimal("2.005")) == "€2.01"


def test_currency_symbol_and_separators_are_parameters():
    assert format_currency(22844.2, symbol="", thousands=" ", decimal=",") == "22 844,20"
    assert format_currency(10, symbol="$") == "$10.00"


def test_percent_one_decimal():
    assert format_percent(Decimal("88.3856")) == "88.4%"
    assert format_percent(0) == "0.0%"
    assert format_percent(-12.34) == "-12.3%"


def test_multiplier():
    assert format_multiplier(1.1) == "1.10x"
