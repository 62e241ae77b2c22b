# tests/conftest.py
import os, sys
# put the project root (the folder that holds "proposal_crm") first on sys.path
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from proposal_crm.core.models import CustomTax, Engineering, Expense, Product, Proposal, ProposalItem


@pytest.fixture
def switch():
    return Product(code="SW-24", name="Switch 24p", list_price=100, partner_price=60, category="Network")


@pytest.fixture
def example_proposal(switch):
    """
    One product line (100 list, 60 partner, qty 2, 10 % discount),
    2 engineering days at 500, one 50 expense and a 19 % tax.
    """
    p = Proposal(
        number="P-2025-001",
        items=[ProposalItem.create(switch, 2, discount=10)],
        engineering=[Engineering(desc="Installation", days=2, rate=500)],
        expenses=[Expense(desc="Travel", amount=50)],
        taxes=[CustomTax(name="VAT", rate=19)],
    )
    p.recompute()
    return p


@pytest.fixture
def example_payload():
    return {
        "number": "P-2025-001",
        "items": [
            {
                "product": {"code": "SW-24", "name": "Switch 24p", "list_price": "100", "partner_price": "60"},
                "quantity": "2",
                "discount": "10",
            }
        ],
        "engineering": [{"desc": "Installation", "days": "2", "rate": "500"}],
        "expenses": [{"desc": "Travel", "amount": "50"}],
        "taxes": [{"name": "VAT", "rate": "19"}],
    }
