from decimal import Decimal

import pandas as pd
import pytest

from proposal_crm.core.models import Product
from proposal_crm.services.product_catalog import CatalogImportError, ProductCatalog

CSV = """code,name,description,category,listPrice,partnerPrice
SW-24,Switch 24p,"Managed, 24 ports",Network,100,60
AP-1,Access point,Indoor,Wireless,250.50,180
BAD-1,Broken row,,Network,n/a,10

,No code,,Network,10,5
"""


def _write(tmp_path, text, name="products.csv"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_import_skips_bad_rows(tmp_path):
    catalog = ProductCatalog()
    assert catalog.import_products(_write(tmp_path, CSV)) == 2
    assert len(catalog) == 2
    ap = catalog.get("AP-1")
    assert ap.list_price == Decimal("250.50")
    assert ap.partner_price == Decimal("180")
    assert catalog.get("SW-24").description == "Managed, 24 ports"
    assert "BAD-1" not in catalog


def test_import_is_an_upsert(tmp_path):
    catalog = ProductCatalog([Product(code="SW-24", name="Old name", list_price=90, partner_price=50)])
    existing = catalog.get("SW-24")
    catalog.import_products(_write(tmp_path, CSV))
    assert len(catalog) == 2
    assert catalog.get("SW-24") is existing
    assert existing.name == "Switch 24p"
    assert existing.list_price == Decimal("100")


def test_header_aliases_and_frames():
    df = pd.DataFrame([{"Code": "X1", "Name": "Cable", "List Price": "5", "partner_price": "2"}])
    catalog = ProductCatalog()
    assert catalog.import_products(df) == 1
    assert catalog.get("X1").category == ""


def test_missing_columns(tmp_path):
    with pytest.raises(CatalogImportError):
        ProductCatalog().import_products(_write(tmp_path, "code,name\nA,B\n"))


def test_empty_file(tmp_path):
    with pytest.raises(CatalogImportError):
        ProductCatalog().import_products(_write(tmp_path, ""))


def test_excel_import(tmp_path):
    path = tmp_path / "products.xlsx"
    pd.DataFrame([
        {"code": "SW-24", "name": "Switch", "listPrice": 100, "partnerPrice": 60},
    ]).to_excel(path, index=False)
    catalog = ProductCatalog()
    assert catalog.import_products(path) == 1
    assert catalog.get("SW-24").list_price == Decimal("100")


def test_export_quotes_fields_and_fixes_decimals():
    catalog = ProductCatalog([
        Product(code="B", name='Rack "19"', list_price=Decimal("1200"), partner_price=Decimal("800.5"),
                category="Racks", description="42U, black"),
        Product(code="A", name="Cable", list_price=5, partner_price=2),
    ])
    lines = catalog.export_products_csv().splitlines()
    assert lines[0] == "code,name,description,category,listPrice,partnerPrice"
    assert lines[1] == "A,Cable,,,5.00,2.00"
    assert lines[2] == 'B,"Rack ""19""","42U, black",Racks,1200.00,800.50'


def test_exported_csv_imports_back(tmp_path):
    source = ProductCatalog([Product(code="A", name="Cable, cat6", list_price=5, partner_price=2)])
    target = ProductCatalog()
    target.import_products(_write(tmp_path, source.export_products_csv()))
    assert target.get("A").name == "Cable, cat6"
