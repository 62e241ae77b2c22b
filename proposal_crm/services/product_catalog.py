"""
Product catalog: CSV/Excel import (upsert on product code) and CSV export.

Expected columns (case/whitespace tolerant, a few aliases accepted):
  code, name, description, category, listPrice, partnerPrice

Rows with a missing code/name or non-numeric prices are skipped and
logged; the import never fails on a single bad row. An empty file or a
file without the required headers raises CatalogImportError.
"""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd

from proposal_crm.core.models import Product
from proposal_crm.core.money import to_decimal
from proposal_crm.core.validation import ProposalValidationError

logger = logging.getLogger(__name__)

EXPORT_HEADER = ["code", "name", "description", "category", "listPrice", "partnerPrice"]
REQUIRED_COLUMNS = ["code", "name", "list_price", "partner_price"]

# Canonical column -> accepted header spellings (compared lowercased, spaces/_/- stripped)
COLUMN_ALIASES: Dict[str, List[str]] = {
    "code": ["code", "productcode", "sku", "artnr"],
    "name": ["name", "productname"],
    "description": ["description", "desc"],
    "category": ["category"],
    "list_price": ["listprice", "list", "price"],
    "partner_price": ["partnerprice", "partner", "cost"],
}


class CatalogImportError(ValueError):
    """The file as a whole cannot be imported."""


def _norm_header(h: object) -> str:
    return "".join(ch for ch in str(h or "").strip().lower() if ch not in " _-")


def _rename_columns(df: pd.DataFrame) -> pd.DataFrame:
    cols = {_norm_header(c): c for c in df.columns}
    rename_map = {}
    for target, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in cols:
                rename_map[cols[alias]] = target
                break  # first hit wins
    return df.rename(columns=rename_map)


def load_products_frame(path: Union[str, Path]) -> pd.DataFrame:
    """Read a CSV or Excel product list into a frame with canonical column names."""
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"No product file at {p}")

    try:
        if p.suffix.lower() in (".xlsx", ".xlsm", ".xls"):
            df = pd.read_excel(p, dtype=str)
        else:
            df = pd.read_csv(p, dtype=str, skip_blank_lines=True, encoding="utf-8-sig")
    except pd.errors.EmptyDataError:
        raise CatalogImportError(f"Product file {p.name} is empty") from None

    return _prepare_frame(df, p.name)


def _prepare_frame(df: pd.DataFrame, source: str) -> pd.DataFrame:
    if df is None or df.empty:
        raise CatalogImportError(f"Product file {source} has no rows")

    df = _rename_columns(df)
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise CatalogImportError(f"Product file {source} is missing columns: {', '.join(missing)}")

    for c in ("description", "category"):
        if c not in df.columns:
            df[c] = ""
    df = df.fillna("")
    for c in df.columns:
        df[c] = df[c].astype(str).str.strip()
    return df


class ProductCatalog:
    def __init__(self, products: Optional[Iterable[Product]] = None) -> None:
        self._products: Dict[str, Product] = {}
        for p in products or []:
            self._products[p.code] = p

    def __len__(self) -> int:
        return len(self._products)

    def __contains__(self, code: str) -> bool:
        return code in self._products

    def get(self, code: str) -> Optional[Product]:
        return self._products.get(code)

    def products(self) -> List[Product]:
        return sorted(self._products.values(), key=lambda p: p.code)

    def upsert(self, product: Product) -> Product:
        existing = self._products.get(product.code)
        if existing is None:
            self._products[product.code] = product
            return product
        existing.name = product.name
        existing.description = product.description
        existing.category = product.category
        existing.list_price = product.list_price
        existing.partner_price = product.partner_price
        return existing

    # ---- Import -------------------------------------------------------------
    def import_products(self, source: Union[str, Path, pd.DataFrame]) -> int:
        """Upsert every valid row. Returns the number of rows imported."""
        if isinstance(source, pd.DataFrame):
            df = _prepare_frame(source.copy(), "<frame>")
        else:
            df = load_products_frame(source)

        imported = 0
        for idx, row in df.iterrows():
            code = row.get("code", "")
            name = row.get("name", "")
            if not code or not name:
                logger.warning("catalog row %s skipped: missing code or name", idx)
                continue
            try:
                product = Product(
                    code=code,
                    name=name,
                    description=row.get("description", ""),
                    category=row.get("category", ""),
                    list_price=to_decimal(row.get("list_price")),
                    partner_price=to_decimal(row.get("partner_price")),
                )
            except (ValueError, ProposalValidationError) as e:
                logger.warning("catalog row %s (%s) skipped: %s", idx, code, e)
                continue
            self.upsert(product)
            imported += 1

        logger.info("imported %d of %d catalog rows", imported, len(df))
        return imported

    # ---- Export -------------------------------------------------------------
    def export_products_csv(self) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
        writer.writerow(EXPORT_HEADER)
        for p in self.products():
            writer.writerow([
                p.code,
                p.name,
                p.description,
                p.category,
                f"{p.list_price:.2f}",
                f"{p.partner_price:.2f}",
            ])
        return buf.getvalue()
