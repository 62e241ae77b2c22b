from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from proposal_crm.core.models import CustomTax, Engineering, Expense
from proposal_crm.core.money import to_decimal

logger = logging.getLogger(__name__)

# Project root (the folder that holds proposal_crm/ and knowledge/)
ROOT = Path(__file__).resolve().parents[2]
TEMPLATES_PATH = ROOT / "knowledge" / "templates.yaml"

# kind -> fields every entry of that kind must have
TEMPLATE_KINDS: Dict[str, List[str]] = {
    "engineering": ["name", "days", "rate"],
    "expenses": ["name", "amount"],
    "taxes": ["name", "rate"],
    "rates": ["name", "rate"],
}


@lru_cache(maxsize=8)
def _load_raw_templates_yaml(path_str: str) -> Any:
    """
    Read the template YAML once per path and cache it.
    A missing or broken file behaves like a file without templates.
    """
    path = Path(path_str)
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("could not read templates from %s: %s", path, e)
        return {}


def clear_cache() -> None:
    _load_raw_templates_yaml.cache_clear()


def load_templates(kind: str, path: Optional[Union[str, Path]] = None) -> List[Dict[str, Any]]:
    """
    Normalized list of templates of one kind ("engineering", "expenses",
    "taxes", "rates").

    Entries that are not mappings, lack a required field or carry a
    non-numeric value are dropped. Every entry gets:
      - description (str, may be empty)
      - is_default (bool)
    """
    if kind not in TEMPLATE_KINDS:
        raise KeyError(f"Unknown template kind '{kind}'")

    raw = _load_raw_templates_yaml(str(path or TEMPLATES_PATH))
    entries = raw.get(kind) if isinstance(raw, dict) else None
    if not isinstance(entries, list):
        return []

    required = TEMPLATE_KINDS[kind]
    out: List[Dict[str, Any]] = []
    for idx, entry in enumerate(entries):
        if not isinstance(entry, dict):
            continue
        if any(entry.get(k) in (None, "") for k in required):
            logger.warning("%s template #%d skipped: needs %s", kind, idx, ", ".join(required))
            continue

        t = dict(entry)
        try:
            for k in required:
                if k != "name":
                    t[k] = to_decimal(t[k])
        except ValueError:
            logger.warning("%s template #%d (%s) skipped: non-numeric value", kind, idx, t.get("name"))
            continue

        t["name"] = str(t["name"])
        t["description"] = str(t.get("description") or "")
        t["is_default"] = bool(t.get("is_default", False))
        out.append(t)

    return out


def find_template(kind: str, name: str, path: Optional[Union[str, Path]] = None) -> Optional[Dict[str, Any]]:
    wanted = (name or "").strip().lower()
    for t in load_templates(kind, path):
        if t["name"].strip().lower() == wanted:
            return t
    return None


def default_template(kind: str, path: Optional[Union[str, Path]] = None) -> Optional[Dict[str, Any]]:
    """The entry flagged is_default, else the first one, else None."""
    templates = load_templates(kind, path)
    for t in templates:
        if t["is_default"]:
            return t
    return templates[0] if templates else None


def engineering_from_template(template: Dict[str, Any]) -> Engineering:
    return Engineering(
        desc=template.get("description") or template["name"],
        days=template["days"],
        rate=template["rate"],
    )


def expense_from_template(template: Dict[str, Any]) -> Expense:
    return Expense(desc=template.get("description") or template["name"], amount=template["amount"])


def tax_from_template(template: Dict[str, Any]) -> CustomTax:
    return CustomTax(name=str(template.get("tax_name") or template["name"]), rate=template["rate"])
