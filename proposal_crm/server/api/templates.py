from fastapi import APIRouter, HTTPException

from proposal_crm.server.settings.config import settings
from proposal_crm.services.templates import TEMPLATE_KINDS, load_templates

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("/{kind}", summary="List engineering/expense/tax/rate templates")
def list_templates(kind: str):
    if kind not in TEMPLATE_KINDS:
        raise HTTPException(status_code=404, detail=f"Unknown template kind '{kind}'")
    return {
        "kind": kind,
        "templates": load_templates(kind, settings.templates_path or None),
    }
