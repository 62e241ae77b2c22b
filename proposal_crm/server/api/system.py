from fastapi import APIRouter

from proposal_crm.server.settings.config import settings

router = APIRouter(tags=["system"])

@router.get("/health")
def health():
    return {"message": "ok", "app": settings.app_name, "environment": settings.environment}
