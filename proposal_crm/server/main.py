import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from proposal_crm.server.api import proposals, system, templates
from proposal_crm.server.settings.config import settings

logger = logging.getLogger("proposal_crm.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info("Starting %s (%s)", settings.app_name, settings.environment)
    yield
    logger.info("Shutting down %s", settings.app_name)


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

# Routers
app.include_router(system.router)
app.include_router(proposals.router)     # /proposals/recalculate, /line-amount, /break-even
app.include_router(templates.router)     # /templates/{kind}
