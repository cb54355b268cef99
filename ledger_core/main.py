import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .api.exceptions import register_exception_handlers
from .api.routes import router as accounts_router, transfer_router
from .core.config import Settings, get_settings
from .core.db import init_db

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("ledger.started", extra={"app_name": app.title})
    yield

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Assemble the ledger API: account and transfer routes plus error mapping."""
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    ledger_app = FastAPI(title=settings.app_name, lifespan=lifespan)
    ledger_app.include_router(accounts_router)
    ledger_app.include_router(transfer_router)
    register_exception_handlers(ledger_app)
    return ledger_app

app = create_app()
