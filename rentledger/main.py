"""RentLedger FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

# Load environment variables before settings are read
load_dotenv()

from rentledger.api.errors import register_error_handlers  # noqa: E402
from rentledger.api.routes import ledger, settlement  # noqa: E402
from rentledger.config import get_settings  # noqa: E402
from rentledger.models import Base  # noqa: E402
from rentledger.services import SessionLocal, engine  # noqa: E402
from rentledger.services.logging import setup_server_logging  # noqa: E402
from rentledger.services.notification_service import init_payment_notifier  # noqa: E402

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    setup_server_logging(settings.log_file, settings.log_level)
    # Alembic owns the schema in production; create_all covers fresh SQLite setups
    Base.metadata.create_all(bind=engine)
    init_payment_notifier(SessionLocal, settings.telegram_bot_token)
    logger.info("Database tables initialized, settlement API ready")
    yield
    logger.info("Application shutting down")
    engine.dispose()


app = FastAPI(
    title=settings.api_title,
    description="Payment reconciliation and tenant ledger for rental billing",
    version=settings.api_version,
    lifespan=lifespan,
)

register_error_handlers(app)

# Include routers
app.include_router(settlement.router)
app.include_router(ledger.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("rentledger.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
