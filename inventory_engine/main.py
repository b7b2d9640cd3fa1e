"""FastAPI application entry point."""

import json
import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from inventory_engine import __version__
from inventory_engine.api.routes import api_router
from inventory_engine.core.config import settings
from inventory_engine.core.exceptions import EngineError
from inventory_engine.core.observability import (
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
    get_correlation_id,
)
from inventory_engine.core.rate_limit import limiter
from inventory_engine.db.base import Base
from inventory_engine.db.session import DbSession, engine
import inventory_engine.models  # noqa: F401  registers models and immutability listeners

# Configure logging - use JSON format in production, human-readable in dev
root_logger = logging.getLogger()
root_logger.setLevel(getattr(logging, settings.log_level))
root_logger.handlers.clear()

if settings.debug:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
else:
    class JSONFormatter(logging.Formatter):
        def format(self, record):
            return json.dumps({
                "ts": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "module": record.module,
                "line": record.lineno,
                "correlation_id": get_correlation_id(),
            })

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

root_logger.addHandler(handler)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting inventory engine")

    # Create tables if they don't exist (for SQLite dev)
    # In production, use Alembic migrations
    if settings.is_sqlite:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created (SQLite mode)")

    yield

    logger.info("Shutting down inventory engine")


app = FastAPI(
    title="Inventory Movement & Reconciliation Engine",
    description="FIFO batch ledger, bin allocations, handling tasks and stock count reconciliation",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting setup
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    """Summarize engine errors (which item, which constraint) for API callers."""
    log_level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(log_level, f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Request logging runs inside the correlation ID middleware (Starlette LIFO order)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
def health_check(db: DbSession):
    """Liveness and database connectivity."""
    checks = {}
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = "unhealthy"

    status = "healthy" if all(v == "healthy" for v in checks.values()) else "degraded"
    return {"status": status, "version": __version__, "checks": checks}
