"""Cron Dashboard: FastAPI application entry-point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from cron_dashboard.config import settings
from cron_dashboard.errors import DashboardError, ValidationError
from cron_dashboard.routers.cron_router import router as cron_router
from cron_dashboard.routers.memory_router import router as memory_router
from cron_dashboard.routers.rss_router import router as rss_router

# ── Logging ─────────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
)
logger = logging.getLogger("cron_dashboard")


# ── Lifespan ────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Cron Dashboard starting: cron_dir=%s  memory_dir=%s  diaries_dir=%s  stickers_dir=%s",
        settings.CRON_DIR,
        settings.MEMORY_DIR,
        settings.diaries_dir,
        settings.STICKERS_DIR,
    )
    yield
    logger.info("Cron Dashboard shutting down")


# ── App ─────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="Cron Dashboard",
    description=(
        "Backend for a personal automation dashboard: scheduled job definitions "
        "shared with an external cron runner, their run history, and the agent's "
        "memory, diary and RSS feeds."
    ),
    version="1.0.0",
    lifespan=lifespan,
    root_path=settings.ROOT_PATH,
)

app.include_router(cron_router)
app.include_router(rss_router)
app.include_router(memory_router)

app.mount("/stickers", StaticFiles(directory=settings.STICKERS_DIR, check_dir=False), name="stickers")


# ── Exception handlers ──────────────────────────────────────────────────────────

@app.exception_handler(DashboardError)
async def _dashboard_error(request: Request, exc: DashboardError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    else:
        logger.info("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def _request_validation_error(request: Request, exc: RequestValidationError):
    """Malformed query/body values answer with the same envelope as ``ValidationError``."""
    message = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )
    endpoint = request.scope.get("endpoint")
    error = ValidationError(
        message or "Invalid request",
        operation=getattr(endpoint, "__name__", None),
        job_id=request.path_params.get("job_id"),
    )
    logger.info("Rejected %s %s: %s", request.method, request.url.path, error.message)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def _unhandled_exception(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc),
            "error": type(exc).__name__,
            "path": str(request.url.path),
            "method": request.method,
        },
    )


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
    )
