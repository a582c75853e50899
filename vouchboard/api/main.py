"""
vouchboard.api.main — FastAPI application entry point
======================================================

Run with::

    python -m vouchboard
    # or
    uvicorn vouchboard.api.main:app --reload --port 3000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.staticfiles import StaticFiles

load_dotenv()

from vouchboard.api.auth import router as auth_router  # noqa: E402
from vouchboard.api.deps import get_engine, get_relay  # noqa: E402
from vouchboard.api.routes.config import router as config_router  # noqa: E402
from vouchboard.api.routes.pages import router as pages_router  # noqa: E402
from vouchboard.api.routes.products import router as products_router  # noqa: E402
from vouchboard.api.routes.vouches import router as vouches_router  # noqa: E402
from vouchboard.errors import StorageError, UnauthenticatedError, VouchboardError  # noqa: E402
from vouchboard.services.upload_service import UPLOAD_DIR, ensure_upload_dir  # noqa: E402

logger = logging.getLogger(__name__)

LOGIN_PATH = "/auth/discord"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine, run the relay."""
    ensure_upload_dir()

    engine = get_engine()
    relay = get_relay()
    relay.start()
    logger.info("Vouchboard API started — engine ready (%s)", engine.url.database)
    yield
    await relay.stop()
    logger.info("Vouchboard API shutting down")


app = FastAPI(
    title="Vouchboard API",
    version="1.0.0",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"ok": False, "message": message}, status_code=status_code)


def _is_api_request(request: Request) -> bool:
    path = request.url.path
    return path.startswith("/api/") or path.startswith("/auth/")


@app.exception_handler(UnauthenticatedError)
async def _unauthenticated(request: Request, exc: UnauthenticatedError):
    if _is_api_request(request):
        return _error(exc.status_code, exc.message)
    return RedirectResponse(LOGIN_PATH, status_code=302)


@app.exception_handler(StorageError)
async def _storage_error(request: Request, exc: StorageError):
    # Already logged with full context by the store.
    return _error(exc.status_code, "Server error")


@app.exception_handler(VouchboardError)
async def _vouchboard_error(request: Request, exc: VouchboardError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def _request_validation(request: Request, exc: RequestValidationError):
    fields = sorted({".".join(str(p) for p in err["loc"][1:]) or "body" for err in exc.errors()})
    return _error(400, f"Invalid request: {', '.join(fields)}")


# Mount routers
app.include_router(auth_router)
app.include_router(vouches_router)
app.include_router(config_router)
app.include_router(products_router)
app.include_router(pages_router)


@app.get("/api/health")
def health():
    return {"status": "ok"}


# Uploaded product images
app.mount(
    "/uploads",
    StaticFiles(directory=str(UPLOAD_DIR), check_dir=False),
    name="uploads",
)
