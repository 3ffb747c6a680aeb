import logging
import subprocess
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import config
from .api.health import router as health_router
from .api.hooks import router as hooks_router
from .api.keys import router as keys_router
from .api.tenants import router as tenants_router
from .db import engine, init_db
from .errors import ManagerError
from .logging_config import setup_logging
from .middleware import TracingMiddleware
from .services.ingest import get_ingest_worker
from .services.sftpgo import close_sftpgo_client

# Configure logging at import time
setup_logging()

logger = logging.getLogger("sftpgo_manager")


def run_migrations():
    try:
        subprocess.run(["alembic", "upgrade", "head"], check=True)
        logger.info("Alembic auto-migrate: upgrade head OK")
    except (OSError, subprocess.CalledProcessError):
        logger.exception("Alembic auto-migrate failed")
        raise


@asynccontextmanager
async def lifespan(application: FastAPI):
    logger.info("SFTPGo Manager starting up", extra={
        "sftpgo_url": config.SFTPGO_URL,
        "component": "api",
    })

    if config.AUTO_MIGRATE:
        run_migrations()
    init_db()

    worker = get_ingest_worker()

    logger.info("SFTPGo Manager ready", extra={
        "csv_processing": worker is not None,
        "component": "api",
    })

    try:
        yield
    finally:
        if worker is not None:
            await worker.drain()
        close_sftpgo_client()
        engine.dispose()
        logger.info("SFTPGo Manager shut down", extra={"component": "api"})


app = FastAPI(title="SFTPGo Multi-Tenant Manager", lifespan=lifespan)

# Add tracing middleware
app.add_middleware(TracingMiddleware)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    for err in errors:
        loc = err.get("loc") or ()
        if loc and loc[0] == "path":
            return "invalid id"
    for err in errors:
        if err.get("type") == "json_invalid":
            return "invalid json"
    if errors:
        err = errors[0]
        field = ".".join(str(p) for p in (err.get("loc") or ())[1:])
        msg = err.get("msg", "invalid request")
        return f"{field}: {msg}" if field else msg
    return "invalid request"


@app.exception_handler(ManagerError)
async def manager_error_handler(request: Request, exc: ManagerError):
    if exc.status_code >= 500:
        logger.error("request failed", extra={"path": request.url.path, "error": str(exc)})
    return JSONResponse({"error": str(exc)}, status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        {"error": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse({"error": _validation_message(exc)}, status_code=400)


# Include API routers
app.include_router(health_router)
app.include_router(keys_router, prefix=config.API_PREFIX)
app.include_router(tenants_router, prefix=config.API_PREFIX)
app.include_router(hooks_router, prefix=config.API_PREFIX)
