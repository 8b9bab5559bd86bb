import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dealflow.api.router import api_router
from dealflow.config import settings
from dealflow.core.errors import WorkflowError
from dealflow.core.observability import (
    global_exception_handler,
    request_logging_middleware,
    uptime_seconds,
    utc_now_iso,
    workflow_error_handler,
)
from dealflow.database import POOL_CONFIG

api_prefix = settings.api_prefix

logger = logging.getLogger("dealflow")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")


def _run_migrations_if_configured() -> None:
    if not settings.run_migrations_on_start:
        return

    # Tests build the schema from metadata.
    if (settings.environment or "").lower() == "test":
        return

    from alembic import command
    from alembic.config import Config

    backend_root = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(backend_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(backend_root / "alembic"))

    try:
        command.upgrade(alembic_cfg, "head")
        logger.info("migrations_applied")
    except Exception as e:
        # Keep the API up; DB-backed endpoints will fail and surface the issue.
        logger.error("migrations_failed error=%s", str(e))


@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info(
        "runtime_config",
        extra={
            "pid": os.getpid(),
            "environment": settings.environment,
            "db_pool": POOL_CONFIG,
            "email_enabled": bool(settings.resend_api_key),
        },
    )
    _run_migrations_if_configured()
    yield


app = FastAPI(
    title=settings.app_name,
    docs_url="/docs" if settings.enable_docs else None,
    redoc_url="/redoc" if settings.enable_docs else None,
    openapi_url=(f"{api_prefix}/openapi.json" if api_prefix else "/openapi.json")
    if settings.enable_docs
    else None,
    lifespan=lifespan,
)

# Expose logger for middleware without creating circular imports.
app.state.logger = logger

app.add_exception_handler(WorkflowError, workflow_error_handler)
app.add_exception_handler(Exception, global_exception_handler)

# Request-level logging + request correlation id.
app.middleware("http")(request_logging_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=api_prefix)


@app.get("/", tags=["meta"])
def root():
    docs_path = (
        (f"{api_prefix}/openapi.json" if api_prefix else "/openapi.json")
        if settings.enable_docs
        else None
    )
    return {"message": settings.app_name, "docs": docs_path}


@app.get("/health", tags=["meta"])
@app.get("/healthz", tags=["meta"])
def healthcheck():
    """Liveness only; see the API health route for the database check."""

    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.environment,
        "time": utc_now_iso(),
        "uptime_seconds": round(uptime_seconds(), 2),
        "version": settings.build_version,
    }
