import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dealflow.config import settings
from dealflow.core.observability import uptime_seconds, utc_now_iso
from dealflow.database import get_db, ping

router = APIRouter(prefix="/health", tags=["health"])

logger = logging.getLogger("dealflow")


@router.get("", summary="Healthcheck")
def healthcheck(db: Session = Depends(get_db)):
    """Liveness plus a database ping. Keep payload stable for monitoring systems."""

    database = "ok"
    try:
        ping(db)
    except SQLAlchemyError as exc:
        logger.warning("health_db_unavailable", extra={"error": str(exc)})
        database = "unavailable"

    return {
        "status": "ok" if database == "ok" else "degraded",
        "service": settings.app_name,
        "environment": settings.environment,
        "database": database,
        "time": utc_now_iso(),
        "uptime_seconds": round(uptime_seconds(), 2),
        "version": settings.build_version,
    }
