from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from dealflow import models


def record_activity(
    db: Session,
    *,
    deal_id: Optional[int],
    user_id: Optional[int],
    action: str,
    details: Dict[str, Any] | None = None,
    request_id: str | None = None,
) -> int:
    """Append a deal activity entry and commit it. Returns the new row id."""

    entry = models.Activity(
        deal_id=deal_id,
        user_id=user_id,
        action=action,
        details=details or {},
        request_id=request_id,
    )
    db.add(entry)
    db.commit()
    return int(entry.id)


def record_partner_access(
    db: Session,
    *,
    release_id: int,
    partner_id: int,
    user_id: Optional[int],
    action: str,
    details: Dict[str, Any] | None = None,
) -> int:
    """Append a partner-scoped access log entry (views, downloads, decisions)."""

    entry = models.PartnerAccessLog(
        release_id=release_id,
        partner_id=partner_id,
        user_id=user_id,
        action=action,
        details=details or {},
    )
    db.add(entry)
    db.commit()
    return int(entry.id)
