from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.orm import Session

from dealflow import models


def create_notification(
    db: Session,
    *,
    user_id: int,
    deal_id: Optional[int],
    type: str,
    title: str,
    message: str,
) -> int:
    notification = models.Notification(
        user_id=user_id,
        deal_id=deal_id,
        type=type,
        title=title,
        message=message,
        read=False,
    )
    db.add(notification)
    db.commit()
    return int(notification.id)


def deal_owner_id(deal: Any) -> Optional[int]:
    company = getattr(deal, "company", None)
    return getattr(company, "owner_id", None)


def notify_deal_owner(
    db: Session, deal: Any, *, type: str, title: str, message: str
) -> Optional[int]:
    owner_id = deal_owner_id(deal)
    if owner_id is None:
        return None
    return create_notification(
        db, user_id=owner_id, deal_id=deal.id, type=type, title=title, message=message
    )
