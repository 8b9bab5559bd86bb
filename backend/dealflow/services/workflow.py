"""
Admin-side workflow operations on deals.

Each operation takes the acting ``Caller`` explicitly and runs: authorize,
load, validate, apply the primary mutation and commit, then write the audit
entry and notifications as best-effort side effects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from dealflow import models
from dealflow.core.errors import Forbidden, InvalidTransition, NotFound, ValidationFailed
from dealflow.models.domain import (
    ChecklistItemStatus,
    DealStage,
    DocumentStatus,
    HandoffTarget,
    ReleaseStatus,
    RoleName,
)
from dealflow.services import handoff as handoff_router
from dealflow.services.activity import record_activity
from dealflow.services.best_effort import best_effort
from dealflow.services.notifications import deal_owner_id, notify_deal_owner
from dealflow.services.stage_transitions import atomic_transition_deal_stage, can_transition_to
from dealflow.services.stages import (
    get_label,
    get_stage_change_notification_title,
    get_transition_message,
)

logger = logging.getLogger("dealflow.workflow")

RELEASE_ACTIONS = (ReleaseStatus.ready_for_release, ReleaseStatus.released, ReleaseStatus.rejected)


@dataclass(frozen=True)
class Caller:
    """Authenticated identity threaded through every workflow call."""

    user_id: int
    role: RoleName
    partner_id: Optional[int] = None
    request_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.admin


def require_admin(caller: Caller) -> None:
    if not caller.is_admin:
        raise Forbidden("Admin access required")


def load_deal(db: Session, deal_id: int) -> models.Deal:
    deal = db.get(models.Deal, deal_id)
    if deal is None:
        raise NotFound("Deal not found", {"deal_id": deal_id})
    return deal


def ensure_can_view_deal(caller: Caller, deal: models.Deal) -> None:
    if caller.is_admin or deal_owner_id(deal) == caller.user_id:
        return
    raise Forbidden("You do not have access to this deal")


def _parse_enum(enum_cls, raw: Any, field: str):
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(str(raw))
    except ValueError:
        raise ValidationFailed(f"Invalid {field}: {raw}", {field: raw}) from None


def _audit(db: Session, caller: Caller, deal_id: int | None, action: str, details: dict) -> None:
    best_effort(
        "activity_write",
        record_activity,
        db,
        deal_id=deal_id,
        user_id=caller.user_id,
        action=action,
        details=details,
        request_id=caller.request_id,
        rollback=db,
        context={"deal_id": deal_id, "action": action},
    )


def _notify_owner(db: Session, deal: models.Deal, *, type: str, title: str, message: str) -> None:
    best_effort(
        "owner_notification",
        notify_deal_owner,
        db,
        deal,
        type=type,
        title=title,
        message=message,
        rollback=db,
        context={"deal_id": deal.id, "notification_type": type},
    )


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StageChange:
    deal_id: int
    previous_stage: DealStage
    stage: DealStage
    message: str


def advance_stage(db: Session, caller: Caller, deal_id: int, new_stage: Any) -> StageChange:
    require_admin(caller)
    deal = load_deal(db, deal_id)
    target = _parse_enum(DealStage, new_stage, "stage")
    current = deal.stage

    if not can_transition_to(current, target):
        raise InvalidTransition(
            current.value,
            target.value,
            message=f"Cannot transition from {get_label(current)} to {get_label(target)}",
        )

    result = atomic_transition_deal_stage(
        db=db, deal_id=deal.id, from_stage=current, to_stage=target, now=_now()
    )
    if not result.updated:
        db.rollback()
        raise InvalidTransition(
            current.value,
            target.value,
            message="Deal stage was changed by another request; reload and try again",
        )
    db.commit()
    db.refresh(deal)

    _audit(
        db,
        caller,
        deal.id,
        "stage_changed",
        {"from_stage": current.value, "to_stage": target.value},
    )
    _notify_owner(
        db,
        deal,
        type="stage_change",
        title=get_stage_change_notification_title(target),
        message=get_transition_message(target),
    )
    logger.info(
        "deal.stage_advanced",
        extra={"deal_id": deal.id, "from_stage": current.value, "to_stage": target.value},
    )
    return StageChange(
        deal_id=deal.id,
        previous_stage=current,
        stage=target,
        message=f"Stage changed from {get_label(current)} to {get_label(target)}",
    )


def set_handoff(
    db: Session,
    caller: Caller,
    deal_id: int,
    target: Any,
    notes: Optional[str] = None,
) -> models.Deal:
    require_admin(caller)
    parsed: HandoffTarget | None = handoff_router.parse_handoff_target(target)
    change = handoff_router.set_handoff(
        db=db, deal_id=deal_id, target=parsed, actor_id=caller.user_id, now=_now()
    )
    db.commit()
    deal = load_deal(db, deal_id)
    db.refresh(deal)

    _audit(
        db,
        caller,
        deal.id,
        change.audit_action,
        {
            "previous_handoff": change.previous.value if change.previous else None,
            "new_handoff": change.current.value if change.current else None,
            "notes": notes or None,
        },
    )
    logger.info(
        "deal.handoff_set",
        extra={"deal_id": deal.id, "handoff_to": parsed.value if parsed else None},
    )
    return deal


_RELEASE_NOTIFICATIONS = {
    ReleaseStatus.ready_for_release: (
        "Offering Ready for Release",
        "Your offering for {company} has been marked as ready for partner release.",
    ),
    ReleaseStatus.released: (
        "Offering Released to Partner",
        "Your offering for {company} has been released to {partner}.",
    ),
    ReleaseStatus.rejected: (
        "Offering Release Rejected",
        "Your offering for {company} was not approved for partner release at this time.",
    ),
}


def authorize_release(
    db: Session,
    caller: Caller,
    deal_id: int,
    action: Any,
    partner: Optional[str] = None,
    notes: Optional[str] = None,
) -> models.Deal:
    require_admin(caller)
    status = _parse_enum(ReleaseStatus, action, "action")
    if status not in RELEASE_ACTIONS:
        raise ValidationFailed(
            "Invalid action. Must be one of: ready_for_release, released, rejected",
            {"action": status.value},
        )
    deal = load_deal(db, deal_id)
    previous = deal.release_status

    values: dict[str, Any] = {
        "release_status": status,
        "release_notes": notes or None,
        "release_authorized_by": caller.user_id,
        "release_authorized_at": _now(),
        "version": models.Deal.version + 1,
    }
    if partner and status in {ReleaseStatus.released, ReleaseStatus.ready_for_release}:
        values["release_partner"] = partner
    (
        db.query(models.Deal)
        .filter(models.Deal.id == deal.id)
        .update(values, synchronize_session=False)
    )
    db.commit()
    db.refresh(deal)

    _audit(
        db,
        caller,
        deal.id,
        f"release_{status.value}",
        {
            "previous_release_status": previous.value,
            "release_status": status.value,
            "partner": partner or None,
            "notes": notes or None,
        },
    )

    title, template = _RELEASE_NOTIFICATIONS[status]
    company = deal.company.name if deal.company else "your company"
    message = template.format(company=company, partner=partner or "our partner network")
    if status == ReleaseStatus.rejected and notes:
        message = f"{message} Reason: {notes}"
    _notify_owner(db, deal, type="release_status", title=title, message=message)

    logger.info("deal.release_authorized", extra={"deal_id": deal.id, "release_status": status.value})
    return deal


def update_internal_notes(db: Session, caller: Caller, deal_id: int, notes: Optional[str]) -> models.Deal:
    require_admin(caller)
    deal = load_deal(db, deal_id)
    (
        db.query(models.Deal)
        .filter(models.Deal.id == deal.id)
        .update(
            {"internal_notes": notes or None, "version": models.Deal.version + 1},
            synchronize_session=False,
        )
    )
    db.commit()
    db.refresh(deal)
    _audit(db, caller, deal.id, "internal_notes_updated", {"length": len(notes or "")})
    return deal


def _load_document(db: Session, document_id: int) -> models.Document:
    document = db.get(models.Document, document_id)
    if document is None:
        raise NotFound("Document not found", {"document_id": document_id})
    return document


def _load_checklist_item(db: Session, document: models.Document, item_id: int) -> models.DealChecklistItem:
    item = db.get(models.DealChecklistItem, item_id)
    if item is None or item.deal_id != document.deal_id:
        raise NotFound("Checklist item not found", {"checklist_item_id": item_id})
    return item


def reject_document(
    db: Session,
    caller: Caller,
    document_id: int,
    reason: str,
    checklist_item_id: Optional[int] = None,
) -> models.Document:
    require_admin(caller)
    if not (reason or "").strip():
        raise ValidationFailed("A rejection reason is required", {"field": "reason"})
    document = _load_document(db, document_id)
    item = _load_checklist_item(db, document, checklist_item_id) if checklist_item_id else None

    document.status = DocumentStatus.rejected
    document.review_notes = reason.strip()
    document.reviewed_by = caller.user_id
    document.reviewed_at = _now()
    if item is not None:
        item.status = ChecklistItemStatus.pending
        item.document_id = None
    db.commit()
    db.refresh(document)

    _audit(
        db,
        caller,
        document.deal_id,
        "document_rejected",
        {
            "document_id": document.id,
            "document_name": document.name,
            "reason": document.review_notes,
            "checklist_item_id": checklist_item_id,
        },
    )
    deal = db.get(models.Deal, document.deal_id)
    if deal is not None:
        _notify_owner(
            db,
            deal,
            type="document_rejected",
            title="Document Requires Revision",
            message=f'Your document "{document.name}" requires revision: {document.review_notes}',
        )
    logger.info("document.rejected", extra={"document_id": document.id, "deal_id": document.deal_id})
    return document


def approve_document(
    db: Session,
    caller: Caller,
    document_id: int,
    checklist_item_id: Optional[int] = None,
) -> models.Document:
    require_admin(caller)
    document = _load_document(db, document_id)
    item = _load_checklist_item(db, document, checklist_item_id) if checklist_item_id else None

    document.status = DocumentStatus.approved
    document.review_notes = None
    document.reviewed_by = caller.user_id
    document.reviewed_at = _now()
    if item is not None:
        item.status = ChecklistItemStatus.approved
        item.document_id = document.id
    db.commit()
    db.refresh(document)

    _audit(
        db,
        caller,
        document.deal_id,
        "document_approved",
        {
            "document_id": document.id,
            "document_name": document.name,
            "checklist_item_id": checklist_item_id,
        },
    )
    deal = db.get(models.Deal, document.deal_id)
    if deal is not None:
        _notify_owner(
            db,
            deal,
            type="document_approved",
            title="Document Approved",
            message=f'Your document "{document.name}" has been reviewed and approved.',
        )
    logger.info("document.approved", extra={"document_id": document.id, "deal_id": document.deal_id})
    return document
