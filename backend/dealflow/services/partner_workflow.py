"""Partner-side operations on deal releases.

The acting partner always comes from the caller's membership binding, never
from request input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from dealflow import models
from dealflow.core.errors import Forbidden, InvalidTransition, NotFound, ValidationFailed
from dealflow.models.domain import AccessLevel, EmailFrequency, PartnerAction, PartnerReleaseStatus
from dealflow.services.activity import record_activity, record_partner_access
from dealflow.services.best_effort import best_effort
from dealflow.services.deal_matcher import DealSummary, MatchResult, sort_by_match_quality
from dealflow.services.deal_package import build_deal_package_pdf
from dealflow.services.deal_releases import (
    atomic_update_release,
    can_access_package,
    plan_partner_action,
)
from dealflow.services.workflow import Caller, load_deal

logger = logging.getLogger("dealflow.partners")

PACKAGE_LOCKED_MESSAGE = "Express interest to access full deal package"


def resolve_partner(db: Session, caller: Caller) -> models.FundingPartner:
    if caller.partner_id is None:
        raise Forbidden("Partner access required")
    partner = db.get(models.FundingPartner, caller.partner_id)
    if partner is None:
        raise NotFound("Partner not found", {"partner_id": caller.partner_id})
    return partner


def load_release_for_caller(db: Session, caller: Caller, deal_id: int) -> models.DealRelease:
    partner = resolve_partner(db, caller)
    load_deal(db, deal_id)
    release = (
        db.query(models.DealRelease)
        .filter(models.DealRelease.deal_id == deal_id)
        .filter(models.DealRelease.partner_id == partner.id)
        .first()
    )
    if release is not None:
        return release

    released_elsewhere = (
        db.query(models.DealRelease.id).filter(models.DealRelease.deal_id == deal_id).first()
    )
    if released_elsewhere is not None:
        raise Forbidden(
            "This deal has not been released to your organization",
            {"deal_id": deal_id},
        )
    raise NotFound("Deal release not found", {"deal_id": deal_id})


@dataclass(frozen=True)
class PartnerActionResult:
    release_id: int
    action: PartnerAction
    status: PartnerReleaseStatus
    access_level: AccessLevel
    message: str


def record_partner_action(
    db: Session,
    caller: Caller,
    deal_id: int,
    action: Any,
    notes: Optional[str] = None,
    pass_reason: Optional[str] = None,
) -> PartnerActionResult:
    try:
        parsed = action if isinstance(action, PartnerAction) else PartnerAction(str(action))
    except ValueError:
        raise ValidationFailed(f"Invalid action: {action}", {"action": action}) from None

    release = load_release_for_caller(db, caller, deal_id)
    plan = plan_partner_action(
        release,
        parsed,
        notes=notes,
        pass_reason=pass_reason,
        now=datetime.now(timezone.utc),
    )
    if not atomic_update_release(
        db=db, release_id=release.id, allowed_from=plan.rule.allowed_from, values=plan.values
    ):
        db.rollback()
        raise InvalidTransition(
            plan.previous_status.value,
            plan.status.value,
            message="Release was updated by another request; reload and try again",
        )
    db.commit()
    db.refresh(release)

    partner = release.partner
    best_effort(
        "partner_access_log",
        record_partner_access,
        db,
        release_id=release.id,
        partner_id=release.partner_id,
        user_id=caller.user_id,
        action=plan.rule.log_action,
        details={"notes": notes or None, "pass_reason": pass_reason or None},
        rollback=db,
        context={"release_id": release.id},
    )
    best_effort(
        "activity_write",
        record_activity,
        db,
        deal_id=deal_id,
        user_id=caller.user_id,
        action=f"partner_{parsed.value}",
        details={
            "partner_id": release.partner_id,
            "partner_name": partner.name if partner else None,
            "previous_status": plan.previous_status.value,
            "status": plan.status.value,
            "notes": notes or None,
            "pass_reason": pass_reason or None,
        },
        request_id=caller.request_id,
        rollback=db,
        context={"deal_id": deal_id},
    )
    logger.info(
        "partner.action_recorded",
        extra={
            "deal_id": deal_id,
            "partner_id": release.partner_id,
            "partner_action": parsed.value,
            "release_status": plan.status.value,
        },
    )
    return PartnerActionResult(
        release_id=release.id,
        action=parsed,
        status=release.status,
        access_level=release.access_level,
        message=plan.rule.message,
    )


def get_deal_package(db: Session, caller: Caller, deal_id: int) -> tuple[str, bytes]:
    """Return ``(filename, pdf_bytes)`` once the partner has unlocked the package."""

    release = load_release_for_caller(db, caller, deal_id)
    if not can_access_package(release):
        raise Forbidden(
            PACKAGE_LOCKED_MESSAGE,
            {"status": release.status.value, "access_level": release.access_level.value},
        )

    (
        db.query(models.DealRelease)
        .filter(models.DealRelease.id == release.id)
        .update(
            {
                "first_viewed_at": func.coalesce(
                    models.DealRelease.first_viewed_at, datetime.now(timezone.utc)
                )
            },
            synchronize_session=False,
        )
    )
    db.commit()

    deal = load_deal(db, deal_id)
    partner = release.partner
    pdf = build_deal_package_pdf(deal, partner_name=partner.name if partner else None)

    best_effort(
        "partner_access_log",
        record_partner_access,
        db,
        release_id=release.id,
        partner_id=release.partner_id,
        user_id=caller.user_id,
        action="downloaded_package",
        details={"bytes": len(pdf)},
        rollback=db,
        context={"release_id": release.id},
    )
    code = deal.qualification_code or f"deal-{deal.id}"
    return f"{code}-package.pdf", pdf


def get_or_create_preferences(
    db: Session, partner: models.FundingPartner
) -> models.PartnerNotificationPreferences:
    prefs = (
        db.query(models.PartnerNotificationPreferences)
        .filter(models.PartnerNotificationPreferences.partner_id == partner.id)
        .first()
    )
    if prefs is not None:
        return prefs

    prefs = models.PartnerNotificationPreferences(
        partner_id=partner.id,
        email_enabled=True,
        in_app_enabled=True,
        email_frequency=EmailFrequency.immediate,
    )
    db.add(prefs)
    db.commit()
    db.refresh(prefs)
    return prefs


_PREFERENCE_FIELDS = (
    "asset_classes",
    "geographies",
    "min_deal_size",
    "max_deal_size",
    "min_score",
    "email_enabled",
    "in_app_enabled",
    "email_frequency",
    "notification_email",
)


def update_preferences(
    db: Session, caller: Caller, changes: dict[str, Any]
) -> models.PartnerNotificationPreferences:
    partner = resolve_partner(db, caller)
    prefs = get_or_create_preferences(db, partner)
    for key, value in changes.items():
        if key in _PREFERENCE_FIELDS:
            setattr(prefs, key, value)
    db.commit()
    db.refresh(prefs)
    logger.info("partner.preferences_updated", extra={"partner_id": partner.id})
    return prefs


def list_partner_releases(
    db: Session, caller: Caller
) -> list[tuple[models.DealRelease, MatchResult]]:
    partner = resolve_partner(db, caller)
    releases = (
        db.query(models.DealRelease)
        .filter(models.DealRelease.partner_id == partner.id)
        .order_by(models.DealRelease.released_at.desc(), models.DealRelease.id.desc())
        .all()
    )
    prefs = get_or_create_preferences(db, partner)
    return sort_by_match_quality(prefs, releases, summary_of=_release_summary)


def _release_summary(release: models.DealRelease) -> DealSummary:
    return DealSummary.from_deal(release.deal)
