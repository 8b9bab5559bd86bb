"""Admin distribution of deals to funding partners and the alert fan-out."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from dealflow import models
from dealflow.core.errors import NotFound, ValidationFailed
from dealflow.models.domain import AccessLevel, EmailFrequency, PartnerReleaseStatus, PartnerStatus
from dealflow.services import email_sender
from dealflow.services.activity import record_activity
from dealflow.services.best_effort import best_effort
from dealflow.services.deal_matcher import DealSummary, MatchResult, check_match
from dealflow.services.deal_releases import plan_admin_override
from dealflow.services.notifications import create_notification
from dealflow.services.workflow import Caller, load_deal, require_admin

logger = logging.getLogger("dealflow.partners")


@dataclass
class PartnerAlertResult:
    partner_id: int
    partner_name: Optional[str] = None
    matches: bool = False
    match_reasons: tuple[str, ...] = ()
    notification_sent: bool = False
    email_sent: bool = False
    error: Optional[str] = None


def _alert_copy(company: str, match: MatchResult) -> tuple[str, str, str]:
    # A partner without preferences matches everything but has nothing to cite.
    if match.matches and match.match_reasons:
        return (
            "deal_matches_criteria",
            "New Deal Matches Your Criteria",
            f"{company} has been released and matches your investment criteria: "
            f"{', '.join(match.match_reasons)}",
        )
    return ("new_deal_released", "New Deal Released", f"{company} has been released for your review.")


def _member_user_ids(db: Session, partner_id: int) -> list[int]:
    rows = (
        db.query(models.PartnerMember.user_id)
        .join(models.User, models.User.id == models.PartnerMember.user_id)
        .filter(models.PartnerMember.partner_id == partner_id)
        .filter(models.User.active.is_(True))
        .all()
    )
    return [int(r[0]) for r in rows]


def _wants_immediate_email(prefs: Optional[models.PartnerNotificationPreferences]) -> bool:
    if prefs is None:
        return True
    return bool(prefs.email_enabled) and prefs.email_frequency == EmailFrequency.immediate


def _alert_partner(
    db: Session,
    *,
    deal: models.Deal,
    summary: DealSummary,
    partner_id: int,
    send_email: bool,
    result: PartnerAlertResult,
) -> None:
    partner = db.get(models.FundingPartner, partner_id)
    if partner is None:
        raise NotFound("Partner not found", {"partner_id": partner_id})
    result.partner_name = partner.name
    if partner.status != PartnerStatus.active:
        result.error = "Partner is not active"
        logger.info(
            "partner_alert_skipped",
            extra={"deal_id": deal.id, "partner_id": partner.id, "partner_status": partner.status.value},
        )
        return

    prefs = partner.preferences
    match = check_match(prefs, summary)
    result.matches = match.matches
    result.match_reasons = tuple(match.match_reasons)

    if prefs is None or prefs.in_app_enabled:
        type_, title, message = _alert_copy(summary.company_name, match)
        for user_id in _member_user_ids(db, partner.id):
            create_notification(
                db, user_id=user_id, deal_id=deal.id, type=type_, title=title, message=message
            )
            result.notification_sent = True

    if send_email and _wants_immediate_email(prefs):
        recipient = (prefs.notification_email if prefs else None) or partner.primary_contact_email
        if recipient:
            sent = email_sender.send_partner_deal_alert(
                to=recipient,
                partner_name=partner.name,
                deal=summary,
                deal_code=deal.qualification_code or f"DEAL-{deal.id}",
                match=match,
                deal_id=deal.id,
                idempotency_key=f"deal-alert:{deal.id}:{partner.id}",
            )
            result.email_sent = sent.sent


def send_partner_alert(
    db: Session,
    caller: Caller,
    deal_id: int,
    partner_ids: Iterable[int],
    send_email: bool = True,
) -> list[PartnerAlertResult]:
    """Notify each partner about a deal. One partner failing never stops the rest."""

    require_admin(caller)
    ids = list(dict.fromkeys(int(p) for p in partner_ids))
    if not ids:
        raise ValidationFailed("At least one partner is required", {"field": "partner_ids"})
    deal = load_deal(db, deal_id)
    summary = DealSummary.from_deal(deal)

    results: list[PartnerAlertResult] = []
    for partner_id in ids:
        result = PartnerAlertResult(partner_id=partner_id)
        results.append(result)
        try:
            _alert_partner(
                db,
                deal=deal,
                summary=summary,
                partner_id=partner_id,
                send_email=send_email,
                result=result,
            )
        except Exception as exc:
            db.rollback()
            result.error = str(exc)
            logger.exception(
                "partner_alert_failed", extra={"deal_id": deal_id, "partner_id": partner_id}
            )

    best_effort(
        "activity_write",
        record_activity,
        db,
        deal_id=deal_id,
        user_id=caller.user_id,
        action="partner_alert_sent",
        details={
            "partner_ids": ids,
            "matched": [r.partner_id for r in results if r.matches],
            "emailed": [r.partner_id for r in results if r.email_sent],
            "failed": [r.partner_id for r in results if r.error],
        },
        request_id=caller.request_id,
        rollback=db,
        context={"deal_id": deal_id},
    )
    logger.info(
        "deal.partner_alert_sent",
        extra={"deal_id": deal_id, "partners": len(ids), "failed": sum(1 for r in results if r.error)},
    )
    return results


@dataclass
class ReleaseDistribution:
    created: list[int]
    already_released: list[int]
    alerts: list[PartnerAlertResult]


def release_deal_to_partners(
    db: Session,
    caller: Caller,
    deal_id: int,
    partner_ids: Iterable[int],
    *,
    notes: Optional[str] = None,
    send_email: bool = True,
) -> ReleaseDistribution:
    """Create pending release rows for partners that do not have one, then alert them."""

    require_admin(caller)
    deal = load_deal(db, deal_id)
    ids = list(dict.fromkeys(int(p) for p in partner_ids))
    if not ids:
        raise ValidationFailed("At least one partner is required", {"field": "partner_ids"})

    for partner_id in ids:
        partner = db.get(models.FundingPartner, partner_id)
        if partner is None:
            raise NotFound("Partner not found", {"partner_id": partner_id})
        if partner.status != PartnerStatus.active:
            raise ValidationFailed(
                "Partner is not active",
                {"partner_id": partner_id, "status": partner.status.value},
            )

    existing = {
        int(r[0])
        for r in db.query(models.DealRelease.partner_id)
        .filter(models.DealRelease.deal_id == deal.id)
        .filter(models.DealRelease.partner_id.in_(ids))
        .all()
    }
    created = [p for p in ids if p not in existing]
    for partner_id in created:
        db.add(
            models.DealRelease(
                deal_id=deal.id,
                partner_id=partner_id,
                released_by=caller.user_id,
                release_notes=notes or None,
                access_level=AccessLevel.summary,
                status=PartnerReleaseStatus.pending,
            )
        )
    db.commit()

    best_effort(
        "activity_write",
        record_activity,
        db,
        deal_id=deal.id,
        user_id=caller.user_id,
        action="released_to_partners",
        details={"partner_ids": created, "already_released": sorted(existing), "notes": notes or None},
        request_id=caller.request_id,
        rollback=db,
        context={"deal_id": deal.id},
    )

    alerts = send_partner_alert(db, caller, deal.id, created, send_email) if created else []
    return ReleaseDistribution(created=created, already_released=sorted(existing), alerts=alerts)


def override_release(
    db: Session,
    caller: Caller,
    deal_id: int,
    partner_id: int,
    *,
    status: Optional[PartnerReleaseStatus] = None,
    access_level: Optional[AccessLevel] = None,
) -> models.DealRelease:
    require_admin(caller)
    load_deal(db, deal_id)
    release = (
        db.query(models.DealRelease)
        .filter(models.DealRelease.deal_id == deal_id)
        .filter(models.DealRelease.partner_id == partner_id)
        .first()
    )
    if release is None:
        raise NotFound("Deal release not found", {"deal_id": deal_id, "partner_id": partner_id})

    previous = {"status": release.status.value, "access_level": release.access_level.value}
    values = plan_admin_override(release, status=status, access_level=access_level)
    (
        db.query(models.DealRelease)
        .filter(models.DealRelease.id == release.id)
        .update(values, synchronize_session=False)
    )
    db.commit()
    db.refresh(release)

    best_effort(
        "activity_write",
        record_activity,
        db,
        deal_id=deal_id,
        user_id=caller.user_id,
        action="release_overridden",
        details={
            "partner_id": partner_id,
            "previous": previous,
            "status": release.status.value,
            "access_level": release.access_level.value,
        },
        request_id=caller.request_id,
        rollback=db,
        context={"deal_id": deal_id},
    )
    return release
