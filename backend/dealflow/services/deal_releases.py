"""Per-partner deal release state machine and package access policy."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from dealflow import models
from dealflow.core.errors import InvalidTransition
from dealflow.models.domain import AccessLevel, PartnerAction, PartnerReleaseStatus

ACCESS_RANK: dict[AccessLevel, int] = {
    AccessLevel.summary: 0,
    AccessLevel.full: 1,
    AccessLevel.documents: 2,
}

TERMINAL_RELEASE_STATUSES = frozenset({PartnerReleaseStatus.passed})

_ALL_STATUSES = frozenset(PartnerReleaseStatus)


@dataclass(frozen=True)
class ReleaseActionRule:
    allowed_from: frozenset[PartnerReleaseStatus]
    to_status: PartnerReleaseStatus | None
    access_level: AccessLevel | None
    log_action: str
    message: str
    rejection_message: str | None = None


RELEASE_ACTION_RULES: dict[PartnerAction, ReleaseActionRule] = {
    PartnerAction.express_interest: ReleaseActionRule(
        allowed_from=frozenset(
            {
                PartnerReleaseStatus.pending,
                PartnerReleaseStatus.reviewing,
                PartnerReleaseStatus.interested,
            }
        ),
        to_status=PartnerReleaseStatus.interested,
        access_level=AccessLevel.full,
        log_action="expressed_interest",
        message="Interest expressed successfully. You now have full access to the deal package.",
    ),
    PartnerAction.pass_deal: ReleaseActionRule(
        allowed_from=_ALL_STATUSES - TERMINAL_RELEASE_STATUSES,
        to_status=PartnerReleaseStatus.passed,
        access_level=None,
        log_action="passed",
        message="Deal passed. Thank you for your review.",
        rejection_message="This deal has already been passed",
    ),
    PartnerAction.start_due_diligence: ReleaseActionRule(
        allowed_from=frozenset({PartnerReleaseStatus.interested, PartnerReleaseStatus.reviewing}),
        to_status=PartnerReleaseStatus.due_diligence,
        access_level=AccessLevel.documents,
        log_action="started_due_diligence",
        message="Due diligence started. You now have access to all documents.",
        rejection_message="Must express interest before starting due diligence",
    ),
    PartnerAction.add_note: ReleaseActionRule(
        allowed_from=_ALL_STATUSES,
        to_status=None,
        access_level=None,
        log_action="added_note",
        message="Note added successfully.",
    ),
}


def escalate_access(current: AccessLevel, requested: AccessLevel | None) -> AccessLevel:
    """Access levels only ever go up."""

    if requested is None or ACCESS_RANK[requested] <= ACCESS_RANK[current]:
        return current
    return requested


def can_access_package(release: Any) -> bool:
    return ACCESS_RANK[release.access_level] > ACCESS_RANK[AccessLevel.summary] or (
        release.status != PartnerReleaseStatus.pending
    )


@dataclass(frozen=True)
class ReleaseUpdatePlan:
    action: PartnerAction
    rule: ReleaseActionRule
    previous_status: PartnerReleaseStatus
    status: PartnerReleaseStatus
    access_level: AccessLevel
    values: dict[str, Any]


def plan_partner_action(
    release: Any,
    action: PartnerAction,
    *,
    notes: str | None = None,
    pass_reason: str | None = None,
    now: datetime | None = None,
) -> ReleaseUpdatePlan:
    """Validate ``action`` against the release's status and compute the field changes."""

    rule = RELEASE_ACTION_RULES[action]
    current = release.status
    if current not in rule.allowed_from:
        raise InvalidTransition(
            current.value,
            rule.to_status.value if rule.to_status else action.value,
            message=rule.rejection_message
            or f"Cannot {action.value.replace('_', ' ')} a release that is {current.value}",
            context={"action": action.value},
        )

    now = now or datetime.now(timezone.utc)
    status = rule.to_status or current
    access_level = escalate_access(release.access_level, rule.access_level)

    values: dict[str, Any] = {"updated_at": now}
    if status != current:
        values["status"] = status
    if access_level != release.access_level:
        values["access_level"] = access_level

    if action == PartnerAction.express_interest:
        values["interest_expressed_at"] = func.coalesce(
            models.DealRelease.interest_expressed_at, now
        )
    elif action == PartnerAction.pass_deal:
        values["passed_at"] = now
        values["pass_reason"] = pass_reason or None
    elif action == PartnerAction.add_note:
        values["partner_notes"] = notes or None

    return ReleaseUpdatePlan(
        action=action,
        rule=rule,
        previous_status=current,
        status=status,
        access_level=access_level,
        values=values,
    )


def plan_admin_override(
    release: Any,
    *,
    status: PartnerReleaseStatus | None,
    access_level: AccessLevel | None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Admin may set any status; the access level still cannot go down."""

    values: dict[str, Any] = {"updated_at": now or datetime.now(timezone.utc)}
    if status is not None and status != release.status:
        values["status"] = status
    new_access = escalate_access(release.access_level, access_level)
    if status == PartnerReleaseStatus.interested:
        new_access = escalate_access(new_access, AccessLevel.full)
    if status in {PartnerReleaseStatus.due_diligence, PartnerReleaseStatus.term_sheet}:
        new_access = escalate_access(new_access, AccessLevel.documents)
    if new_access != release.access_level:
        values["access_level"] = new_access
    return values


def atomic_update_release(
    *,
    db: Session,
    release_id: int,
    allowed_from: Iterable[PartnerReleaseStatus],
    values: dict[str, Any],
) -> bool:
    """Conditional UPDATE keyed by id and current status. Callers commit."""

    rowcount = (
        db.query(models.DealRelease)
        .filter(models.DealRelease.id == int(release_id))
        .filter(models.DealRelease.status.in_(set(allowed_from)))
        .update(values, synchronize_session=False)
    )
    return bool(rowcount)
