"""Deal handoff routing (legal / funding-partner operations), independent of stage."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from dealflow import models
from dealflow.core.errors import NotFound, ValidationFailed
from dealflow.models.domain import HandoffTarget


@dataclass(frozen=True)
class HandoffChange:
    previous: HandoffTarget | None
    current: HandoffTarget | None

    @property
    def audit_action(self) -> str:
        if self.current is None:
            return "cleared_handoff"
        return f"handed_off_to_{self.current.value}"


def parse_handoff_target(raw: Any) -> HandoffTarget | None:
    """Accept an enum member, its string value, or None (clear)."""

    if raw is None or isinstance(raw, HandoffTarget):
        return raw
    try:
        return HandoffTarget(str(raw).strip().lower())
    except ValueError:
        allowed = ", ".join(t.value for t in HandoffTarget)
        raise ValidationFailed(
            f"Invalid handoff target. Must be one of: {allowed}, or null",
            {"handoff_to": raw},
        ) from None


def handoff_field_values(
    target: HandoffTarget | None, actor_id: int, now: datetime | None = None
) -> dict[str, Any]:
    """Column values for a handoff; the timestamp and actor are set or cleared together."""

    if target is None:
        return {"handoff_to": None, "handed_off_at": None, "handed_off_by": None}
    return {
        "handoff_to": target,
        "handed_off_at": now or datetime.now(timezone.utc),
        "handed_off_by": actor_id,
    }


def set_handoff(
    *,
    db: Session,
    deal_id: int,
    target: HandoffTarget | None,
    actor_id: int,
    now: datetime | None = None,
) -> HandoffChange:
    """Apply the handoff as one narrow UPDATE keyed by deal id. Callers commit."""

    deal = db.get(models.Deal, deal_id)
    if deal is None:
        raise NotFound("Deal not found", {"deal_id": deal_id})

    previous = deal.handoff_to
    values = handoff_field_values(target, actor_id, now)
    values["version"] = models.Deal.version + 1
    (
        db.query(models.Deal)
        .filter(models.Deal.id == int(deal_id))
        .update(values, synchronize_session=False)
    )
    return HandoffChange(previous=previous, current=target)
