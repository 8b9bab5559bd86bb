from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from dealflow import models
from dealflow.models.domain import DealStage
from dealflow.services.stages import ESCAPE_STAGES, STAGE_ORDER, TERMINAL_STAGES


def _build_transition_table() -> dict[DealStage, tuple[DealStage, ...]]:
    """Forward one step, back to any earlier submitted stage, or escape.

    ``draft`` is only ever a starting point: once submitted, a deal can be
    sent back for more documents but never returned to the owner's draft.
    """

    table: dict[DealStage, tuple[DealStage, ...]] = {}
    for stage in DealStage:
        if stage in TERMINAL_STAGES:
            table[stage] = ()
            continue
        index = STAGE_ORDER.index(stage)
        forward = (STAGE_ORDER[index + 1],)
        backward = tuple(reversed(STAGE_ORDER[1:index]))
        table[stage] = forward + backward + ESCAPE_STAGES
    return table


VALID_TRANSITIONS: dict[DealStage, tuple[DealStage, ...]] = _build_transition_table()


def can_transition_to(current: DealStage, target: DealStage) -> bool:
    if current == target:
        return False
    return target in VALID_TRANSITIONS[current]


def get_valid_next_stages(current: DealStage) -> list[DealStage]:
    return list(VALID_TRANSITIONS[current])


def get_forward_transitions(current: DealStage) -> list[DealStage]:
    """Valid targets further along the canonical order (no regressions, no escapes)."""

    if current not in STAGE_ORDER:
        return []
    index = STAGE_ORDER.index(current)
    return [
        stage
        for stage in VALID_TRANSITIONS[current]
        if stage in STAGE_ORDER and STAGE_ORDER.index(stage) > index
    ]


@dataclass(frozen=True)
class TransitionResult:
    updated: bool
    rowcount: int


def atomic_transition_deal_stage(
    *,
    db: Session,
    deal_id: int,
    from_stage: DealStage,
    to_stage: DealStage,
    updates: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> TransitionResult:
    """Apply a stage change with a single conditional UPDATE:

        UPDATE deals
        SET stage = :to_stage, version = version + 1, ...
        WHERE id = :deal_id AND stage = :from_stage

    A concurrent writer that moved the deal first makes this a no-op
    (``updated=False``) instead of silently overwriting its stage.
    Callers control commit/rollback.
    """

    if now is None:
        now = datetime.now(timezone.utc)

    update_values: dict[str, Any] = {
        "stage": to_stage,
        "version": models.Deal.version + 1,
        "updated_at": now,
    }
    if updates:
        update_values.update(updates)

    rowcount = (
        db.query(models.Deal)
        .filter(models.Deal.id == int(deal_id))
        .filter(models.Deal.stage == from_stage)
        .update(update_values, synchronize_session=False)
    )

    return TransitionResult(updated=rowcount > 0, rowcount=int(rowcount or 0))
