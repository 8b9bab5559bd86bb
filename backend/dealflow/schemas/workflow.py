from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from dealflow.models.domain import DealStage, DocumentStatus, HandoffTarget, ReleaseStatus

ReleaseActionValue = Literal["ready_for_release", "released", "rejected"]


class StageAdvanceRequest(BaseModel):
    new_stage: DealStage


class StageAdvanceResponse(BaseModel):
    deal_id: int
    previous_stage: DealStage
    stage: DealStage
    message: str


class StageOverviewResponse(BaseModel):
    deal_id: int
    stage: DealStage
    label: str
    description: str
    progress: int
    is_terminal: bool
    valid_next_stages: list[DealStage]
    forward_stages: list[DealStage]
    action_items: list[str]


class HandoffRequest(BaseModel):
    handoff_to: HandoffTarget | None = None
    notes: str | None = Field(default=None, max_length=4000)


class HandoffResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ok: bool = True
    deal_id: int
    handoff_to: HandoffTarget | None
    handed_off_at: datetime | None
    handed_off_by: int | None


class ReleaseAuthorizationRequest(BaseModel):
    action: ReleaseActionValue
    partner: str | None = Field(default=None, max_length=255)
    notes: str | None = Field(default=None, max_length=4000)


class ReleaseAuthorizationResponse(BaseModel):
    deal_id: int
    release_status: ReleaseStatus
    release_partner: str | None
    release_authorized_by: int | None
    release_authorized_at: datetime | None


class InternalNotesRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=20000)


class DocumentRejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=4000)
    checklist_item_id: int | None = None


class DocumentApproveRequest(BaseModel):
    checklist_item_id: int | None = None


class DocumentReviewRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: DocumentStatus
    review_notes: str | None


class DocumentReviewResponse(BaseModel):
    document: DocumentReviewRead
