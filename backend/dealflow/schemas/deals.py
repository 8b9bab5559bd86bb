from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from dealflow.models.domain import DealStage, HandoffTarget, ReleaseStatus


class CompanyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    owner_id: int
    industry: str | None = None
    location: str | None = None


class DealRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    deal_uuid: str
    qualification_code: str | None
    company: CompanyRead
    stage: DealStage
    handoff_to: HandoffTarget | None
    handed_off_at: datetime | None
    handed_off_by: int | None
    release_status: ReleaseStatus
    release_partner: str | None
    funding_amount: str | None
    asset_classes: list[str] | None
    geographies: list[str] | None
    overall_score: int | None
    version: int
    created_at: datetime
    updated_at: datetime | None


class DealAdminRead(DealRead):
    internal_notes: str | None
    release_notes: str | None
    assigned_to: int | None


class ActivityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    deal_id: int | None
    user_id: int | None
    action: str
    details: dict[str, Any] | None
    created_at: datetime
