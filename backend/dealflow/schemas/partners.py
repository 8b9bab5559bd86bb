from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from dealflow.models.domain import (
    AccessLevel,
    DealStage,
    EmailFrequency,
    PartnerAction,
    PartnerReleaseStatus,
)


class PartnerActionRequest(BaseModel):
    action: PartnerAction
    notes: str | None = Field(default=None, max_length=4000)
    pass_reason: str | None = Field(default=None, max_length=4000)


class PartnerActionResponse(BaseModel):
    success: bool = True
    status: PartnerReleaseStatus
    access_level: AccessLevel
    message: str


class PartnerPreferencesRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    partner_id: int
    asset_classes: list[str] | None = None
    geographies: list[str] | None = None
    min_deal_size: str | None = None
    max_deal_size: str | None = None
    min_score: int | None = None
    email_enabled: bool
    in_app_enabled: bool
    email_frequency: EmailFrequency
    notification_email: str | None = None


class PartnerPreferencesUpdate(BaseModel):
    asset_classes: list[str] | None = None
    geographies: list[str] | None = None
    min_deal_size: str | None = Field(default=None, max_length=64)
    max_deal_size: str | None = Field(default=None, max_length=64)
    min_score: int | None = Field(default=None, ge=0, le=100)
    email_enabled: bool | None = None
    in_app_enabled: bool | None = None
    email_frequency: EmailFrequency | None = None
    notification_email: str | None = Field(default=None, max_length=255)


class MatchRead(BaseModel):
    matches: bool
    match_reasons: list[str]
    mismatches: list[str]


class PartnerDealRead(BaseModel):
    release_id: int
    deal_id: int
    company_name: str | None
    qualification_code: str | None
    stage: DealStage
    funding_amount: str | None
    overall_score: int | None
    status: PartnerReleaseStatus
    access_level: AccessLevel
    released_at: datetime | None
    match: MatchRead


class PartnerAlertRequest(BaseModel):
    deal_id: int
    partner_ids: list[int] = Field(..., min_length=1)
    send_email: bool = True


class PartnerAlertResultRead(BaseModel):
    partner_id: int
    partner_name: str | None
    matches: bool
    match_reasons: list[str]
    notification_sent: bool
    email_sent: bool
    error: str | None = None


class PartnerAlertResponse(BaseModel):
    success: bool = True
    results: list[PartnerAlertResultRead]


class ReleaseToPartnersRequest(BaseModel):
    partner_ids: list[int] = Field(..., min_length=1)
    notes: str | None = Field(default=None, max_length=4000)
    send_email: bool = True


class ReleaseToPartnersResponse(BaseModel):
    created: list[int]
    already_released: list[int]
    alerts: list[PartnerAlertResultRead]


class ReleaseOverrideRequest(BaseModel):
    status: PartnerReleaseStatus | None = None
    access_level: AccessLevel | None = None


class DealReleaseRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    deal_id: int
    partner_id: int
    status: PartnerReleaseStatus
    access_level: AccessLevel
    released_at: datetime | None
    interest_expressed_at: datetime | None
    passed_at: datetime | None
    pass_reason: str | None
    partner_notes: str | None
