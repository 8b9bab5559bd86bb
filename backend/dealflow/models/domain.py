# ruff: noqa: E501
import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealflow.database import Base


class RoleName(PyEnum):
    admin = "admin"
    client = "client"
    partner = "partner"
    legal = "legal"


class DealStage(PyEnum):
    draft = "draft"
    qualified = "qualified"
    documents_requested = "documents_requested"
    documents_in_review = "documents_in_review"
    due_diligence = "due_diligence"
    term_sheet = "term_sheet"
    negotiation = "negotiation"
    closing = "closing"
    funded = "funded"
    declined = "declined"
    withdrawn = "withdrawn"


class HandoffTarget(PyEnum):
    legal = "legal"
    optma = "optma"  # funding-partner operations team


class ReleaseStatus(PyEnum):
    not_ready = "not_ready"
    ready_for_release = "ready_for_release"
    released = "released"
    rejected = "rejected"


class PartnerReleaseStatus(PyEnum):
    pending = "pending"
    interested = "interested"
    reviewing = "reviewing"
    due_diligence = "due_diligence"
    term_sheet = "term_sheet"
    passed = "passed"


class AccessLevel(PyEnum):
    summary = "summary"
    full = "full"
    documents = "documents"


class PartnerAction(PyEnum):
    express_interest = "express_interest"
    pass_deal = "pass"
    start_due_diligence = "start_due_diligence"
    add_note = "add_note"


class PartnerStatus(PyEnum):
    active = "active"
    inactive = "inactive"
    pending = "pending"


class EmailFrequency(PyEnum):
    immediate = "immediate"
    daily_digest = "daily_digest"
    weekly_digest = "weekly_digest"
    off = "off"


class DocumentStatus(PyEnum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ChecklistItemStatus(PyEnum):
    pending = "pending"
    uploaded = "uploaded"
    approved = "approved"
    rejected = "rejected"


class Role(Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[RoleName] = mapped_column(
        Enum(RoleName, native_enum=False), unique=True, nullable=False
    )
    description: Mapped[str | None] = mapped_column(String(255))

    users = relationship("User", back_populates="role")


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role_id: Mapped[int] = mapped_column(ForeignKey("roles.id"), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    role = relationship("Role", back_populates="users", lazy="joined")


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    industry: Mapped[str | None] = mapped_column(String(128))
    location: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User")
    deals = relationship("Deal", back_populates="company")


class Deal(Base):
    __tablename__ = "deals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deal_uuid: Mapped[str] = mapped_column(
        String(36), unique=True, default=lambda: str(uuid.uuid4()), index=True
    )
    # Human-readable code issued at qualification (e.g. "QC-2026-0042").
    qualification_code: Mapped[str | None] = mapped_column(String(64), unique=True, index=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    stage: Mapped[DealStage] = mapped_column(
        Enum(DealStage, native_enum=False), default=DealStage.draft, nullable=False, index=True
    )

    # Handoff routing; handed_off_at/handed_off_by are set and cleared together.
    handoff_to: Mapped[HandoffTarget | None] = mapped_column(
        Enum(HandoffTarget, native_enum=False), nullable=True, index=True
    )
    handed_off_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    handed_off_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    release_status: Mapped[ReleaseStatus] = mapped_column(
        Enum(ReleaseStatus, native_enum=False), default=ReleaseStatus.not_ready, nullable=False
    )
    release_partner: Mapped[str | None] = mapped_column(String(255), nullable=True)
    release_notes: Mapped[str | None] = mapped_column(Text)
    release_authorized_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    release_authorized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    internal_notes: Mapped[str | None] = mapped_column(Text)
    assigned_to: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    # Qualification data used by partner matching. Opaque to the stage workflow.
    funding_amount: Mapped[str | None] = mapped_column(String(64))
    asset_classes: Mapped[list | None] = mapped_column(JSON)
    geographies: Mapped[list | None] = mapped_column(JSON)
    overall_score: Mapped[int | None] = mapped_column(Integer)

    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    company = relationship("Company", back_populates="deals", lazy="joined")
    documents = relationship("Document", back_populates="deal")
    releases = relationship("DealRelease", back_populates="deal")


class Document(Base):
    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deal_id: Mapped[int] = mapped_column(ForeignKey("deals.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(64))
    storage_path: Mapped[str | None] = mapped_column(String(512))
    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus, native_enum=False), default=DocumentStatus.pending, nullable=False
    )
    review_notes: Mapped[str | None] = mapped_column(Text)
    reviewed_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    uploaded_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    deal = relationship("Deal", back_populates="documents")


class DealChecklistItem(Base):
    __tablename__ = "deal_checklist_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deal_id: Mapped[int] = mapped_column(ForeignKey("deals.id"), nullable=False, index=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[ChecklistItemStatus] = mapped_column(
        Enum(ChecklistItemStatus, native_enum=False),
        default=ChecklistItemStatus.pending,
        nullable=False,
    )
    document_id: Mapped[int | None] = mapped_column(ForeignKey("documents.id"), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class FundingPartner(Base):
    __tablename__ = "funding_partners"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    status: Mapped[PartnerStatus] = mapped_column(
        Enum(PartnerStatus, native_enum=False), default=PartnerStatus.active, nullable=False
    )
    primary_contact_email: Mapped[str | None] = mapped_column(String(255))
    focus_asset_classes: Mapped[list | None] = mapped_column(JSON)
    geographic_focus: Mapped[list | None] = mapped_column(JSON)
    min_deal_size: Mapped[str | None] = mapped_column(String(64))
    max_deal_size: Mapped[str | None] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    members = relationship("PartnerMember", back_populates="partner")
    preferences = relationship(
        "PartnerNotificationPreferences", back_populates="partner", uselist=False
    )


class PartnerMember(Base):
    """Explicit binding of a user account to the funding partner it acts for."""

    __tablename__ = "partner_members"
    __table_args__ = (UniqueConstraint("user_id", name="uq_partner_members_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    partner_id: Mapped[int] = mapped_column(ForeignKey("funding_partners.id"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    partner = relationship("FundingPartner", back_populates="members")
    user = relationship("User")


class PartnerNotificationPreferences(Base):
    __tablename__ = "partner_notification_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    partner_id: Mapped[int] = mapped_column(
        ForeignKey("funding_partners.id"), unique=True, nullable=False
    )
    asset_classes: Mapped[list | None] = mapped_column(JSON)
    geographies: Mapped[list | None] = mapped_column(JSON)
    # Amounts or range keys ("500k_2m", "$1M"); parsed at match time.
    min_deal_size: Mapped[str | None] = mapped_column(String(64))
    max_deal_size: Mapped[str | None] = mapped_column(String(64))
    min_score: Mapped[int | None] = mapped_column(Integer)
    email_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    in_app_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email_frequency: Mapped[EmailFrequency] = mapped_column(
        Enum(EmailFrequency, native_enum=False), default=EmailFrequency.immediate, nullable=False
    )
    notification_email: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    partner = relationship("FundingPartner", back_populates="preferences")


class DealRelease(Base):
    __tablename__ = "deal_releases"
    __table_args__ = (UniqueConstraint("deal_id", "partner_id", name="uq_deal_releases_deal_partner"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deal_id: Mapped[int] = mapped_column(ForeignKey("deals.id"), nullable=False, index=True)
    partner_id: Mapped[int] = mapped_column(ForeignKey("funding_partners.id"), nullable=False, index=True)
    released_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    released_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    release_notes: Mapped[str | None] = mapped_column(Text)
    access_level: Mapped[AccessLevel] = mapped_column(
        Enum(AccessLevel, native_enum=False), default=AccessLevel.summary, nullable=False
    )
    status: Mapped[PartnerReleaseStatus] = mapped_column(
        Enum(PartnerReleaseStatus, native_enum=False),
        default=PartnerReleaseStatus.pending,
        nullable=False,
        index=True,
    )
    first_viewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    interest_expressed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    passed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    pass_reason: Mapped[str | None] = mapped_column(Text)
    partner_notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    deal = relationship("Deal", back_populates="releases")
    partner = relationship("FundingPartner", lazy="joined")


class PartnerAccessLog(Base):
    __tablename__ = "partner_access_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    release_id: Mapped[int] = mapped_column(ForeignKey("deal_releases.id"), nullable=False, index=True)
    partner_id: Mapped[int] = mapped_column(ForeignKey("funding_partners.id"), nullable=False, index=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    details: Mapped[dict | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Activity(Base):
    """Append-only deal audit trail."""

    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deal_id: Mapped[int | None] = mapped_column(ForeignKey("deals.id"), nullable=True, index=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    details: Mapped[dict | None] = mapped_column(JSON)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    deal_id: Mapped[int | None] = mapped_column(ForeignKey("deals.id"), nullable=True, index=True)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
