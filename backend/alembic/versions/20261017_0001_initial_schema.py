"""initial deal workflow schema

Revision ID: 20261017_0001
Revises: None
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _enum(*values: str, name: str) -> sa.Enum:
    # Stored as VARCHAR on every dialect so new values never need ALTER TYPE.
    return sa.Enum(*values, name=name, native_enum=False, create_constraint=False)


def _ts(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), **kwargs)


def upgrade() -> None:
    role_enum = _enum("admin", "client", "partner", "legal", name="rolename")
    stage_enum = _enum(
        "draft",
        "qualified",
        "documents_requested",
        "documents_in_review",
        "due_diligence",
        "term_sheet",
        "negotiation",
        "closing",
        "funded",
        "declined",
        "withdrawn",
        name="dealstage",
    )
    handoff_enum = _enum("legal", "optma", name="handofftarget")
    release_enum = _enum("not_ready", "ready_for_release", "released", "rejected", name="releasestatus")
    partner_release_enum = _enum(
        "pending",
        "interested",
        "reviewing",
        "due_diligence",
        "term_sheet",
        "passed",
        name="partnerreleasestatus",
    )
    access_enum = _enum("summary", "full", "documents", name="accesslevel")
    partner_status_enum = _enum("active", "inactive", "pending", name="partnerstatus")
    frequency_enum = _enum("immediate", "daily_digest", "weekly_digest", "off", name="emailfrequency")
    document_enum = _enum("pending", "approved", "rejected", name="documentstatus")
    checklist_enum = _enum("pending", "uploaded", "approved", "rejected", name="checklistitemstatus")

    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", role_enum, nullable=False, unique=True),
        sa.Column("description", sa.String(length=255)),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id"), nullable=False),
        sa.Column("active", sa.Boolean(), server_default=sa.true()),
        _ts("created_at", server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("industry", sa.String(length=128)),
        sa.Column("location", sa.String(length=255)),
        sa.Column("description", sa.Text()),
        _ts("created_at", server_default=sa.func.now()),
    )
    op.create_index("ix_companies_name", "companies", ["name"])
    op.create_index("ix_companies_owner_id", "companies", ["owner_id"])

    op.create_table(
        "deals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("deal_uuid", sa.String(length=36), unique=True),
        sa.Column("qualification_code", sa.String(length=64), unique=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("stage", stage_enum, nullable=False, server_default="draft"),
        sa.Column("handoff_to", handoff_enum, nullable=True),
        _ts("handed_off_at", nullable=True),
        sa.Column("handed_off_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("release_status", release_enum, nullable=False, server_default="not_ready"),
        sa.Column("release_partner", sa.String(length=255), nullable=True),
        sa.Column("release_notes", sa.Text()),
        sa.Column("release_authorized_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        _ts("release_authorized_at", nullable=True),
        sa.Column("internal_notes", sa.Text()),
        sa.Column("assigned_to", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("funding_amount", sa.String(length=64)),
        sa.Column("asset_classes", sa.JSON()),
        sa.Column("geographies", sa.JSON()),
        sa.Column("overall_score", sa.Integer()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        _ts("created_at", server_default=sa.func.now()),
        _ts("updated_at", nullable=True),
    )
    op.create_index("ix_deals_deal_uuid", "deals", ["deal_uuid"])
    op.create_index("ix_deals_qualification_code", "deals", ["qualification_code"])
    op.create_index("ix_deals_company_id", "deals", ["company_id"])
    op.create_index("ix_deals_stage", "deals", ["stage"])
    op.create_index("ix_deals_handoff_to", "deals", ["handoff_to"])

    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("deal_id", sa.Integer(), sa.ForeignKey("deals.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=64)),
        sa.Column("storage_path", sa.String(length=512)),
        sa.Column("status", document_enum, nullable=False, server_default="pending"),
        sa.Column("review_notes", sa.Text()),
        sa.Column("reviewed_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        _ts("reviewed_at", nullable=True),
        sa.Column("uploaded_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        _ts("created_at", server_default=sa.func.now()),
    )
    op.create_index("ix_documents_deal_id", "documents", ["deal_id"])

    op.create_table(
        "deal_checklist_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("deal_id", sa.Integer(), sa.ForeignKey("deals.id"), nullable=False),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("status", checklist_enum, nullable=False, server_default="pending"),
        sa.Column("document_id", sa.Integer(), sa.ForeignKey("documents.id"), nullable=True),
        _ts("updated_at", server_default=sa.func.now()),
    )
    op.create_index("ix_deal_checklist_items_deal_id", "deal_checklist_items", ["deal_id"])

    op.create_table(
        "funding_partners",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("slug", sa.String(length=128), nullable=False, unique=True),
        sa.Column("status", partner_status_enum, nullable=False, server_default="active"),
        sa.Column("primary_contact_email", sa.String(length=255)),
        sa.Column("focus_asset_classes", sa.JSON()),
        sa.Column("geographic_focus", sa.JSON()),
        sa.Column("min_deal_size", sa.String(length=64)),
        sa.Column("max_deal_size", sa.String(length=64)),
        _ts("created_at", server_default=sa.func.now()),
    )
    op.create_index("ix_funding_partners_slug", "funding_partners", ["slug"])

    op.create_table(
        "partner_members",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("partner_id", sa.Integer(), sa.ForeignKey("funding_partners.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        _ts("created_at", server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", name="uq_partner_members_user"),
    )
    op.create_index("ix_partner_members_partner_id", "partner_members", ["partner_id"])

    op.create_table(
        "partner_notification_preferences",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "partner_id",
            sa.Integer(),
            sa.ForeignKey("funding_partners.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("asset_classes", sa.JSON()),
        sa.Column("geographies", sa.JSON()),
        sa.Column("min_deal_size", sa.String(length=64)),
        sa.Column("max_deal_size", sa.String(length=64)),
        sa.Column("min_score", sa.Integer()),
        sa.Column("email_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("in_app_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("email_frequency", frequency_enum, nullable=False, server_default="immediate"),
        sa.Column("notification_email", sa.String(length=255)),
        _ts("created_at", server_default=sa.func.now()),
        _ts("updated_at", nullable=True),
    )

    op.create_table(
        "deal_releases",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("deal_id", sa.Integer(), sa.ForeignKey("deals.id"), nullable=False),
        sa.Column("partner_id", sa.Integer(), sa.ForeignKey("funding_partners.id"), nullable=False),
        sa.Column("released_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        _ts("released_at", server_default=sa.func.now()),
        sa.Column("release_notes", sa.Text()),
        sa.Column("access_level", access_enum, nullable=False, server_default="summary"),
        sa.Column("status", partner_release_enum, nullable=False, server_default="pending"),
        _ts("first_viewed_at", nullable=True),
        _ts("interest_expressed_at", nullable=True),
        _ts("passed_at", nullable=True),
        sa.Column("pass_reason", sa.Text()),
        sa.Column("partner_notes", sa.Text()),
        _ts("created_at", server_default=sa.func.now()),
        _ts("updated_at", nullable=True),
        sa.UniqueConstraint("deal_id", "partner_id", name="uq_deal_releases_deal_partner"),
    )
    op.create_index("ix_deal_releases_deal_id", "deal_releases", ["deal_id"])
    op.create_index("ix_deal_releases_partner_id", "deal_releases", ["partner_id"])
    op.create_index("ix_deal_releases_status", "deal_releases", ["status"])

    op.create_table(
        "partner_access_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("release_id", sa.Integer(), sa.ForeignKey("deal_releases.id"), nullable=False),
        sa.Column("partner_id", sa.Integer(), sa.ForeignKey("funding_partners.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("details", sa.JSON()),
        _ts("created_at", server_default=sa.func.now()),
    )
    op.create_index("ix_partner_access_logs_release_id", "partner_access_logs", ["release_id"])
    op.create_index("ix_partner_access_logs_partner_id", "partner_access_logs", ["partner_id"])

    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("deal_id", sa.Integer(), sa.ForeignKey("deals.id"), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("details", sa.JSON()),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        _ts("created_at", server_default=sa.func.now()),
    )
    op.create_index("ix_activities_deal_id", "activities", ["deal_id"])
    op.create_index("ix_activities_user_id", "activities", ["user_id"])
    op.create_index("ix_activities_action", "activities", ["action"])
    op.create_index("ix_activities_request_id", "activities", ["request_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("deal_id", sa.Integer(), sa.ForeignKey("deals.id"), nullable=True),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("created_at", server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_deal_id", "notifications", ["deal_id"])

    roles_table = sa.table(
        "roles",
        sa.column("id", sa.Integer()),
        sa.column("name", sa.String()),
        sa.column("description", sa.String()),
    )
    op.bulk_insert(
        roles_table,
        [
            {"id": 1, "name": "admin", "description": "Deal desk administrator"},
            {"id": 2, "name": "client", "description": "Company submitting deals"},
            {"id": 3, "name": "partner", "description": "Funding partner member"},
            {"id": 4, "name": "legal", "description": "Legal review team"},
        ],
    )


def downgrade() -> None:
    for table in (
        "notifications",
        "activities",
        "partner_access_logs",
        "deal_releases",
        "partner_notification_preferences",
        "partner_members",
        "funding_partners",
        "deal_checklist_items",
        "documents",
        "deals",
        "companies",
        "users",
        "roles",
    ):
        op.drop_table(table)
