from dealflow.models.domain import (  # noqa: F401
    AccessLevel,
    Activity,
    ChecklistItemStatus,
    Company,
    Deal,
    DealChecklistItem,
    DealRelease,
    DealStage,
    Document,
    DocumentStatus,
    EmailFrequency,
    FundingPartner,
    HandoffTarget,
    Notification,
    PartnerAccessLog,
    PartnerAction,
    PartnerMember,
    PartnerNotificationPreferences,
    PartnerReleaseStatus,
    PartnerStatus,
    ReleaseStatus,
    Role,
    RoleName,
    User,
)
