from dealflow.schemas.deals import ActivityRead, CompanyRead, DealAdminRead, DealRead
from dealflow.schemas.partners import (
    DealReleaseRead,
    MatchRead,
    PartnerActionRequest,
    PartnerActionResponse,
    PartnerAlertRequest,
    PartnerAlertResponse,
    PartnerAlertResultRead,
    PartnerDealRead,
    PartnerPreferencesRead,
    PartnerPreferencesUpdate,
    ReleaseOverrideRequest,
    ReleaseToPartnersRequest,
    ReleaseToPartnersResponse,
)
from dealflow.schemas.workflow import (
    DocumentApproveRequest,
    DocumentRejectRequest,
    DocumentReviewRead,
    DocumentReviewResponse,
    HandoffRequest,
    HandoffResponse,
    InternalNotesRequest,
    ReleaseAuthorizationRequest,
    ReleaseAuthorizationResponse,
    StageAdvanceRequest,
    StageAdvanceResponse,
    StageOverviewResponse,
)

__all__ = [
    "ActivityRead",
    "CompanyRead",
    "DealAdminRead",
    "DealRead",
    "DealReleaseRead",
    "DocumentApproveRequest",
    "DocumentRejectRequest",
    "DocumentReviewRead",
    "DocumentReviewResponse",
    "HandoffRequest",
    "HandoffResponse",
    "InternalNotesRequest",
    "MatchRead",
    "PartnerActionRequest",
    "PartnerActionResponse",
    "PartnerAlertRequest",
    "PartnerAlertResponse",
    "PartnerAlertResultRead",
    "PartnerDealRead",
    "PartnerPreferencesRead",
    "PartnerPreferencesUpdate",
    "ReleaseAuthorizationRequest",
    "ReleaseAuthorizationResponse",
    "ReleaseOverrideRequest",
    "ReleaseToPartnersRequest",
    "ReleaseToPartnersResponse",
    "StageAdvanceRequest",
    "StageAdvanceResponse",
    "StageOverviewResponse",
]
