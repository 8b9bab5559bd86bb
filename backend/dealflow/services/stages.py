"""Pipeline stage catalog: labels, descriptions and per-actor action items."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from dealflow.models.domain import DealStage

StageOwner = Literal["client", "admin", "both"]


@dataclass(frozen=True)
class StageConfig:
    label: str
    description: str
    owner: StageOwner
    client_actions: tuple[str, ...] = ()
    admin_actions: tuple[str, ...] = ()


STAGE_ORDER: tuple[DealStage, ...] = (
    DealStage.draft,
    DealStage.qualified,
    DealStage.documents_requested,
    DealStage.documents_in_review,
    DealStage.due_diligence,
    DealStage.term_sheet,
    DealStage.negotiation,
    DealStage.closing,
    DealStage.funded,
)

TERMINAL_STAGES: frozenset[DealStage] = frozenset(
    {DealStage.funded, DealStage.declined, DealStage.withdrawn}
)

ESCAPE_STAGES: tuple[DealStage, ...] = (DealStage.declined, DealStage.withdrawn)

STAGE_CONFIG: dict[DealStage, StageConfig] = {
    DealStage.draft: StageConfig(
        label="Draft",
        description="Application in progress",
        owner="client",
        client_actions=("Complete your funding application",),
    ),
    DealStage.qualified: StageConfig(
        label="Submitted",
        description="Application submitted, awaiting document request",
        owner="admin",
        admin_actions=("Review application", "Request documents when ready"),
    ),
    DealStage.documents_requested: StageConfig(
        label="Documents Requested",
        description="Additional documents needed",
        owner="client",
        client_actions=(
            "Upload financial statements",
            "Provide bank statements",
            "Submit loan tape data",
            "Upload performance history",
        ),
        admin_actions=("Monitor document uploads", "Review submitted documents"),
    ),
    DealStage.documents_in_review: StageConfig(
        label="Documents in Review",
        description="Documents being reviewed",
        owner="admin",
        client_actions=("Respond to any follow-up questions",),
        admin_actions=(
            "Review all submitted documents",
            "Approve or reject documents",
            "Request additional information if needed",
        ),
    ),
    DealStage.due_diligence: StageConfig(
        label="Due Diligence",
        description="Detailed review in progress",
        owner="admin",
        client_actions=(
            "Upload loan agreement samples",
            "Provide insurance certificates",
            "Be available for follow-up calls",
        ),
        admin_actions=(
            "Conduct thorough due diligence",
            "Schedule calls as needed",
            "Prepare term sheet",
        ),
    ),
    DealStage.term_sheet: StageConfig(
        label="Term Sheet",
        description="Terms being negotiated",
        owner="both",
        client_actions=("Review proposed terms", "Upload signed term sheet"),
        admin_actions=(
            "Issue term sheet",
            "Address client questions",
            "Negotiate terms as needed",
        ),
    ),
    DealStage.negotiation: StageConfig(
        label="Negotiation",
        description="Final terms being finalized",
        owner="both",
        client_actions=("Review final documents", "Coordinate with legal counsel"),
        admin_actions=("Finalize documentation", "Coordinate legal review"),
    ),
    DealStage.closing: StageConfig(
        label="Closing",
        description="Deal closing in progress",
        owner="both",
        client_actions=(
            "Execute final agreements",
            "Provide board resolutions",
            "Complete closing checklist",
        ),
        admin_actions=("Coordinate closing", "Verify all documents", "Prepare for funding"),
    ),
    DealStage.funded: StageConfig(
        label="Funded", description="Deal successfully funded", owner="admin"
    ),
    DealStage.declined: StageConfig(
        label="Declined", description="Application was not approved", owner="admin"
    ),
    DealStage.withdrawn: StageConfig(
        label="Withdrawn", description="Application withdrawn by applicant", owner="client"
    ),
}


def get_stage_config(stage: DealStage) -> StageConfig:
    return STAGE_CONFIG[stage]


def get_label(stage: DealStage) -> str:
    return STAGE_CONFIG[stage].label


def is_terminal_stage(stage: DealStage) -> bool:
    return stage in TERMINAL_STAGES


def get_action_items(stage: DealStage, is_admin: bool) -> list[str]:
    """Ordered to-do items for the admin or for the deal owner at ``stage``."""

    if is_terminal_stage(stage):
        return []
    config = STAGE_CONFIG[stage]
    return list(config.admin_actions if is_admin else config.client_actions)


def get_stage_index(stage: DealStage) -> int:
    try:
        return STAGE_ORDER.index(stage)
    except ValueError:
        return -1


def calculate_progress(stage: DealStage) -> int:
    """Percentage along the canonical order; 0 for declined/withdrawn."""

    index = get_stage_index(stage)
    if index == -1:
        return 0
    return round(index / (len(STAGE_ORDER) - 1) * 100)


def get_transition_message(to_stage: DealStage) -> str:
    if to_stage == DealStage.declined:
        return "Your application has been declined."
    if to_stage == DealStage.withdrawn:
        return "Your application has been withdrawn."
    if to_stage == DealStage.funded:
        return "Congratulations! Your funding has been completed."
    return f"Your application has moved to {get_label(to_stage)}."


def get_stage_change_notification_title(to_stage: DealStage) -> str:
    if to_stage == DealStage.funded:
        return "Funding Complete!"
    if to_stage == DealStage.declined:
        return "Application Update"
    return f"Stage Updated: {get_label(to_stage)}"
