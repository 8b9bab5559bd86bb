from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dealflow.api.deps import get_caller, require_roles
from dealflow.database import get_db
from dealflow.models import RoleName
from dealflow.schemas import (
    DocumentApproveRequest,
    DocumentRejectRequest,
    DocumentReviewRead,
    DocumentReviewResponse,
    DealAdminRead,
    HandoffRequest,
    HandoffResponse,
    InternalNotesRequest,
    ReleaseAuthorizationRequest,
    ReleaseAuthorizationResponse,
    StageAdvanceRequest,
    StageAdvanceResponse,
    StageOverviewResponse,
)
from dealflow.services import workflow as workflow_service
from dealflow.services.stage_transitions import get_forward_transitions, get_valid_next_stages
from dealflow.services.stages import (
    calculate_progress,
    get_action_items,
    get_stage_config,
    is_terminal_stage,
)
from dealflow.services.workflow import Caller

router = APIRouter(prefix="/workflow", tags=["workflow"])

_admin_dep = require_roles(RoleName.admin)


@router.get("/deals/{deal_id}/transitions", response_model=StageOverviewResponse)
def stage_overview(
    deal_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    deal = workflow_service.load_deal(db, deal_id)
    workflow_service.ensure_can_view_deal(caller, deal)
    config = get_stage_config(deal.stage)
    return StageOverviewResponse(
        deal_id=deal.id,
        stage=deal.stage,
        label=config.label,
        description=config.description,
        progress=calculate_progress(deal.stage),
        is_terminal=is_terminal_stage(deal.stage),
        valid_next_stages=get_valid_next_stages(deal.stage) if caller.is_admin else [],
        forward_stages=get_forward_transitions(deal.stage) if caller.is_admin else [],
        action_items=get_action_items(deal.stage, caller.is_admin),
    )


@router.post("/deals/{deal_id}/stage", response_model=StageAdvanceResponse)
def advance_stage(
    deal_id: int,
    payload: StageAdvanceRequest,
    db: Session = Depends(get_db),
    _admin=Depends(_admin_dep),
    caller: Caller = Depends(get_caller),
):
    change = workflow_service.advance_stage(db, caller, deal_id, payload.new_stage)
    return StageAdvanceResponse(
        deal_id=change.deal_id,
        previous_stage=change.previous_stage,
        stage=change.stage,
        message=change.message,
    )


@router.post("/deals/{deal_id}/handoff", response_model=HandoffResponse)
def set_handoff(
    deal_id: int,
    payload: HandoffRequest,
    db: Session = Depends(get_db),
    _admin=Depends(_admin_dep),
    caller: Caller = Depends(get_caller),
):
    deal = workflow_service.set_handoff(db, caller, deal_id, payload.handoff_to, payload.notes)
    return HandoffResponse(
        deal_id=deal.id,
        handoff_to=deal.handoff_to,
        handed_off_at=deal.handed_off_at,
        handed_off_by=deal.handed_off_by,
    )


@router.post("/deals/{deal_id}/release", response_model=ReleaseAuthorizationResponse)
def authorize_release(
    deal_id: int,
    payload: ReleaseAuthorizationRequest,
    db: Session = Depends(get_db),
    _admin=Depends(_admin_dep),
    caller: Caller = Depends(get_caller),
):
    deal = workflow_service.authorize_release(
        db, caller, deal_id, payload.action, partner=payload.partner, notes=payload.notes
    )
    return ReleaseAuthorizationResponse(
        deal_id=deal.id,
        release_status=deal.release_status,
        release_partner=deal.release_partner,
        release_authorized_by=deal.release_authorized_by,
        release_authorized_at=deal.release_authorized_at,
    )


@router.post("/deals/{deal_id}/notes", response_model=DealAdminRead)
def update_internal_notes(
    deal_id: int,
    payload: InternalNotesRequest,
    db: Session = Depends(get_db),
    _admin=Depends(_admin_dep),
    caller: Caller = Depends(get_caller),
):
    return workflow_service.update_internal_notes(db, caller, deal_id, payload.notes)


@router.post("/documents/{document_id}/reject", response_model=DocumentReviewResponse)
def reject_document(
    document_id: int,
    payload: DocumentRejectRequest,
    db: Session = Depends(get_db),
    _admin=Depends(_admin_dep),
    caller: Caller = Depends(get_caller),
):
    document = workflow_service.reject_document(
        db, caller, document_id, payload.reason, payload.checklist_item_id
    )
    return DocumentReviewResponse(document=DocumentReviewRead.model_validate(document))


@router.post("/documents/{document_id}/approve", response_model=DocumentReviewResponse)
def approve_document(
    document_id: int,
    payload: DocumentApproveRequest,
    db: Session = Depends(get_db),
    _admin=Depends(_admin_dep),
    caller: Caller = Depends(get_caller),
):
    document = workflow_service.approve_document(db, caller, document_id, payload.checklist_item_id)
    return DocumentReviewResponse(document=DocumentReviewRead.model_validate(document))
