from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from dealflow import models
from dealflow.api.deps import get_caller, require_roles
from dealflow.database import get_db
from dealflow.schemas import (
    MatchRead,
    PartnerActionRequest,
    PartnerActionResponse,
    PartnerDealRead,
    PartnerPreferencesRead,
    PartnerPreferencesUpdate,
)
from dealflow.services import partner_workflow
from dealflow.services.workflow import Caller

router = APIRouter(prefix="/partner", tags=["partner"])

_partner_dep = require_roles(models.RoleName.partner)


@router.get("/deals", response_model=list[PartnerDealRead])
def list_partner_deals(
    db: Session = Depends(get_db),
    _partner=Depends(_partner_dep),
    caller: Caller = Depends(get_caller),
):
    rows = partner_workflow.list_partner_releases(db, caller)
    out: list[PartnerDealRead] = []
    for release, match in rows:
        deal = release.deal
        out.append(
            PartnerDealRead(
                release_id=release.id,
                deal_id=deal.id,
                company_name=deal.company.name if deal.company else None,
                qualification_code=deal.qualification_code,
                stage=deal.stage,
                funding_amount=deal.funding_amount,
                overall_score=deal.overall_score,
                status=release.status,
                access_level=release.access_level,
                released_at=release.released_at,
                match=MatchRead(
                    matches=match.matches,
                    match_reasons=match.match_reasons,
                    mismatches=match.mismatches,
                ),
            )
        )
    return out


@router.post("/deals/{deal_id}/actions", response_model=PartnerActionResponse)
def record_partner_action(
    deal_id: int,
    payload: PartnerActionRequest,
    db: Session = Depends(get_db),
    _partner=Depends(_partner_dep),
    caller: Caller = Depends(get_caller),
):
    result = partner_workflow.record_partner_action(
        db, caller, deal_id, payload.action, notes=payload.notes, pass_reason=payload.pass_reason
    )
    return PartnerActionResponse(
        status=result.status, access_level=result.access_level, message=result.message
    )


@router.get("/deals/{deal_id}/package")
def download_deal_package(
    deal_id: int,
    db: Session = Depends(get_db),
    _partner=Depends(_partner_dep),
    caller: Caller = Depends(get_caller),
):
    filename, pdf = partner_workflow.get_deal_package(db, caller, deal_id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/preferences", response_model=PartnerPreferencesRead)
def get_preferences(
    db: Session = Depends(get_db),
    _partner=Depends(_partner_dep),
    caller: Caller = Depends(get_caller),
):
    partner = partner_workflow.resolve_partner(db, caller)
    return partner_workflow.get_or_create_preferences(db, partner)


@router.put("/preferences", response_model=PartnerPreferencesRead)
def update_preferences(
    payload: PartnerPreferencesUpdate,
    db: Session = Depends(get_db),
    _partner=Depends(_partner_dep),
    caller: Caller = Depends(get_caller),
):
    return partner_workflow.update_preferences(db, caller, payload.model_dump(exclude_unset=True))
