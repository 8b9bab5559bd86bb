from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dealflow import models
from dealflow.api.deps import get_caller, require_roles
from dealflow.database import get_db
from dealflow.schemas import (
    DealReleaseRead,
    PartnerAlertRequest,
    PartnerAlertResponse,
    PartnerAlertResultRead,
    ReleaseOverrideRequest,
    ReleaseToPartnersRequest,
    ReleaseToPartnersResponse,
)
from dealflow.services import partner_alerts
from dealflow.services.workflow import Caller

router = APIRouter(prefix="/admin", tags=["admin"])

_admin_dep = require_roles(models.RoleName.admin)


def _result_read(result: partner_alerts.PartnerAlertResult) -> PartnerAlertResultRead:
    return PartnerAlertResultRead(
        partner_id=result.partner_id,
        partner_name=result.partner_name,
        matches=result.matches,
        match_reasons=list(result.match_reasons),
        notification_sent=result.notification_sent,
        email_sent=result.email_sent,
        error=result.error,
    )


@router.post("/partner-alerts", response_model=PartnerAlertResponse)
def send_partner_alert(
    payload: PartnerAlertRequest,
    db: Session = Depends(get_db),
    _admin=Depends(_admin_dep),
    caller: Caller = Depends(get_caller),
):
    results = partner_alerts.send_partner_alert(
        db, caller, payload.deal_id, payload.partner_ids, payload.send_email
    )
    return PartnerAlertResponse(results=[_result_read(r) for r in results])


@router.post("/deals/{deal_id}/releases", response_model=ReleaseToPartnersResponse)
def release_to_partners(
    deal_id: int,
    payload: ReleaseToPartnersRequest,
    db: Session = Depends(get_db),
    _admin=Depends(_admin_dep),
    caller: Caller = Depends(get_caller),
):
    outcome = partner_alerts.release_deal_to_partners(
        db,
        caller,
        deal_id,
        payload.partner_ids,
        notes=payload.notes,
        send_email=payload.send_email,
    )
    return ReleaseToPartnersResponse(
        created=outcome.created,
        already_released=outcome.already_released,
        alerts=[_result_read(r) for r in outcome.alerts],
    )


@router.post("/deals/{deal_id}/releases/{partner_id}/override", response_model=DealReleaseRead)
def override_release(
    deal_id: int,
    partner_id: int,
    payload: ReleaseOverrideRequest,
    db: Session = Depends(get_db),
    _admin=Depends(_admin_dep),
    caller: Caller = Depends(get_caller),
):
    return partner_alerts.override_release(
        db,
        caller,
        deal_id,
        partner_id,
        status=payload.status,
        access_level=payload.access_level,
    )
