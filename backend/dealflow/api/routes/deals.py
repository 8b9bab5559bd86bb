from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dealflow import models
from dealflow.api.deps import get_caller, require_roles
from dealflow.database import get_db
from dealflow.schemas import ActivityRead, DealAdminRead, DealRead
from dealflow.services.workflow import Caller, ensure_can_view_deal, load_deal

router = APIRouter(prefix="/deals", tags=["deals"])

_viewer_dep = require_roles(models.RoleName.admin, models.RoleName.client)


@router.get("", response_model=list[DealRead])
def list_deals(
    stage: models.DealStage | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    _viewer=Depends(_viewer_dep),
    caller: Caller = Depends(get_caller),
):
    query = db.query(models.Deal)
    if not caller.is_admin:
        query = query.join(models.Company).filter(models.Company.owner_id == caller.user_id)
    if stage is not None:
        query = query.filter(models.Deal.stage == stage)
    return query.order_by(models.Deal.id.desc()).limit(limit).all()


@router.get("/{deal_id}", response_model=DealAdminRead | DealRead)
def get_deal(
    deal_id: int,
    db: Session = Depends(get_db),
    _viewer=Depends(_viewer_dep),
    caller: Caller = Depends(get_caller),
):
    deal = load_deal(db, deal_id)
    ensure_can_view_deal(caller, deal)
    if caller.is_admin:
        return DealAdminRead.model_validate(deal)
    return DealRead.model_validate(deal)


@router.get("/{deal_id}/activity", response_model=list[ActivityRead])
def deal_activity(
    deal_id: int,
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
    _admin=Depends(require_roles(models.RoleName.admin)),
):
    load_deal(db, deal_id)
    return (
        db.query(models.Activity)
        .filter(models.Activity.deal_id == deal_id)
        .order_by(models.Activity.id.asc())
        .limit(limit)
        .all()
    )
