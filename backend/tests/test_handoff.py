from datetime import datetime, timezone

import pytest

from dealflow import models
from dealflow.core.errors import ValidationFailed
from dealflow.models.domain import HandoffTarget
from dealflow.services import handoff


def test_parse_handoff_target():
    assert handoff.parse_handoff_target(None) is None
    assert handoff.parse_handoff_target("legal") == HandoffTarget.legal
    assert handoff.parse_handoff_target(" OPTMA ") == HandoffTarget.optma
    with pytest.raises(ValidationFailed):
        handoff.parse_handoff_target("underwriting")


def test_field_values_are_set_and_cleared_together():
    now = datetime(2026, 1, 5, tzinfo=timezone.utc)
    assert handoff.handoff_field_values(HandoffTarget.legal, 7, now) == {
        "handoff_to": HandoffTarget.legal,
        "handed_off_at": now,
        "handed_off_by": 7,
    }
    assert handoff.handoff_field_values(None, 7, now) == {
        "handoff_to": None,
        "handed_off_at": None,
        "handed_off_by": None,
    }


def test_audit_action_names():
    assert handoff.HandoffChange(None, HandoffTarget.legal).audit_action == "handed_off_to_legal"
    assert handoff.HandoffChange(HandoffTarget.legal, None).audit_action == "cleared_handoff"


def test_set_then_clear_handoff_keeps_fields_paired(db_session, seeded):
    change = handoff.set_handoff(
        db=db_session, deal_id=seeded.deal_id, target=HandoffTarget.legal, actor_id=seeded.admin_id
    )
    db_session.commit()
    assert change.previous is None

    deal = db_session.get(models.Deal, seeded.deal_id)
    db_session.refresh(deal)
    assert deal.handoff_to == HandoffTarget.legal
    assert deal.handed_off_at is not None
    assert deal.handed_off_by == seeded.admin_id
    assert deal.stage == models.DealStage.draft

    change = handoff.set_handoff(db=db_session, deal_id=seeded.deal_id, target=None, actor_id=seeded.admin_id)
    db_session.commit()
    assert change.previous == HandoffTarget.legal

    db_session.refresh(deal)
    assert deal.handoff_to is None
    assert deal.handed_off_at is None
    assert deal.handed_off_by is None


def test_handoff_endpoint_audits_every_change(client, login_as, db_session, seeded):
    login_as(models.RoleName.admin)

    r = client.post(
        f"/api/workflow/deals/{seeded.deal_id}/handoff",
        json={"handoff_to": "legal", "notes": "Needs SPV review"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["handoff_to"] == "legal"
    assert body["handed_off_by"] == seeded.admin_id
    assert body["handed_off_at"] is not None

    r = client.post(f"/api/workflow/deals/{seeded.deal_id}/handoff", json={"handoff_to": None})
    assert r.status_code == 200
    assert r.json()["handed_off_at"] is None
    assert r.json()["handed_off_by"] is None

    actions = [
        a.action
        for a in db_session.query(models.Activity)
        .filter(models.Activity.deal_id == seeded.deal_id)
        .order_by(models.Activity.id)
    ]
    assert actions == ["handed_off_to_legal", "cleared_handoff"]

    first = db_session.query(models.Activity).order_by(models.Activity.id).first()
    assert first.details == {
        "previous_handoff": None,
        "new_handoff": "legal",
        "notes": "Needs SPV review",
    }

    # Handoff is internal routing: the owner is not notified.
    assert db_session.query(models.Notification).count() == 0


def test_handoff_rejects_unknown_target(client, login_as, seeded):
    login_as(models.RoleName.admin)
    r = client.post(
        f"/api/workflow/deals/{seeded.deal_id}/handoff", json={"handoff_to": "underwriting"}
    )
    assert r.status_code == 422


def test_handoff_is_admin_only(client, login_as, seeded):
    login_as(models.RoleName.client, seeded.owner_id)
    r = client.post(f"/api/workflow/deals/{seeded.deal_id}/handoff", json={"handoff_to": "legal"})
    assert r.status_code == 403
