from types import SimpleNamespace

import pytest

from dealflow.core.errors import InvalidTransition
from dealflow.models.domain import AccessLevel, PartnerAction, PartnerReleaseStatus
from dealflow.services.deal_releases import (
    ACCESS_RANK,
    RELEASE_ACTION_RULES,
    can_access_package,
    escalate_access,
    plan_admin_override,
    plan_partner_action,
)


def _release(status=PartnerReleaseStatus.pending, access_level=AccessLevel.summary):
    return SimpleNamespace(status=status, access_level=access_level)


def _apply(release, plan):
    release.status = plan.status
    release.access_level = plan.access_level
    return release


@pytest.mark.parametrize("current", list(AccessLevel))
@pytest.mark.parametrize("requested", [None, *AccessLevel])
def test_escalate_access_never_downgrades(current, requested):
    result = escalate_access(current, requested)
    assert ACCESS_RANK[result] >= ACCESS_RANK[current]
    if requested is not None:
        assert ACCESS_RANK[result] >= ACCESS_RANK[requested]


def test_interest_then_due_diligence_strictly_raises_access():
    release = _release()

    interested = plan_partner_action(release, PartnerAction.express_interest)
    assert interested.status == PartnerReleaseStatus.interested
    assert interested.access_level == AccessLevel.full
    assert "interest_expressed_at" in interested.values
    _apply(release, interested)

    diligence = plan_partner_action(release, PartnerAction.start_due_diligence)
    assert diligence.status == PartnerReleaseStatus.due_diligence
    assert diligence.access_level == AccessLevel.documents


@pytest.mark.parametrize("status", [PartnerReleaseStatus.pending, PartnerReleaseStatus.passed])
def test_due_diligence_requires_prior_interest(status):
    with pytest.raises(InvalidTransition) as excinfo:
        plan_partner_action(_release(status=status), PartnerAction.start_due_diligence)
    assert excinfo.value.message == "Must express interest before starting due diligence"


def test_due_diligence_allowed_from_reviewing():
    plan = plan_partner_action(
        _release(status=PartnerReleaseStatus.reviewing, access_level=AccessLevel.full),
        PartnerAction.start_due_diligence,
    )
    assert plan.status == PartnerReleaseStatus.due_diligence


def test_passed_is_terminal():
    release = _release(status=PartnerReleaseStatus.passed)
    with pytest.raises(InvalidTransition) as excinfo:
        plan_partner_action(release, PartnerAction.pass_deal)
    assert excinfo.value.message == "This deal has already been passed"

    with pytest.raises(InvalidTransition):
        plan_partner_action(release, PartnerAction.express_interest)


def test_interest_cannot_pull_due_diligence_back():
    release = _release(status=PartnerReleaseStatus.due_diligence, access_level=AccessLevel.documents)
    with pytest.raises(InvalidTransition):
        plan_partner_action(release, PartnerAction.express_interest)


def test_pass_keeps_access_and_records_reason():
    release = _release(status=PartnerReleaseStatus.due_diligence, access_level=AccessLevel.documents)
    plan = plan_partner_action(release, PartnerAction.pass_deal, pass_reason="Outside mandate")
    assert plan.status == PartnerReleaseStatus.passed
    assert plan.access_level == AccessLevel.documents
    assert "access_level" not in plan.values
    assert plan.values["pass_reason"] == "Outside mandate"
    assert plan.values["passed_at"] is not None


def test_add_note_never_changes_status():
    release = _release(status=PartnerReleaseStatus.passed)
    plan = plan_partner_action(release, PartnerAction.add_note, notes="Revisit next quarter")
    assert plan.status == PartnerReleaseStatus.passed
    assert "status" not in plan.values
    assert plan.values["partner_notes"] == "Revisit next quarter"


@pytest.mark.parametrize(
    "status,access_level,expected",
    [
        (PartnerReleaseStatus.pending, AccessLevel.summary, False),
        (PartnerReleaseStatus.pending, AccessLevel.full, True),
        (PartnerReleaseStatus.interested, AccessLevel.summary, True),
        (PartnerReleaseStatus.due_diligence, AccessLevel.documents, True),
    ],
)
def test_package_gating(status, access_level, expected):
    assert can_access_package(_release(status=status, access_level=access_level)) is expected


def test_admin_override_raises_access_with_status():
    values = plan_admin_override(
        _release(), status=PartnerReleaseStatus.term_sheet, access_level=None
    )
    assert values["status"] == PartnerReleaseStatus.term_sheet
    assert values["access_level"] == AccessLevel.documents


def test_admin_override_cannot_downgrade_access():
    release = _release(status=PartnerReleaseStatus.due_diligence, access_level=AccessLevel.documents)
    values = plan_admin_override(release, status=None, access_level=AccessLevel.summary)
    assert "access_level" not in values
    assert "status" not in values


def test_every_partner_action_has_a_rule():
    assert set(RELEASE_ACTION_RULES) == set(PartnerAction)
