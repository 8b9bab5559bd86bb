import httpx
import pytest

from dealflow import models
from dealflow.services import email_sender
from dealflow.services.deal_matcher import DealSummary, MatchResult
from dealflow.services.email_sender import SendResult, SendStatus


@pytest.fixture
def third_partner(db_session, seeded):
    user = models.User(id=5, email="analyst@harbor.test", name="Harbor Analyst", role_id=3)
    partner = models.FundingPartner(
        name="Harbor Funding", slug="harbor", primary_contact_email="deals@harbor.test"
    )
    db_session.add_all([user, partner])
    db_session.flush()
    db_session.add(models.PartnerMember(partner_id=partner.id, user_id=user.id))
    db_session.commit()
    return partner.id


@pytest.fixture
def sent_emails(monkeypatch):
    calls = []

    def _fake_send(**kwargs):
        calls.append(kwargs)
        return SendResult(status=SendStatus.sent, provider_message_id=f"msg-{len(calls)}")

    monkeypatch.setattr(email_sender, "send_partner_deal_alert", _fake_send)
    return calls


def test_one_failing_email_does_not_stop_other_partners(
    client, login_as, db_session, seeded, third_partner, monkeypatch
):
    delivered = []

    def _flaky_send(**kwargs):
        if kwargs["to"] == "deals@northwind.test":
            raise RuntimeError("mail provider exploded")
        delivered.append(kwargs["to"])
        return SendResult(status=SendStatus.sent)

    monkeypatch.setattr(email_sender, "send_partner_deal_alert", _flaky_send)
    login_as(models.RoleName.admin)

    r = client.post(
        "/api/admin/partner-alerts",
        json={
            "deal_id": seeded.deal_id,
            "partner_ids": [seeded.optima_id, seeded.northwind_id, third_partner],
        },
    )
    assert r.status_code == 200
    results = {row["partner_id"]: row for row in r.json()["results"]}

    for partner_id in (seeded.optima_id, third_partner):
        assert results[partner_id]["notification_sent"] is True
        assert results[partner_id]["email_sent"] is True
        assert results[partner_id]["error"] is None

    failed = results[seeded.northwind_id]
    assert failed["email_sent"] is False
    assert "mail provider exploded" in failed["error"]

    assert delivered == ["deals@optima.test", "deals@harbor.test"]
    notified_users = {
        n.user_id for n in db_session.query(models.Notification).filter(models.Notification.deal_id == seeded.deal_id)
    }
    assert {seeded.optima_user_id, 5} <= notified_users


def test_alert_copy_depends_on_match(client, login_as, db_session, seeded, sent_emails):
    db_session.add_all(
        [
            models.PartnerNotificationPreferences(
                partner_id=seeded.optima_id, asset_classes=["consumer loans"]
            ),
            models.PartnerNotificationPreferences(partner_id=seeded.northwind_id, min_score=90),
        ]
    )
    db_session.commit()
    login_as(models.RoleName.admin)

    r = client.post(
        "/api/admin/partner-alerts",
        json={"deal_id": seeded.deal_id, "partner_ids": [seeded.optima_id, seeded.northwind_id]},
    )
    assert r.status_code == 200

    by_user = {
        n.user_id: n
        for n in db_session.query(models.Notification).filter(models.Notification.deal_id == seeded.deal_id)
    }
    matched = by_user[seeded.optima_user_id]
    assert matched.type == "deal_matches_criteria"
    assert matched.title == "New Deal Matches Your Criteria"
    assert "Asset class: Consumer Loans" in matched.message

    unmatched = by_user[seeded.northwind_user_id]
    assert unmatched.type == "new_deal_released"
    assert unmatched.title == "New Deal Released"
    assert unmatched.message == "Acme Lending has been released for your review."


def test_email_respects_channel_preferences(client, login_as, db_session, seeded, sent_emails):
    db_session.add_all(
        [
            models.PartnerNotificationPreferences(
                partner_id=seeded.optima_id,
                email_frequency=models.EmailFrequency.daily_digest,
            ),
            models.PartnerNotificationPreferences(
                partner_id=seeded.northwind_id,
                notification_email="alerts@northwind.test",
                in_app_enabled=False,
            ),
        ]
    )
    db_session.commit()
    login_as(models.RoleName.admin)

    r = client.post(
        "/api/admin/partner-alerts",
        json={"deal_id": seeded.deal_id, "partner_ids": [seeded.optima_id, seeded.northwind_id]},
    )
    results = {row["partner_id"]: row for row in r.json()["results"]}

    assert results[seeded.optima_id]["notification_sent"] is True
    assert results[seeded.optima_id]["email_sent"] is False
    assert results[seeded.northwind_id]["notification_sent"] is False
    assert results[seeded.northwind_id]["email_sent"] is True
    assert [c["to"] for c in sent_emails] == ["alerts@northwind.test"]
    assert sent_emails[0]["idempotency_key"] == f"deal-alert:{seeded.deal_id}:{seeded.northwind_id}"


def test_unknown_partner_reported_without_aborting(client, login_as, seeded, sent_emails):
    login_as(models.RoleName.admin)
    r = client.post(
        "/api/admin/partner-alerts",
        json={"deal_id": seeded.deal_id, "partner_ids": [404, seeded.optima_id]},
    )
    assert r.status_code == 200
    results = {row["partner_id"]: row for row in r.json()["results"]}
    assert results[404]["error"] is not None
    assert results[seeded.optima_id]["notification_sent"] is True


def test_alerts_are_admin_only(client, login_as, seeded):
    login_as(models.RoleName.partner, seeded.optima_user_id)
    r = client.post(
        "/api/admin/partner-alerts",
        json={"deal_id": seeded.deal_id, "partner_ids": [seeded.optima_id]},
    )
    assert r.status_code == 403


def test_release_to_partners_creates_pending_rows_once(
    client, login_as, db_session, seeded, sent_emails
):
    login_as(models.RoleName.admin)
    url = f"/api/admin/deals/{seeded.deal_id}/releases"

    r = client.post(url, json={"partner_ids": [seeded.optima_id], "notes": "First look"})
    assert r.status_code == 200
    body = r.json()
    assert body["created"] == [seeded.optima_id]
    assert body["already_released"] == []
    assert [a["partner_id"] for a in body["alerts"]] == [seeded.optima_id]

    r = client.post(url, json={"partner_ids": [seeded.optima_id, seeded.northwind_id]})
    body = r.json()
    assert body["created"] == [seeded.northwind_id]
    assert body["already_released"] == [seeded.optima_id]

    releases = db_session.query(models.DealRelease).filter(models.DealRelease.deal_id == seeded.deal_id).all()
    assert len(releases) == 2
    assert {r.status for r in releases} == {models.PartnerReleaseStatus.pending}
    assert {r.access_level for r in releases} == {models.AccessLevel.summary}
    assert len(sent_emails) == 2


def test_release_to_unknown_partner_fails(client, login_as, db_session, seeded):
    login_as(models.RoleName.admin)
    r = client.post(f"/api/admin/deals/{seeded.deal_id}/releases", json={"partner_ids": [404]})
    assert r.status_code == 404
    assert db_session.query(models.DealRelease).count() == 0


def test_admin_override_escalates_access(client, login_as, db_session, seeded):
    db_session.add(models.DealRelease(deal_id=seeded.deal_id, partner_id=seeded.optima_id))
    db_session.commit()
    login_as(models.RoleName.admin)

    url = f"/api/admin/deals/{seeded.deal_id}/releases/{seeded.optima_id}/override"
    r = client.post(url, json={"status": "term_sheet"})
    assert r.status_code == 200
    assert r.json()["status"] == "term_sheet"
    assert r.json()["access_level"] == "documents"

    r = client.post(url, json={"access_level": "summary"})
    assert r.status_code == 200
    assert r.json()["access_level"] == "documents"


def test_send_email_skips_without_api_key():
    result = email_sender.send_email(
        to="deals@optima.test", subject="Hi", html_body="<p>Hi</p>", text_body="Hi"
    )
    assert result.status == SendStatus.skipped
    assert result.sent is False


def test_send_email_posts_to_provider(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["authorization"]
        seen["idempotency"] = request.headers.get("idempotency-key")
        seen["body"] = request.read()
        return httpx.Response(200, json={"id": "re_123"})

    monkeypatch.setattr(email_sender.settings, "resend_api_key", "re_test_key")
    with httpx.Client(transport=httpx.MockTransport(handler)) as http:
        result = email_sender.send_email(
            to="deals@optima.test",
            subject="New Deal",
            html_body="<p>New</p>",
            text_body="New",
            idempotency_key="deal-alert:1:1",
            client=http,
        )

    assert result.sent is True
    assert result.provider_message_id == "re_123"
    assert seen["auth"] == "Bearer re_test_key"
    assert seen["idempotency"]
    assert b"deals@optima.test" in seen["body"]


def test_send_email_reports_provider_failure(monkeypatch):
    monkeypatch.setattr(email_sender.settings, "resend_api_key", "re_test_key")
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "down"}))
    with httpx.Client(transport=transport) as http:
        result = email_sender.send_email(
            to="deals@optima.test", subject="s", html_body="h", text_body="t", client=http
        )
    assert result.status == SendStatus.failed
    assert result.error


def test_alert_email_lists_match_reasons():
    subject, html_body, text_body = email_sender.build_partner_deal_alert(
        partner_name="Optima Capital",
        deal=DealSummary(company_name="Acme & Sons", funding_amount="$2.5M", overall_score=85),
        deal_code="QC-2026-0001",
        match=MatchResult(matches=True, match_reasons=["Score: 85 (minimum 80)"]),
        deal_url="https://app.test/dashboard/partner/deal/1",
    )
    assert subject == "New Deal Matches Your Criteria - Acme & Sons"
    assert "Capital Requested: $2.5M" in text_body
    assert "- Score: 85 (minimum 80)" in text_body
    assert "Acme &amp; Sons" in html_body


def _deactivate(db, partner_id, status=models.PartnerStatus.inactive):
    db.query(models.FundingPartner).filter(models.FundingPartner.id == partner_id).update(
        {"status": status}
    )
    db.commit()


def test_inactive_partner_is_skipped(client, login_as, db_session, seeded, sent_emails):
    _deactivate(db_session, seeded.northwind_id)
    login_as(models.RoleName.admin)

    r = client.post(
        "/api/admin/partner-alerts",
        json={"deal_id": seeded.deal_id, "partner_ids": [seeded.optima_id, seeded.northwind_id]},
    )
    assert r.status_code == 200
    results = {row["partner_id"]: row for row in r.json()["results"]}

    skipped = results[seeded.northwind_id]
    assert skipped["error"] == "Partner is not active"
    assert skipped["notification_sent"] is False
    assert skipped["email_sent"] is False
    assert results[seeded.optima_id]["notification_sent"] is True

    assert [c["to"] for c in sent_emails] == ["deals@optima.test"]
    notified = db_session.query(models.Notification).filter(
        models.Notification.user_id == seeded.northwind_user_id
    )
    assert notified.count() == 0


def test_release_to_inactive_partner_rejected(client, login_as, db_session, seeded, sent_emails):
    _deactivate(db_session, seeded.northwind_id, models.PartnerStatus.pending)
    login_as(models.RoleName.admin)

    r = client.post(
        f"/api/admin/deals/{seeded.deal_id}/releases",
        json={"partner_ids": [seeded.optima_id, seeded.northwind_id]},
    )
    assert r.status_code == 400
    assert r.json()["detail"]["message"] == "Partner is not active"
    assert db_session.query(models.DealRelease).count() == 0
    assert sent_emails == []


def test_partner_without_preferences_gets_release_copy(client, login_as, db_session, seeded, sent_emails):
    login_as(models.RoleName.admin)
    r = client.post(
        "/api/admin/partner-alerts",
        json={"deal_id": seeded.deal_id, "partner_ids": [seeded.optima_id], "send_email": False},
    )
    [result] = r.json()["results"]
    assert result["matches"] is True
    assert result["match_reasons"] == []

    notification = (
        db_session.query(models.Notification)
        .filter(models.Notification.user_id == seeded.optima_user_id)
        .one()
    )
    assert notification.type == "new_deal_released"
    assert notification.title == "New Deal Released"
