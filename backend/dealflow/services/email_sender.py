"""
Outbound email through the Resend HTTP API.

Sending never raises for provider problems: callers get a ``SendResult`` whose
``status`` tells them whether the message left. Unconfigured environments
(no ``RESEND_API_KEY``) skip sending.
"""

from __future__ import annotations

import html
import logging
import uuid
from enum import Enum
from typing import Optional, Sequence

import httpx

from dealflow.config import settings
from dealflow.services.deal_matcher import (
    DealSummary,
    MatchResult,
    format_amount_bounds,
    parse_amount_bounds,
)

logger = logging.getLogger("dealflow.email")


class SendStatus(Enum):
    sent = "sent"
    skipped = "skipped"
    failed = "failed"


class SendResult:
    def __init__(
        self,
        status: SendStatus,
        provider_message_id: Optional[str] = None,
        error: Optional[str] = None,
    ):
        self.status = status
        self.provider_message_id = provider_message_id
        self.error = error

    @property
    def sent(self) -> bool:
        return self.status == SendStatus.sent


def _idempotency_header(idempotency_key: Optional[str]) -> dict[str, str]:
    if not idempotency_key:
        return {}
    return {"Idempotency-Key": str(uuid.uuid5(uuid.NAMESPACE_URL, f"email:{idempotency_key}"))}


def send_email(
    *,
    to: str,
    subject: str,
    html_body: str,
    text_body: str,
    idempotency_key: Optional[str] = None,
    client: Optional[httpx.Client] = None,
) -> SendResult:
    api_key = (settings.resend_api_key or "").strip()
    if not api_key:
        logger.info("email_skipped_not_configured", extra={"to": to, "subject": subject})
        return SendResult(status=SendStatus.skipped, error="email_not_configured")

    headers = {"Authorization": f"Bearer {api_key}", **_idempotency_header(idempotency_key)}
    payload = {
        "from": settings.email_from,
        "to": [to],
        "subject": subject,
        "html": html_body,
        "text": text_body,
    }

    owns_client = client is None
    http = client or httpx.Client(timeout=settings.email_timeout_seconds)
    try:
        response = http.post(settings.resend_api_url, json=payload, headers=headers)
        response.raise_for_status()
        message_id = (response.json() or {}).get("id")
    except httpx.HTTPError as exc:
        logger.warning("email_send_failed", extra={"to": to, "error": str(exc)})
        return SendResult(status=SendStatus.failed, error=str(exc))
    finally:
        if owns_client:
            http.close()

    logger.info("email_sent", extra={"to": to, "provider_message_id": message_id})
    return SendResult(status=SendStatus.sent, provider_message_id=message_id)


def build_partner_deal_alert(
    *,
    partner_name: str,
    deal: DealSummary,
    deal_code: str,
    match: MatchResult,
    deal_url: str,
) -> tuple[str, str, str]:
    """Return ``(subject, html, text)`` for a new-deal alert."""

    bounds = parse_amount_bounds(deal.funding_amount)
    amount = format_amount_bounds(bounds) if bounds else (str(deal.funding_amount or "") or "N/A")
    subject = (
        f"New Deal Matches Your Criteria - {deal.company_name}"
        if match.matches
        else f"New Deal Released - {deal.company_name}"
    )

    facts: list[tuple[str, str]] = [
        ("Company", deal.company_name),
        ("Deal Code", deal_code),
        ("Capital Requested", amount),
    ]
    if deal.overall_score is not None:
        facts.append(("Qualification Score", f"{deal.overall_score}/100"))
    if deal.geographies:
        facts.append(("Geography", ", ".join(deal.geographies)))
    if deal.asset_classes:
        facts.append(("Asset Classes", ", ".join(deal.asset_classes)))

    text_lines = [
        f"New Deal Available - {deal.company_name}",
        "",
        f"Hi {partner_name},",
        "",
        "A new deal has been released to your review queue:",
        "",
        *[f"{label}: {value}" for label, value in facts],
    ]
    if match.match_reasons:
        text_lines += ["", "Why this deal matches:", *[f"- {r}" for r in match.match_reasons]]
    text_lines += [
        "",
        f"View the deal: {deal_url}",
        "",
        "Express interest to unlock the full deal package, or pass if it's not a fit.",
    ]

    html_body = _render_html(partner_name, deal.company_name, facts, match.match_reasons, deal_url, match.matches)
    return subject, html_body, "\n".join(text_lines)


def _render_html(
    partner_name: str,
    company_name: str,
    facts: Sequence[tuple[str, str]],
    reasons: Sequence[str],
    deal_url: str,
    matches: bool,
) -> str:
    esc = html.escape
    badge = "<p><strong>Matches Your Criteria</strong></p>" if matches else ""
    rows = "".join(f"<li><strong>{esc(k)}:</strong> {esc(v)}</li>" for k, v in facts)
    why = ""
    if reasons:
        items = "".join(f"<li>{esc(r)}</li>" for r in reasons)
        why = f"<p>Why this deal matches:</p><ul>{items}</ul>"
    return (
        "<!DOCTYPE html><html><body>"
        f"{badge}<p>Hi {esc(partner_name)},</p>"
        "<p>A new deal has been released to your review queue:</p>"
        f"<h2>{esc(company_name)}</h2><ul>{rows}</ul>{why}"
        f'<p><a href="{esc(deal_url, quote=True)}">View Deal on Dashboard</a></p>'
        "<p>Express interest to unlock the full deal package, or pass if it's not a fit.</p>"
        "<p>You're receiving this because you have deal alerts enabled.</p>"
        "</body></html>"
    )


def send_partner_deal_alert(
    *,
    to: str,
    partner_name: str,
    deal: DealSummary,
    deal_code: str,
    match: MatchResult,
    deal_id: int,
    idempotency_key: Optional[str] = None,
) -> SendResult:
    deal_url = f"{settings.app_base_url.rstrip('/')}/dashboard/partner/deal/{deal_id}"
    subject, html_body, text_body = build_partner_deal_alert(
        partner_name=partner_name,
        deal=deal,
        deal_code=deal_code,
        match=match,
        deal_url=deal_url,
    )
    return send_email(
        to=to,
        subject=subject,
        html_body=html_body,
        text_body=text_body,
        idempotency_key=idempotency_key,
    )
