"""Deal package PDF for partners.

Single page, Base14 Helvetica, no third-party renderer. Output is deterministic
for the same deal data (no wall-clock timestamps unless passed in).
"""

from __future__ import annotations

import textwrap
from typing import Any, Iterable, Sequence

from dealflow.services.deal_matcher import format_amount_bounds, parse_amount_bounds
from dealflow.services.stages import get_label

_PAGE_W = 612  # US Letter
_PAGE_H = 792
_MARGIN = 54
_WRAP_CHARS = 95


def _latin1(text: Any) -> str:
    return str(text).encode("latin-1", errors="replace").decode("latin-1")


def _pdf_string(text: str) -> str:
    return "(" + text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)") + ")"


def deal_package_sections(deal: Any) -> list[tuple[str, list[str]]]:
    company = getattr(deal, "company", None)
    bounds = parse_amount_bounds(getattr(deal, "funding_amount", None))
    amount = format_amount_bounds(bounds) if bounds else (deal.funding_amount or "Not provided")

    overview = [
        f"Company: {getattr(company, 'name', '') or 'N/A'}",
        f"Industry: {getattr(company, 'industry', None) or 'N/A'}",
        f"Location: {getattr(company, 'location', None) or 'N/A'}",
    ]
    if getattr(company, "description", None):
        overview.append(company.description)

    funding = [
        f"Capital requested: {amount}",
        f"Asset classes: {', '.join(deal.asset_classes or []) or 'N/A'}",
        f"Geographies: {', '.join(deal.geographies or []) or 'N/A'}",
        f"Pipeline stage: {get_label(deal.stage)}",
    ]

    score = (
        [f"Overall score: {deal.overall_score}/100"]
        if deal.overall_score is not None
        else ["Not yet scored"]
    )
    return [
        ("Company Overview", overview),
        ("Funding Request", funding),
        ("Qualification Score", score),
    ]


def build_pdf(
    *,
    title: str,
    sections: Sequence[tuple[str, Iterable[str]]],
    footer: str | None = None,
) -> bytes:
    ops: list[str] = ["BT", f"{_MARGIN} {_PAGE_H - _MARGIN} Td", "/F2 16 Tf", _pdf_string(_latin1(title)) + " Tj"]
    for heading, lines in sections:
        ops += ["0 -30 Td", "/F2 12 Tf", _pdf_string(_latin1(heading)) + " Tj", "/F1 10 Tf"]
        for line in lines:
            for chunk in textwrap.wrap(_latin1(line), _WRAP_CHARS) or [""]:
                ops += ["0 -15 Td", _pdf_string(chunk) + " Tj"]
    ops.append("ET")
    if footer:
        ops += ["BT", "/F1 8 Tf", f"{_MARGIN} 36 Td", _pdf_string(_latin1(footer)) + " Tj", "ET"]
    stream = ("\n".join(ops) + "\n").encode("latin-1")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        (
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 {_PAGE_W} {_PAGE_H}] "
            "/Resources << /Font << /F1 4 0 R /F2 5 0 R >> >> /Contents 6 0 R >>"
        ).encode("ascii"),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica-Bold >>",
        f"<< /Length {len(stream)} >>\nstream\n".encode("ascii") + stream + b"endstream",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets: list[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode("ascii") + body + b"\nendobj\n"

    xref_at = len(out)
    out += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode("ascii")
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("ascii")
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_at}\n%%EOF\n"
    ).encode("ascii")
    return bytes(out)


def build_deal_package_pdf(deal: Any, *, partner_name: str | None = None) -> bytes:
    code = deal.qualification_code or f"DEAL-{deal.id}"
    company = getattr(getattr(deal, "company", None), "name", None) or code
    footer = f"Confidential. Prepared for {partner_name}." if partner_name else "Confidential."
    return build_pdf(
        title=f"Deal Package: {company} ({code})",
        sections=deal_package_sections(deal),
        footer=footer,
    )
