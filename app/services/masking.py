"""PII redaction for resume views shown to anonymous visitors.

Rendered resumes are HTML documents whose converted text lives inside a
``<pre>`` block. Only text between tags is rewritten; tags, styles and any
non-PII text pass through untouched. Every function here is pure and
idempotent.
"""

from __future__ import annotations

import html
import re

from app.schemas.resume import ResumeRecord

NOT_PROVIDED = "Not provided"
EMAIL_MASK_DOMAIN = "@mail"
TEXT_PHONE_MASK = "******"
FIELD_PHONE_MASK = "*******"
FIELD_EMAIL_MASK = "*****"
SUMMARY_PREVIEW_CHARS = 200

_EMAIL_RE = re.compile(r"(?<![\w.%+@-])([A-Za-z0-9._%+-]+)@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
_PHONE_RE = re.compile(
    r"(?<![\w*+])"
    r"(?:\+\d{1,3}[\s.-]?)?"
    r"(?:\(\d{1,5}\)[\s.-]?)?"
    r"\d{2,10}(?:[\s.-]\d{2,10}){0,2}"
    r"(?![\w*])"
)
_DATE_LIKE_RES = (
    re.compile(r"^(?:19|20)\d{2}[\s.-](?:19|20)\d{2}$"),
    re.compile(r"^\d{4}[.-]\d{1,2}[.-]\d{1,2}$"),
    re.compile(r"^\d{1,2}[.-]\d{1,2}[.-]\d{4}$"),
)
_TAG_SPLIT_RE = re.compile(r"(<[^>]*>)")
_BODY_RES = (
    re.compile(r"(<pre\b[^>]*>)(.*?)(</pre>)", re.IGNORECASE | re.DOTALL),
    re.compile(r"(<body\b[^>]*>)(.*?)(</body>)", re.IGNORECASE | re.DOTALL),
)

MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 15


def _mask_email_match(match: re.Match[str]) -> str:
    local = match.group(1)
    if len(local) > 3:
        return f"{local[:3]}***{EMAIL_MASK_DOMAIN}"
    return f"***{EMAIL_MASK_DOMAIN}"


def _mask_phone_match(match: re.Match[str]) -> str:
    candidate = match.group(0)
    digits = re.sub(r"\D", "", candidate)
    if not MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS:
        return candidate
    if any(date_re.match(candidate) for date_re in _DATE_LIKE_RES):
        return candidate
    return f"{TEXT_PHONE_MASK}{digits[-4:]}"


def mask_text(text: str) -> str:
    """Redact emails and phone numbers in a plain-text fragment."""
    if not text:
        return text
    masked = _EMAIL_RE.sub(_mask_email_match, text)
    return _PHONE_RE.sub(_mask_phone_match, masked)


def _mask_fragment(fragment: str) -> str:
    parts = _TAG_SPLIT_RE.split(fragment)
    return "".join(part if part.startswith("<") else mask_text(part) for part in parts)


def mask_html(content: str) -> str:
    """Redact PII in the body of a rendered resume, leaving markup alone."""
    if not content:
        return content
    for body_re in _BODY_RES:
        if body_re.search(content):
            return body_re.sub(
                lambda m: m.group(1) + _mask_fragment(m.group(2)) + m.group(3),
                content,
            )
    return _mask_fragment(content)


def mask_email(email: str | None) -> str:
    if not email:
        return NOT_PROVIDED
    at_index = email.find("@")
    if at_index < 0:
        return "****"
    if at_index <= 3:
        return "***" + email[at_index:]
    return email[:3] + FIELD_EMAIL_MASK + email[at_index:]


def mask_phone(phone: str | None) -> str:
    if not phone:
        return NOT_PROVIDED
    significant = re.sub(r"[^\d*]", "", phone)
    if len(significant) < 5:
        return "****"
    return FIELD_PHONE_MASK + significant[-4:]


def masked_summary_html(record: ResumeRecord) -> str:
    """Minimal card for anonymous visitors: masked contact, counts, no detail."""
    parts: list[str] = ["<div class='masked-resume'>", "<div class='resume-header'>"]
    if record.first_name or record.last_name:
        name = " ".join(part for part in (record.first_name, record.last_name) if part)
        parts.append(f"<h1>{html.escape(name)}</h1>")

    parts.append("<div class='contact-info'>")
    if record.email:
        parts.append(f"<p><strong>Email:</strong> {html.escape(mask_email(record.email))}</p>")
    if record.phone:
        parts.append(f"<p><strong>Phone:</strong> {html.escape(mask_phone(record.phone))}</p>")
    if record.city or record.state:
        location = ", ".join(part for part in (record.city, record.state) if part)
        parts.append(f"<p><strong>Location:</strong> {html.escape(location)}</p>")
    parts.append("</div>")

    summary = (record.professional_summary or "").strip()
    if summary:
        preview = mask_text(summary[:SUMMARY_PREVIEW_CHARS])
        parts.append("<div class='summary'><h3>Professional Summary</h3>")
        parts.append(
            f"<p>{html.escape(preview)}... <em>[Content truncated - login to view full details]</em></p>"
        )
        parts.append("</div>")

    if record.experience:
        parts.append(
            "<div class='experience'><h3>Experience</h3>"
            f"<p>{len(record.experience)} positions available. Login to view details.</p></div>"
        )
    if record.education:
        parts.append(
            "<div class='education'><h3>Education</h3>"
            f"<p>{len(record.education)} education entries available. Login to view details.</p></div>"
        )

    parts.append("</div>")
    parts.append("</div>")
    return "".join(parts)
