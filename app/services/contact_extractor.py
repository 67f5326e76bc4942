from __future__ import annotations

import re
from dataclasses import dataclass

_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
_PHONE_RE = re.compile(r"\+?\(?\d[\d \t().-]{7,}\d")
_LINKEDIN_RE = re.compile(r"(?:https?://)?(?:www\.)?linkedin\.com/in/[A-Za-z0-9_-]+/?", re.IGNORECASE)
_URL_RE = re.compile(r"(?:https?://|www\.)[^\s<>\"']+", re.IGNORECASE)
_NAME_TOKEN_RE = re.compile(r"^[A-Z][A-Za-z'\-]+$")
_SECTION_RE = re.compile(
    r"^\s*(summary|objective|profile|experience|work experience|employment history|skills|education|projects|certifications|resume|curriculum vitae)\s*:?\s*$",
    re.IGNORECASE,
)
_SUMMARY_HEADING_RE = re.compile(r"^\s*(?:professional\s+)?(summary|profile|objective)\s*:?\s*$", re.IGNORECASE)

MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 15
NAME_SCAN_LINES = 5


@dataclass(frozen=True)
class ExtractedContact:
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    linkedin_url: str | None = None
    website_url: str | None = None
    professional_summary: str | None = None


def _normalize_line(line: str) -> str:
    return re.sub(r"\s+", " ", line).strip()


def extract_email(text: str) -> str | None:
    match = _EMAIL_RE.search(text or "")
    return match.group(0) if match else None


def extract_phone(text: str) -> str | None:
    for match in _PHONE_RE.finditer(text or ""):
        candidate = match.group(0).strip()
        digits = re.sub(r"\D", "", candidate)
        if MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS:
            return candidate
    return None


def extract_name(text: str) -> tuple[str | None, str | None]:
    """Guess the candidate name from the first few non-empty lines."""
    lines = [_normalize_line(line) for line in (text or "").splitlines()]
    lines = [line for line in lines if line][:NAME_SCAN_LINES]
    for line in lines:
        if _SECTION_RE.match(line) or _EMAIL_RE.search(line) or any(ch.isdigit() for ch in line):
            continue
        tokens = line.split()
        if not 2 <= len(tokens) <= 4:
            continue
        if not all(_NAME_TOKEN_RE.match(token) for token in tokens):
            continue
        return tokens[0], " ".join(tokens[1:])
    return None, None


def extract_urls(text: str) -> tuple[str | None, str | None]:
    linkedin = _LINKEDIN_RE.search(text or "")
    website: str | None = None
    for match in _URL_RE.finditer(text or ""):
        url = match.group(0).rstrip(".,;)")
        if "linkedin.com" in url.lower():
            continue
        website = url
        break
    return (linkedin.group(0) if linkedin else None), website


def extract_summary(text: str, max_chars: int = 1000) -> str | None:
    lines = (text or "").splitlines()
    collected: list[str] = []
    in_summary = False
    for line in lines:
        stripped = _normalize_line(line)
        if _SUMMARY_HEADING_RE.match(stripped):
            in_summary = True
            continue
        if not in_summary:
            continue
        if _SECTION_RE.match(stripped):
            break
        if stripped:
            collected.append(stripped)
    summary = " ".join(collected).strip()
    return summary[:max_chars] if summary else None


def extract_contact(text: str) -> ExtractedContact:
    first_name, last_name = extract_name(text)
    linkedin_url, website_url = extract_urls(text)
    return ExtractedContact(
        first_name=first_name,
        last_name=last_name,
        email=extract_email(text),
        phone=extract_phone(text),
        linkedin_url=linkedin_url,
        website_url=website_url,
        professional_summary=extract_summary(text),
    )
