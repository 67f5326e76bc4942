"""Union-based resume search.

Each populated criterion runs one targeted lookup; the per-field results are
concatenated in field order and collapsed by record id. Criteria combine as
OR, including the upload-date window, which is a lookup of its own rather
than a filter over the other results.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from app.schemas.resume import ResumeRecord, SearchCriteria
from app.storage.resume_repository import ResumeRepository

logger = logging.getLogger(__name__)

EARLIEST_INSTANT = datetime.min.replace(tzinfo=timezone.utc)


class InvalidSearchCriteria(ValueError):
    pass


def parse_instant(value: str, field_name: str) -> datetime:
    raw = value.strip()
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        # Offsets near datetime.min/max cannot be represented in UTC.
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError) as exc:
        raise InvalidSearchCriteria(f"Invalid {field_name} value '{raw}': expected an ISO-8601 date-time.") from exc


def resolve_upload_window(criteria: SearchCriteria) -> tuple[datetime, datetime] | None:
    after = (criteria.uploaded_after or "").strip()
    before = (criteria.uploaded_before or "").strip()
    if not after and not before:
        return None
    start = parse_instant(after, "uploaded_after") if after else EARLIEST_INSTANT
    end = parse_instant(before, "uploaded_before") if before else datetime.now(timezone.utc)
    return start, end


def _has_text(value: str | None) -> bool:
    return bool(value and value.strip())


def _has_items(values: list[str]) -> bool:
    return any(item and item.strip() for item in values)


class SearchAggregator:
    def __init__(self, repository: ResumeRepository):
        self.repository = repository

    def _lookups(self, criteria: SearchCriteria) -> list[tuple[str, Callable[[], list[ResumeRecord]]]]:
        repo = self.repository
        lookups: list[tuple[str, Callable[[], list[ResumeRecord]]]] = []

        def text(name: str, value: str | None, fn: Callable[[str], list[ResumeRecord]]) -> None:
            if _has_text(value):
                lookups.append((name, lambda: fn(value)))

        # Free text and phone go against the converted text: profile fields
        # are only populated when extraction succeeded.
        text("keyword", criteria.keyword, repo.find_by_text_content)
        text("first_name", criteria.first_name, repo.find_by_first_name)
        text("last_name", criteria.last_name, repo.find_by_last_name)
        text("full_name", criteria.full_name, repo.find_by_first_or_last_name)
        text("email", criteria.email, repo.find_by_email)
        text("phone", criteria.phone, repo.find_by_text_content)
        text("city", criteria.city, repo.find_by_city)
        text("state", criteria.state, repo.find_by_state)

        for category in ("programming_languages", "frameworks", "databases", "tools", "cloud_technologies"):
            values = getattr(criteria, category)
            if _has_items(values):
                lookups.append((category, lambda c=category, v=values: repo.find_by_skills(c, v)))

        for field in ("company_name", "job_title"):
            value = getattr(criteria, field)
            if _has_text(value):
                lookups.append((field, lambda f=field, v=value: repo.find_by_experience_field(f, v)))

        for field in ("degree", "institution", "major"):
            value = getattr(criteria, field)
            if _has_text(value):
                lookups.append((field, lambda f=field, v=value: repo.find_by_education_field(f, v)))

        window = resolve_upload_window(criteria)
        if window is not None:
            start, end = window
            lookups.append(("uploaded_window", lambda: repo.find_by_uploaded_between(start, end)))

        return lookups

    def search(self, criteria: SearchCriteria) -> list[ResumeRecord]:
        if not criteria.has_any():
            return self.repository.find_all()

        # Build every lookup first so malformed dates fail before any query runs.
        lookups = self._lookups(criteria)

        collected: list[ResumeRecord] = []
        for name, lookup in lookups:
            matches = lookup()
            logger.debug("resume_search_lookup field=%s matches=%d", name, len(matches))
            collected.extend(matches)

        if not collected:
            logger.info("resume_search_no_matches fields=%s", [name for name, _ in lookups])
            return []

        seen: set[str] = set()
        results: list[ResumeRecord] = []
        for record in collected:
            if record.id in seen:
                continue
            seen.add(record.id)
            results.append(record)

        logger.info(
            "resume_search_completed fields=%s results=%d initial_matches=%d",
            [name for name, _ in lookups],
            len(results),
            len(collected),
        )
        return results
