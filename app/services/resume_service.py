from __future__ import annotations

import csv
import io
import logging

from app.parsing.convert import MAX_DOCUMENT_BYTES, DocumentTooLargeError, convert_document, render_html
from app.schemas.resume import ResumeRecord, ResumeSummary, SearchCriteria
from app.services.contact_extractor import extract_contact
from app.services.masking import mask_email, mask_html, mask_phone, mask_text, masked_summary_html
from app.services.search import SearchAggregator
from app.storage.resume_repository import ResumeRepository

logger = logging.getLogger(__name__)

NO_CONTENT_HTML = "<div>No content available</div>"
SEARCH_SUMMARY_CHARS = 150
CSV_HEADER = ("Name", "Email", "Phone", "Search Term")


def format_file_size(size_in_bytes: int | None) -> str:
    if not size_in_bytes or size_in_bytes <= 0:
        return "0 B"
    units = ("B", "KB", "MB", "GB", "TB")
    size = float(size_in_bytes)
    unit_index = 0
    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1
    formatted = f"{size:.1f}".rstrip("0").rstrip(".")
    return f"{formatted} {units[unit_index]}"


def _clean(value: str | None) -> str | None:
    stripped = (value or "").strip()
    return stripped or None


class ResumeService:
    def __init__(self, repository: ResumeRepository, *, max_upload_bytes: int = MAX_DOCUMENT_BYTES):
        self.repository = repository
        self.aggregator = SearchAggregator(repository)
        self.max_upload_bytes = max_upload_bytes

    def upload_and_convert(
        self,
        data: bytes,
        *,
        filename: str,
        content_type: str | None,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> ResumeRecord:
        logger.info("resume_upload_started file=%s size=%d", filename, len(data))
        if len(data) > self.max_upload_bytes:
            raise DocumentTooLargeError(len(data), self.max_upload_bytes)

        converted = convert_document(data, filename, content_type, max_bytes=self.max_upload_bytes)
        contact = extract_contact(converted.text)

        record = ResumeRecord(
            original_file_name=filename,
            original_file_type=content_type or "application/octet-stream",
            original_file_size=len(data),
            original_file_data=data,
            text_content=converted.text,
            html_content=render_html(converted.text),
            first_name=_clean(first_name) or contact.first_name,
            last_name=_clean(last_name) or contact.last_name,
            email=contact.email,
            phone=contact.phone,
            linkedin_url=contact.linkedin_url,
            website_url=contact.website_url,
            professional_summary=contact.professional_summary,
        )
        saved = self.repository.save(record)
        logger.info("resume_uploaded id=%s warnings=%s", saved.id, converted.conversion_warnings)
        return saved

    def get_resume(self, resume_id: str) -> ResumeRecord | None:
        return self.repository.find_by_id(resume_id)

    def list_resumes(self) -> list[ResumeRecord]:
        return self.repository.find_all()

    def delete_resume(self, resume_id: str) -> bool:
        deleted = self.repository.delete_by_id(resume_id)
        if deleted:
            logger.info("resume_deleted id=%s", resume_id)
        return deleted

    def get_html_content(self, resume_id: str, masked: bool) -> str | None:
        record = self.repository.find_by_id(resume_id)
        if record is None:
            return None
        content = record.html_content or NO_CONTENT_HTML
        return mask_html(content) if masked else content

    def search(self, criteria: SearchCriteria) -> list[ResumeRecord]:
        logger.info("resume_search_started fields=%s", criteria.populated_fields())
        return self.aggregator.search(criteria)

    def purge_expired_resumes(self, retention_days: int) -> int:
        days = max(1, int(retention_days))
        logger.info("resume_retention_purge_started days=%d", days)
        deleted = self.repository.delete_older_than(days)
        logger.info("resume_retention_purge_completed days=%d deleted=%d", days, deleted)
        return deleted

    @staticmethod
    def to_summary(
        record: ResumeRecord,
        *,
        masked: bool,
        summary_chars: int | None = None,
        include_card: bool = False,
    ) -> ResumeSummary:
        summary = record.professional_summary
        if summary and masked:
            summary = mask_text(summary)
        if summary and summary_chars is not None and len(summary) > summary_chars:
            summary = summary[:summary_chars] + "..."
        return ResumeSummary(
            id=record.id,
            original_file_name=record.original_file_name,
            original_file_type=record.original_file_type,
            original_file_size=record.original_file_size,
            formatted_file_size=format_file_size(record.original_file_size),
            uploaded_at=record.uploaded_at,
            first_name=record.first_name,
            last_name=record.last_name,
            email=mask_email(record.email) if masked else record.email,
            phone=mask_phone(record.phone) if masked else record.phone,
            city=record.city,
            state=record.state,
            country=record.country,
            professional_summary=summary,
            skills=record.skills,
            experience_count=len(record.experience),
            education_count=len(record.education),
            masked=masked,
            summary_html=masked_summary_html(record) if masked and include_card else None,
        )

    @staticmethod
    def export_csv(records: list[ResumeRecord], search_term: str | None) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(CSV_HEADER)
        for record in records:
            writer.writerow(
                (
                    record.display_name,
                    record.email or "",
                    record.phone or "",
                    search_term or "",
                )
            )
        return buffer.getvalue()
