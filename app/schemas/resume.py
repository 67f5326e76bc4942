from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_resume_id() -> str:
    return uuid.uuid4().hex


class Education(BaseModel):
    degree: str | None = None
    major: str | None = None
    institution: str | None = None
    city: str | None = None
    state: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    gpa: float | None = None
    honors: str | None = None


class Experience(BaseModel):
    job_title: str | None = None
    company_name: str | None = None
    city: str | None = None
    state: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    is_current_position: bool = False
    responsibilities_and_achievements: list[str] = Field(default_factory=list)


class Skills(BaseModel):
    programming_languages: list[str] = Field(default_factory=list)
    frameworks: list[str] = Field(default_factory=list)
    libraries: list[str] = Field(default_factory=list)
    databases: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    cloud_technologies: list[str] = Field(default_factory=list)
    soft_skills: list[str] = Field(default_factory=list)


SKILL_CATEGORIES: tuple[str, ...] = tuple(Skills.model_fields)


class ResumeRecord(BaseModel):
    """One uploaded document plus its converted text and parsed profile."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=_new_resume_id)
    original_file_name: str
    original_file_type: str = "application/octet-stream"
    original_file_size: int = Field(default=0, ge=0)
    uploaded_at: datetime = Field(default_factory=_utc_now)
    original_file_data: bytes = b""
    text_content: str = ""
    html_content: str = ""

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    linkedin_url: str | None = None
    website_url: str | None = None
    professional_summary: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    education: list[Education] = Field(default_factory=list)
    experience: list[Experience] = Field(default_factory=list)
    skills: Skills = Field(default_factory=Skills)

    @field_validator("uploaded_at")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @property
    def display_name(self) -> str:
        first = (self.first_name or "").strip()
        last = (self.last_name or "").strip()
        if first:
            return f"{first} {last}".strip()
        if self.email:
            return self.email.split("@")[0]
        return "Resume Candidate"


class SearchCriteria(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    city: str | None = None
    state: str | None = None
    programming_languages: list[str] = Field(default_factory=list)
    frameworks: list[str] = Field(default_factory=list)
    databases: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    cloud_technologies: list[str] = Field(default_factory=list)
    company_name: str | None = None
    job_title: str | None = None
    degree: str | None = None
    institution: str | None = None
    major: str | None = None
    keyword: str | None = None
    uploaded_after: str | None = None
    uploaded_before: str | None = None

    def populated_fields(self) -> list[str]:
        populated: list[str] = []
        for name in type(self).model_fields:
            value = getattr(self, name)
            if isinstance(value, str):
                if value.strip():
                    populated.append(name)
            elif isinstance(value, list):
                if any(item and item.strip() for item in value):
                    populated.append(name)
        return populated

    def has_any(self) -> bool:
        return bool(self.populated_fields())

    @classmethod
    def from_query(cls, query: str | None, uploaded_before: str | None = None) -> "SearchCriteria":
        """Fan a single free-text query out to every searchable field."""
        text = (query or "").strip()
        if not text:
            return cls(uploaded_before=uploaded_before)
        skills = [part.strip() for part in text.split(",") if part.strip()]
        return cls(
            keyword=text,
            full_name=text,
            city=text,
            state=text,
            company_name=text,
            job_title=text,
            institution=text,
            major=text,
            degree=text,
            programming_languages=skills,
            frameworks=skills,
            databases=skills,
            tools=skills,
            cloud_technologies=skills,
            uploaded_before=uploaded_before,
        )


class ResumeSummary(BaseModel):
    id: str
    original_file_name: str
    original_file_type: str
    original_file_size: int
    formatted_file_size: str
    uploaded_at: datetime
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    professional_summary: str | None = None
    skills: Skills = Field(default_factory=Skills)
    experience_count: int = 0
    education_count: int = 0
    masked: bool = False
    summary_html: str | None = None


class ResumeSearchResponse(BaseModel):
    result_count: int
    masked: bool
    search_query: str | None = None
    results: list[ResumeSummary] = Field(default_factory=list)


class DownloadTokenResponse(BaseModel):
    resume_id: str
    resume_name: str
    token: str
    preview: bool = False
    downloads_remaining: int | None = None
