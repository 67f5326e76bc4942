from __future__ import annotations

import json
import os
import re
import sqlite3
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from app.schemas.resume import SKILL_CATEGORIES, Education, Experience, ResumeRecord, Skills

EXPERIENCE_FIELDS = ("company_name", "job_title")
EDUCATION_FIELDS = ("degree", "institution", "major")

_COLUMNS = (
    "id",
    "original_file_name",
    "original_file_type",
    "original_file_size",
    "uploaded_at",
    "original_file_data",
    "text_content",
    "html_content",
    "first_name",
    "last_name",
    "email",
    "phone",
    "linkedin_url",
    "website_url",
    "professional_summary",
    "city",
    "state",
    "country",
    "education_json",
    "experience_json",
    "skills_json",
)
_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM resumes"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _regexp(pattern: str, value: Any) -> bool:
    if value is None:
        return False
    return re.search(pattern, str(value), flags=re.IGNORECASE) is not None


def _substring_pattern(value: str) -> str:
    return re.escape(value.strip())


class ResumeRepository:
    """sqlite3-backed resume store with one targeted lookup per searchable field."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._conn_lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        with self._conn_lock:
            if self._conn is not None:
                return self._conn

            directory = os.path.dirname(self.db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=5,
                isolation_level=None,
            )
            conn.create_function("regexp", 2, _regexp, deterministic=True)
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.execute("PRAGMA busy_timeout=5000;")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS resumes (
                    id TEXT PRIMARY KEY,
                    original_file_name TEXT NOT NULL,
                    original_file_type TEXT NOT NULL,
                    original_file_size INTEGER NOT NULL CHECK (original_file_size >= 0),
                    uploaded_at TEXT NOT NULL,
                    original_file_data BLOB NOT NULL,
                    text_content TEXT NOT NULL DEFAULT '',
                    html_content TEXT NOT NULL DEFAULT '',
                    first_name TEXT,
                    last_name TEXT,
                    email TEXT,
                    phone TEXT,
                    linkedin_url TEXT,
                    website_url TEXT,
                    professional_summary TEXT,
                    city TEXT,
                    state TEXT,
                    country TEXT,
                    education_json TEXT NOT NULL DEFAULT '[]',
                    experience_json TEXT NOT NULL DEFAULT '[]',
                    skills_json TEXT NOT NULL DEFAULT '{}'
                );
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_resumes_uploaded_at
                ON resumes (uploaded_at);
                """
            )
            self._conn = conn
            return conn

    def close(self) -> None:
        with self._conn_lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    @staticmethod
    def _row_to_record(row: tuple) -> ResumeRecord:
        data = dict(zip(_COLUMNS, row))
        education = json.loads(data.pop("education_json") or "[]")
        experience = json.loads(data.pop("experience_json") or "[]")
        skills = json.loads(data.pop("skills_json") or "{}")
        data["uploaded_at"] = datetime.fromisoformat(data["uploaded_at"])
        data["original_file_data"] = bytes(data["original_file_data"] or b"")
        return ResumeRecord(
            **data,
            education=[Education.model_validate(item) for item in education],
            experience=[Experience.model_validate(item) for item in experience],
            skills=Skills.model_validate(skills),
        )

    def _query(self, where: str = "", params: Iterable[Any] = ()) -> list[ResumeRecord]:
        conn = self._get_connection()
        sql = _SELECT + (f" WHERE {where}" if where else "") + " ORDER BY uploaded_at, id"
        with self._conn_lock:
            rows = conn.execute(sql, tuple(params)).fetchall()
        return [self._row_to_record(row) for row in rows]

    def save(self, record: ResumeRecord) -> ResumeRecord:
        conn = self._get_connection()
        values = (
            record.id,
            record.original_file_name,
            record.original_file_type,
            record.original_file_size,
            _to_iso(record.uploaded_at),
            record.original_file_data,
            record.text_content,
            record.html_content,
            record.first_name,
            record.last_name,
            record.email,
            record.phone,
            record.linkedin_url,
            record.website_url,
            record.professional_summary,
            record.city,
            record.state,
            record.country,
            json.dumps([item.model_dump(mode="json") for item in record.education], ensure_ascii=False),
            json.dumps([item.model_dump(mode="json") for item in record.experience], ensure_ascii=False),
            json.dumps(record.skills.model_dump(mode="json"), ensure_ascii=False),
        )
        placeholders = ", ".join("?" for _ in _COLUMNS)
        # uploaded_at is write-once: an existing row keeps its original timestamp.
        updates = ", ".join(
            f"{column} = excluded.{column}" for column in _COLUMNS if column not in {"id", "uploaded_at"}
        )
        with self._conn_lock:
            conn.execute(
                f"""
                INSERT INTO resumes ({', '.join(_COLUMNS)}) VALUES ({placeholders})
                ON CONFLICT(id) DO UPDATE SET {updates}
                """,
                values,
            )
            conn.commit()
        return self.find_by_id(record.id) or record

    def find_by_id(self, resume_id: str) -> ResumeRecord | None:
        results = self._query("id = ?", (resume_id,))
        return results[0] if results else None

    def find_all(self) -> list[ResumeRecord]:
        return self._query()

    def count(self) -> int:
        conn = self._get_connection()
        with self._conn_lock:
            row = conn.execute("SELECT COUNT(1) FROM resumes").fetchone()
        return int(row[0] or 0)

    def delete_by_id(self, resume_id: str) -> bool:
        conn = self._get_connection()
        with self._conn_lock:
            cur = conn.execute("DELETE FROM resumes WHERE id = ?", (resume_id,))
            conn.commit()
        return bool(cur.rowcount)

    def delete_older_than(self, days: int) -> int:
        cutoff = _to_iso(_utc_now() - timedelta(days=max(0, int(days))))
        conn = self._get_connection()
        with self._conn_lock:
            cur = conn.execute("DELETE FROM resumes WHERE uploaded_at < ?", (cutoff,))
            conn.commit()
        return int(cur.rowcount or 0)

    def find_by_text_content(self, value: str) -> list[ResumeRecord]:
        return self._query("text_content REGEXP ?", (_substring_pattern(value),))

    def find_by_first_name(self, value: str) -> list[ResumeRecord]:
        return self._query("first_name = ? COLLATE NOCASE", (value.strip(),))

    def find_by_last_name(self, value: str) -> list[ResumeRecord]:
        return self._query("last_name = ? COLLATE NOCASE", (value.strip(),))

    def find_by_first_or_last_name(self, value: str) -> list[ResumeRecord]:
        name = value.strip()
        return self._query(
            "first_name = ? COLLATE NOCASE OR last_name = ? COLLATE NOCASE",
            (name, name),
        )

    def find_by_email(self, value: str) -> list[ResumeRecord]:
        return self._query("email = ? COLLATE NOCASE", (value.strip(),))

    def find_by_city(self, value: str) -> list[ResumeRecord]:
        return self._query("city = ? COLLATE NOCASE", (value.strip(),))

    def find_by_state(self, value: str) -> list[ResumeRecord]:
        return self._query("state = ? COLLATE NOCASE", (value.strip(),))

    def find_by_skills(self, category: str, values: list[str]) -> list[ResumeRecord]:
        if category not in SKILL_CATEGORIES:
            raise ValueError(f"Unknown skill category '{category}'.")
        wanted = [value.strip() for value in values if value and value.strip()]
        if not wanted:
            return []
        placeholders = ", ".join("?" for _ in wanted)
        return self._query(
            f"""
            EXISTS (
                SELECT 1 FROM json_each(resumes.skills_json, '$.{category}') AS skill
                WHERE skill.value IN ({placeholders})
            )
            """,
            wanted,
        )

    def find_by_experience_field(self, field: str, value: str) -> list[ResumeRecord]:
        if field not in EXPERIENCE_FIELDS:
            raise ValueError(f"Unknown experience field '{field}'.")
        return self._query(
            f"""
            EXISTS (
                SELECT 1 FROM json_each(resumes.experience_json) AS entry
                WHERE json_extract(entry.value, '$.{field}') REGEXP ?
            )
            """,
            (_substring_pattern(value),),
        )

    def find_by_education_field(self, field: str, value: str) -> list[ResumeRecord]:
        if field not in EDUCATION_FIELDS:
            raise ValueError(f"Unknown education field '{field}'.")
        return self._query(
            f"""
            EXISTS (
                SELECT 1 FROM json_each(resumes.education_json) AS entry
                WHERE json_extract(entry.value, '$.{field}') REGEXP ?
            )
            """,
            (_substring_pattern(value),),
        )

    def find_by_uploaded_between(self, start: datetime, end: datetime) -> list[ResumeRecord]:
        return self._query("uploaded_at BETWEEN ? AND ?", (_to_iso(start), _to_iso(end)))
