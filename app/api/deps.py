from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from app.core.config import settings
from app.core.download_gate import DownloadGate, DownloadGateConfig
from app.services.resume_service import ResumeService
from app.storage.resume_repository import ResumeRepository


@lru_cache(maxsize=1)
def get_resume_repository() -> ResumeRepository:
    return ResumeRepository(settings.resume_db_path)


@lru_cache(maxsize=1)
def get_download_gate() -> DownloadGate:
    return DownloadGate(
        DownloadGateConfig(
            limit=settings.download_limit,
            limit_enabled=settings.download_limit_enabled,
        )
    )


def get_resume_service(repository: ResumeRepository = Depends(get_resume_repository)) -> ResumeService:
    return ResumeService(repository, max_upload_bytes=settings.max_upload_mb * 1024 * 1024)
