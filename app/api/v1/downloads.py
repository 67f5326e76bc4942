from __future__ import annotations

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from app.api.deps import get_download_gate, get_resume_service
from app.core.download_gate import ConsumeOutcome, DownloadGate
from app.core.security import is_authenticated, optional_api_key
from app.core.session import get_session_id
from app.schemas.resume import DownloadTokenResponse
from app.services.resume_service import ResumeService

router = APIRouter()
logger = logging.getLogger(__name__)


def _require_download_access(api_key: str | None, session_id: str, resume_id: str, gate: DownloadGate) -> None:
    if gate.is_preview(session_id, resume_id) or is_authenticated(api_key):
        return
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Please log in as a recruiter to download resumes.",
    )


def _limit_reached() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Download limit reached for this session.",
    )


@router.post("/resumes/{resume_id}/download-token", response_model=DownloadTokenResponse)
def request_download_token(
    resume_id: str,
    api_key: str | None = Depends(optional_api_key),
    session_id: str = Depends(get_session_id),
    service: ResumeService = Depends(get_resume_service),
    gate: DownloadGate = Depends(get_download_gate),
):
    _require_download_access(api_key, session_id, resume_id, gate)
    record = service.get_resume(resume_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resume not found.")

    decision = gate.request_token(session_id, resume_id)
    if not decision.issued:
        raise _limit_reached()
    return DownloadTokenResponse(
        resume_id=record.id,
        resume_name=record.original_file_name,
        token=decision.token or "",
        preview=decision.preview,
        downloads_remaining=decision.downloads_remaining,
    )


@router.get("/resumes/{resume_id}/download")
def download_resume(
    resume_id: str,
    token: str = Query(..., min_length=1),
    api_key: str | None = Depends(optional_api_key),
    session_id: str = Depends(get_session_id),
    service: ResumeService = Depends(get_resume_service),
    gate: DownloadGate = Depends(get_download_gate),
):
    _require_download_access(api_key, session_id, resume_id, gate)
    record = service.get_resume(resume_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resume not found.")

    decision = gate.consume_token(session_id, resume_id, token)
    if decision.outcome is ConsumeOutcome.INVALID_TOKEN:
        logger.warning("download_token_rejected session=%s resume=%s", session_id, resume_id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired download token.")
    if decision.outcome is ConsumeOutcome.LIMIT_REACHED:
        raise _limit_reached()

    filename = record.original_file_name or f"resume_{record.id}"
    headers = {"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"}
    if decision.downloads_remaining is not None:
        headers["X-Downloads-Remaining"] = str(decision.downloads_remaining)
    return Response(
        content=record.original_file_data,
        media_type=record.original_file_type or "application/octet-stream",
        headers=headers,
    )
