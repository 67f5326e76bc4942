import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from fastapi.responses import HTMLResponse, Response

from app.api.deps import get_download_gate, get_resume_service
from app.core.download_gate import DownloadGate
from app.core.rate_limit import rate_limit
from app.core.security import is_authenticated, optional_api_key, require_admin, require_recruiter
from app.core.session import get_session_id
from app.parsing.convert import DocumentConversionError, DocumentTooLargeError, UnsupportedDocumentError
from app.schemas.resume import ResumeSearchResponse, ResumeSummary, SearchCriteria
from app.services.resume_service import SEARCH_SUMMARY_CHARS, ResumeService
from app.services.search import InvalidSearchCriteria

router = APIRouter()
logger = logging.getLogger(__name__)

UPLOAD_CHUNK_BYTES = 1024 * 64


def _search_response(
    service: ResumeService,
    criteria: SearchCriteria,
    api_key: str | None,
    search_query: str | None = None,
) -> ResumeSearchResponse:
    try:
        records = service.search(criteria)
    except InvalidSearchCriteria as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    masked = not is_authenticated(api_key)
    return ResumeSearchResponse(
        result_count=len(records),
        masked=masked,
        search_query=search_query,
        results=[
            service.to_summary(record, masked=masked, summary_chars=SEARCH_SUMMARY_CHARS)
            for record in records
        ],
    )


@router.post("/resumes/upload", response_model=ResumeSummary, status_code=status.HTTP_201_CREATED)
async def upload_resume(
    file: UploadFile = File(...),
    first_name: str = Form(...),
    last_name: str = Form(...),
    _: str = Depends(require_recruiter),
    session_id: str = Depends(get_session_id),
    service: ResumeService = Depends(get_resume_service),
    gate: DownloadGate = Depends(get_download_gate),
):
    if not first_name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please enter first name.")
    if not last_name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please enter last name.")

    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(UPLOAD_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if total > service.max_upload_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large. Maximum allowed size is {service.max_upload_bytes // (1024 * 1024)} MB.",
            )
        chunks.append(chunk)
    payload = b"".join(chunks)
    if not payload:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please select a file to upload.")

    try:
        record = service.upload_and_convert(
            payload,
            filename=file.filename or "resume",
            content_type=file.content_type,
            first_name=first_name,
            last_name=last_name,
        )
    except DocumentTooLargeError as exc:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(exc)) from exc
    except UnsupportedDocumentError as exc:
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(exc)) from exc
    except DocumentConversionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    gate.mark_preview(session_id, record.id)
    return service.to_summary(record, masked=False)


@router.get("/resumes", response_model=list[ResumeSummary])
def list_resumes(
    api_key: str | None = Depends(optional_api_key),
    service: ResumeService = Depends(get_resume_service),
):
    masked = not is_authenticated(api_key)
    return [
        service.to_summary(record, masked=masked, include_card=True)
        for record in service.list_resumes()
    ]


@router.get("/resumes/search", response_model=ResumeSearchResponse)
@rate_limit()
def quick_search(
    request: Request,
    query: str | None = Query(default=None, max_length=500),
    uploaded_before: str | None = Query(default=None),
    api_key: str | None = Depends(optional_api_key),
    service: ResumeService = Depends(get_resume_service),
):
    _ = request
    criteria = SearchCriteria.from_query(query, uploaded_before=uploaded_before)
    return _search_response(service, criteria, api_key, search_query=query)


@router.post("/resumes/search", response_model=ResumeSearchResponse)
@rate_limit()
def search_resumes(
    request: Request,
    criteria: SearchCriteria,
    api_key: str | None = Depends(optional_api_key),
    service: ResumeService = Depends(get_resume_service),
):
    _ = request
    return _search_response(service, criteria, api_key)


@router.get("/resumes/{resume_id}", response_model=ResumeSummary)
def get_resume(
    resume_id: str,
    api_key: str | None = Depends(optional_api_key),
    service: ResumeService = Depends(get_resume_service),
):
    record = service.get_resume(resume_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resume not found.")
    return service.to_summary(record, masked=not is_authenticated(api_key))


@router.get("/resumes/{resume_id}/content", response_class=HTMLResponse)
def get_resume_content(
    resume_id: str,
    masked: bool = Query(default=True),
    api_key: str | None = Depends(optional_api_key),
    session_id: str = Depends(get_session_id),
    service: ResumeService = Depends(get_resume_service),
    gate: DownloadGate = Depends(get_download_gate),
):
    if not masked and not is_authenticated(api_key) and not gate.is_preview(session_id, resume_id):
        logger.warning("unmasked_content_denied resume=%s", resume_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required for unmasked content.",
        )
    content = service.get_html_content(resume_id, masked=masked)
    if content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resume not found.")
    return content


@router.delete("/resumes/{resume_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_resume(
    resume_id: str,
    _: str = Depends(require_admin),
    service: ResumeService = Depends(get_resume_service),
    gate: DownloadGate = Depends(get_download_gate),
):
    if not service.delete_resume(resume_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resume not found.")
    gate.forget_resume(resume_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
