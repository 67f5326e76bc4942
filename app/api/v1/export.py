from __future__ import annotations

import time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from app.api.deps import get_resume_service
from app.core.security import require_recruiter
from app.schemas.resume import SearchCriteria
from app.services.resume_service import ResumeService
from app.services.search import InvalidSearchCriteria

router = APIRouter()


@router.get("/export/search-results")
def export_search_results(
    query: str | None = Query(default=None, max_length=500),
    uploaded_before: str | None = Query(default=None),
    _: str = Depends(require_recruiter),
    service: ResumeService = Depends(get_resume_service),
):
    criteria = SearchCriteria(keyword=(query or "").strip() or None, uploaded_before=uploaded_before)
    try:
        records = service.search(criteria)
    except InvalidSearchCriteria as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    filename = f"resume_search_results_{int(time.time() * 1000)}.csv"
    return Response(
        content=service.export_csv(records, query),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
