from fastapi import APIRouter, Depends

from app.api.deps import get_resume_repository
from app.storage.resume_repository import ResumeRepository

router = APIRouter()


@router.get("/health", summary="Health Check", description="Check the health status of the application.")
def health_check(repository: ResumeRepository = Depends(get_resume_repository)):
    return {"status": "healthy", "resumes": repository.count()}
