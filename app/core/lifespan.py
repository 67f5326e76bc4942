import contextlib
from contextlib import asynccontextmanager
import asyncio
import logging

from app.api.deps import get_resume_repository
from app.core.config import settings
from app.services.resume_service import ResumeService

logger = logging.getLogger(__name__)

MIN_SWEEP_INTERVAL_SECONDS = 60


def run_retention_sweep() -> int:
    service = ResumeService(get_resume_repository())
    return service.purge_expired_resumes(settings.resume_retention_days)


@asynccontextmanager
async def lifespan(app):
    repository = get_resume_repository()
    logger.info("resume_store_ready path=%s resumes=%d", repository.db_path, repository.count())

    stop_event = asyncio.Event()
    interval = max(MIN_SWEEP_INTERVAL_SECONDS, settings.retention_sweep_interval_seconds)

    async def periodic_purge() -> None:
        while not stop_event.is_set():
            try:
                await asyncio.to_thread(run_retention_sweep)
            except Exception as exc:  # pragma: no cover - keep the sweep loop alive
                logger.warning("resume_retention_purge_failed: %s", exc)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

    purge_task = asyncio.create_task(periodic_purge())
    yield
    stop_event.set()
    if not purge_task.done():
        purge_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await purge_task
    repository.close()
