"""In-process registry of background export jobs (progress + cancel)."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from .encoder import ExportCancelled, ExportProgress, ExportResult

logger = logging.getLogger(__name__)

# Finished jobs are kept this long so the result can be downloaded.
JOB_RETENTION_SECONDS = 15 * 60


@dataclass
class ExportJob:
    job_id: str
    page: str
    fmt: str
    status: str = "running"  # running | completed | canceled | failed
    rows_done: int = 0
    rows_total: int = 0
    bytes_done: Optional[int] = None
    bytes_total: Optional[int] = None
    error: str = ""
    result: Optional[ExportResult] = None
    created_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    task: Optional[asyncio.Task] = None

    def on_progress(self, progress: ExportProgress) -> None:
        self.rows_done = progress.rows_done
        self.rows_total = progress.rows_total
        self.bytes_done = progress.bytes_done
        self.bytes_total = progress.bytes_total

    def to_dict(self) -> dict[str, Any]:
        if self.status == "completed":
            percent = 100
        elif self.rows_total > 0:
            percent = int(self.rows_done * 100 / self.rows_total)
        else:
            percent = 0
        return {
            "jobId": self.job_id,
            "page": self.page,
            "format": self.fmt,
            "status": self.status,
            "rowsDone": self.rows_done,
            "rowsTotal": self.rows_total,
            "bytesDone": self.bytes_done,
            "bytesTotal": self.bytes_total,
            "percent": percent,
            "filename": self.result.filename if self.result else None,
            "error": self.error or None,
        }


class ExportJobRegistry:
    """Tracks export jobs started from the admin pages."""

    def __init__(self, *, retention_seconds: float = JOB_RETENTION_SECONDS):
        self._jobs: dict[str, ExportJob] = {}
        self._retention_seconds = retention_seconds

    def get(self, job_id: str) -> Optional[ExportJob]:
        self._prune()
        return self._jobs.get(job_id)

    def start(
        self,
        page: str,
        fmt: str,
        build: Callable[[ExportJob], Awaitable[ExportResult]],
    ) -> ExportJob:
        """Schedule ``build(job)`` as a task and register it."""
        self._prune()
        job = ExportJob(job_id=uuid.uuid4().hex, page=page, fmt=fmt)
        self._jobs[job.job_id] = job
        job.task = asyncio.create_task(self._run(job, build))
        return job

    def cancel(self, job_id: str) -> Optional[ExportJob]:
        job = self._jobs.get(job_id)
        if job is None:
            return None
        if job.status == "running":
            job.cancel_event.set()
        return job

    async def _run(self, job: ExportJob, build: Callable[[ExportJob], Awaitable[ExportResult]]) -> None:
        try:
            job.result = await build(job)
            job.status = "completed"
        except ExportCancelled as exc:
            job.status = "canceled"
            job.error = exc.message
            logger.info("Export %s (%s.%s) canceled", job.job_id, job.page, job.fmt)
        except Exception as exc:
            job.status = "failed"
            job.error = str(exc) or exc.__class__.__name__
            logger.warning("Export %s (%s.%s) failed: %s", job.job_id, job.page, job.fmt, exc)
        finally:
            job.finished_at = time.time()

    def _prune(self) -> None:
        cutoff = time.time() - self._retention_seconds
        stale = [
            job_id
            for job_id, job in self._jobs.items()
            if job.finished_at is not None and job.finished_at < cutoff
        ]
        for job_id in stale:
            self._jobs.pop(job_id, None)

    async def close(self) -> None:
        tasks = [job.task for job in self._jobs.values() if job.task and not job.task.done()]
        for job in self._jobs.values():
            job.cancel_event.set()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
