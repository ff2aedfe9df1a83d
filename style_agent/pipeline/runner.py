import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

from ..config import settings
from ..jobs import job_store
from ..models import AnalysisOptions, Job
from .analyzer import analyze_style

# Strong references to analyses that outlived their request; asyncio only keeps weak ones
_background: Set[asyncio.Task] = set()


@dataclass
class SubmitOutcome:
    job_id: str
    result: Optional[Dict[str, Any]] = None

    @property
    def inline(self) -> bool:
        return self.result is not None


async def _execute(job_id: str, image: str, options: AnalysisOptions) -> Dict[str, Any]:
    """Run one analysis and record its outcome on the job."""
    try:
        result = await analyze_style(image, options)
    except Exception as e:
        print("[SA][ERROR] Job failed", {"job_id": job_id, "error": str(e)})
        job_store.update_job(job_id, status="failed", error=str(e) or "Unknown error", end_time=time.time())
        raise
    job_store.update_job(job_id, status="completed", result=result, end_time=time.time())
    print("[SA] Job done", {"job_id": job_id})
    return result


def _detach(job_id: str, task: asyncio.Task) -> None:
    _background.add(task)

    def _done(t: asyncio.Task) -> None:
        _background.discard(t)
        # Outcome is already on the job; retrieve it so asyncio doesn't warn
        if not t.cancelled():
            t.exception()

    task.add_done_callback(_done)
    print("[SA] Job continues in background", {"job_id": job_id, "background": len(_background)})


def _spawn(image: str, options: AnalysisOptions) -> tuple[Job, asyncio.Task]:
    job = job_store.new()
    job = job_store.update_job(job.job_id, status="processing")
    print("[SA] Job created", {"job_id": job.job_id, "options": options.model_dump()})
    task = asyncio.create_task(_execute(job.job_id, image, options))
    return job, task


async def submit_analysis(image: str, options: AnalysisOptions, deadline: Optional[float] = None) -> SubmitOutcome:
    """
    Race one analysis against ``deadline`` seconds.

    Finishing in time returns the result inline. Running long returns only the
    job id; the analysis keeps going and writes its outcome to the job store.
    A failure inside the window is recorded on the job and re-raised.
    """
    deadline = settings.analysis_deadline_seconds if deadline is None else deadline
    job, task = _spawn(image, options)
    try:
        done, _ = await asyncio.wait({task}, timeout=deadline)
    except asyncio.CancelledError:
        # Caller went away; the analysis still finishes on its own
        _detach(job.job_id, task)
        raise
    if task in done:
        return SubmitOutcome(job_id=job.job_id, result=task.result())
    _detach(job.job_id, task)
    return SubmitOutcome(job_id=job.job_id)


async def start_analysis(image: str, options: AnalysisOptions) -> Job:
    """Start an analysis without waiting on it at all."""
    job, task = _spawn(image, options)
    _detach(job.job_id, task)
    return job
