import asyncio
import threading
import time
import uuid
from typing import Dict, Optional
from .config import settings
from .models import Job

# Forward-only ordering of job states; the last two are terminal
_RANK = {"pending": 0, "processing": 1, "completed": 2, "failed": 2}
TERMINAL = ("completed", "failed")


class JobExistsError(KeyError):
    pass


class JobStore:
    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def create_job(self, job_id: str) -> Job:
        with self._lock:
            if job_id in self._jobs:
                raise JobExistsError(job_id)
            job = Job(job_id=job_id, status="pending", start_time=time.time())
            self._jobs[job_id] = job
        return job.model_copy()

    def new(self) -> Job:
        return self.create_job(str(uuid.uuid4()))

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy() if job else None

    def update_job(self, job_id: str, /, **patch) -> Optional[Job]:
        """Shallow-merge ``patch`` into the stored job.

        Returns None for an unknown id. A terminal job, or a patch that would
        move the status backwards, is left untouched and returned as-is.
        """
        patch.pop("job_id", None)
        patch.pop("start_time", None)
        with self._lock:
            job = self._jobs.get(job_id)
            if not job:
                return None
            new_status = patch.get("status", job.status)
            if new_status not in _RANK:
                raise ValueError(f"invalid_status: {new_status}")
            if patch.get("result") is not None and new_status != "completed":
                raise ValueError("result is only set on completion")
            if patch.get("error") is not None and new_status != "failed":
                raise ValueError("error is only set on failure")
            if new_status == "completed" and patch.get("result") is None and job.result is None:
                raise ValueError("completion requires a result")
            if new_status == "failed" and patch.get("error") is None and job.error is None:
                raise ValueError("failure requires an error")
            if job.status in TERMINAL or _RANK[new_status] < _RANK[job.status]:
                print("[SA][DEBUG] Ignored job update", {"job_id": job_id, "status": job.status, "requested": new_status})
                return job.model_copy()
            merged = job.model_copy(update=patch)
            self._jobs[job_id] = merged
            return merged.model_copy()

    def sweep_expired(self, now: Optional[float] = None, retention: Optional[float] = None) -> int:
        now = time.time() if now is None else now
        retention = settings.job_retention_seconds if retention is None else retention
        cutoff = now - retention
        with self._lock:
            expired = [jid for jid, j in self._jobs.items() if j.start_time < cutoff]
            for jid in expired:
                del self._jobs[jid]
        if expired:
            print("[SA] Swept expired jobs", {"removed": len(expired), "cutoff": cutoff})
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def clear(self) -> None:
        with self._lock:
            self._jobs.clear()


async def run_sweeper(store: "JobStore", interval: float, retention: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            store.sweep_expired(retention=retention)
        except Exception as e:
            # Keep sweeping on the next tick
            print("[SA][ERROR] Job sweep failed", {"error": str(e)})


job_store = JobStore()
