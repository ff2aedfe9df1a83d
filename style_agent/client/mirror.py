import json
from pathlib import Path
from typing import Any, Dict, Optional


class JobMirror:
    """Best-effort local copy of the job states a client has observed.

    Purely a convenience for resuming in the same environment; the server's
    status endpoint stays the source of truth.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                jobs = json.load(f)
        except (OSError, ValueError) as e:
            print("[SA][ERROR] Failed to load jobs from mirror:", e)
            return {}
        return jobs if isinstance(jobs, dict) else {}

    def get(self, job_id: str) -> Optional[Dict[str, Any]]:
        return self.load().get(job_id)

    def record(self, job_id: str, state: Dict[str, Any]) -> None:
        jobs = self.load()
        jobs[job_id] = {**jobs.get(job_id, {}), **state, "jobId": job_id}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(jobs, f, ensure_ascii=False)
        except OSError as e:
            print("[SA][ERROR] Failed to save jobs to mirror:", e)
