"""
Client for the style analysis service.

Submits one analysis, then polls the status endpoint until the job reaches a
terminal state, the job disappears, or too many status checks in a row fail.
"""

import base64
import mimetypes
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Literal, Optional

import httpx

from ..config import settings
from ..models import AnalysisOptions
from .mirror import JobMirror

Outcome = Literal["completed", "failed", "not_found", "gave_up"]


class PollError(RuntimeError):
    pass


@dataclass
class PollOutcome:
    outcome: Outcome
    job_id: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    progress: int = 0
    checks: int = field(default=0, repr=False)


def image_to_data_uri(path: str | Path) -> str:
    p = Path(path)
    mime = mimetypes.guess_type(p.name)[0] or "image/jpeg"
    return f"data:{mime};base64," + base64.b64encode(p.read_bytes()).decode("ascii")


class StyleAgentClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        poll_interval: Optional[float] = None,
        max_failed_attempts: Optional[int] = None,
        transport: Optional[httpx.BaseTransport] = None,
        mirror: Optional[JobMirror] = None,
        sleep: Callable[[float], None] = time.sleep,
        timeout: float = 70.0,
    ):
        self.poll_interval = settings.poll_interval_seconds if poll_interval is None else poll_interval
        self.max_failed_attempts = settings.poll_max_failed_attempts if max_failed_attempts is None else max_failed_attempts
        if mirror is None and settings.client_mirror_path:
            mirror = JobMirror(settings.client_mirror_path)
        self.mirror = mirror
        self._sleep = sleep
        # Timeout must exceed the server's synchronous deadline
        self._http = httpx.Client(base_url=base_url.rstrip("/"), transport=transport, timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def submit(self, image: str, options: AnalysisOptions, path: str = "/api/analyze-async") -> Dict[str, Any]:
        body = {"image": image, **options.model_dump(by_alias=True)}
        try:
            r = self._http.post(path, json=body)
        except httpx.HTTPError as e:
            raise PollError(f"Failed to start analysis: {e}") from e
        if r.status_code >= 400:
            message = None
            try:
                message = r.json().get("message")
            except ValueError:
                pass
            raise PollError(message or "Failed to start analysis")
        try:
            data = r.json()
        except ValueError as e:
            raise PollError("Failed to start analysis: unreadable response") from e
        if "jobId" in data and self.mirror:
            self.mirror.record(data["jobId"], {"status": "pending"})
        return data

    def poll(self, job_id: str, on_progress: Optional[Callable[[int], None]] = None) -> PollOutcome:
        progress = 5
        failed_attempts = 0
        checks = 0
        if on_progress:
            on_progress(progress)
        while True:
            self._sleep(self.poll_interval)
            checks += 1
            try:
                r = self._http.get("/api/analyze/status", params={"jobId": job_id})
            except httpx.HTTPError as e:
                failed_attempts += 1
                print("[SA][ERROR] Error checking job status:", e)
                if failed_attempts >= self.max_failed_attempts:
                    return PollOutcome("gave_up", job_id, error="Failed to check job status. Please try again.", progress=progress, checks=checks)
                continue

            if r.status_code == 404:
                self._mirror(job_id, {"status": "not_found"})
                return PollOutcome("not_found", job_id, error="Analysis job not found. It may have expired.", progress=progress, checks=checks)
            if r.status_code >= 400:
                failed_attempts += 1
                print(f"[SA][ERROR] Failed to check job status: {r.status_code} {r.reason_phrase}")
                if failed_attempts >= self.max_failed_attempts:
                    return PollOutcome("gave_up", job_id, error="Failed to check job status after multiple attempts. Please try again.", progress=progress, checks=checks)
                continue

            try:
                data = r.json()
            except ValueError:
                data = None
            if not isinstance(data, dict):
                failed_attempts += 1
                print("[SA][ERROR] Unreadable job status response", {"job_id": job_id, "content_type": r.headers.get("content-type")})
                if failed_attempts >= self.max_failed_attempts:
                    return PollOutcome("gave_up", job_id, error="Failed to check job status after multiple attempts. Please try again.", progress=progress, checks=checks)
                continue

            failed_attempts = 0
            status = data.get("status")
            if status == "completed":
                if not data.get("result"):
                    self._mirror(job_id, {"status": "failed", "error": "empty_result"})
                    return PollOutcome("failed", job_id, error="Analysis finished without a result", progress=progress, checks=checks)
                self._mirror(job_id, {"status": status, "result": data["result"]})
                if on_progress:
                    on_progress(100)
                return PollOutcome("completed", job_id, result=data["result"], progress=100, checks=checks)
            if status == "failed":
                error = data.get("error") or "Analysis failed"
                self._mirror(job_id, {"status": status, "error": error})
                return PollOutcome("failed", job_id, error=error, progress=progress, checks=checks)
            if status == "processing":
                progress = min(90, progress + 5)
                if on_progress:
                    on_progress(progress)

    def analyze(self, image: str, options: AnalysisOptions, on_progress: Optional[Callable[[int], None]] = None, start_only: bool = False) -> PollOutcome:
        path = "/api/analyze/start" if start_only else "/api/analyze-async"
        data = self.submit(image, options, path=path)
        job_id = data.get("jobId")
        if not job_id:
            if on_progress:
                on_progress(100)
            return PollOutcome("completed", result=data, progress=100)
        return self.poll(job_id, on_progress=on_progress)

    def _mirror(self, job_id: str, state: Dict[str, Any]) -> None:
        if self.mirror:
            self.mirror.record(job_id, state)


def main(argv=None) -> int:
    import argparse
    import json

    ap = argparse.ArgumentParser(description="Analyze a fashion image and print recommendations")
    ap.add_argument("image", help="Path to an image file, or an http(s)/data URI")
    ap.add_argument("--base-url", default="http://localhost:8000")
    ap.add_argument("--budget", default="budget")
    ap.add_argument("--gender", default="female")
    ap.add_argument("--size", default="m")
    ap.add_argument("--shoe-size", default="us8")
    ap.add_argument("--start", action="store_true", help="Skip the synchronous attempt and poll right away")
    args = ap.parse_args(argv)

    image = args.image
    if not image.startswith(("http://", "https://", "data:")):
        image = image_to_data_uri(image)
    options = AnalysisOptions(budget=args.budget, gender=args.gender, size=args.size, shoe_size=args.shoe_size)

    with StyleAgentClient(args.base_url) as client:
        try:
            outcome = client.analyze(image, options, on_progress=lambda p: print(f"progress {p}%"), start_only=args.start)
        except PollError as e:
            print(f"error: {e}")
            return 1
    if outcome.outcome != "completed":
        print(f"{outcome.outcome}: {outcome.error}")
        return 1
    print(json.dumps(outcome.result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
