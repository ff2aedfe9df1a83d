import asyncio
import base64
import time

from style_agent.config import settings
from style_agent.pipeline import runner
from style_agent.pipeline.analyzer import AnalysisError

BODY = {
    "image": "data:image/png;base64,iVBORw0KGgo=",
    "budget": "mid-range",
    "gender": "female",
    "size": "s",
    "shoeSize": "us7",
}


def _wait_for_terminal(client, job_id, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        data = client.get("/api/analyze/status", params={"jobId": job_id}).json()
        if data["status"] in ("completed", "failed"):
            return data
        time.sleep(0.05)
    raise AssertionError(f"job {job_id} did not finish")


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_fast_analysis_returns_result_inline(client, monkeypatch, sample_result):
    async def fast(image, options):
        await asyncio.sleep(0.01)
        return sample_result

    monkeypatch.setattr(runner, "analyze_style", fast)

    resp = client.post("/api/analyze-async", json=BODY)
    assert resp.status_code == 200
    body = resp.json()
    assert "jobId" not in body
    assert body == sample_result


def test_slow_analysis_returns_job_id_then_completes(client, monkeypatch, sample_result):
    async def slow(image, options):
        await asyncio.sleep(0.3)
        return sample_result

    monkeypatch.setattr(runner, "analyze_style", slow)
    monkeypatch.setattr(settings, "analysis_deadline_seconds", 0.05)

    resp = client.post("/api/analyze-async", json=BODY)
    assert resp.status_code == 200
    job_id = resp.json()["jobId"]

    first = client.get("/api/analyze/status", params={"jobId": job_id})
    assert first.status_code == 200
    assert first.json()["status"] in ("pending", "processing", "completed")

    done = _wait_for_terminal(client, job_id)
    assert done["status"] == "completed"
    assert done["result"] == sample_result
    assert done["jobId"] == job_id
    assert "error" not in done


def test_failure_inside_window_is_500_without_job_id(client, monkeypatch):
    async def broken(image, options):
        raise AnalysisError("malformed response")

    monkeypatch.setattr(runner, "analyze_style", broken)

    resp = client.post("/api/analyze-async", json=BODY)
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Failed to analyze style"
    assert body["message"] == "malformed response"
    assert "jobId" not in body


def test_background_failure_surfaces_through_status(client, monkeypatch):
    async def slow_broken(image, options):
        await asyncio.sleep(0.2)
        raise AnalysisError("No content in response")

    monkeypatch.setattr(runner, "analyze_style", slow_broken)
    monkeypatch.setattr(settings, "analysis_deadline_seconds", 0.05)

    job_id = client.post("/api/analyze-async", json=BODY).json()["jobId"]
    done = _wait_for_terminal(client, job_id)
    assert done["status"] == "failed"
    assert done["error"] == "No content in response"
    assert "result" not in done


def test_terminal_status_reads_are_identical(client, monkeypatch, sample_result):
    async def slow(image, options):
        await asyncio.sleep(0.1)
        return sample_result

    monkeypatch.setattr(runner, "analyze_style", slow)

    job_id = client.post("/api/analyze/start", json=BODY).json()["jobId"]
    first = _wait_for_terminal(client, job_id)
    second = client.get("/api/analyze/status", params={"jobId": job_id}).json()
    assert first == second


def test_start_always_returns_job_id(client, monkeypatch, sample_result):
    async def fast(image, options):
        return sample_result

    monkeypatch.setattr(runner, "analyze_style", fast)

    resp = client.post("/api/analyze/start", json=BODY)
    assert resp.status_code == 200
    job_id = resp.json()["jobId"]
    assert _wait_for_terminal(client, job_id)["status"] == "completed"


def test_status_requires_job_id(client):
    resp = client.get("/api/analyze/status")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Job ID is required"


def test_status_for_fabricated_id_is_not_found(client):
    resp = client.get("/api/analyze/status", params={"jobId": "does-not-exist"})
    assert resp.status_code == 404
    body = resp.json()
    assert body["error"] == "Job not found"
    assert body["jobId"] == "does-not-exist"
    assert "status" not in body


def test_status_for_swept_job_is_not_found(client, monkeypatch, sample_result):
    from style_agent.jobs import job_store

    async def fast(image, options):
        return sample_result

    monkeypatch.setattr(runner, "analyze_style", fast)
    job_id = client.post("/api/analyze/start", json=BODY).json()["jobId"]
    _wait_for_terminal(client, job_id)

    job_store.sweep_expired(now=time.time() + 7200, retention=3600)

    assert client.get("/api/analyze/status", params={"jobId": job_id}).status_code == 404


def test_pending_job_status_message(client):
    from style_agent.jobs import job_store

    job = job_store.new()
    body = client.get("/api/analyze/status", params={"jobId": job.job_id}).json()
    assert body["status"] == "pending"
    assert body["message"] == "Job is queued for processing"
    assert body["startTime"] == int(job.start_time * 1000)
    assert "result" not in body and "error" not in body


def test_upload_converts_file_to_data_uri(client, monkeypatch, sample_result):
    seen = {}

    async def fast(image, options):
        seen["image"] = image
        seen["options"] = options
        return sample_result

    monkeypatch.setattr(runner, "analyze_style", fast)
    raw = b"\x89PNG\r\n\x1a\nfake"

    resp = client.post(
        "/api/analyze/upload",
        files={"file": ("grid.png", raw, "image/png")},
        data={"budget": "luxury", "shoeSize": "us10"},
    )
    assert resp.status_code == 200
    assert resp.json() == sample_result
    assert seen["image"] == "data:image/png;base64," + base64.b64encode(raw).decode("ascii")
    assert seen["options"].budget == "luxury"
    assert seen["options"].shoe_size == "us10"
    assert seen["options"].gender == "female"


def test_upload_rejects_empty_file(client):
    resp = client.post("/api/analyze/upload", files={"file": ("grid.png", b"", "image/png")})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "empty_file"


def test_lifespan_waits_for_sweeper_shutdown(monkeypatch):
    from fastapi.testclient import TestClient
    from style_agent import main

    events = []

    async def fake_sweeper(store, interval, retention):
        events.append("started")
        try:
            await asyncio.sleep(3600)
        finally:
            await asyncio.sleep(0)
            events.append("stopped")

    monkeypatch.setattr(main, "run_sweeper", fake_sweeper)

    with TestClient(main.app) as c:
        assert c.get("/health").status_code == 200

    assert events == ["started", "stopped"]
