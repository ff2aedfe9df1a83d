from contextlib import asynccontextmanager, suppress
from fastapi import FastAPI, UploadFile, File, Form, HTTPException, Query
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import asyncio
import base64
import time

from .config import settings
from .jobs import job_store, run_sweeper
from .models import AnalysisOptions, AnalyzeRequest
from .pipeline import runner


@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper = asyncio.create_task(
        run_sweeper(job_store, settings.job_sweep_interval_seconds, settings.job_retention_seconds)
    )
    try:
        yield
    finally:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper


app = FastAPI(title="Style Agent", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"]
)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _ms(ts: float | None) -> int:
    return int(ts * 1000) if ts else _now_ms()


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "openai": bool(settings.openai_api_key),
        "openai_base_url": settings.openai_base_url,
        "model": settings.openai_model,
        "deadline_seconds": settings.analysis_deadline_seconds,
        "jobs": len(job_store),
    }


async def _analyze(image: str, options: AnalysisOptions):
    try:
        outcome = await runner.submit_analysis(image, options)
    except Exception as e:
        print("[SA][ERROR] Error in analyze-async", {"error": str(e)})
        return JSONResponse(
            {"error": "Failed to analyze style", "message": str(e) or "Unknown error"},
            status_code=500,
        )
    if outcome.inline:
        return outcome.result
    return {"jobId": outcome.job_id}


@app.post("/api/analyze-async")
async def analyze_async(body: AnalyzeRequest):
    return await _analyze(body.image, body.options())


@app.post("/api/analyze/upload")
async def analyze_upload(
    file: UploadFile = File(...),
    budget: str = Form("budget"),
    gender: str = Form("female"),
    size: str = Form("m"),
    shoeSize: str = Form("us8"),
):
    if not file.filename:
        raise HTTPException(status_code=400, detail="missing_file")
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="empty_file")
    mime = file.content_type or "image/jpeg"
    image = f"data:{mime};base64," + base64.b64encode(data).decode("ascii")
    print("[SA] Upload received", {"filename": file.filename, "bytes": len(data), "content_type": mime})
    options = AnalysisOptions(budget=budget, gender=gender, size=size, shoe_size=shoeSize)
    return await _analyze(image, options)


@app.post("/api/analyze/start")
async def analyze_start(body: AnalyzeRequest):
    job = await runner.start_analysis(body.image, body.options())
    return {"jobId": job.job_id}


@app.get("/api/analyze/status")
async def analyze_status(jobId: str | None = Query(None)):
    if not jobId:
        return JSONResponse({"error": "Job ID is required"}, status_code=400)
    j = job_store.get_job(jobId)
    if not j:
        print("[SA][ERROR] Job not found", {"job_id": jobId})
        return JSONResponse(
            {
                "error": "Job not found",
                "jobId": jobId,
                "message": "The requested analysis job could not be found. It may have expired or been deleted.",
            },
            status_code=404,
        )
    start_ms = _ms(j.start_time)
    if j.status == "completed":
        return {
            "status": j.status,
            "result": j.result,
            "jobId": j.job_id,
            "startTime": start_ms,
            "completionTime": _ms(j.end_time),
        }
    if j.status == "failed":
        return {
            "status": j.status,
            "error": j.error or "Unknown error",
            "jobId": j.job_id,
            "startTime": start_ms,
            "failureTime": _ms(j.end_time),
        }
    return {
        "status": j.status,
        "jobId": j.job_id,
        "startTime": start_ms,
        "currentTime": _now_ms(),
        "message": "Job is queued for processing" if j.status == "pending" else "Job is currently being processed",
    }
