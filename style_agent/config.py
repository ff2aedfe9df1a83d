from pydantic import BaseModel
import os
from pathlib import Path
from dotenv import load_dotenv

# Load a .env file early so environment variables are available to Settings
# Priority: project root .env (sibling to style_agent/), then CWD/.env
_env_candidates = [
    Path(__file__).resolve().parents[1] / ".env",
    Path.cwd() / ".env",
]
for _p in _env_candidates:
    if _p.exists():
        load_dotenv(dotenv_path=str(_p), override=False)
        break


class Settings(BaseModel):
    # External model
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_base_url: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    openai_organization: str | None = os.getenv("OPENAI_ORG")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o")
    openai_max_tokens: int = int(os.getenv("OPENAI_MAX_TOKENS", "3000"))
    openai_timeout_seconds: float = float(os.getenv("OPENAI_TIMEOUT_SECONDS", "300"))
    openai_retry_attempts: int = int(os.getenv("OPENAI_RETRY_ATTEMPTS", "3"))

    # Must stay below the hosting platform's wall-clock limit for a request (60s)
    analysis_deadline_seconds: float = float(os.getenv("ANALYSIS_DEADLINE_SECONDS", "50"))
    job_retention_seconds: float = float(os.getenv("JOB_RETENTION_SECONDS", "3600"))
    job_sweep_interval_seconds: float = float(os.getenv("JOB_SWEEP_INTERVAL_SECONDS", "3600"))

    # Client poller
    poll_interval_seconds: float = float(os.getenv("POLL_INTERVAL_SECONDS", "2"))
    poll_max_failed_attempts: int = int(os.getenv("POLL_MAX_FAILED_ATTEMPTS", "5"))
    client_mirror_path: str | None = os.getenv("CLIENT_MIRROR_PATH")

settings = Settings()
