"""
Style analysis against an OpenAI-compatible vision model.

One chat completion per request: the image goes in as an ``image_url`` part,
the model answers with a JSON object that is validated against
``AnalysisResult`` before anything downstream sees it.
"""

from __future__ import annotations
import json
from typing import Any, Dict

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from ..config import settings
from ..models import AnalysisOptions, AnalysisResult
from .links import ensure_links
from .prompts import build_messages


class AnalysisError(RuntimeError):
    """The model call produced nothing usable."""


def _client() -> AsyncOpenAI:
    api_key = settings.openai_api_key
    if not api_key:
        raise AnalysisError("missing_openai_key")
    # Retries are handled by tenacity below
    return AsyncOpenAI(
        api_key=api_key,
        base_url=settings.openai_base_url,
        organization=settings.openai_organization,
        timeout=settings.openai_timeout_seconds,
        max_retries=0,
    )


def parse_analysis(content: str | None) -> Dict[str, Any]:
    """
    Turn raw completion content into a validated analysis payload.

    Raises:
        AnalysisError: empty content, invalid JSON, or a payload that does not
            match the analysis schema
    """
    if not content or not content.strip():
        raise AnalysisError("No content in response")
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise AnalysisError(f"Malformed response from model: {e.msg}") from e
    try:
        result = AnalysisResult.model_validate(data)
    except ValidationError as e:
        raise AnalysisError(f"Invalid analysis payload: {e.error_count()} validation error(s)") from e
    return ensure_links(result.model_dump())


async def analyze_style(image: str, options: AnalysisOptions) -> Dict[str, Any]:
    """Analyze ``image`` and return recommendations matching ``options``.

    Connection failures and client-side timeouts are retried with backoff;
    anything the model actually answered is never retried.
    """
    messages = build_messages(image, options)

    @retry(
        wait=wait_exponential_jitter(initial=0.5, max=8),
        stop=stop_after_attempt(max(1, settings.openai_retry_attempts)),
        retry=retry_if_exception_type((openai.APIConnectionError, openai.APITimeoutError)),
        reraise=True,
    )
    async def _call(client):
        return await client.chat.completions.create(
            model=settings.openai_model,
            max_tokens=settings.openai_max_tokens,
            messages=messages,
            response_format={"type": "json_object"},
        )

    async with _client() as client:
        response = await _call(client)
    if not response.choices:
        raise AnalysisError("No choices in response")
    content = response.choices[0].message.content
    result = parse_analysis(content)
    print("[SA] Analysis parsed", {
        "dominant_style": result["style_analysis"]["dominant_style"][:60],
        "groups": len(result["recommendations"]),
    })
    return result
