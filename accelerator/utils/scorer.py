"""
Client for the external free-text scorer used on the Phase 3
problem/customer answer.

The scorer is slow and sometimes down. ``score_text`` returns None when no
scorer is configured and a ``processing`` result when the call fails, so
the flag rules can treat both as "score absent".
"""

import asyncio
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Optional

import requests

from accelerator.schemas.application import ScorerResult

logger = logging.getLogger(__name__)

executor = ThreadPoolExecutor(max_workers=2)


class ScorerClient:
    """Synchronous HTTP client; run it off the event loop."""

    def __init__(self, url, api_key=None, timeout=30):
        self.url = url
        self.timeout = timeout
        self.session = requests.Session()
        self.headers = {"Content-Type": "application/json"}
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"

    def score(self, text: str) -> ScorerResult:
        response = self.session.post(
            self.url,
            json={"text": text},
            headers=self.headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return parse_scorer_response(response.json())


def parse_scorer_response(data: dict) -> ScorerResult:
    """Accept both camelCase and snake_case keys from the scorer."""
    def pick(snake, camel, default=None):
        if snake in data:
            return data[snake]
        return data.get(camel, default)

    score = pick("score", "score")
    return ScorerResult(
        score=float(score) if score is not None else None,
        is_specific=bool(pick("is_specific", "isSpecific", False)),
        has_clear_target=bool(pick("has_clear_target", "hasClearTarget", False)),
        has_defined_problem=bool(pick("has_defined_problem", "hasDefinedProblem", False)),
        feedback=pick("feedback", "feedback", "") or "",
        strengths=list(pick("strengths", "strengths", []) or []),
        weaknesses=list(pick("weaknesses", "weaknesses", []) or []),
        status="complete",
        analyzed_at=datetime.utcnow(),
    )


def get_scorer_client() -> Optional[ScorerClient]:
    url = os.getenv("SCORER_URL")
    if not url:
        return None
    return ScorerClient(
        url,
        api_key=os.getenv("SCORER_API_KEY"),
        timeout=float(os.getenv("SCORER_TIMEOUT", 30)),
    )


async def score_text(text: str) -> Optional[ScorerResult]:
    client = get_scorer_client()
    if client is None or not (text or "").strip():
        return None

    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(executor, client.score, text)
    except (requests.exceptions.RequestException, ValueError, TypeError) as e:
        logger.warning("Scorer unavailable, leaving analysis in processing state: %s", e)
        return ScorerResult(status="processing")
