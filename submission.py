"""
Submission sinks: where a validated answer record is delivered.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from errors import SubmissionError

logger = logging.getLogger(__name__)


class SubmissionSink(Protocol):
    async def post(self, url: str, record: Dict[str, Any]) -> None: ...


class HttpSubmissionSink:
    """
    POST the record as JSON to the configured endpoint.

    The endpoint (a spreadsheet-backed script) answers with an opaque body, so only
    transport-level failures count; the status code and body are logged, never interpreted.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 30.0):
        self._client = client
        self._timeout = timeout

    async def post(self, url: str, record: Dict[str, Any]) -> None:
        if not url:
            raise SubmissionError("Submission endpoint is not configured (formMeta.gasUrl).")
        try:
            if self._client is not None:
                response = await self._client.post(url, json=record)
            else:
                async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                    response = await client.post(url, json=record)
        except httpx.HTTPError as e:
            logger.error("Submission to %s failed: %s", url, e)
            raise SubmissionError(f"Could not reach submission endpoint: {e}") from e
        logger.info("Submission delivered to %s (HTTP %s)", url, response.status_code)
