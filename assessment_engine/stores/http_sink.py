from __future__ import annotations

import logging
import time

import httpx

from assessment_engine.models import AttemptResult
from assessment_engine.stores.base import AttemptSink

log = logging.getLogger("assessment_engine.sink")


class HttpAttemptSink(AttemptSink):
    """Posts attempt results as JSON to a remote attempts endpoint."""

    def __init__(self, url: str, timeout: float = 10.0, transport: httpx.BaseTransport | None = None):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    def record_attempt(self, result: AttemptResult) -> None:
        t0 = time.monotonic()
        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            resp = client.post(self.url, json=result.to_dict())
            resp.raise_for_status()
        log.info("Recorded attempt for %s at %s (%.2fs)", result.item_id, self.url, time.monotonic() - t0)

    def name(self) -> str:
        return f"http/{self.url}"
