"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off client classes as coverage expands.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from castor.models import DocumentError
from castor.providers.models import (
    AnalyticsRequest,
    RemoteBatchResponse,
    RemoteDocumentOutcome,
)
from tests.conftest import FakeClient


def success(payload: dict, **kwargs) -> RemoteDocumentOutcome:
    return RemoteDocumentOutcome(is_error=False, payload=payload, **kwargs)


def failure(code: str, message: str = "", target: str | None = None) -> RemoteDocumentOutcome:
    return RemoteDocumentOutcome(
        is_error=True, error=DocumentError(code=code, message=message, target=target)
    )


@dataclass
class ScriptedClient(FakeClient):
    """FakeClient that returns a scripted sequence of responses/exceptions."""

    script: list[RemoteBatchResponse | BaseException] = field(default_factory=list)

    async def analyze(self, request: AnalyticsRequest) -> RemoteBatchResponse:
        self.calls += 1
        self.requests.append(request)
        if not self.script:
            return self.respond(request)
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@dataclass
class LatencyClient(FakeClient):
    """FakeClient with per-text latency that records peak concurrency.

    ``delays`` maps document text to seconds; ``errors`` maps text to an
    exception raised after the delay.
    """

    delays: dict[str, float] = field(default_factory=dict)
    errors: dict[str, BaseException] = field(default_factory=dict)
    active: int = 0
    peak: int = 0
    cancelled: list[str] = field(default_factory=list)

    async def analyze(self, request: AnalyticsRequest) -> RemoteBatchResponse:
        self.calls += 1
        self.requests.append(request)
        text = request.documents[0].text
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delays.get(text, 0.0))
            if text in self.errors:
                raise self.errors[text]
        except asyncio.CancelledError:
            self.cancelled.append(text)
            raise
        finally:
            self.active -= 1
        return self.respond(request)
