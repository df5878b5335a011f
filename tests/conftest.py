"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration, a client test double,
and automatic API test skipping. All fixtures here are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
from dataclasses import dataclass, field
import logging
import os

import pytest

from castor.providers.models import (
    AnalyticsRequest,
    RemoteBatchResponse,
    RemoteDocumentOutcome,
)

# =============================================================================
# Test Doubles
# =============================================================================

FAKE_MODEL_VERSION = "fake-2023-01-01"


def language_payload(
    doc_id: str, name: str = "English", iso: str = "en", score: float = 0.99
) -> dict:
    """Service-shaped language detection document."""
    return {
        "id": doc_id,
        "detectedLanguage": {
            "name": name,
            "iso6391Name": iso,
            "confidenceScore": score,
        },
        "warnings": [],
    }


@dataclass
class FakeClient:
    """Client test double for invocation behavior verification.

    Captures requests and answers every document with a detected language
    whose name is the document text, so tests can track row identity.
    """

    calls: int = 0
    requests: list[AnalyticsRequest] = field(default_factory=list)

    async def analyze(self, request: AnalyticsRequest) -> RemoteBatchResponse:
        self.calls += 1
        self.requests.append(request)
        return self.respond(request)

    def respond(self, request: AnalyticsRequest) -> RemoteBatchResponse:
        return RemoteBatchResponse(
            outcomes=tuple(
                RemoteDocumentOutcome(
                    is_error=False, payload=language_payload(d.id, name=d.text)
                )
                for d in request.documents
            ),
            model_version=FAKE_MODEL_VERSION,
        )


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_service_env(request, monkeypatch):
    """Ensure a clean service environment for each test.

    Clears AZURE_LANGUAGE_* env vars to prevent test pollution.
    Opt-out: @pytest.mark.api
    """
    if "api" in request.node.keywords:
        return
    for key in list(os.environ.keys()):
        if key.startswith("AZURE_LANGUAGE_"):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# =============================================================================
# Pytest Hooks
# =============================================================================

API_TESTS_REASON = "API tests require ENABLE_API_TESTS=1"


def pytest_collection_modifyitems(items):
    """Automatically skip API tests when not explicitly enabled."""
    if os.getenv("ENABLE_API_TESTS"):
        return
    skip_api = pytest.mark.skip(reason=API_TESTS_REASON)
    for item in items:
        if "api" in item.keywords:
            item.add_marker(skip_api)
