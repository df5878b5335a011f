"""Mock transport for offline runs and tests."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from castor.models import DocumentError, DocumentStatistics, TaskKind
from castor.providers.models import RemoteBatchResponse, RemoteDocumentOutcome

if TYPE_CHECKING:
    from castor.models import Document
    from castor.providers.models import AnalyticsRequest

MOCK_MODEL_VERSION = "mock-2023-01-01"

_WORD_RE = re.compile(r"[A-Za-z][A-Za-z'-]+")
_POSITIVE = frozenset({"good", "great", "love", "happy", "excellent", "nice"})
_NEGATIVE = frozenset({"bad", "awful", "hate", "sad", "terrible", "poor"})


class MockProvider:
    """Deterministic client that never touches the network.

    Empty documents come back as ``InvalidDocument`` errors, like the real
    service; everything else gets a synthetic but well-formed payload.
    """

    async def analyze(self, request: AnalyticsRequest) -> RemoteBatchResponse:
        """Return one synthetic outcome per document."""
        include_stats = bool(request.options and request.options.include_statistics)
        outcomes = tuple(
            _outcome(request.task, doc, include_stats=include_stats)
            for doc in request.documents
        )
        return RemoteBatchResponse(outcomes=outcomes, model_version=MOCK_MODEL_VERSION)


def _outcome(
    task: TaskKind, doc: Document, *, include_stats: bool
) -> RemoteDocumentOutcome:
    if not doc.text.strip():
        return RemoteDocumentOutcome(
            is_error=True,
            error=DocumentError(
                code="InvalidDocument",
                message="Document text is empty.",
                target=doc.id,
            ),
        )
    stats = (
        DocumentStatistics(character_count=len(doc.text), transaction_count=1)
        if include_stats
        else None
    )
    return RemoteDocumentOutcome(
        is_error=False, payload=_payload(task, doc), statistics=stats
    )


def _payload(task: TaskKind, doc: Document) -> dict[str, Any]:
    words = _WORD_RE.findall(doc.text)
    if task is TaskKind.LANGUAGE_DETECTION:
        return {
            "id": doc.id,
            "detectedLanguage": {
                "name": "English",
                "iso6391Name": "en",
                "confidenceScore": 1.0,
            },
            "warnings": [],
        }
    if task is TaskKind.KEY_PHRASES:
        phrases = list(dict.fromkeys(w for w in words if len(w) > 3))
        return {"id": doc.id, "keyPhrases": phrases, "warnings": []}

    lowered = [w.lower() for w in words]
    pos = sum(w in _POSITIVE for w in lowered)
    neg = sum(w in _NEGATIVE for w in lowered)
    label = "positive" if pos > neg else "negative" if neg > pos else "neutral"
    scores = {
        "positive": 1.0 if label == "positive" else 0.0,
        "neutral": 1.0 if label == "neutral" else 0.0,
        "negative": 1.0 if label == "negative" else 0.0,
    }
    return {
        "id": doc.id,
        "sentiment": label,
        "confidenceScores": scores,
        "sentences": [
            {
                "text": doc.text,
                "sentiment": label,
                "confidenceScores": scores,
                "offset": 0,
                "length": len(doc.text),
            }
        ],
        "warnings": [],
    }
