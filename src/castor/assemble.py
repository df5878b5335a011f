"""Result assembly: remote outcomes to aligned BatchResult records.

Everything here is pure. One mapper per task turns a successful payload
(service JSON shape) into its domain object; ``assemble_outcome`` applies the
success/error split; ``build_batch_result`` folds a whole response.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from castor.errors import InternalError
from castor.models import (
    BatchResult,
    DetectedLanguage,
    DocumentSentiment,
    KeyPhrases,
    SentenceSentiment,
    SentimentConfidenceScores,
    TaskKind,
    TextAnalyticsWarning,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from castor.models import DocumentError, DocumentStatistics
    from castor.providers.models import RemoteBatchResponse, RemoteDocumentOutcome


def _warnings(payload: dict[str, Any]) -> list[TextAnalyticsWarning]:
    return [
        TextAnalyticsWarning(code=str(w["code"]), message=str(w.get("message", "")))
        for w in payload.get("warnings") or []
    ]


def _scores(raw: dict[str, Any]) -> SentimentConfidenceScores:
    return SentimentConfidenceScores(
        positive=float(raw["positive"]),
        neutral=float(raw["neutral"]),
        negative=float(raw["negative"]),
    )


def map_detected_language(payload: dict[str, Any]) -> DetectedLanguage:
    lang = payload["detectedLanguage"]
    return DetectedLanguage(
        name=lang["name"],
        iso6391_name=lang["iso6391Name"],
        confidence_score=float(lang["confidenceScore"]),
    )


def map_key_phrases(payload: dict[str, Any]) -> KeyPhrases:
    """Key phrases keep their warnings on the payload, not the batch."""
    return KeyPhrases(
        key_phrases=[str(p) for p in payload["keyPhrases"]],
        warnings=_warnings(payload),
    )


def map_sentiment(payload: dict[str, Any]) -> DocumentSentiment:
    return DocumentSentiment(
        sentiment=payload["sentiment"],
        confidence_scores=_scores(payload["confidenceScores"]),
        sentences=[
            SentenceSentiment(
                text=s.get("text", ""),
                sentiment=s["sentiment"],
                confidence_scores=_scores(s["confidenceScores"]),
                offset=int(s.get("offset", 0)),
                length=int(s.get("length", 0)),
            )
            for s in payload.get("sentences") or []
        ],
        warnings=_warnings(payload),
    )


MAPPERS: dict[TaskKind, Callable[[Any], Any]] = {
    TaskKind.LANGUAGE_DETECTION: map_detected_language,
    TaskKind.KEY_PHRASES: map_key_phrases,
    TaskKind.SENTIMENT: map_sentiment,
}

PAYLOAD_TYPES: dict[TaskKind, type] = {
    TaskKind.LANGUAGE_DETECTION: DetectedLanguage,
    TaskKind.KEY_PHRASES: KeyPhrases,
    TaskKind.SENTIMENT: DocumentSentiment,
}


def assemble_outcome(
    outcome: RemoteDocumentOutcome, mapper: Callable[[Any], Any]
) -> tuple[Any | None, DocumentError | None, DocumentStatistics | None]:
    """Split one outcome into ``(value, error, statistics)``.

    Exactly one of value/error is set. Statistics only accompany successes.
    """
    if outcome.is_error:
        if outcome.error is None:
            raise InternalError(
                "Erroneous outcome carries no error descriptor",
                hint="Transports must attach a DocumentError to failed documents.",
            )
        return None, outcome.error, None
    return mapper(outcome.payload), None, outcome.statistics


def build_batch_result(response: RemoteBatchResponse, task: TaskKind) -> BatchResult[Any]:
    """Fold a whole response into an aligned BatchResult."""
    mapper = MAPPERS[task]
    results: list[Any | None] = []
    errors: list[DocumentError | None] = []
    statistics: list[DocumentStatistics | None] = []
    for outcome in response.outcomes:
        value, error, stats = assemble_outcome(outcome, mapper)
        results.append(value)
        errors.append(error)
        statistics.append(stats)
    return BatchResult(
        results=results,
        errors=errors,
        statistics=statistics,
        model_version=response.model_version,
    )
