"""Domain models: documents, per-document outcomes, and batch results."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import enum
from typing import Any, Generic, TypeVar

from castor.errors import InternalError

T = TypeVar("T")


class TaskKind(enum.Enum):
    """Analysis performed by the remote service."""

    LANGUAGE_DETECTION = "language_detection"
    KEY_PHRASES = "key_phrases"
    SENTIMENT = "sentiment"


@dataclass(frozen=True)
class Document:
    """One text submitted to the service.

    ``id`` only has to be unique within a single batch.
    """

    id: str
    text: str
    language_hint: str | None = None


@dataclass(frozen=True)
class DocumentError:
    """Server-side failure for a single document."""

    code: str
    message: str
    target: str | None = None


@dataclass(frozen=True)
class DocumentStatistics:
    """Billing statistics the service reports per document."""

    character_count: int
    transaction_count: int


@dataclass(frozen=True)
class TextAnalyticsWarning:
    code: str
    message: str


@dataclass(frozen=True)
class DetectedLanguage:
    name: str
    iso6391_name: str
    confidence_score: float


@dataclass(frozen=True)
class KeyPhrases:
    key_phrases: list[str]
    warnings: list[TextAnalyticsWarning] = field(default_factory=list)


@dataclass(frozen=True)
class SentimentConfidenceScores:
    positive: float
    neutral: float
    negative: float


@dataclass(frozen=True)
class SentenceSentiment:
    text: str
    sentiment: str
    confidence_scores: SentimentConfidenceScores
    offset: int
    length: int


@dataclass(frozen=True)
class DocumentSentiment:
    sentiment: str
    confidence_scores: SentimentConfidenceScores
    sentences: list[SentenceSentiment] = field(default_factory=list)
    warnings: list[TextAnalyticsWarning] = field(default_factory=list)


@dataclass(frozen=True)
class BatchResult(Generic[T]):
    """Positionally aligned outcome of one batch call.

    For every index exactly one of ``results[i]`` / ``errors[i]`` is set;
    ``statistics[i]`` is independently optional.
    """

    results: list[T | None]
    errors: list[DocumentError | None]
    statistics: list[DocumentStatistics | None]
    model_version: str | None = None

    def __post_init__(self) -> None:
        """Enforce alignment so a malformed result never reaches a row."""
        n = len(self.results)
        if len(self.errors) != n or len(self.statistics) != n:
            raise InternalError(
                "BatchResult lists are not aligned: "
                f"results={n}, errors={len(self.errors)}, "
                f"statistics={len(self.statistics)}",
                hint="This is a Castor internal error. Please report it.",
            )
        for i, (value, error) in enumerate(zip(self.results, self.errors)):
            if (value is None) == (error is None):
                raise InternalError(
                    f"BatchResult position {i} must hold exactly one of result/error",
                    hint="This is a Castor internal error. Please report it.",
                )

    def __len__(self) -> int:
        return len(self.results)

    @property
    def ok(self) -> bool:
        """True when no document failed."""
        return all(e is None for e in self.errors)

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form stored in the output column."""
        return asdict(self)
