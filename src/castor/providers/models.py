"""Domain models for the analytics transport layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from castor.config import TextAnalyticsOptions
    from castor.models import Document, DocumentError, DocumentStatistics, TaskKind


@dataclass(frozen=True)
class AnalyticsRequest:
    """A unified request payload for one batch call."""

    task: TaskKind
    documents: tuple[Document, ...]
    options: TextAnalyticsOptions | None = None


@dataclass(frozen=True)
class RemoteDocumentOutcome:
    """Raw per-document result as returned by a transport.

    ``payload`` is the transport's parsed success body (a dict for the REST
    transport); mappers in ``castor.assemble`` turn it into domain objects.
    """

    is_error: bool
    payload: Any = None
    error: DocumentError | None = None
    statistics: DocumentStatistics | None = None


@dataclass(frozen=True)
class RemoteBatchResponse:
    """Per-document outcomes in input order plus the batch's model version."""

    outcomes: tuple[RemoteDocumentOutcome, ...]
    model_version: str | None = None
