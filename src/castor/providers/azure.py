"""Azure Text Analytics (v3.1 REST) transport."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from castor._http import API_VERSION_PATH, SUBSCRIPTION_KEY_HEADER
from castor.errors import RemoteAnalyticsError
from castor.models import DocumentError, DocumentStatistics, TaskKind
from castor.providers._errors import wrap_transport_error
from castor.providers.models import RemoteBatchResponse, RemoteDocumentOutcome
from castor.retry import RetryPolicy, retry_async, should_retry

if TYPE_CHECKING:
    from castor.models import Document
    from castor.providers.models import AnalyticsRequest

logger = logging.getLogger(__name__)

_TASK_PATHS: dict[TaskKind, str] = {
    TaskKind.LANGUAGE_DETECTION: "/languages",
    TaskKind.KEY_PHRASES: "/keyPhrases",
    TaskKind.SENTIMENT: "/sentiment",
}


# =============================================================================
# Wire models (service JSON, camelCase as sent)
# =============================================================================


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class _WireStatistics(_WireModel):
    charactersCount: int  # noqa: N815
    transactionsCount: int  # noqa: N815


class _WireError(_WireModel):
    code: str
    message: str = ""
    target: str | None = None
    innererror: _WireError | None = None


class _WireDocumentError(_WireModel):
    id: str
    error: _WireError


class _WireWarning(_WireModel):
    code: str
    message: str = ""


class _WireDocument(_WireModel):
    id: str
    warnings: list[_WireWarning] = []
    statistics: _WireStatistics | None = None


class _WireDetectedLanguage(_WireModel):
    name: str
    iso6391Name: str  # noqa: N815
    confidenceScore: float  # noqa: N815


class _WireLanguageDocument(_WireDocument):
    detectedLanguage: _WireDetectedLanguage  # noqa: N815


class _WireKeyPhraseDocument(_WireDocument):
    keyPhrases: list[str]  # noqa: N815


class _WireConfidenceScores(_WireModel):
    positive: float
    neutral: float
    negative: float


class _WireSentence(_WireModel):
    text: str = ""
    sentiment: str
    confidenceScores: _WireConfidenceScores  # noqa: N815
    offset: int = 0
    length: int = 0


class _WireSentimentDocument(_WireDocument):
    sentiment: str
    confidenceScores: _WireConfidenceScores  # noqa: N815
    sentences: list[_WireSentence] = []


_DOCUMENT_MODELS: dict[TaskKind, type[_WireDocument]] = {
    TaskKind.LANGUAGE_DETECTION: _WireLanguageDocument,
    TaskKind.KEY_PHRASES: _WireKeyPhraseDocument,
    TaskKind.SENTIMENT: _WireSentimentDocument,
}


class _WireBatchResponse(_WireModel):
    documents: list[dict[str, Any]] = []
    errors: list[_WireDocumentError] = []
    modelVersion: str | None = None  # noqa: N815


# =============================================================================
# Transport
# =============================================================================


class AzureTextAnalyticsProvider:
    """Text Analytics v3.1 REST client over a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        endpoint: str,
        subscription_key: str,
        *,
        retry: RetryPolicy | None = None,
        timeout_s: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create a client bound to one resource endpoint."""
        self.endpoint = endpoint.rstrip("/")
        self.subscription_key = subscription_key
        self.retry = retry or RetryPolicy()
        self.timeout_s = timeout_s
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def __repr__(self) -> str:
        return f"AzureTextAnalyticsProvider(endpoint={self.endpoint!r})"

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily initialize and return the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=f"{self.endpoint}{API_VERSION_PATH}",
                headers={SUBSCRIPTION_KEY_HEADER: self.subscription_key},
                timeout=httpx.Timeout(self.timeout_s),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Release pooled connections."""
        if self._client is not None:
            client, self._client = self._client, None
            await client.aclose()

    async def analyze(self, request: AnalyticsRequest) -> RemoteBatchResponse:
        """Send one batch and return outcomes aligned to input order."""
        task = request.task
        body = {"documents": [_document_body(task, d) for d in request.documents]}
        params = _query_params(request)

        if self.retry.max_attempts <= 1:
            raw = await self._post(task, body, params)
        else:
            raw = await retry_async(
                lambda: self._post(task, body, params),
                policy=self.retry,
                should_retry=should_retry,
            )
        return _parse_batch(task, request.documents, raw)

    async def _post(
        self, task: TaskKind, body: dict[str, Any], params: dict[str, str]
    ) -> Any:
        client = self._get_client()
        path = _TASK_PATHS[task]
        logger.debug("POST %s documents=%d", path, len(body["documents"]))
        try:
            response = await client.post(path, json=body, params=params)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise wrap_transport_error(
                e, phase="request", message=f"Text analytics {path} call failed"
            ) from e


def _document_body(task: TaskKind, document: Document) -> dict[str, str]:
    out = {"id": document.id, "text": document.text}
    if document.language_hint:
        key = "countryHint" if task is TaskKind.LANGUAGE_DETECTION else "language"
        out[key] = document.language_hint
    return out


def _query_params(request: AnalyticsRequest) -> dict[str, str]:
    params: dict[str, str] = {}
    options = request.options
    if options is None:
        return params
    if options.model_version:
        params["model-version"] = options.model_version
    if options.include_statistics:
        params["showStats"] = "true"
    if options.disable_service_logs:
        params["loggingOptOut"] = "true"
    return params


def _decode_error(message: str) -> RemoteAnalyticsError:
    return RemoteAnalyticsError(
        message,
        hint="The service returned a response Castor could not decode.",
        retryable=False,
        phase="decode",
    )


def _to_document_error(error: _WireError) -> DocumentError:
    # The inner error names the concrete cause (e.g. UnsupportedLanguageCode).
    source = error.innererror or error
    return DocumentError(
        code=source.code,
        message=source.message,
        target=source.target if source.target is not None else error.target,
    )


def _parse_batch(
    task: TaskKind, documents: tuple[Document, ...], raw: Any
) -> RemoteBatchResponse:
    """Validate the body and re-align documents/errors to input order by id."""
    doc_model = _DOCUMENT_MODELS[task]
    try:
        batch = _WireBatchResponse.model_validate(raw)
    except ValidationError as e:
        raise _decode_error(f"Malformed {task.value} response: {e}") from e

    position = {d.id: i for i, d in enumerate(documents)}
    slots: list[RemoteDocumentOutcome | None] = [None] * len(documents)

    for item in batch.documents:
        try:
            parsed = doc_model.model_validate(item)
        except ValidationError as e:
            raise _decode_error(f"Malformed {task.value} document: {e}") from e
        idx = position.get(parsed.id)
        if idx is None:
            raise _decode_error(f"Response names unknown document id {parsed.id!r}")
        if slots[idx] is not None:
            raise _decode_error(f"Response repeats document id {parsed.id!r}")
        stats = parsed.statistics
        slots[idx] = RemoteDocumentOutcome(
            is_error=False,
            payload=item,
            statistics=DocumentStatistics(
                character_count=stats.charactersCount,
                transaction_count=stats.transactionsCount,
            )
            if stats is not None
            else None,
        )

    for err in batch.errors:
        idx = position.get(err.id)
        if idx is None:
            raise _decode_error(f"Response names unknown document id {err.id!r}")
        if slots[idx] is not None:
            raise _decode_error(f"Response repeats document id {err.id!r}")
        slots[idx] = RemoteDocumentOutcome(
            is_error=True, error=_to_document_error(err.error)
        )

    missing = [documents[i].id for i, slot in enumerate(slots) if slot is None]
    if missing:
        raise _decode_error(f"Response is missing documents {missing}")

    return RemoteBatchResponse(
        outcomes=tuple(s for s in slots if s is not None),
        model_version=batch.modelVersion,
    )
