"""Row adapters: attach one analytics result column to every row."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
import logging
from typing import TYPE_CHECKING, Any

from pydantic import create_model

from castor.assemble import PAYLOAD_TYPES
from castor.errors import ConfigurationError
from castor.invoke import invoke_batch
from castor.models import DocumentError, DocumentStatistics, TaskKind
from castor.process import process_rows

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable, Sequence
    from types import TracebackType

    from castor.config import Config
    from castor.models import BatchResult
    from castor.providers.base import RemoteAnalyticsClient

    ExtractFields = Callable[[Any], tuple[str, str | None]]
    AttachResult = Callable[[Any, BatchResult[Any]], Any]

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_COLS: dict[TaskKind, str] = {
    TaskKind.LANGUAGE_DETECTION: "detected_language",
    TaskKind.KEY_PHRASES: "key_phrases",
    TaskKind.SENTIMENT: "sentiment",
}


def mapping_fields(text_col: str, language_col: str) -> ExtractFields:
    """Read ``(text, language hint)`` from a mapping row by field name.

    A missing or null language field means "no hint"; a null text is sent as
    an empty document and comes back as a per-row error.
    """

    def extract(row: Any) -> tuple[str, str | None]:
        if not isinstance(row, Mapping):
            raise ConfigurationError(
                f"Expected a mapping row, got {type(row).__name__}",
                hint="Pass extract_fields=/attach_result= for other row shapes.",
            )
        if text_col not in row:
            raise ConfigurationError(
                f"Row has no {text_col!r} field",
                hint="Set Config.text_col to the field holding the text.",
            )
        text = row[text_col]
        hint = row.get(language_col)
        return ("" if text is None else str(text)), (str(hint) if hint else None)

    return extract


def mapping_attach(output_col: str) -> AttachResult:
    """Return a new mapping with the result appended; the input is untouched."""

    def attach(row: Any, result: BatchResult[Any]) -> dict[str, Any]:
        return {**row, output_col: result.to_dict()}

    return attach


def _client_from_config(config: Config) -> RemoteAnalyticsClient:
    """Get the appropriate transport based on configuration."""
    if config.use_mock:
        from castor.providers.mock import MockProvider

        return MockProvider()

    from castor.providers.azure import AzureTextAnalyticsProvider

    if not config.endpoint or not config.subscription_key:
        raise ConfigurationError(
            "endpoint and subscription_key required for the real service",
            hint="Set AZURE_LANGUAGE_ENDPOINT/AZURE_LANGUAGE_KEY or use_mock=True.",
        )
    return AzureTextAnalyticsProvider(
        config.endpoint,
        config.subscription_key,
        retry=config.retry,
        timeout_s=config.timeout_s,
    )


class TextAnalytics:
    """One analytics task applied row by row.

    Example:
        config = Config(use_mock=True, concurrency=4)
        async with TextAnalytics(TaskKind.SENTIMENT, config) as sentiment:
            rows = await sentiment.transform([{"text": "I love it"}])
        rows[0]["sentiment"]["results"][0]["sentiment"]  # "positive"
    """

    def __init__(
        self,
        task: TaskKind,
        config: Config,
        *,
        client: RemoteAnalyticsClient | None = None,
        extract_fields: ExtractFields | None = None,
        attach_result: AttachResult | None = None,
    ) -> None:
        """Bind a task to a config; a passed-in client stays owned by the caller."""
        if not isinstance(task, TaskKind):
            raise ConfigurationError(
                f"Unknown task: {task!r}",
                hint=f"Use one of {[t.name for t in TaskKind]}.",
            )
        self.task = task
        self.config = config
        self.output_col = config.output_col or DEFAULT_OUTPUT_COLS[task]
        self._owns_client = client is None
        self._client = client
        self._extract = extract_fields or mapping_fields(
            config.text_col, config.language_col
        )
        self._attach = attach_result or mapping_attach(self.output_col)

    def __repr__(self) -> str:
        return f"TextAnalytics(task={self.task.name}, output_col={self.output_col!r})"

    @property
    def client(self) -> RemoteAnalyticsClient:
        if self._client is None:
            self._client = _client_from_config(self.config)
        return self._client

    async def invoke(
        self, texts: Sequence[str], language_hints: Sequence[str | None]
    ) -> BatchResult[Any]:
        """Analyze a batch of texts with a single remote call."""
        return await invoke_batch(
            self.client,
            self.task,
            texts,
            language_hints,
            options=self.config.options,
        )

    async def _process_row(self, row: Any) -> Any:
        text, hint = self._extract(row)
        result = await self.invoke([text], [hint])
        return self._attach(row, result)

    def stream(self, rows: Iterable[Any] | AsyncIterable[Any]) -> AsyncIterator[Any]:
        """Yield augmented rows in input order as they become available.

        Rows already yielded stay valid if a later row fails; use
        ``transform`` for all-or-nothing semantics.
        """
        return process_rows(
            rows,
            self._process_row,
            concurrency=self.config.concurrency,
            timeout_s=self.config.timeout_s,
        )

    async def transform(self, rows: Iterable[Any] | AsyncIterable[Any]) -> list[Any]:
        """Return every row augmented with the result column, or raise.

        A per-document failure lands in the row's ``errors``; a failed remote
        call or a timeout aborts the whole transform and returns nothing.
        """
        logger.debug("Transform %s starting", self.task.value)
        out = [row async for row in self.stream(rows)]
        logger.debug("Transform %s finished rows=%d", self.task.value, len(out))
        return out

    def transform_columns(self, columns: Sequence[str]) -> tuple[str, ...]:
        """Column names after ``transform``: the input plus the output column."""
        if self.output_col in columns:
            raise ConfigurationError(
                f"Output column {self.output_col!r} already exists",
                hint="Set Config.output_col to an unused name.",
            )
        return (*columns, self.output_col)

    def output_schema(self) -> dict[str, Any]:
        """JSON schema of the value stored in the output column."""
        payload = PAYLOAD_TYPES[self.task]
        model = create_model(
            f"{payload.__name__}BatchResult",
            results=(list[payload | None], ...),
            errors=(list[DocumentError | None], ...),
            statistics=(list[DocumentStatistics | None], ...),
            model_version=(str | None, None),
        )
        return model.model_json_schema()

    async def aclose(self) -> None:
        """Close the transport if this adapter created it."""
        if not self._owns_client or self._client is None:
            return
        client, self._client = self._client, None
        aclose = getattr(client, "aclose", None)
        if callable(aclose):
            await aclose()

    async def __aenter__(self) -> TextAnalytics:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


async def analyze(
    rows: Iterable[Any] | AsyncIterable[Any],
    *,
    task: TaskKind,
    config: Config,
    client: RemoteAnalyticsClient | None = None,
) -> list[Any]:
    """Run one task over all rows and return the augmented rows.

    Args:
        rows: Mapping rows with ``config.text_col`` (and optionally
            ``config.language_col``) fields.
        task: Which analysis to run.
        config: Endpoint, credentials, concurrency and timeout.
        client: Optional transport override; never closed here.

    Returns:
        New rows, in input order, each with ``config.output_col`` added.
    """
    adapter = TextAnalytics(task, config, client=client)
    try:
        return await adapter.transform(rows)
    finally:
        try:
            await adapter.aclose()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # Cleanup should never mask the primary failure.
            logger.warning("Client cleanup failed: %s", exc)


async def detect_language(
    rows: Iterable[Any] | AsyncIterable[Any],
    *,
    config: Config,
    client: RemoteAnalyticsClient | None = None,
) -> list[Any]:
    """Attach the detected language of each row's text."""
    return await analyze(
        rows, task=TaskKind.LANGUAGE_DETECTION, config=config, client=client
    )


async def extract_key_phrases(
    rows: Iterable[Any] | AsyncIterable[Any],
    *,
    config: Config,
    client: RemoteAnalyticsClient | None = None,
) -> list[Any]:
    """Attach the key phrases (and any warnings) of each row's text."""
    return await analyze(rows, task=TaskKind.KEY_PHRASES, config=config, client=client)


async def analyze_sentiment(
    rows: Iterable[Any] | AsyncIterable[Any],
    *,
    config: Config,
    client: RemoteAnalyticsClient | None = None,
) -> list[Any]:
    """Attach document and sentence sentiment of each row's text."""
    return await analyze(rows, task=TaskKind.SENTIMENT, config=config, client=client)
