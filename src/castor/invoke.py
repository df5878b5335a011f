"""Batch invocation: one remote call per batch of (text, language hint) pairs."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from castor.assemble import build_batch_result
from castor.errors import CastorError, ConfigurationError, RemoteAnalyticsError
from castor.models import Document
from castor.providers._errors import wrap_transport_error
from castor.providers.models import AnalyticsRequest

if TYPE_CHECKING:
    from collections.abc import Sequence

    from castor.config import TextAnalyticsOptions
    from castor.models import BatchResult, TaskKind
    from castor.providers.base import RemoteAnalyticsClient

logger = logging.getLogger(__name__)


def build_documents(
    texts: Sequence[str], language_hints: Sequence[str | None]
) -> tuple[Document, ...]:
    """Pair texts with hints positionally and give each a batch-local id.

    Ids are the position as a string, unique within the batch by
    construction.
    """
    if isinstance(texts, str) or isinstance(language_hints, str):
        raise ConfigurationError(
            "texts and language_hints must be sequences, not a single string",
            hint="Wrap a single text as [text].",
        )
    if len(texts) != len(language_hints):
        raise ConfigurationError(
            f"Got {len(texts)} text(s) but {len(language_hints)} language hint(s)",
            hint="Pass exactly one language hint (or None) per text.",
        )
    return tuple(
        Document(id=str(i), text=text, language_hint=hint or None)
        for i, (text, hint) in enumerate(zip(texts, language_hints))
    )


async def invoke_batch(
    client: RemoteAnalyticsClient,
    task: TaskKind,
    texts: Sequence[str],
    language_hints: Sequence[str | None],
    *,
    options: TextAnalyticsOptions | None = None,
) -> BatchResult[Any]:
    """Analyze a batch with exactly one remote call.

    Per-document failures come back in ``BatchResult.errors``. A failure of
    the whole call raises ``RemoteAnalyticsError``; there is no partial result.

    Raises:
        ConfigurationError: If texts and hints differ in length.
        RemoteAnalyticsError: If the remote call fails as a whole.
    """
    documents = build_documents(texts, language_hints)
    request = AnalyticsRequest(task=task, documents=documents, options=options)
    logger.debug("Invoking %s for %d document(s)", task.value, len(documents))

    try:
        response = await client.analyze(request)
    except asyncio.CancelledError:
        raise
    except CastorError:
        # Domain errors already carry code/message/target; re-raise as-is.
        raise
    except Exception as e:
        raise wrap_transport_error(
            e, phase="invoke", message=f"Text analytics {task.value} call failed"
        ) from e

    if len(response.outcomes) != len(documents):
        raise RemoteAnalyticsError(
            f"Client returned {len(response.outcomes)} outcome(s) "
            f"for {len(documents)} document(s)",
            hint="Clients must return exactly one outcome per input document.",
            retryable=False,
            phase="decode",
        )

    try:
        return build_batch_result(response, task)
    except (KeyError, TypeError, ValueError) as e:
        raise RemoteAnalyticsError(
            f"Client returned a malformed {task.value} payload: {e!r}",
            hint="Success payloads must follow the service document shape.",
            retryable=False,
            phase="decode",
        ) from e
