"""Client protocol: minimal interface for analytics transports."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from castor.providers.models import AnalyticsRequest, RemoteBatchResponse


@runtime_checkable
class RemoteAnalyticsClient(Protocol):
    """Send one batch of documents for one task.

    Implementations must be safe for concurrent use by many in-flight units
    and return exactly one outcome per input document, in input order. A
    failure of the whole call raises ``RemoteAnalyticsError``.
    """

    async def analyze(self, request: AnalyticsRequest) -> RemoteBatchResponse:
        """Run the request's task over its documents."""
        ...
