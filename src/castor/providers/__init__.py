"""Transport implementations."""

from .azure import AzureTextAnalyticsProvider
from .base import RemoteAnalyticsClient
from .mock import MockProvider
from .models import AnalyticsRequest, RemoteBatchResponse, RemoteDocumentOutcome

__all__ = [
    "AnalyticsRequest",
    "AzureTextAnalyticsProvider",
    "MockProvider",
    "RemoteAnalyticsClient",
    "RemoteBatchResponse",
    "RemoteDocumentOutcome",
]
