"""Castor: row-wise text analytics with bounded concurrency.

Public API:
    - analyze(): Run one task over rows and attach the result column
    - detect_language() / extract_key_phrases() / analyze_sentiment()
    - TextAnalytics: Reusable per-task adapter (stream, transform, invoke)
    - Config: Configuration dataclass
"""

from __future__ import annotations

import logging

from castor.config import Config, TextAnalyticsOptions
from castor.errors import (
    CastorError,
    ConfigurationError,
    InternalError,
    RateLimitError,
    RemoteAnalyticsError,
    RowTimeoutError,
)
from castor.invoke import invoke_batch
from castor.models import (
    BatchResult,
    DetectedLanguage,
    Document,
    DocumentError,
    DocumentSentiment,
    DocumentStatistics,
    KeyPhrases,
    SentenceSentiment,
    SentimentConfidenceScores,
    TaskKind,
    TextAnalyticsWarning,
)
from castor.process import process_rows
from castor.retry import RetryPolicy
from castor.transform import (
    TextAnalytics,
    analyze,
    analyze_sentiment,
    detect_language,
    extract_key_phrases,
)

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("castor-ai")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("castor").addHandler(logging.NullHandler())

__all__ = [
    "BatchResult",
    "CastorError",
    "Config",
    "ConfigurationError",
    "DetectedLanguage",
    "Document",
    "DocumentError",
    "DocumentSentiment",
    "DocumentStatistics",
    "InternalError",
    "KeyPhrases",
    "RateLimitError",
    "RemoteAnalyticsError",
    "RetryPolicy",
    "RowTimeoutError",
    "SentenceSentiment",
    "SentimentConfidenceScores",
    "TaskKind",
    "TextAnalytics",
    "TextAnalyticsOptions",
    "TextAnalyticsWarning",
    "analyze",
    "analyze_sentiment",
    "detect_language",
    "extract_key_phrases",
    "invoke_batch",
    "process_rows",
]
