"""Configuration: frozen Config with explicit endpoint/credential requirements."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
import os

from dotenv import load_dotenv

from castor.errors import ConfigurationError
from castor.retry import RetryPolicy

load_dotenv()

ENDPOINT_ENV_VAR = "AZURE_LANGUAGE_ENDPOINT"
SUBSCRIPTION_KEY_ENV_VAR = "AZURE_LANGUAGE_KEY"


@dataclass(frozen=True)
class TextAnalyticsOptions:
    """Per-request tuning passed through to the service untouched."""

    #: ``None`` lets the service pick its default ("latest").
    model_version: str | None = None
    include_statistics: bool = False
    disable_service_logs: bool = False


@dataclass(frozen=True)
class Config:
    """Immutable configuration shared by every unit of work.

    Endpoint and subscription key are auto-resolved from
    ``AZURE_LANGUAGE_ENDPOINT`` and ``AZURE_LANGUAGE_KEY`` when omitted.

    Example:
        config = Config(endpoint="https://my-res.cognitiveservices.azure.com")
        # subscription key is resolved from AZURE_LANGUAGE_KEY
    """

    endpoint: str | None = None
    #: Auto-resolved from ``AZURE_LANGUAGE_KEY`` when *None*.
    subscription_key: str | None = None
    use_mock: bool = False
    #: Maximum number of rows in flight at once.
    concurrency: int = 1
    #: Deadline for one row, end to end, in seconds.
    timeout_s: float = 60.0
    text_col: str = "text"
    language_col: str = "language"
    #: Defaults per task ("detected_language", "key_phrases", "sentiment").
    output_col: str | None = None
    options: TextAnalyticsOptions = field(default_factory=TextAnalyticsOptions)
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self) -> None:
        """Auto-resolve credentials and validate configuration."""
        if isinstance(self.concurrency, bool) or not isinstance(
            self.concurrency, int
        ):
            raise ConfigurationError(
                f"concurrency must be an integer, got {type(self.concurrency).__name__}",
                hint="This controls how many rows are analyzed in parallel.",
            )
        if self.concurrency < 1:
            raise ConfigurationError(
                f"concurrency must be ≥ 1, got {self.concurrency}",
                hint="This controls how many rows are analyzed in parallel.",
            )
        if not (self.timeout_s > 0 and math.isfinite(self.timeout_s)):
            raise ConfigurationError(
                f"timeout_s must be a positive number of seconds, got {self.timeout_s}",
                hint="This is the deadline for analyzing a single row.",
            )
        for name in ("text_col", "language_col", "output_col"):
            value = getattr(self, name)
            if value is not None and (not isinstance(value, str) or not value):
                raise ConfigurationError(
                    f"{name} must be a non-empty string",
                    hint="Pass the field name used by your rows.",
                )

        if self.use_mock:
            return

        if self.endpoint is None:
            object.__setattr__(self, "endpoint", os.environ.get(ENDPOINT_ENV_VAR))
        if self.subscription_key is None:
            object.__setattr__(
                self, "subscription_key", os.environ.get(SUBSCRIPTION_KEY_ENV_VAR)
            )

        if not self.endpoint:
            raise ConfigurationError(
                "endpoint required for the analytics service",
                hint=f"Set {ENDPOINT_ENV_VAR} environment variable or pass endpoint=...",
            )
        if not self.endpoint.startswith(("https://", "http://")):
            raise ConfigurationError(
                f"endpoint must be an http(s) URL, got {self.endpoint!r}",
                hint="Use the resource endpoint, e.g. https://<name>.cognitiveservices.azure.com",
            )
        if not self.subscription_key:
            raise ConfigurationError(
                "subscription key required for the analytics service",
                hint=f"Set {SUBSCRIPTION_KEY_ENV_VAR} environment variable or pass subscription_key=...",
            )

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Config(endpoint={self.endpoint!r}, "
            f"subscription_key={'[REDACTED]' if self.subscription_key else None}, "
            f"use_mock={self.use_mock}, concurrency={self.concurrency}, "
            f"timeout_s={self.timeout_s})"
        )

    __repr__ = __str__
