"""Exception hierarchy for Castor.

Per-document failures are data (see ``BatchResult.errors``) and never show up
here. These exceptions are reserved for failures that abort a whole call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class CastorError(Exception):
    """Base exception for all Castor errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(CastorError):
    """Configuration validation or resolution failed."""


class InternalError(CastorError):
    """A Castor internal error (bug) or invariant violation."""


class RemoteAnalyticsError(CastorError):
    """A whole batch call to the analytics service failed.

    Carries the service's ``code``/``target`` when it returned an error body,
    plus retry metadata so the transport can retry without string matching.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        target: str | None = None,
        hint: str | None = None,
        retryable: bool | None = None,
        status_code: int | None = None,
        retry_after_s: float | None = None,
        phase: str | None = None,
        row_idx: int | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.code = code
        self.target = target
        self.retryable = retryable
        self.status_code = status_code
        self.retry_after_s = retry_after_s
        self.phase = phase
        self.row_idx = row_idx

    @property
    def message(self) -> str:
        return self.args[0] if self.args else ""


class RateLimitError(RemoteAnalyticsError):
    """Rate limit exceeded (HTTP 429)."""


class RowTimeoutError(CastorError, TimeoutError):
    """A unit of work did not finish within its deadline."""

    def __init__(
        self,
        message: str,
        *,
        row_idx: int | None = None,
        timeout_s: float | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.row_idx = row_idx
        self.timeout_s = timeout_s


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
