"""Shared transport-side error helpers.

Transports attach retry metadata via RemoteAnalyticsError so retry logic can
be bounded and deterministic without brittle substring matching.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from castor._http import RETRYABLE_STATUS_CODES
from castor.errors import RateLimitError, RemoteAnalyticsError, _walk_exception_chain


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def extract_retry_after_s(exc: BaseException) -> float | None:
    """Walk the exception chain to find a retry-after delay in seconds."""
    for e in _walk_exception_chain(exc):
        value = getattr(e, "retry_after", None)
        if isinstance(value, (int, float)) and value >= 0:
            return float(value)

        response = getattr(e, "response", None)
        headers: Any = getattr(response, "headers", None)
        if headers is None:
            continue
        for name in ("Retry-After", "retry-after-ms", "x-ms-retry-after-ms"):
            raw: Any = None
            try:
                raw = headers.get(name)
            except Exception:
                raw = None
            if not isinstance(raw, str) or not raw.strip():
                continue
            try:
                seconds = float(raw)
            except ValueError:
                continue
            if name != "Retry-After":
                seconds /= 1000.0
            if seconds >= 0:
                return seconds
    return None


def extract_service_error(exc: BaseException) -> dict[str, Any] | None:
    """Return the service's ``{"code", "message", "target"}`` error body, if any.

    When an ``innererror`` is present its code and message are more specific
    and win over the outer ones.
    """
    for e in _walk_exception_chain(exc):
        response = getattr(e, "response", None)
        if not isinstance(response, httpx.Response):
            continue
        try:
            body = response.json()
        except ValueError:
            return None
        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            return None
        inner = error.get("innererror")
        source = inner if isinstance(inner, dict) and inner.get("code") else error
        return {
            "code": str(source.get("code", "")) or None,
            "message": str(source.get("message", "")),
            "target": error.get("target"),
        }
    return None


def _auth_hint(status_code: int | None) -> str | None:
    if status_code in {401, 403}:
        return (
            "Check credentials/permissions (try setting AZURE_LANGUAGE_KEY "
            "or Config.subscription_key)."
        )
    if status_code == 404:
        return "Check that Config.endpoint points at a Language resource."
    return None


def wrap_transport_error(
    exc: BaseException,
    *,
    phase: str,
    message: str | None = None,
    hint: str | None = None,
) -> RemoteAnalyticsError:
    """Map transport exceptions into RemoteAnalyticsError with stable retry metadata."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    # Already wrapped: fill in missing context only.
    if isinstance(exc, RemoteAnalyticsError):
        if exc.phase is None:
            exc.phase = phase
        if hint is not None and exc.hint is None:
            exc.hint = hint
        return exc

    status_code = extract_status_code(exc)
    retry_after_s = extract_retry_after_s(exc)
    service_error = extract_service_error(exc) or {}

    retryable = retry_after_s is not None
    if isinstance(status_code, int) and status_code in RETRYABLE_STATUS_CODES:
        retryable = True
    elif status_code is None:
        for e in _walk_exception_chain(exc):
            if isinstance(
                e, (TimeoutError, httpx.TimeoutException, httpx.TransportError)
            ):
                retryable = True
                break

    msg = message or f"Text analytics {phase} failed"
    status_note = f" (status={status_code})" if isinstance(status_code, int) else ""
    cause = service_error.get("message") or str(exc)

    err_cls: type[RemoteAnalyticsError] = (
        RateLimitError if status_code == 429 else RemoteAnalyticsError
    )
    return err_cls(
        f"{msg}{status_note}: {cause}" if cause else f"{msg}{status_note}",
        code=service_error.get("code"),
        target=service_error.get("target"),
        hint=hint if hint is not None else _auth_hint(status_code),
        retryable=retryable,
        status_code=status_code,
        retry_after_s=retry_after_s,
        phase=phase,
    )
