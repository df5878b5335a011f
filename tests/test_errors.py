from __future__ import annotations

import pytest

from castor.errors import (
    CastorError,
    RateLimitError,
    RemoteAnalyticsError,
    RowTimeoutError,
)

pytestmark = pytest.mark.unit


def test_remote_analytics_error_structured_metadata() -> None:
    err = RemoteAnalyticsError(
        "boom",
        code="InvalidRequest",
        target="documents",
        hint="do this",
        retryable=True,
        status_code=400,
        retry_after_s=2.0,
        phase="request",
        row_idx=3,
    )

    assert str(err) == "boom"
    assert err.message == "boom"
    assert err.code == "InvalidRequest"
    assert err.target == "documents"
    assert err.hint == "do this"
    assert err.retryable is True
    assert err.status_code == 400
    assert err.retry_after_s == 2.0
    assert err.phase == "request"
    assert err.row_idx == 3


def test_remote_analytics_error_defaults_to_none() -> None:
    err = RemoteAnalyticsError("fail")
    assert err.code is None
    assert err.target is None
    assert err.hint is None
    assert err.retryable is None
    assert err.status_code is None
    assert err.retry_after_s is None
    assert err.phase is None
    assert err.row_idx is None


def test_subclass_hierarchy() -> None:
    """RateLimitError and RowTimeoutError are catchable as CastorError."""
    rate_err = RateLimitError("rate limit", status_code=429, retryable=True)
    timeout_err = RowTimeoutError("slow", row_idx=1, timeout_s=0.5)

    assert isinstance(rate_err, RemoteAnalyticsError)
    assert isinstance(rate_err, CastorError)
    assert isinstance(timeout_err, CastorError)
    assert isinstance(timeout_err, TimeoutError)
    assert timeout_err.row_idx == 1
    assert timeout_err.timeout_s == 0.5
