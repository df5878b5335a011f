"""Small HTTP-related constants shared across Castor.

This module is intentionally tiny to avoid circular imports and drift.
"""

from __future__ import annotations

# Retryable status codes shared by transport error mapping and retry.
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 409, 429, 500, 502, 503, 504})

SUBSCRIPTION_KEY_HEADER = "Ocp-Apim-Subscription-Key"
API_VERSION_PATH = "/text/analytics/v3.1"
