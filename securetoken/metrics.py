"""
Prometheus metrics emitted by securetoken.
"""

from prometheus_client import Counter, Gauge

keyset_refresh_total = Counter(
    "securetoken_keyset_refresh_total",
    "Total keyset refresh attempts",
    ["status"]
)

keyset_expiry_timestamp = Gauge(
    "securetoken_keyset_expiry_timestamp_seconds",
    "Declared expiry of the most recently published keyset"
)

token_decode_total = Counter(
    "securetoken_token_decode_total",
    "Total token decode attempts",
    ["result"]
)


def record_refresh(success: bool, expires_at: float = 0.0) -> None:
    """Record a keyset refresh outcome."""
    keyset_refresh_total.labels(status="success" if success else "failure").inc()
    if success:
        keyset_expiry_timestamp.set(expires_at)


def record_decode(result: str) -> None:
    """Record a decode outcome: ``ok`` or the error code."""
    token_decode_total.labels(result=result).inc()
