"""
Keyset retrieval and publication.

The keyset endpoint returns a JSON object mapping key ids to PEM encoded
X.509 certificates, with an ``Expires`` header announcing when the set will
rotate. A refresh either publishes a complete new KeySet or leaves the
current one untouched.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

import httpx

from .certificates import PublicKey, decode_certificate
from .errors import FormatError, NetworkError, SecureTokenError
from .logging import get_logger


@dataclass(frozen=True)
class KeySet:
    """Immutable snapshot of the published signing keys."""

    keys: Mapping[str, PublicKey]
    expires_at: datetime

    def get(self, kid: str) -> Optional[PublicKey]:
        return self.keys.get(kid)

    def key_ids(self) -> List[str]:
        return sorted(self.keys)


def parse_expires(value: Optional[str]) -> datetime:
    """Parse an RFC1123 ``Expires`` header into an aware UTC datetime."""
    if not value:
        raise FormatError("Expires header not included in the response")

    try:
        expires_at = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError) as exc:
        raise FormatError("Invalid Expires header", details={"expires": value}) from exc

    if expires_at is None:
        raise FormatError("Invalid Expires header", details={"expires": value})
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at.astimezone(timezone.utc)


def next_refresh_delay(expires_at: datetime, now: float, margin: float, floor: float) -> float:
    """Seconds to wait before the next refresh attempt.

    The delay targets ``margin`` seconds before the keyset expires and never
    drops below ``floor``, so a stale or failed keyset is retried at most
    every ``floor`` seconds.
    """
    delay = expires_at.timestamp() - now - margin
    return max(delay, floor)


class KeyRefresher:
    """Fetches and decodes the remote keyset."""

    def __init__(self, url: str, client: httpx.Client):
        self.url = url
        self.client = client
        self.logger = get_logger("securetoken.keystore")

    def fetch(self) -> KeySet:
        """Download and decode the keyset without publishing it."""
        try:
            response = self.client.get(self.url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NetworkError(
                "Failed to fetch keyset",
                details={"url": self.url, "error": str(exc)}
            ) from exc

        expires_at = parse_expires(response.headers.get("Expires"))

        try:
            payload = response.json()
        except ValueError as exc:
            raise FormatError("Keyset response is not valid JSON", details={"error": str(exc)}) from exc

        if not isinstance(payload, dict):
            raise FormatError("Keyset response must be a JSON object")

        keys: Dict[str, PublicKey] = {}
        for kid, pem in payload.items():
            if not isinstance(pem, str):
                raise FormatError("Keyset entry must be a certificate string", details={"kid": kid})
            try:
                keys[kid] = decode_certificate(pem)
            except SecureTokenError as exc:
                exc.details.setdefault("kid", kid)
                raise

        return KeySet(keys=MappingProxyType(keys), expires_at=expires_at)


class KeyStore:
    """Holder of the current KeySet.

    Readers take the current snapshot with a single attribute read. Writers
    replace the reference wholesale under a lock that readers never touch.
    """

    def __init__(self):
        self._keyset: Optional[KeySet] = None
        self._write_lock = threading.Lock()
        self.logger = get_logger("securetoken.keystore")

    @property
    def current(self) -> KeySet:
        keyset = self._keyset
        if keyset is None:
            raise RuntimeError("KeyStore has not been populated")
        return keyset

    def publish(self, keyset: KeySet) -> None:
        with self._write_lock:
            self._keyset = keyset

        self.logger.info(
            "Keyset published",
            keys_count=len(keyset.keys),
            expires_at=keyset.expires_at.isoformat()
        )
