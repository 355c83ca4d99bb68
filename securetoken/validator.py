"""
Validator facade.

A Validator owns its KeyStore and one background thread that keeps the
keyset fresh. Construction fetches the keyset synchronously and fails if it
cannot, so every Validator that exists can decode tokens.
"""

import threading
import time
from datetime import datetime
from typing import Callable, List, Optional

import httpx

from . import metrics
from .claims import Claims
from .config import ValidatorConfig, load_config
from .errors import SecureTokenError, TokenError
from .keystore import KeyRefresher, KeySet, KeyStore, next_refresh_delay
from .logging import configure_logging, get_logger
from .verifier import TokenVerifier

BEARER_PREFIX = "Bearer "

RefreshErrorHook = Callable[[Exception], None]


class Validator:
    """Validates identity tokens issued for a single project."""

    def __init__(
        self,
        config: ValidatorConfig,
        *,
        http_client: Optional[httpx.Client] = None,
        on_refresh_error: Optional[RefreshErrorHook] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.clock = clock
        self.logger = get_logger("securetoken.validator")
        self.on_refresh_error = on_refresh_error or self._log_refresh_error

        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=config.http_timeout)

        self._store = KeyStore()
        self._refresher = KeyRefresher(config.url, self._client)
        self._verifier = TokenVerifier(self._store, config.audience, config.issuer, clock=clock)
        self._stopped = threading.Event()
        self._refresh_lock = threading.Lock()

        try:
            self.refresh()
        except Exception:
            if self._owns_client:
                self._client.close()
            raise

        self._thread = threading.Thread(
            target=self._loop,
            name=f"securetoken-refresh-{config.audience}",
            daemon=True,
        )
        self._thread.start()

    def __enter__(self) -> "Validator":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def audience(self) -> str:
        return self.config.audience

    @property
    def issuer(self) -> str:
        return self.config.issuer

    def decode(self, token: str) -> Claims:
        """Verify a token and return its claims.

        Raises a TokenError subclass describing the first failed check.
        """
        if isinstance(token, str) and token.startswith(BEARER_PREFIX):
            token = token[len(BEARER_PREFIX):].strip()

        try:
            claims = self._verifier.verify(token)
        except TokenError as exc:
            metrics.record_decode(exc.code)
            self.logger.debug("Token rejected", code=exc.code, error=exc.message)
            raise

        metrics.record_decode("ok")
        return claims

    def exp_time(self) -> datetime:
        """Declared expiry of the current keyset."""
        return self._store.current.expires_at

    def expired(self) -> bool:
        return self.exp_time().timestamp() < self.clock()

    def expires_soon(self, within: float = 600.0) -> bool:
        return self.exp_time().timestamp() < self.clock() + within

    def key_ids(self) -> List[str]:
        return self._store.current.key_ids()

    def refresh(self) -> None:
        """Fetch and publish the latest keyset.

        Refreshes are serialized so an older fetch never overwrites a newer one.
        """
        with self._refresh_lock:
            keyset = self._fetch()
            self._publish(keyset)

    def stop(self) -> None:
        """Stop background refreshes. No new fetch starts after this returns."""
        if not self._stopped.is_set():
            self._stopped.set()
            self.logger.info("Validator stopped", audience=self.audience)

    def close(self, timeout: Optional[float] = 5.0) -> None:
        """Stop, wait briefly for the background thread and release the HTTP client."""
        self.stop()
        thread = getattr(self, "_thread", None)
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        if self._owns_client:
            self._client.close()

    def _fetch(self) -> KeySet:
        try:
            keyset = self._refresher.fetch()
        except SecureTokenError:
            metrics.record_refresh(False)
            raise
        return keyset

    def _publish(self, keyset: KeySet) -> None:
        self._store.publish(keyset)
        metrics.record_refresh(True, keyset.expires_at.timestamp())

    def _next_delay(self) -> float:
        return next_refresh_delay(
            self._store.current.expires_at,
            self.clock(),
            margin=self.config.refresh_margin,
            floor=self.config.min_refresh_interval,
        )

    def _loop(self) -> None:
        while not self._stopped.is_set():
            delay = self._next_delay()
            self.logger.debug("Keyset refresh scheduled", delay=delay)
            if self._stopped.wait(min(delay, threading.TIMEOUT_MAX)):
                return

            try:
                self._refresh_in_background()
            except Exception as exc:
                if self._stopped.is_set():
                    return
                self._report_refresh_error(exc)

    def _refresh_in_background(self) -> None:
        with self._refresh_lock:
            keyset = self._fetch()
            # A fetch that was in flight when stop() was called is dropped.
            if self._stopped.is_set():
                return
            self._publish(keyset)

    def _report_refresh_error(self, exc: Exception) -> None:
        try:
            self.on_refresh_error(exc)
        except Exception:
            self.logger.exception(
                "Refresh error hook failed",
                code=getattr(exc, "code", type(exc).__name__),
                error=str(exc)
            )

    def _log_refresh_error(self, exc: Exception) -> None:
        self.logger.error(
            "Failed to refresh keyset",
            code=getattr(exc, "code", type(exc).__name__),
            error=str(exc),
            url=self.config.url
        )

    def __repr__(self) -> str:
        return f"Validator(audience={self.audience!r}, expires={self.exp_time().isoformat()})"


def new_validator(project_id: str, url: Optional[str] = None, **kwargs) -> Validator:
    """Create a Validator for ``project_id``, optionally against a custom keyset URL."""
    overrides = {"audience": project_id}
    if url:
        overrides["url"] = url
    return Validator(load_config(**overrides), **kwargs)


def from_settings(**kwargs) -> Validator:
    """Process entry point: load settings, configure logging, create a Validator.

    Settings come from ``SECURETOKEN_*`` variables (or ``.env``) and
    ``log_level`` is applied to structured logging before the first fetch.
    Keyword arguments other than settings are passed to Validator.
    """
    validator_kwargs = {
        name: kwargs.pop(name)
        for name in ("http_client", "on_refresh_error", "clock")
        if name in kwargs
    }
    config = load_config(**kwargs)
    configure_logging(config.log_level)
    return Validator(config, **validator_kwargs)
