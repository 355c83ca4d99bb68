"""
Token verification pipeline.

A token is checked step by step and the first failing step decides the
error: structure, key id, key lookup, the claims in a fixed order, then the
signature. Callers rely on that order to know which error surfaces when
several checks fail at once.
"""

import json
import time
from typing import Any, Callable, Dict, Tuple, Type

from jose import jwk, jws
from jose.exceptions import JOSEError
from jose.utils import base64url_decode
from pydantic import ValidationError

from .certificates import RS256
from .claims import Claims
from .errors import (
    AuthTimeInFutureError,
    ClaimError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    IssuedInFutureError,
    MalformedTokenError,
    MissingKeyIDError,
    MissingSubjectError,
    NotYetValidError,
    TokenExpiredError,
    UnknownKeyIDError,
)
from .keystore import KeyStore

ClaimCheck = Tuple[Callable[[Claims, "TokenVerifier", int], bool], Type[ClaimError], str]

CLAIM_CHECKS: Tuple[ClaimCheck, ...] = (
    (lambda c, v, now: c.expires_at > now, TokenExpiredError, "exp"),
    (lambda c, v, now: c.issued_at <= now, IssuedInFutureError, "iat"),
    (lambda c, v, now: c.not_before is None or c.not_before <= now, NotYetValidError, "nbf"),
    (lambda c, v, now: c.audience == v.audience, InvalidAudienceError, "aud"),
    (lambda c, v, now: c.issuer == v.issuer, InvalidIssuerError, "iss"),
    (lambda c, v, now: bool(c.subject), MissingSubjectError, "sub"),
    (lambda c, v, now: c.auth_time is None or c.auth_time <= now, AuthTimeInFutureError, "auth_time"),
)


class TokenVerifier:
    """Verifies compact RS256 tokens against the keys held in a KeyStore."""

    def __init__(
        self,
        keystore: KeyStore,
        audience: str,
        issuer: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.keystore = keystore
        self.audience = audience
        self.issuer = issuer
        self.clock = clock

    def verify(self, token: str) -> Claims:
        """Verify ``token`` and return its validated claims."""
        header_raw, payload_raw = self._split(token)

        try:
            header = json.loads(header_raw)
        except ValueError as exc:
            raise MalformedTokenError("Token header is not valid JSON") from exc
        if not isinstance(header, dict):
            raise MalformedTokenError("Token header must be a JSON object")

        kid = header.get("kid")
        if not isinstance(kid, str):
            raise MissingKeyIDError()

        key = self.keystore.current.get(kid)
        if key is None:
            raise UnknownKeyIDError(f"Invalid kid header {kid!r}", details={"kid": kid})

        # Claims are judged before the signature: an expired token is reported
        # as expired whether or not its signature holds.
        claims = self._parse_claims(payload_raw)
        self._validate(claims, int(self.clock()))

        try:
            rsa_key = jwk.construct(key.key, algorithm=key.algorithm or RS256)
            jws.verify(token, rsa_key, algorithms=[key.algorithm or RS256])
        except JOSEError as exc:
            raise InvalidSignatureError(details={"kid": kid, "error": str(exc)}) from exc

        return claims

    def _split(self, token: str) -> Tuple[bytes, bytes]:
        if not isinstance(token, str):
            raise MalformedTokenError("Token must be a string")

        segments = token.split(".")
        if len(segments) != 3:
            raise MalformedTokenError("Token contains an invalid number of segments")

        decoded = []
        for segment in segments:
            try:
                decoded.append(base64url_decode(segment.encode("ascii")))
            except (ValueError, TypeError) as exc:
                raise MalformedTokenError("Token segment is not valid base64url") from exc
        return decoded[0], decoded[1]

    def _parse_claims(self, payload_raw: bytes) -> Claims:
        try:
            payload: Dict[str, Any] = json.loads(payload_raw)
        except ValueError as exc:
            raise MalformedTokenError("Token payload is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise MalformedTokenError("Token payload must be a JSON object")

        try:
            return Claims.model_validate(payload)
        except ValidationError as exc:
            raise MalformedTokenError(
                "Token payload has invalid claim types",
                details={"fields": [".".join(str(p) for p in err["loc"]) for err in exc.errors()]}
            ) from exc

    def _validate(self, claims: Claims, now: int) -> None:
        for predicate, error_cls, claim in CLAIM_CHECKS:
            if not predicate(claims, self, now):
                raise error_cls(details={
                    "claim": claim,
                    "value": claims.to_payload().get(claim),
                    "now": now
                })
