"""
securetoken validates Firebase-style identity tokens.

Package layout:

- certificates: PEM certificate to RSA public key decoding
- keystore: keyset fetching, refresh scheduling and atomic publication
- verifier: token structure, signature and claim checks
- validator: facade owning a keystore and its background refresh thread,
  plus the new_validator and from_settings constructors
- claims: the decoded token payload
- config: validator settings via pydantic-settings
- errors: error taxonomy with stable codes
- logging / metrics: structlog and Prometheus helpers
- testing: key, token and endpoint fixtures for consumers' tests
"""

from .claims import Claims, FirebaseClaim, RegisteredClaims
from .config import DEFAULT_URL, ValidatorConfig, load_config
from .errors import (
    AuthTimeInFutureError,
    ClaimError,
    ConfigError,
    FormatError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    IssuedInFutureError,
    MalformedTokenError,
    MissingKeyIDError,
    MissingSubjectError,
    NetworkError,
    NotYetValidError,
    SecureTokenError,
    TokenError,
    TokenExpiredError,
    UnknownKeyIDError,
    UnsupportedAlgorithmError,
)
from .validator import Validator, from_settings, new_validator

__all__ = [
    "AuthTimeInFutureError",
    "ClaimError",
    "Claims",
    "ConfigError",
    "DEFAULT_URL",
    "FirebaseClaim",
    "FormatError",
    "InvalidAudienceError",
    "InvalidIssuerError",
    "InvalidSignatureError",
    "IssuedInFutureError",
    "MalformedTokenError",
    "MissingKeyIDError",
    "MissingSubjectError",
    "NetworkError",
    "NotYetValidError",
    "RegisteredClaims",
    "SecureTokenError",
    "TokenError",
    "TokenExpiredError",
    "UnknownKeyIDError",
    "UnsupportedAlgorithmError",
    "Validator",
    "ValidatorConfig",
    "from_settings",
    "load_config",
    "new_validator",
]
