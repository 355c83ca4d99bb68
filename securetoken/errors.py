"""
Error taxonomy for securetoken.

Every failure carries a stable ``code`` so callers can tell malformed input
from expired credentials from unknown signing keys in logs and metrics.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Serializable error payload."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class SecureTokenError(Exception):
    """Base exception for securetoken."""

    code = "SECURETOKEN_ERROR"
    default_message = "Token validation error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


# Keyset / configuration errors

class ConfigError(SecureTokenError):
    """Invalid validator configuration."""

    code = "CONFIG_ERROR"
    default_message = "Invalid configuration"


class NetworkError(SecureTokenError):
    """Keyset endpoint could not be reached or answered with an error status."""

    code = "NETWORK_ERROR"
    default_message = "Failed to fetch keyset"


class FormatError(SecureTokenError):
    """Malformed Expires header, JSON body, PEM block or DER structure."""

    code = "FORMAT_ERROR"
    default_message = "Malformed keyset data"


class UnsupportedAlgorithmError(SecureTokenError):
    """Certificate carries a non-RSA public key."""

    code = "UNSUPPORTED_ALGORITHM"
    default_message = "Unsupported public key algorithm"


# Token errors

class TokenError(SecureTokenError):
    """Base class for every decode failure."""

    code = "TOKEN_ERROR"
    default_message = "Invalid token"


class MalformedTokenError(TokenError):
    code = "MALFORMED_TOKEN"
    default_message = "Token is malformed"


class MissingKeyIDError(TokenError):
    code = "MISSING_KEY_ID"
    default_message = "Token header is missing kid"


class UnknownKeyIDError(TokenError):
    code = "UNKNOWN_KEY_ID"
    default_message = "Token signed with an unknown key"


class InvalidSignatureError(TokenError):
    code = "INVALID_SIGNATURE"
    default_message = "Token signature verification failed"


class ClaimError(TokenError):
    """Signature is valid but a claim constraint is not met."""

    code = "INVALID_CLAIM"
    default_message = "Invalid token claim"


class TokenExpiredError(ClaimError):
    code = "EXPIRED"
    default_message = "Token has expired"


class IssuedInFutureError(ClaimError):
    code = "ISSUED_IN_FUTURE"
    default_message = "Token issued in the future"


class NotYetValidError(ClaimError):
    code = "NOT_YET_VALID"
    default_message = "Token is not yet valid"


class InvalidAudienceError(ClaimError):
    code = "INVALID_AUDIENCE"
    default_message = "Invalid audience claim"


class InvalidIssuerError(ClaimError):
    code = "INVALID_ISSUER"
    default_message = "Invalid issuer claim"


class MissingSubjectError(ClaimError):
    code = "MISSING_SUBJECT"
    default_message = "Subject is missing"


class AuthTimeInFutureError(ClaimError):
    code = "AUTH_TIME_IN_FUTURE"
    default_message = "Auth time in the future"
