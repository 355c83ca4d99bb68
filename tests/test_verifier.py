"""
Unit tests for TokenVerifier.
"""

import base64
import json
import time

import pytest

from securetoken.claims import Claims
from securetoken.errors import (
    AuthTimeInFutureError,
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
from securetoken.keystore import KeyRefresher, KeyStore
from securetoken.testing import MOCK_PROJECT, mock_claims
from securetoken.verifier import TokenVerifier

NOW = int(time.time())


def _b64(data: dict) -> str:
    return base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()


@pytest.fixture
def verifier(endpoint):
    """Verifier with a populated keystore and a frozen clock."""
    store = KeyStore()
    store.publish(KeyRefresher("https://keys.test", endpoint.client()).fetch())
    return TokenVerifier(
        store,
        audience=MOCK_PROJECT,
        issuer=f"https://securetoken.google.com/{MOCK_PROJECT}",
        clock=lambda: NOW,
    )


class TestTokenStructure:
    """Test cases for structural checks."""

    @pytest.mark.parametrize("token", ["BAD", "a.b", "a.b.c.d", ""])
    def test_wrong_segment_count(self, verifier, token):
        """Test tokens without exactly three segments are malformed."""
        with pytest.raises(MalformedTokenError) as exc_info:
            verifier.verify(token)
        assert exc_info.value.code == "MALFORMED_TOKEN"

    def test_header_not_json(self, verifier):
        """Test an undecodable header is malformed."""
        with pytest.raises(MalformedTokenError):
            verifier.verify("bm90IGpzb24.e30.c2ln")

    def test_header_not_object(self, verifier):
        """Test a non-object header is malformed."""
        token = base64.urlsafe_b64encode(b"[1]").rstrip(b"=").decode() + ".e30.c2ln"
        with pytest.raises(MalformedTokenError):
            verifier.verify(token)

    def test_non_string_token(self, verifier):
        """Test a non-string token is malformed."""
        with pytest.raises(MalformedTokenError):
            verifier.verify(None)

    def test_missing_kid(self, verifier):
        """Test a header without kid is rejected."""
        token = _b64({"alg": "RS256"}) + "." + _b64({}) + ".c2ln"
        with pytest.raises(MissingKeyIDError):
            verifier.verify(token)

    def test_non_string_kid(self, verifier):
        """Test a non-string kid is treated as missing."""
        token = _b64({"alg": "RS256", "kid": 7}) + "." + _b64({}) + ".c2ln"
        with pytest.raises(MissingKeyIDError):
            verifier.verify(token)

    def test_unknown_kid(self, verifier, signing_key):
        """Test a kid absent from the keyset is rejected."""
        token = signing_key.sign(mock_claims(now=NOW), headers={"kid": "unknown"})
        with pytest.raises(UnknownKeyIDError) as exc_info:
            verifier.verify(token)
        assert exc_info.value.details["kid"] == "unknown"


class TestSignature:
    """Test cases for signature verification."""

    def test_valid_signature(self, verifier, signing_key):
        """Test a token signed by a published key verifies."""
        payload = mock_claims(now=NOW)
        claims = verifier.verify(signing_key.sign(payload))
        assert claims == Claims.model_validate(payload)

    def test_foreign_key(self, verifier, signing_key, rogue_key):
        """Test a token signed by another key under a known kid is rejected."""
        token = rogue_key.sign(mock_claims(now=NOW), headers={"kid": signing_key.kid})
        with pytest.raises(InvalidSignatureError):
            verifier.verify(token)

    def test_tampered_payload(self, verifier, signing_key):
        """Test a modified payload invalidates the signature."""
        header, _, signature = signing_key.sign(mock_claims(now=NOW)).split(".")
        forged = _b64(mock_claims(now=NOW, sub="attacker"))
        with pytest.raises(InvalidSignatureError):
            verifier.verify(".".join([header, forged, signature]))

    def test_expired_token_with_bad_signature(self, verifier, signing_key, rogue_key):
        """Test an expired token is reported as expired regardless of its signature."""
        token = rogue_key.sign(mock_claims(now=NOW, exp=NOW - 1), headers={"kid": signing_key.kid})
        with pytest.raises(TokenExpiredError):
            verifier.verify(token)

    def test_invalid_audience_with_bad_signature(self, verifier, signing_key, rogue_key):
        """Test claim failures surface before signature failures."""
        token = rogue_key.sign(mock_claims(now=NOW, aud="other"), headers={"kid": signing_key.kid})
        with pytest.raises(InvalidAudienceError):
            verifier.verify(token)

    def test_invalid_claim_types(self, verifier, signing_key):
        """Test a correctly signed payload with wrong claim types is malformed."""
        token = signing_key.sign(mock_claims(now=NOW, exp="tomorrow"))
        with pytest.raises(MalformedTokenError):
            verifier.verify(token)


class TestClaimValidation:
    """Test cases for claim validation and its ordering."""

    @pytest.mark.parametrize("overrides,error", [
        ({"exp": NOW - 1}, TokenExpiredError),
        ({"exp": NOW}, TokenExpiredError),
        ({"iat": NOW + 1}, IssuedInFutureError),
        ({"nbf": NOW + 1}, NotYetValidError),
        ({"aud": "other"}, InvalidAudienceError),
        ({"iss": "other"}, InvalidIssuerError),
        ({"sub": ""}, MissingSubjectError),
        ({"auth_time": NOW + 1}, AuthTimeInFutureError),
    ])
    def test_single_invalid_claim(self, verifier, signing_key, overrides, error):
        """Test each claim constraint raises its own error."""
        token = signing_key.sign(mock_claims(now=NOW, **overrides))
        with pytest.raises(error):
            verifier.verify(token)

    def test_optional_claims_absent(self, verifier, signing_key):
        """Test nbf and auth_time are only checked when present."""
        payload = mock_claims(now=NOW)
        del payload["auth_time"]
        claims = verifier.verify(signing_key.sign(payload))
        assert claims.auth_time is None
        assert claims.not_before is None

    def test_nbf_in_past(self, verifier, signing_key):
        """Test a past nbf passes."""
        claims = verifier.verify(signing_key.sign(mock_claims(now=NOW, nbf=NOW - 10)))
        assert claims.not_before == NOW - 10

    def test_first_failure_wins(self, verifier, signing_key):
        """Test the fixed check order decides which error surfaces."""
        invalid = {
            "exp": NOW - 1,
            "iat": NOW + 1,
            "nbf": NOW + 1,
            "aud": "other",
            "iss": "other",
            "sub": "",
            "auth_time": NOW + 1,
        }
        expected = [
            ("exp", TokenExpiredError),
            ("iat", IssuedInFutureError),
            ("nbf", NotYetValidError),
            ("aud", InvalidAudienceError),
            ("iss", InvalidIssuerError),
            ("sub", MissingSubjectError),
            ("auth_time", AuthTimeInFutureError),
        ]
        for claim, error in expected:
            with pytest.raises(error) as exc_info:
                verifier.verify(signing_key.sign(mock_claims(now=NOW, **invalid)))
            assert exc_info.value.details["claim"] == claim
            invalid.pop(claim)

        assert verifier.verify(signing_key.sign(mock_claims(now=NOW))).subject

    def test_audience_error_details(self, verifier, signing_key):
        """Test the offending value is reported."""
        with pytest.raises(InvalidAudienceError) as exc_info:
            verifier.verify(signing_key.sign(mock_claims(now=NOW, aud="other")))
        assert exc_info.value.details["value"] == "other"
