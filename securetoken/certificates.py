"""
PEM certificate decoding.

Only RSA signing keys are accepted; certificates carrying any other key type
are rejected rather than silently ignored.
"""

from dataclasses import dataclass
from typing import Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import rsa

from .errors import FormatError, UnsupportedAlgorithmError

PEM_CERTIFICATE_HEADER = "-----BEGIN CERTIFICATE-----"
RS256 = "RS256"


@dataclass(frozen=True)
class PublicKey:
    """RSA public key extracted from a certificate."""

    key: rsa.RSAPublicKey
    algorithm: str = RS256


def decode_certificate(pem: Union[str, bytes]) -> PublicKey:
    """Extract the RSA public key from a PEM encoded X.509 certificate."""
    if isinstance(pem, str):
        pem = pem.encode("utf-8")

    if PEM_CERTIFICATE_HEADER.encode("ascii") not in pem:
        raise FormatError("Invalid certificate: no PEM block found")

    try:
        cert = x509.load_pem_x509_certificate(pem)
    except ValueError as exc:
        raise FormatError("Invalid certificate", details={"error": str(exc)}) from exc

    try:
        public_key = cert.public_key()
    except (UnsupportedAlgorithm, ValueError) as exc:
        raise UnsupportedAlgorithmError(
            "Unexpected public key algorithm",
            details={"error": str(exc)}
        ) from exc

    if not isinstance(public_key, rsa.RSAPublicKey):
        raise UnsupportedAlgorithmError(
            f"Unexpected public key algorithm: {type(public_key).__name__}"
        )

    return PublicKey(key=public_key)
