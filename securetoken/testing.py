"""
Helpers for testing code that depends on securetoken.

Mints throwaway RSA key pairs wrapped in self-signed certificates, serves
them through an ``httpx.MockTransport`` shaped like the real keyset
endpoint, and signs tokens with them.
"""

import hashlib
import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import httpx
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID
from jose import jwt

from .config import ISSUER_TEMPLATE

MOCK_PROJECT = "mock-project"
MOCK_EXPIRES = "Mon, 20 Jan 2020 23:40:59 GMT"


@dataclass
class MockSigningKey:
    """RSA key pair with a matching self-signed certificate."""

    private_key: rsa.RSAPrivateKey
    certificate_pem: str
    kid: str

    @classmethod
    def generate(cls, kid: Optional[str] = None) -> "MockSigningKey":
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        now = datetime.now(timezone.utc)
        name = x509.Name([
            x509.NameAttribute(NameOID.COMMON_NAME, "securetoken.system.gserviceaccount.com")
        ])
        cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(private_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + timedelta(minutes=23775))
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH]), critical=False)
            .sign(private_key, hashes.SHA256())
        )
        der = cert.public_bytes(serialization.Encoding.DER)
        return cls(
            private_key=private_key,
            certificate_pem=cert.public_bytes(serialization.Encoding.PEM).decode("ascii"),
            kid=kid or hashlib.sha1(der).hexdigest(),
        )

    @property
    def private_pem(self) -> str:
        return self.private_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ).decode("ascii")

    def sign(self, payload: Dict[str, Any], headers: Optional[Dict[str, Any]] = None) -> str:
        """Sign ``payload`` with RS256, stamping this key's kid into the header."""
        token_headers = {"kid": self.kid}
        token_headers.update(headers or {})
        return jwt.encode(payload, self.private_pem, algorithm="RS256", headers=token_headers)


def mock_claims(project_id: str = MOCK_PROJECT, now: Optional[int] = None, **overrides) -> Dict[str, Any]:
    """A complete, currently valid claims payload for ``project_id``."""
    now = int(time.time()) if now is None else now
    claims = {
        "name": "Me",
        "picture": "https://test.host/me.jpg",
        "sub": "MDYwNDQwNjUtYWQ0ZC00ZDkwLThl",
        "user_id": "MDYwNDQwNjUtYWQ0ZC00ZDkwLThl",
        "aud": project_id,
        "iss": ISSUER_TEMPLATE.format(audience=project_id),
        "iat": now - 1800,
        "exp": now + 3600,
        "auth_time": now,
        "email": "me@example.com",
        "email_verified": True,
        "firebase": {
            "sign_in_provider": "google.com",
            "identities": {
                "google.com": ["123123123123123123123"],
                "email": ["me@example.com"],
            },
        },
    }
    claims.update(overrides)
    return claims


@dataclass
class MockKeysetEndpoint:
    """In-memory keyset endpoint for ``httpx.MockTransport``."""

    keys: Dict[str, str] = field(default_factory=dict)
    expires: Optional[str] = MOCK_EXPIRES
    status_code: int = 200
    body: Optional[bytes] = None
    requests: int = 0

    @classmethod
    def serving(cls, *signing_keys: MockSigningKey, **kwargs) -> "MockKeysetEndpoint":
        return cls(keys={k.kid: k.certificate_pem for k in signing_keys}, **kwargs)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests += 1
        headers = {"Content-Type": "application/json"}
        if self.expires is not None:
            headers["Expires"] = self.expires
        content = self.body if self.body is not None else json.dumps(self.keys).encode("utf-8")
        return httpx.Response(self.status_code, headers=headers, content=content)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))
