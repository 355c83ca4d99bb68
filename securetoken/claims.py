"""
Token claims.

On the wire the registered claims and the provider extension fields share a
single flat JSON object; in memory they are modelled as two layers, with the
provider-specific ``firebase`` block kept nested.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FirebaseClaim(BaseModel):
    """Provider specific sign-in details."""

    sign_in_provider: str = ""
    identities: Dict[str, List[str]] = Field(default_factory=dict)


class RegisteredClaims(BaseModel):
    """Standard JWT claims."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    subject: str = Field(default="", alias="sub")
    audience: str = Field(default="", alias="aud")
    issuer: str = Field(default="", alias="iss")
    issued_at: int = Field(default=0, alias="iat")
    expires_at: int = Field(default=0, alias="exp")
    not_before: Optional[int] = Field(default=None, alias="nbf")


class Claims(RegisteredClaims):
    """Registered claims plus the identity provider's extension fields.

    Unknown payload fields (custom claims) are preserved and exposed through
    ``custom_claims``.
    """

    name: str = ""
    picture: str = ""
    user_id: str = ""
    auth_time: Optional[int] = None
    email: str = ""
    email_verified: bool = False
    firebase: Optional[FirebaseClaim] = None

    @property
    def custom_claims(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})

    def to_payload(self) -> Dict[str, Any]:
        """Flat wire representation."""
        return self.model_dump(by_alias=True, exclude_none=True)
