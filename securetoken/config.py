"""
Validator configuration.

Values come from keyword arguments first, then ``SECURETOKEN_*`` environment
variables, then a local ``.env`` file.
"""

from typing import Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

DEFAULT_URL = "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
ISSUER_TEMPLATE = "https://securetoken.google.com/{audience}"
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


class ValidatorConfig(BaseSettings):
    """Configuration for a single Validator."""

    model_config = SettingsConfigDict(
        env_prefix="SECURETOKEN_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Project ID the tokens must be issued for
    audience: str
    issuer: Optional[str] = None

    # Keyset endpoint
    url: str = DEFAULT_URL

    # Scheduling, in seconds
    refresh_margin: float = Field(default=3600.0, ge=0)
    min_refresh_interval: float = Field(default=60.0, gt=0)

    # Only applied to the HTTP client the Validator creates itself
    http_timeout: float = Field(default=10.0, gt=0)

    # Applied by from_settings() through configure_logging()
    log_level: str = "info"

    @field_validator("audience")
    @classmethod
    def _audience_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("audience must not be empty")
        return value

    @field_validator("url")
    @classmethod
    def _url_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("url must not be empty")
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return value

    @model_validator(mode="after")
    def _derive_issuer(self) -> "ValidatorConfig":
        if not self.issuer:
            self.issuer = ISSUER_TEMPLATE.format(audience=self.audience)
        return self


def load_config(**overrides) -> ValidatorConfig:
    """Build a ValidatorConfig, raising ConfigError on invalid input."""
    try:
        return ValidatorConfig(**overrides)
    except ValidationError as exc:
        raise ConfigError(
            "Invalid validator configuration",
            details={"errors": [
                {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in exc.errors()
            ]}
        ) from exc
