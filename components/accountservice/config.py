from __future__ import annotations
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Development-only fallbacks. Any non-development deployment must override them.
DEV_ACCESS_SECRET = "access-secret"
DEV_REFRESH_SECRET = "refresh-secret"


class AccountConfig(BaseSettings):
    jwt_secret: str = Field(default=DEV_ACCESS_SECRET, min_length=1)
    jwt_refresh_secret: str = Field(default=DEV_REFRESH_SECRET, min_length=1)
    access_ttl_seconds: int = Field(default=900, gt=0)        # 15 minutes
    refresh_ttl_seconds: int = Field(default=604800, gt=0)    # 7 days
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)
    guard_mode: Literal["mock", "jwt"] = Field(
        default="mock",
        validation_alias=AliasChoices("guard_mode", "ACCOUNT_GUARD_MODE"),
    )
    issuer: str = Field(
        default="accountservice",
        validation_alias=AliasChoices("issuer", "AUTH_ISSUER"),
    )
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    def uses_dev_secrets(self) -> bool:
        return self.jwt_secret == DEV_ACCESS_SECRET or self.jwt_refresh_secret == DEV_REFRESH_SECRET
