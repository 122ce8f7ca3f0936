"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    jwt_issuer: str = "https://aguide.local"
    jwt_ttl_seconds: int = Field(default=3600, gt=0)
    jwt_private_key_pem: SecretStr | None = None
    jwt_private_key_path: Path | None = None
    jwt_public_key_pem: str | None = None
    ownership_secret: SecretStr
    internal_api_secret: SecretStr
    public_path_prefixes: list[str] = [
        "/api/v1/auth/login",
        "/api/v1/auth/register",
        "/api/v1/auth/health",
        "/api/v1/internal/",
        "/docs",
        "/openapi.json",
    ]
    password_hash_rounds: int = Field(default=12, ge=4, le=31)

    model_config = SettingsConfigDict(env_prefix="AGUIDE_", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
