from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SHG_", case_sensitive=False)

    deploy_env: str = "development"
    encryption_key: str | None = Field(
        default=None, description="AES-256-GCM key as 64 hex characters"
    )
    api_keys: str = Field(default="dev-key", description="Comma separated API keys")
    log_level: str = "INFO"
    metrics_enabled: bool = True
    org_name: str = Field(
        default="our church", description="Fallback organization name when no header is sent"
    )

    # Provider
    provider_name: str = "openai"
    provider_base_url: str = "https://api.openai.com"
    provider_timeout_s: float = 30.0
    model: str = "gpt-4o-mini"
    suggestions_temperature: float = 0.7
    suggestions_max_tokens: int = 2000
    draft_temperature: float = 0.7
    draft_max_tokens: int = 4000

    # Quota
    quota_timezone: str = "UTC"

    # Storage
    database_backend: str = "sqlite"
    database_path: Path = Path("artifacts/sermon_helper.db")
    database_dsn: str | None = None

    @property
    def api_key_set(self) -> set[str]:
        return {item.strip() for item in self.api_keys.split(",") if item.strip()}

    @property
    def deploy_env_normalized(self) -> str:
        return self.deploy_env.strip().lower()

    @property
    def encryption_configured(self) -> bool:
        key = (self.encryption_key or "").strip()
        if len(key) != 64:
            return False
        try:
            bytes.fromhex(key)
        except ValueError:
            return False
        return True

    @property
    def database_backend_normalized(self) -> str:
        return self.database_backend.strip().lower()

    @property
    def provider_name_normalized(self) -> str:
        return self.provider_name.strip().lower()


@lru_cache
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    get_settings.cache_clear()
