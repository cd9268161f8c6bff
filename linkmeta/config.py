from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="LINKMETA_", extra="ignore"
    )

    app_name: str = "linkmeta"
    log_level: str = "INFO"

    fetch_timeout: float = 7.0
    max_response_bytes: int = 150 * 1024
    max_redirects: int = 5
    user_agent: str = "linkmeta/0.1 (+link preview)"

    cache_ttl_seconds: float | None = 24 * 60 * 60
    cache_max_entries: int = 1024

    allowed_ports: list[int] = [80, 443, 8080]
    allow_private_hosts: bool = False

    # token -> capabilities; leaving this empty disables authentication
    api_tokens: dict[str, list[str]] = {}
    required_capability: str = "edit_posts"


@lru_cache
def get_settings() -> Settings:
    return Settings()
