from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "crowdpointer"
    base_url: str = "http://localhost:8000"
    broadcast_interval: float = 0.2
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="CROWDPOINTER_", case_sensitive=False)


@lru_cache
def get_settings() -> Settings:
    return Settings()
