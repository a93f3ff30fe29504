from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings, overridable through ALBUM_* environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="ALBUM_",
        env_file=".env",
        extra="ignore",
    )

    streams_host: str = "p107-sharedstreams.icloud.com"
    default_album_id: str = "B2EJtdOXm2MG2Rb"
    upstream_timeout_seconds: float = 10.0

    cache_ttl_seconds: float = 600
    cache_max_entries: int = 100

    # Non-numeric derivative names, best first
    preferred_derivatives: List[str] = ["PosterFrame"]
    poster_frame_key: str = "PosterFrame"

    host: str = "127.0.0.1"
    port: int = 8000


@lru_cache
def get_settings() -> Settings:
    return Settings()
