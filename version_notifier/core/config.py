from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from pathlib import Path


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    # App
    APP_NAME: str = Field(default="version-notifier")
    LOG_LEVEL: str = Field(default="INFO")
    ENVIRONMENT: str = Field(default="production")  # development|production
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Upstream polling
    VERSION_PATH: str = Field(default="/version.txt")
    POLL_INTERVAL_SECONDS: float = Field(default=5.0)
    FETCH_TIMEOUT_SECONDS: float = Field(default=3.0)

    # Streaming
    STREAM_MODE: str = Field(default="fanout")  # fanout|keepalive
    SSE_RETRY_MS: int = Field(default=500)
    KEEPALIVE_INTERVAL_SECONDS: float = Field(default=15.0)
    SINK_QUEUE_SIZE: int = Field(default=16)
    SINK_MAX_FAILURES: int = Field(default=3)

    # Build-time version file
    PUBLIC_DIR: str = Field(default="./public")
    APP_VERSION: str | None = Field(default=None)
    VERSION_FROM_MANIFEST: bool = Field(default=True)
    MANIFEST_PATH: str = Field(default="./pyproject.toml")

    @property
    def upstream_protocol(self) -> str:
        return "http" if self.ENVIRONMENT.lower() == "development" else "https"

    @property
    def version_file(self) -> Path:
        return Path(self.PUBLIC_DIR).expanduser() / self.VERSION_PATH.lstrip("/")


settings = Settings()
