from pathlib import Path
from typing import Optional
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # Used when DATABASE_URL is unset and a Postgres host is configured
    host: Optional[str] = Field(default=None, alias="POSTGRES_HOST")
    port: int = Field(default=5432, alias="POSTGRES_DB_PORT")
    db_name: str = Field(default="studydeck", alias="POSTGRES_DB_NAME")
    user: str = Field(default="postgres", alias="POSTGRES_DB_USER")
    password: str = Field(default="", alias="POSTGRES_DB_PASSWORD")

    @computed_field
    def connection_string(self) -> str:
        if self.url:
            return self.url
        if self.host:
            return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.db_name}"
        return "sqlite+aiosqlite:///./studydeck.db"


class StudySettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    api_base_url: str = Field(
        default="http://localhost:9000", alias="STUDY_API_BASE_URL"
    )
    learner_id: str = Field(default="local", alias="STUDY_LEARNER_ID")
    debounce_seconds: float = Field(
        default=1.0, alias="STUDY_SAVE_DEBOUNCE_SECONDS"
    )
    local_cache_path: Path = Field(
        default_factory=lambda: Path.home() / ".studydeck" / "progress.json",
        alias="STUDY_LOCAL_CACHE_PATH",
    )
    storage_key: str = Field(
        default="flashcard_study_progress", alias="STUDY_STORAGE_KEY"
    )
    request_timeout: float = Field(default=10.0, alias="STUDY_REQUEST_TIMEOUT")


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    name: str = Field(default="studydeck", alias="APP_NAME")
    version: str = Field(default="v1", alias="API_VERSION")
    port: int = Field(default=9000, alias="APP_PORT")
    mode: str = Field(default="prod", alias="MODE")

    @computed_field
    def is_production(self) -> bool:
        return self.mode != "dev"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=lambda: AppSettings())
    database: DatabaseSettings = Field(default_factory=lambda: DatabaseSettings())
    study: StudySettings = Field(default_factory=lambda: StudySettings())


settings = Settings()
