from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    POSTGRES_HOST: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "orders"
    # Full SQLAlchemy URL; takes precedence over the POSTGRES_* settings
    DATABASE_URI: Optional[str] = None

    # Kafka
    KAFKA_BOOTSTRAP_SERVER: str = "kafka:9092"

    # Consistency hardening, both off to keep at-least-once semantics visible
    EVENT_DEDUP_ENABLED: bool = False
    PROFILE_OPTIMISTIC_LOCKING: bool = False
    PROFILE_WRITE_MAX_ATTEMPTS: int = 5

    TOP_PRODUCTS_LIMIT: int = 5

    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8013

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URI:
            return self.DATABASE_URI
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}/{self.POSTGRES_DB}"

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parent.parent / ".env.order",
        env_file_encoding="utf-8",
        extra="ignore",
    )


config = Config()
