from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    POSTGRES_HOST: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "media"
    # Full SQLAlchemy URL; takes precedence over the POSTGRES_* settings
    DATABASE_URI: Optional[str] = None

    # Kafka
    KAFKA_BOOTSTRAP_SERVER: str = "kafka:9092"
    EVENT_DEDUP_ENABLED: bool = False

    # Minio
    MINIO_ENDPOINT: str = "minio:9000"
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: str = "minioadmin"
    MINIO_SECURE: bool = False
    MINIO_BUCKET_NAME: str = "marketplace-media"

    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8014

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URI:
            return self.DATABASE_URI
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}/{self.POSTGRES_DB}"

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parent.parent / ".env.media",
        env_file_encoding="utf-8",
        extra="ignore",
    )


config = Config()
