"""
Kafka configuration shared by the marketplace services.
Defines settings for Kafka consumers and producers with environment variable support.
"""

from typing import Any, Dict, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class KafkaConfig(BaseSettings):
    """
    Kafka client settings.
    Loads settings from environment variables prefixed with 'KAFKA_'.
    """

    bootstrap_servers: str = "localhost:9092"
    client_id: str = "marketplace"
    auto_offset_reset: str = "earliest"
    # Offsets are committed by the consumer loop after the handler settles.
    enable_auto_commit: bool = False
    session_timeout_ms: int = 45000
    max_poll_interval_ms: int = 300000
    fetch_message_max_bytes: int = 1048576

    # Producer settings
    enable_idempotence: bool = True
    acks: str = "all"
    retries: int = 2147483647
    request_timeout_ms: int = 30000
    linger_ms: int = 5

    # Redelivery policy for strict handlers
    max_delivery_attempts: int = 3
    retry_backoff_seconds: float = 0.5
    workers_per_group: int = 1
    poll_timeout_seconds: float = 1.0

    # Topic provisioning
    num_partitions: int = 3
    topic_replication_factor: int = 1

    # Security (for production)
    security_protocol: str = "PLAINTEXT"
    ssl_cafile: Optional[str] = None
    ssl_certfile: Optional[str] = None
    ssl_keyfile: Optional[str] = None

    def _security_dict(self) -> Dict[str, Any]:
        config: Dict[str, Any] = {"security.protocol": self.security_protocol}
        if self.security_protocol != "PLAINTEXT":
            config.update(
                {
                    "ssl.ca.location": self.ssl_cafile,
                    "ssl.certificate.location": self.ssl_certfile,
                    "ssl.key.location": self.ssl_keyfile,
                }
            )
        return config

    def to_consumer_dict(self, group_id: str) -> Dict[str, Any]:
        """
        Convert configuration to a dictionary for Kafka consumer initialization.

        Args:
            group_id: Consumer group the consumer joins.

        Returns:
            Dict[str, Any]: Configuration dictionary for confluent_kafka.Consumer
        """
        config = {
            "bootstrap.servers": self.bootstrap_servers,
            "client.id": self.client_id,
            "group.id": group_id,
            "auto.offset.reset": self.auto_offset_reset,
            "enable.auto.commit": self.enable_auto_commit,
            "session.timeout.ms": self.session_timeout_ms,
            "max.poll.interval.ms": self.max_poll_interval_ms,
            "fetch.message.max.bytes": self.fetch_message_max_bytes,
            "log.connection.close": False,
        }
        config.update(self._security_dict())
        return config

    def to_producer_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to a dictionary for Kafka producer initialization.

        Returns:
            Dict[str, Any]: Configuration dictionary for confluent_kafka.Producer
        """
        config = {
            "bootstrap.servers": self.bootstrap_servers,
            "client.id": self.client_id,
            "enable.idempotence": self.enable_idempotence,
            "acks": self.acks,
            "retries": self.retries,
            "request.timeout.ms": self.request_timeout_ms,
            "linger.ms": self.linger_ms,
        }
        config.update(self._security_dict())
        return config

    def to_admin_dict(self) -> Dict[str, Any]:
        config = {"bootstrap.servers": self.bootstrap_servers}
        config.update(self._security_dict())
        return config

    model_config = SettingsConfigDict(
        env_prefix="KAFKA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
