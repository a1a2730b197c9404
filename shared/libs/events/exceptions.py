class EventError(Exception):
    """Base exception for the event layer shared by all services."""

    pass


class EventProcessingError(EventError):
    """Raised when a handler fails to apply an event; the message must be redelivered."""

    def __init__(self, event_type: str, error: str):
        super().__init__(f"Failed to process event {event_type}: {error}")
        self.event_type = event_type
        self.error = error


class SchemaValidationError(EventError):
    """Raised when a payload cannot be decoded into a known event."""

    def __init__(self, message: str = "Invalid event payload"):
        super().__init__(message)
        self.message = message


class InvalidEventKeyError(EventError):
    """Raised when an event is published with a key other than its aggregate id."""

    def __init__(self, expected: str, actual: str):
        super().__init__(
            f"Event key must be the aggregate id '{expected}', got '{actual}'"
        )
        self.expected = expected
        self.actual = actual


class EventPublishError(EventError):
    """Raised when the producer refuses to enqueue an event."""

    def __init__(self, topic: str, error: str):
        super().__init__(f"Failed to publish to {topic}: {error}")
        self.topic = topic
        self.error = error


class ConsumerBindingError(EventError):
    """Raised when a (topic, group) binding is invalid or duplicated."""

    pass


### Kafka errors


class KafkaConnectionError(EventError):
    """Raised when the service cannot reach the Kafka brokers."""

    pass


class KafkaAuthenticationError(KafkaConnectionError):
    """Raised when the brokers reject the client credentials."""

    pass


class KafkaTimeoutError(KafkaConnectionError):
    """Raised when a broker operation times out."""

    pass
