"""
Registry of (topic, consumer group) -> handler bindings.
Services build one at startup; the consumer loop dispatches through it.
"""

from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from shared.libs.events.exceptions import ConsumerBindingError
from shared.libs.events.schemas import BaseEvent
from shared.libs.events.topics import CATALOG, groups_for
from shared.libs.observability.logger_config import log

Handler = Callable[[BaseEvent], None]


class Binding(NamedTuple):
    topic: str
    group: str
    handler: Handler
    name: str


class ConsumerRegistry:
    """At most one handler per (topic, group); only catalog bindings are allowed."""

    def __init__(self):
        self._bindings: Dict[Tuple[str, str], Binding] = {}

    def register(
        self, topic: str, group: str, handler: Handler, name: Optional[str] = None
    ) -> Binding:
        if topic not in CATALOG:
            raise ConsumerBindingError(f"Unknown topic: {topic}")
        if group not in groups_for(topic):
            raise ConsumerBindingError(
                f"Group {group} is not a declared consumer of {topic}"
            )
        if (topic, group) in self._bindings:
            raise ConsumerBindingError(
                f"A handler is already registered for {topic} in {group}"
            )

        name = name or getattr(handler, "__qualname__", repr(handler))
        binding = Binding(topic, group, handler, name)
        self._bindings[(topic, group)] = binding
        log.info("Handler registered", topic=topic, group=group, handler=name)
        return binding

    def lookup(self, topic: str, group: str) -> Optional[Binding]:
        return self._bindings.get((topic, group))

    def topics_for(self, group: str) -> List[str]:
        return [topic for (topic, g) in self._bindings if g == group]

    def groups(self) -> List[str]:
        groups: List[str] = []
        for _, group in self._bindings:
            if group not in groups:
                groups.append(group)
        return groups

    def bindings(self) -> List[Binding]:
        return list(self._bindings.values())

    def __len__(self) -> int:
        return len(self._bindings)
