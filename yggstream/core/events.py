"""
Structured events emitted by the stream pipeline.

The aggregation, hash resolution and link resolution steps never log
directly: they publish ``PipelineEvent`` objects on an ``EventBus``. Sinks
(the loguru sink installed by ``main``, or a recorder in tests) subscribe to
the bus and decide what to do with them.
"""

from typing import Any, Callable, Dict, List

from pydantic import BaseModel, Field

from yggstream.utils.logger import addon_logger


# ===========================
# Event Model
# ===========================
class PipelineEvent(BaseModel):
    name: str
    message: str
    level: str = "DEBUG"
    context: str = "STREAM"
    data: Dict[str, Any] = Field(default_factory=dict)


EventHandler = Callable[[PipelineEvent], None]


# ===========================
# Event Bus
# ===========================
class EventBus:

    def __init__(self):
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler):
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler):
        if handler in self._handlers:
            self._handlers.remove(handler)

    def clear(self):
        self._handlers.clear()

    def publish(self, event: PipelineEvent):
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception as e:
                addon_logger.error(f"Event handler failed on {event.name}: {type(e).__name__}")

    def emit(self, name: str, message: str, level: str = "DEBUG", context: str = "STREAM", **data):
        self.publish(PipelineEvent(name=name, message=message, level=level, context=context, data=data))


# ===========================
# Event Recorder
# ===========================
class EventRecorder:
    """Subscriber keeping every event it receives, in order."""

    def __init__(self):
        self.events: List[PipelineEvent] = []

    def __call__(self, event: PipelineEvent):
        self.events.append(event)

    def names(self) -> List[str]:
        return [event.name for event in self.events]


# ===========================
# Global Event Bus Instance
# ===========================
event_bus = EventBus()
