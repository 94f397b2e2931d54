"""
In-process notifications for phasetrack.

PhaseTrackCore publishes a ProjectEvent after each persisted write. Anything
that wants to react (audit logs, cache invalidation, pushing to a dashboard)
subscribes an EventListener to the engine's bus.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    PROJECT_SCOPED = "project.scoped"
    PROJECT_CLOSED = "project.closed"
    PHASE_ADVANCED = "phase.advanced"
    PHASE_SET = "phase.set"
    STATUS_ANNOTATED = "status.annotated"
    MILESTONE_CREATED = "milestone.created"
    MILESTONE_TOGGLED = "milestone.toggled"
    MILESTONE_UPDATED = "milestone.updated"
    MILESTONE_REMOVED = "milestone.removed"


@dataclass
class Event:
    type: EventType
    timestamp: datetime = field(default_factory=datetime.now)
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProjectEvent(Event):
    """A persisted change to one project, stamped with the revision it produced."""
    project_id: str = ""
    revision: int = 0
    milestone_id: Optional[str] = None


class EventListener(ABC):
    """Receives the event types named in ``subscribed_events``."""

    @property
    @abstractmethod
    def subscribed_events(self) -> List[EventType]:
        ...

    @abstractmethod
    def handle(self, event: Event) -> None:
        ...


class EventBus:
    """
    Dispatches events to listeners, in subscription order.

    Each engine owns its own bus, so listeners never leak between engines.
    Listener errors are logged and swallowed: the write that triggered the
    event has already been saved.
    """

    def __init__(self) -> None:
        self._listeners: Dict[EventType, List[EventListener]] = {}

    def subscribe(self, listener: EventListener) -> None:
        for event_type in listener.subscribed_events:
            self._listeners.setdefault(event_type, []).append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        for listeners in self._listeners.values():
            while listener in listeners:
                listeners.remove(listener)

    def publish(self, event: Event) -> None:
        for listener in list(self._listeners.get(event.type, ())):
            try:
                listener.handle(event)
            except Exception:
                logger.warning(
                    "Listener %s failed on %s", type(listener).__name__, event.type.value,
                    exc_info=True,
                )

    def clear(self) -> None:
        self._listeners.clear()


class LoggingListener(EventListener):
    """Logs every engine event at INFO."""

    @property
    def subscribed_events(self) -> List[EventType]:
        return list(EventType)

    def handle(self, event: Event) -> None:
        if isinstance(event, ProjectEvent):
            logger.info(
                "%s project=%s revision=%s%s",
                event.type.value,
                event.project_id,
                event.revision,
                f" milestone={event.milestone_id}" if event.milestone_id else "",
            )
        else:
            logger.info("%s", event.type.value)
