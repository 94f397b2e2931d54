"""
Managers for phasetrack.

This package contains focused manager classes that handle specific aspects of the engine:
- StorageManager / InMemoryStorage: persistence of project records
- LockManager: per-project write serialization
- MilestoneManager: milestone store (create, toggle, update, remove)
- ProgressCalculator: phase and overall progress, status bucketing
- ProjectStateMachine: pipeline transitions
- SyncManager: foreground/background snapshot reads
- EventBus: event-driven notifications after writes
"""

from phasetrack.managers.storage_manager import (
    InMemoryStorage,
    StorageBackend,
    StorageManager,
)
from phasetrack.managers.lock_manager import LockManager
from phasetrack.managers.milestone_manager import MilestoneManager
from phasetrack.managers.progress_calculator import ProgressCalculator
from phasetrack.managers.state_machine import ProjectStateMachine
from phasetrack.managers.sync_manager import SyncManager
from phasetrack.managers.events import (
    Event,
    EventBus,
    EventListener,
    EventType,
    LoggingListener,
    ProjectEvent,
)

__all__ = [
    "StorageBackend",
    "StorageManager",
    "InMemoryStorage",
    "LockManager",
    "MilestoneManager",
    "ProgressCalculator",
    "ProjectStateMachine",
    "SyncManager",
    "Event",
    "EventBus",
    "EventListener",
    "EventType",
    "LoggingListener",
    "ProjectEvent",
]
