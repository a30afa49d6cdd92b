"""Lifecycle events published by controllers and the dispatcher."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class EventKind(str, Enum):
    START = "start"
    PROGRESS = "progress"
    COMPLETE = "complete"
    STOP = "stop"
    REJECTED = "rejected"
    RESOLUTION_FAILURE = "resolution_failure"
    DISPATCH_ERROR = "dispatch_error"


class LifecycleEvent(BaseModel):
    """One observable step in a task's life."""

    kind: EventKind
    source: str = Field(..., description="Controller or component that published the event")
    tick: int = Field(0, description="Dispatcher tick at publication")
    success: Optional[bool] = Field(None, description="Outcome for terminal events")
    reason: Optional[str] = Field(None, description="Machine readable outcome reason")
    message: Optional[str] = Field(None, description="Short natural-language line for chat")
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.now)

    @property
    def is_terminal(self) -> bool:
        return self.kind in (EventKind.COMPLETE, EventKind.STOP)
