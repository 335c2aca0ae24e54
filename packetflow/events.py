"""Workflow events for the PacketFlow engine.

Every state-machine operation that changes a workflow emits a typed
WorkflowEvent. The state machine keeps its own append-only list of events and
also dispatches each one through an EventEmitter, so callers can build an audit
trail or push progress notifications without polling.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
import json
import logging
from typing import Any, Callable, Dict, List, Optional
import uuid

from dateutil.parser import isoparse

from packetflow.types import WorkflowState

logger = logging.getLogger(__name__)


class WorkflowEventType(str, Enum):
    """Kinds of workflow events."""
    WORKFLOW_STARTED = "workflow.started"
    WORKFLOW_LOADED = "workflow.loaded"
    FORM_STATUS_CHANGED = "form.status_changed"
    FORM_VALIDATED = "form.validated"
    FORM_VALIDATION_FAILED = "form.validation_failed"
    FORM_SAVED = "form.saved"
    NAVIGATION_FORWARD = "navigation.forward"
    NAVIGATION_BACK = "navigation.back"
    NAVIGATION_JUMP = "navigation.jump"
    NAVIGATION_BLOCKED = "navigation.blocked"
    AUTOFILL_APPLIED = "autofill.applied"
    PACKET_VALIDATED = "packet.validated"
    PHASE_CHANGED = "phase.changed"
    WORKFLOW_FILED = "workflow.filed"
    WORKFLOW_RESET = "workflow.reset"


@dataclass(frozen=True)
class WorkflowEvent:
    """A single event in a packet workflow's life.

    Attributes:
        event_id: Unique event identifier (e.g. "evt_3f2a...")
        type: Event type
        workflow_id: Workflow the event relates to
        ts: UTC timestamp
        state: Workflow phase after the event
        payload: Optional event-specific data (form type, statuses, counts)

    Examples:
        >>> from datetime import datetime, timezone
        >>> event = WorkflowEvent(
        ...     event_id="evt_001",
        ...     type=WorkflowEventType.NAVIGATION_FORWARD,
        ...     workflow_id="wf_001",
        ...     ts=datetime(2025, 1, 1, tzinfo=timezone.utc),
        ...     state=WorkflowState.FILLING_FORMS,
        ...     payload={"from": "DV-100", "to": "CLETS-001"},
        ... )
        >>> event.to_dict()["type"]
        'navigation.forward'
    """
    event_id: str
    type: WorkflowEventType
    workflow_id: str
    ts: datetime
    state: WorkflowState
    payload: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if isinstance(self.type, str) and not isinstance(self.type, WorkflowEventType):
            object.__setattr__(self, "type", WorkflowEventType(self.type))
        if isinstance(self.state, str) and not isinstance(self.state, WorkflowState):
            object.__setattr__(self, "state", WorkflowState(self.state))

    @staticmethod
    def new_id() -> str:
        return f"evt_{uuid.uuid4().hex[:16]}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization, timestamp as ISO 8601."""
        result: Dict[str, Any] = {
            "eventId": self.event_id,
            "type": self.type.value,
            "workflowId": self.workflow_id,
            "ts": self.ts.isoformat(),
            "state": self.state.value,
        }
        if self.payload is not None:
            result["payload"] = self.payload
        return result

    def to_jsonl(self) -> str:
        """Single-line JSON for appending to an event log."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowEvent":
        return cls(
            event_id=data["eventId"],
            type=WorkflowEventType(data["type"]),
            workflow_id=data["workflowId"],
            ts=isoparse(data["ts"]),
            state=WorkflowState(data["state"]),
            payload=data.get("payload"),
        )


EventListener = Callable[[WorkflowEvent], None]


class EventEmitter:
    """Dispatches workflow events to subscribed listeners.

    Listeners run synchronously in registration order: type-specific listeners
    first, then wildcard listeners. A failing listener is logged and does not
    stop the others or the operation that emitted the event.

    Examples:
        >>> emitter = EventEmitter()
        >>> seen = []
        >>> emitter.on(WorkflowEventType.WORKFLOW_FILED, seen.append)
        >>> emitter.listener_count()
        1
    """

    def __init__(self):
        self._listeners: Dict[WorkflowEventType, List[EventListener]] = {}
        self._any_listeners: List[EventListener] = []

    def on(self, event_type: WorkflowEventType, listener: EventListener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def on_any(self, listener: EventListener) -> None:
        self._any_listeners.append(listener)

    def off(self, event_type: WorkflowEventType, listener: EventListener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def off_any(self, listener: EventListener) -> None:
        if listener in self._any_listeners:
            self._any_listeners.remove(listener)

    def emit(self, event: WorkflowEvent) -> None:
        for listener in [*self._listeners.get(event.type, []), *self._any_listeners]:
            try:
                listener(event)
            except Exception:
                logger.exception("Listener failed for %s on %s", event.type.value, event.workflow_id)

    def clear(self) -> None:
        self._listeners.clear()
        self._any_listeners.clear()

    def listener_count(self, event_type: Optional[WorkflowEventType] = None) -> int:
        """Registered listeners for one type, or all listeners including wildcards."""
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return len(self._any_listeners) + sum(len(ls) for ls in self._listeners.values())


__all__ = [
    "WorkflowEventType",
    "WorkflowEvent",
    "EventListener",
    "EventEmitter",
]
