"""TRO packet workflow aggregate.

This module defines the persisted root of one packet:
- TROWorkflow: packet type, phase, form cursor, per-form statuses and the
  document references of each form's data
- PHASE_TRANSITIONS: the allowed moves between high-level phases
- transition_phase(): applies a phase move or raises

Usage:
    >>> from packetflow.types import PacketType, PacketConfig, WorkflowState
    >>> wf = new_workflow("user_1", PacketType.MODIFICATION, PacketConfig())
    >>> [f.value for f in wf.form_order]
    ['FL-320', 'FL-150']
    >>> transition_phase(wf, WorkflowState.FILLING_FORMS)
    >>> wf.current_state
    <WorkflowState.FILLING_FORMS: 'filling_forms'>
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set, Tuple
import uuid

from dateutil.parser import isoparse

from packetflow.catalog import coerce_form_type, coerce_packet_type, get_form_order
from packetflow.errors import InvalidStateTransitionError
from packetflow.types import FormStatus, FormType, PacketConfig, PacketType, WorkflowState

# Phase moves; filed is terminal.
PHASE_TRANSITIONS: Dict[WorkflowState, Set[WorkflowState]] = {
    WorkflowState.SELECTING_PACKET_TYPE: {
        WorkflowState.FILLING_FORMS,
    },
    WorkflowState.FILLING_FORMS: {
        WorkflowState.REVIEW_PROGRESS,
        WorkflowState.READY_TO_FILE,
    },
    WorkflowState.REVIEW_PROGRESS: {
        WorkflowState.FILLING_FORMS,
        WorkflowState.READY_TO_FILE,
    },
    WorkflowState.READY_TO_FILE: {
        WorkflowState.REVIEW_PROGRESS,
        WorkflowState.FILED,
    },
    WorkflowState.FILED: set(),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TROWorkflow:
    """One user's packet of forms and its progress.

    Attributes:
        id: Workflow identifier
        user_id: Owner, used to look up the personal data vault
        packet_type: Filing scenario, fixes the form order
        current_state: High-level phase
        current_form_index: Cursor into the packet's form order
        form_statuses: FormType -> FormStatus, one entry per packet form in order
        packet_config: Booleans deciding which optional forms are mandatory
        form_data_refs: FormType -> document id in the document store
        created_at: Creation time (UTC)
        updated_at: Last mutation time (UTC)
        metadata: Free-form caller data
    """

    id: str
    user_id: str
    packet_type: PacketType
    current_state: WorkflowState = WorkflowState.SELECTING_PACKET_TYPE
    current_form_index: int = 0
    form_statuses: "OrderedDict[FormType, FormStatus]" = field(default_factory=OrderedDict)
    packet_config: PacketConfig = field(default_factory=PacketConfig)
    form_data_refs: Dict[FormType, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def form_order(self) -> Tuple[FormType, ...]:
        """Ordered forms of this packet."""
        return get_form_order(self.packet_type)

    @property
    def current_form(self) -> Optional[FormType]:
        order = self.form_order
        if 0 <= self.current_form_index < len(order):
            return order[self.current_form_index]
        return None

    def index_of(self, form_type: Any) -> int:
        """Position of a form in the packet, or -1 when it is not part of it."""
        form_type = coerce_form_type(form_type)
        order = self.form_order
        return order.index(form_type) if form_type in order else -1

    def status_of(self, form_type: Any) -> FormStatus:
        return self.form_statuses.get(coerce_form_type(form_type), FormStatus.NOT_STARTED)

    def touch(self) -> None:
        self.updated_at = utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for persistence (camelCase keys, ISO 8601 timestamps)."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "packetType": self.packet_type.value,
            "currentState": self.current_state.value,
            "currentFormIndex": self.current_form_index,
            "formStatuses": [
                {"formType": form_type.value, "status": status.value}
                for form_type, status in self.form_statuses.items()
            ],
            "packetConfig": self.packet_config.to_dict(),
            "formDataRefs": {form_type.value: ref for form_type, ref in self.form_data_refs.items()},
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TROWorkflow":
        """Create TROWorkflow from a dict produced by to_dict()."""
        statuses: "OrderedDict[FormType, FormStatus]" = OrderedDict(
            (coerce_form_type(entry["formType"]), FormStatus(entry["status"]))
            for entry in data.get("formStatuses", [])
        )
        return cls(
            id=data["id"],
            user_id=data["userId"],
            packet_type=coerce_packet_type(data["packetType"]),
            current_state=WorkflowState(data.get("currentState", WorkflowState.SELECTING_PACKET_TYPE.value)),
            current_form_index=int(data.get("currentFormIndex", 0)),
            form_statuses=statuses,
            packet_config=PacketConfig.from_dict(data.get("packetConfig") or {}),
            form_data_refs={
                coerce_form_type(form_type): ref
                for form_type, ref in (data.get("formDataRefs") or {}).items()
            },
            created_at=isoparse(data["createdAt"]),
            updated_at=isoparse(data["updatedAt"]),
            metadata=dict(data.get("metadata") or {}),
        )


def initial_statuses(packet_type: Any) -> "OrderedDict[FormType, FormStatus]":
    """Every form of the packet NotStarted, in packet order."""
    return OrderedDict((form_type, FormStatus.NOT_STARTED) for form_type in get_form_order(packet_type))


def new_workflow(
    user_id: str,
    packet_type: Any,
    packet_config: Optional[PacketConfig] = None,
    workflow_id: Optional[str] = None,
) -> TROWorkflow:
    """Build a fresh workflow in the selecting_packet_type phase."""
    packet_type = coerce_packet_type(packet_type)
    return TROWorkflow(
        id=workflow_id or f"wf_{uuid.uuid4().hex[:16]}",
        user_id=user_id,
        packet_type=packet_type,
        form_statuses=initial_statuses(packet_type),
        packet_config=packet_config or PacketConfig(),
    )


def can_transition_phase(workflow: TROWorkflow, target: WorkflowState) -> bool:
    return target in PHASE_TRANSITIONS.get(workflow.current_state, set())


def transition_phase(workflow: TROWorkflow, target: WorkflowState) -> None:
    """Move the workflow to another phase.

    Staying in the current phase is a no-op.

    Raises:
        InvalidStateTransitionError: If PHASE_TRANSITIONS does not allow the move
    """
    if workflow.current_state == target:
        return
    if not can_transition_phase(workflow, target):
        allowed = PHASE_TRANSITIONS[workflow.current_state]
        raise InvalidStateTransitionError(
            current_state=workflow.current_state,
            target_state=target,
            message=(
                f"Cannot move from '{workflow.current_state.value}' to '{target.value}'. "
                f"Allowed: {', '.join(sorted(s.value for s in allowed))}"
                if allowed
                else f"'{workflow.current_state.value}' is terminal, no phase moves are allowed."
            ),
        )
    workflow.current_state = target
    workflow.touch()


def is_terminal(workflow: TROWorkflow) -> bool:
    return not PHASE_TRANSITIONS[workflow.current_state]


def first_unreached_index(workflow: TROWorkflow) -> Optional[int]:
    """Position of the first NotStarted form in packet order, or None."""
    for index, form_type in enumerate(workflow.form_order):
        if workflow.status_of(form_type) == FormStatus.NOT_STARTED:
            return index
    return None


__all__ = [
    "PHASE_TRANSITIONS",
    "TROWorkflow",
    "initial_statuses",
    "new_workflow",
    "can_transition_phase",
    "transition_phase",
    "is_terminal",
    "first_unreached_index",
]
