"""PacketFlow: packet workflow and consistency engine for TRO filings.

PacketFlow guides a self-represented litigant through a packet of California
Judicial Council forms and provides:
- A workflow state machine with strict forward navigation gates
- Per-form validation against a requirement catalog
- Packet-level validation of conditionally required forms
- Autofill between forms and from a personal data vault
- Detection and repair of contradictions between forms

Basic usage:
    >>> from packetflow import WorkflowStateMachine, PacketConfig, PacketType
    >>> from packetflow.store import InMemoryDocumentStore, InMemoryWorkflowRepository
    >>> sm = WorkflowStateMachine(InMemoryDocumentStore(), InMemoryWorkflowRepository())
    >>> wf = sm.start_workflow(PacketType.INITIATING_WITHOUT_CHILDREN, PacketConfig())
    >>> print(sm.get_current_form().value)
    DV-100
"""

__version__ = "0.1.0"
__author__ = "PacketFlow Team"

VERSION = (0, 1, 0)

from packetflow.state_machine import WorkflowStateMachine
from packetflow.types import FormStatus, FormType, PacketConfig, PacketType, WorkflowState

__all__ = [
    "__version__",
    "VERSION",
    "WorkflowStateMachine",
    "FormStatus",
    "FormType",
    "PacketConfig",
    "PacketType",
    "WorkflowState",
]
