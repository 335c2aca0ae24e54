"""Core type definitions for the PacketFlow workflow engine.

This module defines the fundamental types shared by every layer of the engine:
- FormType: The closed set of Judicial Council forms a packet can contain
- FormStatus: Per-form completion state
- PacketType: Filing scenarios, each with a fixed form order
- WorkflowState: High-level phase of a packet workflow
- ErrorCode / WarningCode: Machine-readable validation outcome codes
- AutofillSource: Where autofilled values came from
- PacketConfig: The booleans that drive conditional form requirements

These enums are part of the public contract so progress UIs and export tooling
can render workflow state without reimplementing any rule.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional


class FormType(str, Enum):
    """California Judicial Council forms handled by the engine."""
    DV100 = "DV-100"        # Request for Domestic Violence Restraining Order
    DV101 = "DV-101"        # Description of Abuse
    DV105 = "DV-105"        # Request for Child Custody and Visitation Orders
    DV109 = "DV-109"        # Notice of Court Hearing (court generated)
    DV110 = "DV-110"        # Temporary Restraining Order (court generated)
    DV120 = "DV-120"        # Response to Request for DV Restraining Order
    CLETS001 = "CLETS-001"  # Confidential CLETS Information
    FL150 = "FL-150"        # Income and Expense Declaration
    FL320 = "FL-320"        # Responsive Declaration to Request for Order


class FormStatus(str, Enum):
    """Completion status of a single form within a packet.

    Only COMPLETE, VALIDATED and SKIPPED let the user move past a form.
    IN_PROGRESS is never treated as done.
    """
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    VALIDATED = "validated"
    SKIPPED = "skipped"
    ERROR = "error"


class PacketType(str, Enum):
    """Filing scenarios supported by the engine."""
    INITIATING_WITHOUT_CHILDREN = "initiating_no_children"
    INITIATING_WITH_CHILDREN = "initiating_with_children"
    RESPONSE = "response"
    MODIFICATION = "modification"


class WorkflowState(str, Enum):
    """High-level phase of a packet workflow.

    Phases follow the table in packetflow.workflow.PHASE_TRANSITIONS.
    Terminal state: filed.
    """
    SELECTING_PACKET_TYPE = "selecting_packet_type"
    FILLING_FORMS = "filling_forms"
    REVIEW_PROGRESS = "review_progress"
    READY_TO_FILE = "ready_to_file"
    FILED = "filed"


class Severity(str, Enum):
    """Severity of a blocking validation error."""
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCode(str, Enum):
    """Codes for blocking validation errors."""
    MISSING_FIELD = "MISSING_FIELD"
    MISSING_GROUP_SELECTION = "MISSING_GROUP_SELECTION"
    MISSING_CONDITIONAL_FIELD = "MISSING_CONDITIONAL_FIELD"
    MISSING_REQUIRED_FORM = "MISSING_REQUIRED_FORM"
    INCOMPLETE_FORM = "INCOMPLETE_FORM"
    FORM_DATA_MISSING = "FORM_DATA_MISSING"
    DEPENDENCY_NOT_MET = "DEPENDENCY_NOT_MET"
    DATA_INCONSISTENCY = "DATA_INCONSISTENCY"


class WarningCode(str, Enum):
    """Codes for non-blocking validation warnings."""
    INVALID_TYPE = "INVALID_TYPE"
    INVALID_FORMAT = "INVALID_FORMAT"
    INVALID_DATE = "INVALID_DATE"
    BRIEF_DESCRIPTION = "BRIEF_DESCRIPTION"
    INCOMPLETE_DESCRIPTION = "INCOMPLETE_DESCRIPTION"
    EXPENSES_EXCEED_INCOME = "EXPENSES_EXCEED_INCOME"
    DATA_INCONSISTENCY = "DATA_INCONSISTENCY"


class WorkflowErrorCode(str, Enum):
    """Codes carried by raised workflow exceptions."""
    INVALID_TRANSITION = "invalid_transition"
    INVALID_STATUS = "invalid_status"
    NAVIGATION_BLOCKED = "NAVIGATION_BLOCKED"
    FORM_NOT_IN_PACKET = "form_not_in_packet"
    UNKNOWN_FORM_TYPE = "unknown_form_type"
    NO_ACTIVE_WORKFLOW = "no_active_workflow"
    LOAD_FAILED = "load_failed"
    SAVE_FAILED = "save_failed"


class AutofillSource(str, Enum):
    """Origin of autofilled field values."""
    VAULT = "vault"
    PREVIOUS_FORM = "previous_form"
    BOTH = "both"


@dataclass(frozen=True)
class PacketConfig:
    """Packet configuration that decides which optional forms are mandatory.

    Attributes:
        has_children: Children are involved (requires DV-105)
        requesting_child_support: Child support requested (requires FL-150)
        requesting_spousal_support: Spousal support requested (requires FL-150)
        need_more_space: Abuse description continues on DV-101
        has_existing_case_number: A case has already been opened
        number_of_children: Optional count of children
        number_of_protected_persons: Optional count of people seeking protection
        number_of_restrained_persons: Optional count of people to be restrained

    Examples:
        >>> config = PacketConfig(has_children=True)
        >>> config.requesting_support
        False
        >>> PacketConfig.from_dict(config.to_dict()) == config
        True
    """
    has_children: bool = False
    requesting_child_support: bool = False
    requesting_spousal_support: bool = False
    need_more_space: bool = False
    has_existing_case_number: bool = False
    number_of_children: Optional[int] = None
    number_of_protected_persons: Optional[int] = None
    number_of_restrained_persons: Optional[int] = None

    @property
    def requesting_support(self) -> bool:
        """True when either child or spousal support is requested."""
        return self.requesting_child_support or self.requesting_spousal_support

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "hasChildren": self.has_children,
            "requestingChildSupport": self.requesting_child_support,
            "requestingSpousalSupport": self.requesting_spousal_support,
            "needMoreSpace": self.need_more_space,
            "hasExistingCaseNumber": self.has_existing_case_number,
        }
        if self.number_of_children is not None:
            result["numberOfChildren"] = self.number_of_children
        if self.number_of_protected_persons is not None:
            result["numberOfProtectedPersons"] = self.number_of_protected_persons
        if self.number_of_restrained_persons is not None:
            result["numberOfRestrainedPersons"] = self.number_of_restrained_persons
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PacketConfig":
        """Create PacketConfig from dict."""
        return cls(
            has_children=bool(data.get("hasChildren", False)),
            requesting_child_support=bool(data.get("requestingChildSupport", False)),
            requesting_spousal_support=bool(data.get("requestingSpousalSupport", False)),
            need_more_space=bool(data.get("needMoreSpace", False)),
            has_existing_case_number=bool(data.get("hasExistingCaseNumber", False)),
            number_of_children=data.get("numberOfChildren"),
            number_of_protected_persons=data.get("numberOfProtectedPersons"),
            number_of_restrained_persons=data.get("numberOfRestrainedPersons"),
        )

    def merged(self, **changes: Any) -> "PacketConfig":
        """Return a copy with the given attributes replaced.

        Raises:
            TypeError: If a change names an unknown attribute
        """
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown packet config fields: {', '.join(sorted(unknown))}")
        values = {name: getattr(self, name) for name in known}
        values.update(changes)
        return PacketConfig(**values)


# Statuses that let the cursor move past a form.
ADVANCEABLE_STATUSES = frozenset({
    FormStatus.COMPLETE,
    FormStatus.VALIDATED,
    FormStatus.SKIPPED,
})

# Statuses that count as a finished form.
DONE_STATUSES = frozenset({FormStatus.COMPLETE, FormStatus.VALIDATED})


__all__ = [
    "FormType",
    "FormStatus",
    "PacketType",
    "WorkflowState",
    "Severity",
    "ErrorCode",
    "WarningCode",
    "WorkflowErrorCode",
    "AutofillSource",
    "PacketConfig",
    "ADVANCEABLE_STATUSES",
    "DONE_STATUSES",
]
