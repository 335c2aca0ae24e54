"""Structured error types and exceptions for the PacketFlow engine.

Two kinds of failure are modelled here:

- Validation outcomes (ValidationError, ValidationWarning) are plain records
  returned inside a ValidationResult. Validators never raise for malformed data;
  the user fixes the data and validates again.
- Workflow exceptions (WorkflowError and subclasses) are raised for blocked
  navigation, illegal phase moves, store failures and programmer errors such as
  an unknown FormType.

Every record and exception converts to a dict so callers can hand it to a UI or
an audit log unchanged.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from packetflow.types import (
    ErrorCode,
    FormType,
    Severity,
    WarningCode,
    WorkflowErrorCode,
    WorkflowState,
)


@dataclass(frozen=True)
class ValidationError:
    """A single blocking validation failure.

    Attributes:
        code: Machine-readable error code
        message: Human-readable description
        form_type: Form containing the error (None for packet-level errors)
        field: Optional field that failed validation
        severity: ERROR for field problems, CRITICAL for packet-blocking problems

    Examples:
        >>> err = ValidationError(
        ...     code=ErrorCode.MISSING_FIELD,
        ...     message="caseNumber is required",
        ...     form_type=FormType.DV105,
        ...     field="caseNumber",
        ... )
        >>> err.to_dict()["formType"]
        'DV-105'
    """
    code: ErrorCode
    message: str
    form_type: Optional[FormType] = None
    field: Optional[str] = None
    severity: Severity = Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "code": self.code.value if isinstance(self.code, ErrorCode) else self.code,
            "message": self.message,
            "severity": self.severity.value if isinstance(self.severity, Severity) else self.severity,
        }
        if self.form_type is not None:
            result["formType"] = self.form_type.value if isinstance(self.form_type, FormType) else self.form_type
        if self.field is not None:
            result["field"] = self.field
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationError":
        """Create ValidationError from dict."""
        form_type = data.get("formType")
        return cls(
            code=ErrorCode(data["code"]),
            message=data["message"],
            form_type=FormType(form_type) if form_type is not None else None,
            field=data.get("field"),
            severity=Severity(data.get("severity", Severity.ERROR.value)),
        )


@dataclass(frozen=True)
class ValidationWarning:
    """A non-blocking validation notice.

    Attributes:
        code: Machine-readable warning code
        message: Human-readable description
        form_type: Form the warning relates to (None for packet-level warnings)
        field: Optional field the warning relates to
        suggestion: Optional hint on how to resolve it
    """
    code: WarningCode
    message: str
    form_type: Optional[FormType] = None
    field: Optional[str] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "code": self.code.value if isinstance(self.code, WarningCode) else self.code,
            "message": self.message,
        }
        if self.form_type is not None:
            result["formType"] = self.form_type.value if isinstance(self.form_type, FormType) else self.form_type
        if self.field is not None:
            result["field"] = self.field
        if self.suggestion is not None:
            result["suggestion"] = self.suggestion
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationWarning":
        """Create ValidationWarning from dict."""
        form_type = data.get("formType")
        return cls(
            code=WarningCode(data["code"]),
            message=data["message"],
            form_type=FormType(form_type) if form_type is not None else None,
            field=data.get("field"),
            suggestion=data.get("suggestion"),
        )


class WorkflowError(Exception):
    """Base class for all raised workflow errors.

    Attributes:
        code: Machine-readable error code
        recoverable: Whether the user can recover without losing data
        metadata: Optional extra context
    """

    def __init__(
        self,
        message: str,
        code: WorkflowErrorCode,
        recoverable: bool = True,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.recoverable = recoverable
        self.metadata = metadata or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "code": self.code.value,
            "message": str(self),
            "recoverable": self.recoverable,
        }
        if self.metadata:
            result["metadata"] = self.metadata
        return result


class NavigationError(WorkflowError):
    """Raised when a jump or move between forms is not allowed.

    Navigation errors never lose data; the cursor simply stays where it was.
    """

    def __init__(
        self,
        message: str,
        code: WorkflowErrorCode = WorkflowErrorCode.NAVIGATION_BLOCKED,
        target: Optional[FormType] = None,
    ):
        metadata = {"target": target.value} if target is not None else None
        self.target = target
        super().__init__(message, code=code, recoverable=True, metadata=metadata)


class InvalidStateTransitionError(WorkflowError):
    """Raised when attempting a phase move the transition table forbids.

    Attributes:
        current_state: The phase before the attempted move
        target_state: The phase that was attempted
    """

    def __init__(self, current_state: WorkflowState, target_state: WorkflowState, message: str):
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(
            message,
            code=WorkflowErrorCode.INVALID_TRANSITION,
            recoverable=False,
            metadata={"fromState": current_state.value, "toState": target_state.value},
        )


class UnknownFormTypeError(WorkflowError, ValueError):
    """Raised for a form or packet type the rule tables do not know.

    This signals a programmer error, never bad user data.
    """

    def __init__(self, value: Any):
        self.value = value
        super().__init__(
            f"Unknown form or packet type: {value!r}",
            code=WorkflowErrorCode.UNKNOWN_FORM_TYPE,
            recoverable=False,
        )


class StoreError(WorkflowError):
    """Raised by stores when reading or writing persisted data fails.

    The engine never swallows a StoreError; timeout and retry policy belong to
    the caller.
    """

    def __init__(
        self,
        message: str,
        code: WorkflowErrorCode = WorkflowErrorCode.LOAD_FAILED,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, code=code, recoverable=True, metadata=metadata)


__all__ = [
    "ValidationError",
    "ValidationWarning",
    "WorkflowError",
    "NavigationError",
    "InvalidStateTransitionError",
    "UnknownFormTypeError",
    "StoreError",
]
