"""Packet workflow state machine for the PacketFlow engine.

WorkflowStateMachine drives one packet at a time: it tracks the form cursor and
per-form statuses, gates forward navigation on validation, pre-populates each
form as the user enters it and decides when the packet is ready to file.

Forward navigation is strict. A form is left only when its status is one of
COMPLETE, VALIDATED or SKIPPED; IN_PROGRESS never counts as done. Backward
navigation and jumps move the cursor without touching statuses or the phase.

Usage:
    >>> from packetflow.state_machine import WorkflowStateMachine
    >>> from packetflow.store import InMemoryDocumentStore, InMemoryWorkflowRepository
    >>> from packetflow.types import PacketType, PacketConfig
    >>> sm = WorkflowStateMachine(InMemoryDocumentStore(), InMemoryWorkflowRepository())
    >>> wf = sm.start_workflow(PacketType.MODIFICATION, PacketConfig(), user_id="user_1")
    >>> sm.get_current_form()
    <FormType.FL320: 'FL-320'>
    >>> sm.can_transition_to_next_form()
    False
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from typing import Any, Dict, List, Mapping, Optional

from packetflow.autofill import AutofillResult, apply_autofill, autofill_from_both
from packetflow.catalog import (
    FORM_ESTIMATED_TIME,
    FORM_TITLES,
    FormData,
    FormDependency,
    coerce_form_type,
    get_dependencies,
)
from packetflow.config import PacketFlowSettings
from packetflow.consistency import detect_inconsistencies, synchronize_common_fields
from packetflow.errors import (
    InvalidStateTransitionError,
    NavigationError,
    StoreError,
    ValidationError,
    ValidationWarning,
    WorkflowError,
)
from packetflow.events import EventEmitter, WorkflowEvent, WorkflowEventType
from packetflow.packet import get_optional_forms, get_required_forms, resolve_requirement, validate_packet_data
from packetflow.store import DocumentStore, VaultProvider, WorkflowRepository
from packetflow.types import (
    ADVANCEABLE_STATUSES,
    DONE_STATUSES,
    ErrorCode,
    FormStatus,
    FormType,
    PacketConfig,
    Severity,
    WarningCode,
    WorkflowErrorCode,
    WorkflowState,
)
from packetflow.validation import ValidationResult, get_form_completion_percentage, validate_form_data
from packetflow.workflow import (
    TROWorkflow,
    first_unreached_index,
    initial_statuses,
    is_terminal,
    new_workflow,
    transition_phase,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a navigation request.

    Attributes:
        success: True when the cursor moved, or the last form was accepted
        form_type: Current form after the request
        previous_form: Form the cursor was on before the request
        errors: Validation errors that blocked the move
        warnings: Non-blocking notices, including cross-form inconsistencies
        autofill: Values filled into the entered form, if any
        packet_result: Packet validation, when the last form was accepted
    """
    success: bool
    form_type: Optional[FormType] = None
    previous_form: Optional[FormType] = None
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)
    autofill: Optional[AutofillResult] = None
    packet_result: Optional[ValidationResult] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "success": self.success,
            "formType": self.form_type.value if self.form_type is not None else None,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }
        if self.previous_form is not None:
            result["previousForm"] = self.previous_form.value
        if self.autofill is not None:
            result["autofill"] = self.autofill.to_dict()
        if self.packet_result is not None:
            result["packetResult"] = self.packet_result.to_dict()
        return result


@dataclass(frozen=True)
class FormStep:
    """One row of a packet progress view."""
    form_type: FormType
    title: str
    status: FormStatus
    required: bool
    reason: str
    estimated_minutes: int
    current: bool
    dependencies: List[FormType] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "formType": self.form_type.value,
            "title": self.title,
            "status": self.status.value,
            "required": self.required,
            "reason": self.reason,
            "estimatedMinutes": self.estimated_minutes,
            "current": self.current,
            "dependencies": [f.value for f in self.dependencies],
        }


def _inconsistency_warnings(forms: Mapping[FormType, Mapping[str, Any]], form_type: Optional[FormType] = None) -> List[ValidationWarning]:
    """DATA_INCONSISTENCY warnings, optionally only those involving one form."""
    return [
        ValidationWarning(
            code=WarningCode.DATA_INCONSISTENCY,
            message=finding.message,
            form_type=form_type,
            field=finding.field,
            suggestion="Review and correct conflicting information across forms",
        )
        for finding in detect_inconsistencies(forms)
        if form_type is None or finding.involves(form_type)
    ]


class WorkflowStateMachine:
    """Drives one packet workflow at a time.

    Every mutating operation updates the active TROWorkflow, persists it
    through the workflow repository and emits a WorkflowEvent. Store errors
    always propagate.

    Attributes:
        settings: Engine settings
        emitter: Event emitter receiving every WorkflowEvent
    """

    def __init__(
        self,
        documents: DocumentStore,
        workflows: WorkflowRepository,
        vault: Optional[VaultProvider] = None,
        settings: Optional[PacketFlowSettings] = None,
        emitter: Optional[EventEmitter] = None,
    ):
        self._documents = documents
        self._workflows = workflows
        self._vault = vault
        self.settings = settings or PacketFlowSettings()
        self.emitter = emitter or EventEmitter()
        self._workflow: Optional[TROWorkflow] = None
        self._events: List[WorkflowEvent] = []

    # -- Lifecycle --

    @property
    def workflow(self) -> TROWorkflow:
        """The active workflow.

        Raises:
            WorkflowError: If no workflow was started or loaded
        """
        if self._workflow is None:
            raise WorkflowError("No active workflow", code=WorkflowErrorCode.NO_ACTIVE_WORKFLOW)
        return self._workflow

    def start_workflow(
        self,
        packet_type: Any,
        config: Optional[PacketConfig] = None,
        user_id: str = "anonymous",
        workflow_id: Optional[str] = None,
    ) -> TROWorkflow:
        """Create and persist a new workflow with every packet form NotStarted.

        The cursor is on the first form and the phase is filling_forms.
        """
        workflow = new_workflow(user_id, packet_type, config, workflow_id=workflow_id)
        self._workflow = workflow
        transition_phase(workflow, WorkflowState.FILLING_FORMS)
        self._persist()
        logger.info("Started %s workflow %s for %s", workflow.packet_type.value, workflow.id, user_id)
        self._emit(WorkflowEventType.WORKFLOW_STARTED, {
            "packetType": workflow.packet_type.value,
            "forms": [f.value for f in workflow.form_order],
        })
        self._enter_form(workflow.form_order[0])
        return workflow

    def load_workflow(self, workflow_id: str) -> TROWorkflow:
        """Make a persisted workflow the active one.

        Raises:
            StoreError: If the repository has no workflow with that id
        """
        workflow = self._workflows.get_workflow(workflow_id)
        if workflow is None:
            raise StoreError(
                f"Workflow not found: {workflow_id}",
                code=WorkflowErrorCode.LOAD_FAILED,
                metadata={"workflowId": workflow_id},
            )
        self._workflow = workflow
        self._emit(WorkflowEventType.WORKFLOW_LOADED)
        return workflow

    def select_packet_type(self, packet_type: Any, config: Optional[PacketConfig] = None) -> TROWorkflow:
        """Choose the packet type of a workflow that is back in selecting_packet_type."""
        workflow = self.workflow
        if workflow.current_state != WorkflowState.SELECTING_PACKET_TYPE:
            raise InvalidStateTransitionError(
                current_state=workflow.current_state,
                target_state=WorkflowState.SELECTING_PACKET_TYPE,
                message="The packet type can only be chosen before filling forms",
            )
        replacement = new_workflow(workflow.user_id, packet_type, config or workflow.packet_config, workflow_id=workflow.id)
        workflow.packet_type = replacement.packet_type
        workflow.packet_config = replacement.packet_config
        workflow.form_statuses = replacement.form_statuses
        workflow.current_form_index = 0
        transition_phase(workflow, WorkflowState.FILLING_FORMS)
        self._persist()
        self._emit(WorkflowEventType.PHASE_CHANGED, {"packetType": workflow.packet_type.value})
        self._enter_form(workflow.form_order[0])
        return workflow

    def reset_workflow(self) -> None:
        """Return to packet type selection with every status cleared.

        Saved form data is kept so a restarted packet can autofill from it.

        Raises:
            InvalidStateTransitionError: If the workflow was already filed
        """
        workflow = self.workflow
        if is_terminal(workflow):
            raise InvalidStateTransitionError(
                current_state=workflow.current_state,
                target_state=WorkflowState.SELECTING_PACKET_TYPE,
                message="A filed workflow cannot be reset",
            )
        workflow.form_statuses = initial_statuses(workflow.packet_type)
        workflow.current_form_index = 0
        workflow.current_state = WorkflowState.SELECTING_PACKET_TYPE
        self._persist()
        logger.info("Reset workflow %s", workflow.id)
        self._emit(WorkflowEventType.WORKFLOW_RESET)

    # -- Cursor --

    def get_current_form(self) -> Optional[FormType]:
        return self.workflow.current_form

    def get_next_form(self) -> Optional[FormType]:
        workflow = self.workflow
        order = workflow.form_order
        index = workflow.current_form_index + 1
        return order[index] if index < len(order) else None

    def get_previous_form(self) -> Optional[FormType]:
        workflow = self.workflow
        index = workflow.current_form_index - 1
        return workflow.form_order[index] if index >= 0 else None

    def can_transition_to_next_form(self) -> bool:
        """True when a next form exists and the current form is done or skipped."""
        current = self.get_current_form()
        if current is None or self.get_next_form() is None:
            return False
        return self.workflow.status_of(current) in ADVANCEABLE_STATUSES

    def transition_to_next_form(self) -> TransitionResult:
        """Validate the current form and move forward.

        A Skipped current form moves on without validation. Otherwise the form
        must validate; on failure the cursor stays and the errors are returned.
        Accepting the last form runs packet validation and moves the phase to
        ready_to_file or review_progress.
        """
        workflow = self.workflow
        self._require_open()
        current = self.get_current_form()
        warnings: List[ValidationWarning] = []

        if workflow.status_of(current) != FormStatus.SKIPPED:
            result = self.validate_current_form()
            if not result.valid:
                logger.warning(
                    "Navigation from %s blocked by %d error(s)", current.value, len(result.errors)
                )
                self._emit(WorkflowEventType.NAVIGATION_BLOCKED, {
                    "formType": current.value,
                    "errorCount": len(result.errors),
                })
                return TransitionResult(
                    success=False,
                    form_type=current,
                    errors=result.errors,
                    warnings=result.warnings,
                )
            warnings.extend(w for w in result.warnings if w.code != WarningCode.DATA_INCONSISTENCY)

        # Re-read after validation wrote the status.
        status = self.workflow.status_of(current)
        if status not in ADVANCEABLE_STATUSES:
            self._emit(WorkflowEventType.NAVIGATION_BLOCKED, {"formType": current.value, "status": status.value})
            return TransitionResult(success=False, form_type=current, warnings=warnings)

        next_form = self.get_next_form()
        if next_form is None:
            packet_result = self.validate_packet()
            target = WorkflowState.READY_TO_FILE if packet_result.valid else WorkflowState.REVIEW_PROGRESS
            self._change_phase(target)
            return TransitionResult(
                success=True,
                form_type=current,
                previous_form=current,
                warnings=warnings + packet_result.warnings,
                packet_result=packet_result,
            )

        workflow.current_form_index += 1
        self._persist()
        logger.info("Moved %s -> %s in %s", current.value, next_form.value, workflow.id)
        self._emit(WorkflowEventType.NAVIGATION_FORWARD, {"from": current.value, "to": next_form.value})
        autofill = self._enter_form(next_form)
        warnings.extend(_inconsistency_warnings(self._packet_form_data()))
        return TransitionResult(
            success=True,
            form_type=next_form,
            previous_form=current,
            warnings=warnings,
            autofill=autofill,
        )

    def transition_to_previous_form(self) -> TransitionResult:
        """Move back one form. No validation gate applies."""
        workflow = self.workflow
        current = self.get_current_form()
        previous = self.get_previous_form()
        if previous is None:
            return TransitionResult(success=False, form_type=current)
        workflow.current_form_index -= 1
        self._persist()
        self._emit(WorkflowEventType.NAVIGATION_BACK, {"from": current.value, "to": previous.value})
        return TransitionResult(success=True, form_type=previous, previous_form=current)

    def jump_to_form(self, target: Any) -> TransitionResult:
        """Move the cursor directly to ``target``.

        Moving back is always allowed. Moving forward may not pass the first
        NotStarted form of the packet.

        Raises:
            NavigationError: NAVIGATION_BLOCKED past that limit, or
                FORM_NOT_IN_PACKET for a form outside the packet
        """
        workflow = self.workflow
        target = coerce_form_type(target)
        index = workflow.index_of(target)
        if index < 0:
            raise NavigationError(
                f"{target.value} is not part of the {workflow.packet_type.value} packet",
                code=WorkflowErrorCode.FORM_NOT_IN_PACKET,
                target=target,
            )

        unreached = first_unreached_index(workflow)
        if index > workflow.current_form_index and unreached is not None and index > unreached:
            logger.warning("Jump to %s blocked in %s", target.value, workflow.id)
            self._emit(WorkflowEventType.NAVIGATION_BLOCKED, {"formType": target.value})
            raise NavigationError(
                f"Cannot jump to {target.value}. Please complete "
                f"{workflow.form_order[unreached].value} first",
                target=target,
            )

        current = self.get_current_form()
        workflow.current_form_index = index
        self._persist()
        self._emit(WorkflowEventType.NAVIGATION_JUMP, {"from": current.value, "to": target.value})
        return TransitionResult(success=True, form_type=target, previous_form=current)

    # -- Form data and statuses --

    def get_form_data(self, form_type: Any) -> Optional[FormData]:
        """Saved data of a form, or None when nothing was saved."""
        form_type = coerce_form_type(form_type)
        ref = self.workflow.form_data_refs.get(form_type)
        if ref is None:
            return None
        return self._documents.get_form_data(ref)

    def save_form_data(self, form_type: Any, data: Mapping[str, Any]) -> None:
        """Persist user edits to a form.

        The form goes back to InProgress, and a ready_to_file packet drops back
        to review_progress.
        """
        form_type = self._require_in_packet(form_type)
        self._require_open()
        self._write_form_data(form_type, data)
        self._set_status(form_type, FormStatus.IN_PROGRESS)
        if self.workflow.current_state == WorkflowState.READY_TO_FILE:
            self._change_phase(WorkflowState.REVIEW_PROGRESS)
        self._persist()
        self._emit(WorkflowEventType.FORM_SAVED, {"formType": form_type.value, "fieldCount": len(data)})

    def update_form_status(self, form_type: Any, status: FormStatus) -> None:
        """Set a form's status directly.

        Complete and Validated are only reachable through validation.

        Raises:
            WorkflowError: INVALID_STATUS for Complete or Validated
        """
        form_type = self._require_in_packet(form_type)
        status = FormStatus(status)
        if status in DONE_STATUSES:
            raise WorkflowError(
                f"{form_type.value} can only become {status.value} by validating it",
                code=WorkflowErrorCode.INVALID_STATUS,
                metadata={"formType": form_type.value, "status": status.value},
            )
        self._set_status(form_type, status)
        self._persist()

    def skip_form(self, form_type: Any) -> None:
        """Mark a form Skipped so navigation can pass it.

        Skipping a required form is allowed; packet validation reports it.
        """
        form_type = self._require_in_packet(form_type)
        self._set_status(form_type, FormStatus.SKIPPED)
        self._persist()

    def update_packet_config(self, config: Optional[PacketConfig] = None, **changes: Any) -> PacketConfig:
        """Replace or amend the packet configuration and re-resolve requirements.

        Forms that stop being required and were never touched become Skipped.
        Skipped forms that become required go back to NotStarted.
        """
        workflow = self.workflow
        self._require_open()
        old_config = workflow.packet_config
        new_config = (config or old_config).merged(**changes) if changes else (config or old_config)

        for form_type in workflow.form_order:
            was_required = resolve_requirement(form_type, workflow.packet_type, old_config).required
            now_required = resolve_requirement(form_type, workflow.packet_type, new_config).required
            status = workflow.status_of(form_type)
            if was_required and not now_required and status == FormStatus.NOT_STARTED:
                self._set_status(form_type, FormStatus.SKIPPED)
            elif now_required and not was_required and status == FormStatus.SKIPPED:
                self._set_status(form_type, FormStatus.NOT_STARTED)

        workflow.packet_config = new_config
        if workflow.current_state == WorkflowState.READY_TO_FILE:
            self._change_phase(WorkflowState.REVIEW_PROGRESS)
        self._persist()
        logger.info("Updated packet config of %s", workflow.id)
        return new_config

    # -- Validation --

    def validate_current_form(self) -> ValidationResult:
        return self.validate_form(self.get_current_form())

    def validate_form(self, form_type: Any) -> ValidationResult:
        """Validate a form's saved data and record the outcome as its status.

        Success gives Validated when no cross-form inconsistency involves the
        form and Complete otherwise. Failure, including missing data, gives
        Error.
        """
        form_type = self._require_in_packet(form_type)
        data = self.get_form_data(form_type)
        if not data:
            result = ValidationResult.from_findings([ValidationError(
                code=ErrorCode.FORM_DATA_MISSING,
                message=f"{form_type.value} data not found",
                form_type=form_type,
                severity=Severity.CRITICAL,
            )])
        else:
            result = validate_form_data(form_type, data, self.settings)

        if not result.valid:
            self._set_status(form_type, FormStatus.ERROR)
            self._persist()
            self._emit(WorkflowEventType.FORM_VALIDATION_FAILED, {
                "formType": form_type.value,
                "errors": [e.to_dict() for e in result.errors],
            })
            return result

        conflicts = _inconsistency_warnings(self._packet_form_data(), form_type)
        status = FormStatus.COMPLETE if conflicts else FormStatus.VALIDATED
        self._set_status(form_type, status)
        self._persist()
        self._emit(WorkflowEventType.FORM_VALIDATED, {"formType": form_type.value, "status": status.value})
        return ValidationResult.from_findings([], list(result.warnings) + conflicts)

    def validate_packet(self, for_filing: bool = False) -> ValidationResult:
        """Validate the whole packet; inconsistencies block only when filing."""
        result = validate_packet_data(self.workflow, self._packet_form_data(), for_filing=for_filing)
        self._emit(WorkflowEventType.PACKET_VALIDATED, {
            "valid": result.valid,
            "forFiling": for_filing,
            "errorCount": len(result.errors),
        })
        return result

    def mark_filed(self) -> ValidationResult:
        """Retire a ready_to_file packet once it has been exported.

        The packet is validated with filing rules first. An invalid packet is
        not filed; the result is returned and the phase drops to
        review_progress.

        Raises:
            InvalidStateTransitionError: If the packet is not ready_to_file
        """
        workflow = self.workflow
        self._require_open()
        if workflow.current_state != WorkflowState.READY_TO_FILE:
            raise InvalidStateTransitionError(
                current_state=workflow.current_state,
                target_state=WorkflowState.FILED,
                message=f"Only a ready_to_file packet can be filed, not '{workflow.current_state.value}'",
            )
        result = self.validate_packet(for_filing=True)
        if not result.valid:
            logger.warning("Filing %s refused: %d error(s)", workflow.id, len(result.errors))
            self._change_phase(WorkflowState.REVIEW_PROGRESS)
            return result
        self._change_phase(WorkflowState.FILED)
        logger.info("Workflow %s filed", workflow.id)
        self._emit(WorkflowEventType.WORKFLOW_FILED, {"filedAt": datetime.now(timezone.utc).isoformat()})
        return result

    # -- Autofill and consistency --

    def autofill_form(self, form_type: Any) -> AutofillResult:
        """Fill empty fields of a form from the vault and completed forms.

        Values the user already entered are never overwritten. The returned
        result holds only the fields that were actually filled. A finished form
        that receives new values goes back to InProgress.
        """
        form_type = self._require_in_packet(form_type)
        self._require_open()
        workflow = self.workflow
        vault = self._vault.get_vault(workflow.user_id) if self._vault is not None else None
        completed = {
            other: data
            for other, data in self._packet_form_data().items()
            if other != form_type and workflow.status_of(other) in DONE_STATUSES
        }
        suggested = autofill_from_both(form_type, vault, completed)
        merged, applied = apply_autofill(self.get_form_data(form_type), suggested.fields)
        filled = {name: merged[name] for name in applied}
        if filled:
            self._write_form_data(form_type, merged)
            self._reopen(form_type)
            self._persist()
            logger.debug("Autofilled %d field(s) of %s", len(filled), form_type.value)
            self._emit(WorkflowEventType.AUTOFILL_APPLIED, {
                "formType": form_type.value,
                "fields": sorted(filled),
                "source": suggested.source.value,
            })
        return AutofillResult.of(filled, suggested.source)

    def synchronize_packet(self, authoritative: Optional[Any] = None) -> int:
        """Fill empty canonical fields across the packet from one form.

        Defaults to the first form of the packet. Finished forms that receive
        values go back to InProgress. Returns the number of values written.
        """
        workflow = self.workflow
        self._require_open()
        source = coerce_form_type(authoritative) if authoritative is not None else workflow.form_order[0]
        forms = {form_type: dict(data) for form_type, data in self._packet_form_data().items()}
        before = {form_type: dict(data) for form_type, data in forms.items()}
        written = synchronize_common_fields(forms, source)
        for form_type, data in forms.items():
            if data != before[form_type]:
                self._write_form_data(form_type, data)
                self._reopen(form_type)
        if written:
            self._persist()
        return written

    # -- Progress --

    def get_form_completion_percentage(self, form_type: Any) -> int:
        return get_form_completion_percentage(form_type, self.get_form_data(form_type))

    def get_required_forms(self) -> List[FormType]:
        workflow = self.workflow
        return get_required_forms(workflow.packet_type, workflow.packet_config)

    def get_optional_forms(self) -> List[FormType]:
        workflow = self.workflow
        return get_optional_forms(workflow.packet_type, workflow.packet_config)

    def get_packet_completion_percentage(self) -> int:
        """Weighted completion of the required forms from 0 to 100, floored.

        Weights are estimated minutes per form, or equal weights when
        ``completion_weighting`` is "uniform". A skipped required form counts
        as 0; optional forms never count.
        """
        workflow = self.workflow
        uniform = self.settings.completion_weighting == "uniform"
        weighted = 0
        total_weight = 0
        for form_type in self.get_required_forms():
            weight = 1 if uniform else FORM_ESTIMATED_TIME[form_type]
            if workflow.status_of(form_type) == FormStatus.SKIPPED:
                percentage = 0
            else:
                percentage = self.get_form_completion_percentage(form_type)
            weighted += weight * percentage
            total_weight += weight
        if total_weight == 0:
            return 100
        return weighted // total_weight

    def get_estimated_time_remaining(self) -> int:
        """Minutes still needed for required forms that are not done."""
        workflow = self.workflow
        return sum(
            FORM_ESTIMATED_TIME[form_type]
            for form_type in self.get_required_forms()
            if workflow.status_of(form_type) not in DONE_STATUSES
        )

    def get_form_steps(self) -> List[FormStep]:
        """Progress rows for every form the user has not skipped."""
        workflow = self.workflow
        current = self.get_current_form()
        steps: List[FormStep] = []
        for form_type in workflow.form_order:
            status = workflow.status_of(form_type)
            if status == FormStatus.SKIPPED:
                continue
            requirement = resolve_requirement(form_type, workflow.packet_type, workflow.packet_config)
            steps.append(FormStep(
                form_type=form_type,
                title=FORM_TITLES[form_type],
                status=status,
                required=requirement.required,
                reason=requirement.reason,
                estimated_minutes=FORM_ESTIMATED_TIME[form_type],
                current=form_type == current,
                dependencies=[dep.required_form for dep in self.get_dependencies(form_type)],
            ))
        return steps

    # -- Dependencies --

    def get_dependencies(self, form_type: Any) -> List[FormDependency]:
        """Dependencies of a form that apply to this packet and configuration."""
        workflow = self.workflow
        order = workflow.form_order
        return [
            dep for dep in get_dependencies(form_type)
            if dep.required_form in order and dep.applies(workflow.packet_config)
        ]

    def get_unmet_dependencies(self, form_type: Any) -> List[FormType]:
        workflow = self.workflow
        return [
            dep.required_form for dep in self.get_dependencies(form_type)
            if workflow.status_of(dep.required_form) not in DONE_STATUSES
        ]

    def are_dependencies_met(self, form_type: Any) -> bool:
        return not self.get_unmet_dependencies(form_type)

    # -- Events --

    def get_events(self) -> List[WorkflowEvent]:
        """Events emitted by this state machine, oldest first."""
        return list(self._events)

    # -- Internals --

    def _require_in_packet(self, form_type: Any) -> FormType:
        form_type = coerce_form_type(form_type)
        if self.workflow.index_of(form_type) < 0:
            raise WorkflowError(
                f"{form_type.value} is not part of the {self.workflow.packet_type.value} packet",
                code=WorkflowErrorCode.FORM_NOT_IN_PACKET,
            )
        return form_type

    def _require_open(self) -> None:
        workflow = self.workflow
        if is_terminal(workflow):
            raise InvalidStateTransitionError(
                current_state=workflow.current_state,
                target_state=WorkflowState.FILLING_FORMS,
                message="The workflow has been filed and can no longer change",
            )

    def _packet_form_data(self) -> Dict[FormType, FormData]:
        """Saved data of every packet form that has any, in packet order."""
        forms: Dict[FormType, FormData] = {}
        for form_type in self.workflow.form_order:
            data = self.get_form_data(form_type)
            if data:
                forms[form_type] = data
        return forms

    def _write_form_data(self, form_type: FormType, data: Mapping[str, Any]) -> None:
        workflow = self.workflow
        ref = workflow.form_data_refs.get(form_type)
        if ref is None:
            workflow.form_data_refs[form_type] = self._documents.create_document(workflow.id, form_type, data)
        else:
            self._documents.save_form_data(ref, form_type, data)

    def _reopen(self, form_type: FormType) -> None:
        """Drop a finished form back to InProgress after its data changed."""
        if self.workflow.status_of(form_type) in DONE_STATUSES:
            self._set_status(form_type, FormStatus.IN_PROGRESS)
            if self.workflow.current_state == WorkflowState.READY_TO_FILE:
                self._change_phase(WorkflowState.REVIEW_PROGRESS)

    def _enter_form(self, form_type: FormType) -> Optional[AutofillResult]:
        if not self.settings.autofill_on_enter:
            return None
        return self.autofill_form(form_type)

    def _set_status(self, form_type: FormType, status: FormStatus) -> None:
        workflow = self.workflow
        old = workflow.status_of(form_type)
        if old == status:
            return
        workflow.form_statuses[form_type] = status
        self._emit(WorkflowEventType.FORM_STATUS_CHANGED, {
            "formType": form_type.value,
            "from": old.value,
            "to": status.value,
        })

    def _change_phase(self, target: WorkflowState) -> None:
        workflow = self.workflow
        old = workflow.current_state
        transition_phase(workflow, target)
        if old != target:
            self._persist()
            logger.info("Workflow %s phase %s -> %s", workflow.id, old.value, target.value)
            self._emit(WorkflowEventType.PHASE_CHANGED, {"from": old.value, "to": target.value})

    def _persist(self) -> None:
        workflow = self.workflow
        workflow.touch()
        self._workflows.save_workflow(workflow)

    def _emit(self, event_type: WorkflowEventType, payload: Optional[Dict[str, Any]] = None) -> None:
        workflow = self.workflow
        event = WorkflowEvent(
            event_id=WorkflowEvent.new_id(),
            type=event_type,
            workflow_id=workflow.id,
            ts=datetime.now(timezone.utc),
            state=workflow.current_state,
            payload=payload,
        )
        self._events.append(event)
        self.emitter.emit(event)


__all__ = [
    "WorkflowStateMachine",
    "TransitionResult",
    "FormStep",
]
