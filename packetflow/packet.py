"""Packet-level requirement resolution and validation.

resolve_requirement() decides, for one form of a packet, whether the packet's
configuration makes it mandatory and why. validate_packet_data() aggregates
every per-form verdict, form dependency and cross-form consistency finding
into a single ValidationResult for the whole packet.

Status checks here use strict membership: only COMPLETE and VALIDATED count
as a finished mandatory form. IN_PROGRESS is never accepted.
"""

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from packetflow.catalog import FORM_DEPENDENCIES, coerce_form_type, coerce_packet_type, get_form_order
from packetflow.consistency import detect_inconsistencies
from packetflow.errors import ValidationError, ValidationWarning
from packetflow.types import (
    DONE_STATUSES,
    ErrorCode,
    FormStatus,
    FormType,
    PacketConfig,
    PacketType,
    Severity,
    WarningCode,
)
from packetflow.validation import ValidationResult, validate_form_data

if TYPE_CHECKING:
    from packetflow.workflow import TROWorkflow

logger = logging.getLogger(__name__)

INITIATING_PACKETS = frozenset({
    PacketType.INITIATING_WITHOUT_CHILDREN,
    PacketType.INITIATING_WITH_CHILDREN,
})

UNFINISHED_STATUSES = frozenset({
    FormStatus.SKIPPED,
    FormStatus.NOT_STARTED,
    FormStatus.IN_PROGRESS,
    FormStatus.ERROR,
})


@dataclass(frozen=True)
class FormRequirement:
    """Whether a form is mandatory for a packet, and the triggering condition."""
    form_type: FormType
    required: bool
    reason: str


def resolve_requirement(form_type: Any, packet_type: Any, config: PacketConfig) -> FormRequirement:
    """Decide whether ``form_type`` is mandatory for this packet.

    Raises:
        UnknownFormTypeError: For an unknown form or packet type
    """
    form_type = coerce_form_type(form_type)
    packet_type = coerce_packet_type(packet_type)
    initiating = packet_type in INITIATING_PACKETS

    if form_type == FormType.DV100:
        return FormRequirement(form_type, initiating, "it is the core restraining order request")
    if form_type == FormType.CLETS001:
        return FormRequirement(form_type, initiating, "it must accompany every restraining order request")
    if form_type == FormType.DV105:
        children = config.has_children or packet_type == PacketType.INITIATING_WITH_CHILDREN
        return FormRequirement(form_type, initiating and children, "children are involved")
    if form_type == FormType.FL150:
        return FormRequirement(form_type, config.requesting_support, "child or spousal support is requested")
    if form_type == FormType.DV101:
        return FormRequirement(form_type, initiating and config.need_more_space, "more space is needed to describe the abuse")
    if form_type == FormType.DV120:
        return FormRequirement(form_type, packet_type == PacketType.RESPONSE, "it is the response to the request")
    if form_type == FormType.FL320:
        return FormRequirement(form_type, packet_type == PacketType.MODIFICATION, "it is the declaration for the modification request")
    if form_type in (FormType.DV109, FormType.DV110):
        return FormRequirement(form_type, False, "it is generated by the court")
    raise AssertionError(f"Unhandled form type: {form_type}")


def get_required_forms(packet_type: Any, config: PacketConfig) -> List[FormType]:
    """Mandatory forms of a packet, in packet order."""
    return [
        form_type
        for form_type in get_form_order(packet_type)
        if resolve_requirement(form_type, packet_type, config).required
    ]


def get_optional_forms(packet_type: Any, config: PacketConfig) -> List[FormType]:
    """Non-mandatory forms of a packet, in packet order."""
    required = set(get_required_forms(packet_type, config))
    return [form_type for form_type in get_form_order(packet_type) if form_type not in required]


def _lookup(form_data: Mapping[Any, Mapping[str, Any]], form_type: FormType) -> Optional[Mapping[str, Any]]:
    data = form_data.get(form_type)
    if data is None:
        data = form_data.get(form_type.value)
    return data


def validate_packet_data(
    workflow: "TROWorkflow",
    form_data_by_type: Mapping[Any, Mapping[str, Any]],
    for_filing: bool = False,
) -> ValidationResult:
    """Validate a whole packet for completeness and consistency.

    Args:
        workflow: The packet's workflow (packet type, config and statuses)
        form_data_by_type: Form type -> form data for the packet's forms
        for_filing: True when the packet is about to be filed; canonical field
            disagreements then block instead of warn

    Returns:
        ValidationResult with valid == (no errors)
    """
    errors: List[ValidationError] = []
    warnings: List[ValidationWarning] = []
    order = get_form_order(workflow.packet_type)

    for form_type in order:
        requirement = resolve_requirement(form_type, workflow.packet_type, workflow.packet_config)
        status = workflow.form_statuses.get(form_type, FormStatus.NOT_STARTED)
        if not requirement.required:
            continue

        if status in UNFINISHED_STATUSES:
            errors.append(ValidationError(
                code=ErrorCode.MISSING_REQUIRED_FORM,
                message=(
                    f"{form_type.value} must be completed because {requirement.reason} "
                    f"(current status: {status.value})"
                ),
                form_type=form_type,
                severity=Severity.CRITICAL,
            ))
            continue

        data = _lookup(form_data_by_type, form_type)
        if not data:
            errors.append(ValidationError(
                code=ErrorCode.FORM_DATA_MISSING,
                message=f"{form_type.value} data not found",
                form_type=form_type,
                severity=Severity.CRITICAL,
            ))
            continue

        form_result = validate_form_data(form_type, data)
        warnings.extend(form_result.warnings)
        if not form_result.valid:
            errors.extend(form_result.errors)
            errors.append(ValidationError(
                code=ErrorCode.INCOMPLETE_FORM,
                message=f"{form_type.value} has {len(form_result.errors)} unresolved error(s)",
                form_type=form_type,
                severity=Severity.CRITICAL,
            ))

    for dependency in FORM_DEPENDENCIES:
        if dependency.dependent_form not in order or dependency.required_form not in order:
            continue
        if not dependency.applies(workflow.packet_config):
            continue
        dependent_status = workflow.form_statuses.get(dependency.dependent_form)
        required_status = workflow.form_statuses.get(dependency.required_form)
        if dependent_status in DONE_STATUSES and required_status not in DONE_STATUSES:
            errors.append(ValidationError(
                code=ErrorCode.DEPENDENCY_NOT_MET,
                message=dependency.reason,
                form_type=dependency.dependent_form,
                severity=Severity.CRITICAL,
            ))

    packet_forms = {
        form_type: data
        for form_type in order
        for data in [_lookup(form_data_by_type, form_type)]
        if data
    }
    for finding in detect_inconsistencies(packet_forms):
        if for_filing:
            errors.append(ValidationError(
                code=ErrorCode.DATA_INCONSISTENCY,
                message=finding.message,
                field=finding.field,
                severity=Severity.CRITICAL,
            ))
        else:
            warnings.append(ValidationWarning(
                code=WarningCode.DATA_INCONSISTENCY,
                message=finding.message,
                field=finding.field,
                suggestion="Review and correct conflicting information across forms",
            ))

    result = ValidationResult.from_findings(errors, warnings)
    logger.debug(
        "Packet %s validated (filing=%s): %d error(s), %d warning(s)",
        workflow.id, for_filing, len(result.errors), len(result.warnings),
    )
    return result


def requirement_summary(packet_type: Any, config: PacketConfig) -> Dict[str, Any]:
    """Required/optional split of a packet, for progress UIs."""
    return {
        "required": [f.value for f in get_required_forms(packet_type, config)],
        "optional": [f.value for f in get_optional_forms(packet_type, config)],
    }


__all__ = [
    "FormRequirement",
    "resolve_requirement",
    "get_required_forms",
    "get_optional_forms",
    "validate_packet_data",
    "requirement_summary",
]
