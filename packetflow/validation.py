"""Form validation engine for the PacketFlow workflow.

This module validates one form's data against its catalog entry and computes
how complete the form is. Presence rules (required fields, at-least-one groups,
conditional requirements, list item requirements) produce blocking errors.
Shape and plausibility checks (JSON Schema types and patterns, calendar dates,
advisory heuristics) produce warnings only, so a form is complete exactly when
it has no errors.

Validators never raise for malformed data. They raise only for a FormType the
catalog does not know.
"""

from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta
import jsonschema
from jsonschema import Draft7Validator

from packetflow.catalog import FormSpec, build_json_schema, get_form_spec
from packetflow.config import PacketFlowSettings
from packetflow.errors import ValidationError, ValidationWarning
from packetflow.types import ErrorCode, FormType, Severity, WarningCode

logger = logging.getLogger(__name__)

EARLIEST_PLAUSIBLE_DATE = datetime(1900, 1, 1)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a form or a whole packet.

    Attributes:
        valid: True when there are no blocking errors
        errors: Blocking validation errors
        warnings: Non-blocking notices

    Examples:
        >>> result = validate_form_data(FormType.DV101, {
        ...     "incidentDate": "2025-10-01",
        ...     "incidentDescription": "He broke the door.",
        ... })
        >>> result.valid
        True
        >>> result.errors
        []
    """
    valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)

    @classmethod
    def from_findings(
        cls,
        errors: Iterable[ValidationError],
        warnings: Iterable[ValidationWarning] = (),
    ) -> "ValidationResult":
        errors = list(errors)
        return cls(valid=not errors, errors=errors, warnings=list(warnings))

    @property
    def error_fields(self) -> List[str]:
        """Fields named by errors, in error order."""
        return [e.field for e in self.errors if e.field is not None]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }


def has_value(value: Any) -> bool:
    """Whether a field value counts as filled in.

    None, blank strings, empty collections and False are all missing. Numbers,
    zero included, are present.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return len(value.strip()) > 0
    if isinstance(value, (int, float)):
        return not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) > 0
    return True


def _as_mapping(data: Any) -> Mapping[str, Any]:
    if isinstance(data, Mapping):
        return data
    return {}


def _missing_item_keys(value: Any, keys: Tuple[str, ...]) -> List[Tuple[int, str]]:
    """(index, key) pairs of list items lacking a required key."""
    if not isinstance(value, list):
        return []
    missing: List[Tuple[int, str]] = []
    for index, item in enumerate(value):
        item = _as_mapping(item)
        for key in keys:
            if not has_value(item.get(key)):
                missing.append((index, key))
    return missing


def _presence_findings(spec: FormSpec, data: Mapping[str, Any]) -> Tuple[List[ValidationError], int, int]:
    """Check presence rules.

    Returns:
        (errors, satisfied, total) where satisfied/total count requirements
    """
    errors: List[ValidationError] = []
    satisfied = 0
    total = 0

    for name in spec.required:
        total += 1
        value = data.get(name)
        if not has_value(value):
            errors.append(ValidationError(
                code=ErrorCode.MISSING_FIELD,
                message=f"{name} is required",
                form_type=spec.form_type,
                field=name,
            ))
            continue
        item_keys = spec.item_requirements.get(name)
        missing_items = _missing_item_keys(value, item_keys) if item_keys else []
        for index, key in missing_items:
            errors.append(ValidationError(
                code=ErrorCode.MISSING_FIELD,
                message=f"{name}[{index}].{key} is required",
                form_type=spec.form_type,
                field=f"{name}[{index}].{key}",
            ))
        if not missing_items:
            satisfied += 1

    for group in spec.groups:
        total += 1
        if any(has_value(data.get(member)) for member in group.members):
            satisfied += 1
        else:
            errors.append(ValidationError(
                code=ErrorCode.MISSING_GROUP_SELECTION,
                message=group.message,
                form_type=spec.form_type,
                field=group.name,
                severity=Severity.CRITICAL,
            ))

    for conditional in spec.conditionals:
        if not conditional.trigger(data):
            continue
        total += 1
        if has_value(data.get(conditional.field)):
            satisfied += 1
        else:
            errors.append(ValidationError(
                code=ErrorCode.MISSING_CONDITIONAL_FIELD,
                message=conditional.message,
                form_type=spec.form_type,
                field=conditional.field,
            ))

    return errors, satisfied, total


@lru_cache(maxsize=None)
def _schema_validator(form_type: FormType) -> Draft7Validator:
    schema = build_json_schema(form_type)
    Draft7Validator.check_schema(schema)
    return Draft7Validator(schema)


def _translate_schema_error(form_type: FormType, error: jsonschema.ValidationError) -> ValidationWarning:
    """Translate a jsonschema error into a warning."""
    path = ".".join(str(p) for p in error.path)
    if error.validator == "type":
        expected = error.validator_value
        received = type(error.instance).__name__
        return ValidationWarning(
            code=WarningCode.INVALID_TYPE,
            message=f"Field '{path}' has invalid type. Expected {expected}, got {received}",
            form_type=form_type,
            field=path,
        )
    if error.validator == "pattern":
        return ValidationWarning(
            code=WarningCode.INVALID_FORMAT,
            message=f"Field '{path}' has an unexpected format",
            form_type=form_type,
            field=path,
            suggestion=f"Expected to match pattern: {error.validator_value}",
        )
    return ValidationWarning(
        code=WarningCode.INVALID_FORMAT,
        message=f"Field '{path}' validation failed: {error.message}",
        form_type=form_type,
        field=path,
    )


def _shape_warnings(spec: FormSpec, data: Mapping[str, Any]) -> List[ValidationWarning]:
    present = {k: v for k, v in data.items() if v is not None}
    validator = _schema_validator(spec.form_type)
    return [
        _translate_schema_error(spec.form_type, error)
        for error in sorted(validator.iter_errors(present), key=lambda e: ".".join(str(p) for p in e.path))
        if error.validator in ("type", "pattern")
    ]


def parse_date(value: Any) -> Optional[datetime]:
    """Parse a calendar date, returning None when it cannot be read."""
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return date_parser.parse(value).replace(tzinfo=None)
    except (ValueError, OverflowError):
        return None


def is_plausible_date(value: Any, now: Optional[datetime] = None) -> bool:
    """Whether a date parses and falls between 1900 and one year from now."""
    parsed = parse_date(value)
    if parsed is None:
        return False
    now = now or datetime.now()
    return EARLIEST_PLAUSIBLE_DATE <= parsed <= now + relativedelta(years=1)


def _date_warnings(spec: FormSpec, data: Mapping[str, Any]) -> List[ValidationWarning]:
    warnings: List[ValidationWarning] = []
    for name in spec.date_fields:
        value = data.get(name)
        if not has_value(value) or not isinstance(value, str):
            continue
        if not is_plausible_date(value):
            warnings.append(ValidationWarning(
                code=WarningCode.INVALID_DATE,
                message=f"{name} is not a valid date",
                form_type=spec.form_type,
                field=name,
                suggestion="Use a date such as 2025-01-31",
            ))
    return warnings


Advisory = Callable[[Mapping[str, Any], PacketFlowSettings], List[ValidationWarning]]


def _brief_abuse_description(data: Mapping[str, Any], settings: PacketFlowSettings) -> List[ValidationWarning]:
    description = data.get("abuseDescription")
    if isinstance(description, str) and 0 < len(description.strip()) < settings.min_abuse_description_length:
        return [ValidationWarning(
            code=WarningCode.BRIEF_DESCRIPTION,
            message="Abuse description is very brief. More details may strengthen your case.",
            form_type=FormType.DV100,
            field="abuseDescription",
            suggestion="Consider adding more specific details about dates, locations, and incidents",
        )]
    return []


def _incomplete_physical_description(data: Mapping[str, Any], settings: PacketFlowSettings) -> List[ValidationWarning]:
    wanted = ("Height", "Weight", "HairColor", "EyeColor")
    missing = [f"restrainedPerson{suffix}" for suffix in wanted if not has_value(data.get(f"restrainedPerson{suffix}"))]
    if missing:
        return [ValidationWarning(
            code=WarningCode.INCOMPLETE_DESCRIPTION,
            message="Physical description is incomplete. This information helps law enforcement.",
            form_type=FormType.CLETS001,
            suggestion=f"Add: {', '.join(missing)}",
        )]
    return []


def _expenses_exceed_income(data: Mapping[str, Any], settings: PacketFlowSettings) -> List[ValidationWarning]:
    income = data.get("averageMonthlyIncome")
    expenses = data.get("averageMonthlyExpenses")
    numeric = all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (income, expenses))
    if numeric and expenses > income * settings.expense_income_warning_ratio:
        return [ValidationWarning(
            code=WarningCode.EXPENSES_EXCEED_INCOME,
            message="Expenses exceed income by more than 20%",
            form_type=FormType.FL150,
            suggestion="Review expense calculations for accuracy",
        )]
    return []


ADVISORIES: Dict[FormType, Tuple[Advisory, ...]] = {
    FormType.DV100: (_brief_abuse_description,),
    FormType.CLETS001: (_incomplete_physical_description,),
    FormType.FL150: (_expenses_exceed_income,),
}


def validate_form_data(
    form_type: Any,
    data: Optional[Mapping[str, Any]],
    settings: Optional[PacketFlowSettings] = None,
) -> ValidationResult:
    """Validate one form's data against its catalog entry.

    Reports every failure, not just the first.

    Args:
        form_type: The form being validated
        data: Field values; None or a non-mapping is treated as empty
        settings: Optional settings for advisory thresholds

    Returns:
        ValidationResult with errors and warnings

    Raises:
        UnknownFormTypeError: If form_type is not a known form

    Examples:
        >>> result = validate_form_data(FormType.DV101, {})
        >>> [e.code.value for e in result.errors]
        ['MISSING_FIELD', 'MISSING_FIELD']
    """
    spec = get_form_spec(form_type)
    data = _as_mapping(data)
    settings = settings or PacketFlowSettings()

    errors, _, _ = _presence_findings(spec, data)
    warnings: List[ValidationWarning] = []
    warnings.extend(_shape_warnings(spec, data))
    warnings.extend(_date_warnings(spec, data))
    for advisory in ADVISORIES.get(spec.form_type, ()):
        warnings.extend(advisory(data, settings))

    logger.debug(
        "Validated %s: %d error(s), %d warning(s)",
        spec.form_type.value, len(errors), len(warnings),
    )
    return ValidationResult.from_findings(errors, warnings)


def is_form_complete(form_type: Any, data: Optional[Mapping[str, Any]]) -> bool:
    """True when the form has no validation errors."""
    spec = get_form_spec(form_type)
    errors, _, _ = _presence_findings(spec, _as_mapping(data))
    return not errors


def get_form_completion_percentage(form_type: Any, data: Optional[Mapping[str, Any]]) -> int:
    """Completion of a form from 0 to 100, floored.

    Counts required fields, at-least-one groups and currently active
    conditional requirements. A form without requirements is always 100.
    """
    spec = get_form_spec(form_type)
    _, satisfied, total = _presence_findings(spec, _as_mapping(data))
    if total == 0:
        return 100
    return (100 * satisfied) // total


__all__ = [
    "ValidationResult",
    "has_value",
    "parse_date",
    "is_plausible_date",
    "validate_form_data",
    "is_form_complete",
    "get_form_completion_percentage",
]
