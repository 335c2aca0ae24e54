"""Cross-form consistency checks for a packet.

Canonical fields (case number, county, party names, email, telephone) must
hold one value on every form that records them, even where forms use
different field names. CANONICAL_FIELDS resolves those aliases.

Values are compared after stringifying and trimming, so ``12345`` and
``"12345 "`` agree.
"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Tuple

from packetflow.catalog import CANONICAL_FIELDS, FORM_SPECS, coerce_form_type
from packetflow.types import FormType
from packetflow.validation import has_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Inconsistency:
    """A canonical field holding different values across forms.

    Attributes:
        field: Canonical field name
        values: Distinct values in first-seen order
        form_types: Forms recording the field, in packet iteration order
    """
    field: str
    values: Tuple[str, ...]
    form_types: Tuple[Any, ...]

    @property
    def message(self) -> str:
        return f"{self.field} has inconsistent values: {', '.join(self.values)}"

    def involves(self, form_type: Any) -> bool:
        return any(_same_form(form_type, other) for other in self.form_types)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "field": self.field,
            "values": list(self.values),
            "formTypes": [getattr(f, "value", f) for f in self.form_types],
            "message": self.message,
        }


def _same_form(a: Any, b: Any) -> bool:
    return getattr(a, "value", a) == getattr(b, "value", b)


def _normalize(value: Any) -> str:
    return str(value).strip()


def canonical_value(data: Mapping[str, Any], canonical_field: str) -> Optional[str]:
    """The first non-empty alias value of a canonical field on one form."""
    for alias in CANONICAL_FIELDS[canonical_field]:
        value = data.get(alias)
        if has_value(value) and _normalize(value):
            return _normalize(value)
    return None


def canonical_view(data: Mapping[str, Any]) -> Dict[str, str]:
    """Canonical field -> value for every canonical field the form populates."""
    view: Dict[str, str] = {}
    for canonical_field in CANONICAL_FIELDS:
        value = canonical_value(data, canonical_field)
        if value is not None:
            view[canonical_field] = value
    return view


def _collect(forms: Mapping[Any, Mapping[str, Any]]) -> Dict[str, Dict[str, List[Any]]]:
    """canonical field -> value -> forms that hold it, all in first-seen order."""
    collected: Dict[str, Dict[str, List[Any]]] = {name: {} for name in CANONICAL_FIELDS}
    for form_type, data in forms.items():
        if not data:
            continue
        for canonical_field, value in canonical_view(data).items():
            collected[canonical_field].setdefault(value, []).append(form_type)
    return collected


def extract_common_values(forms: Mapping[Any, Mapping[str, Any]]) -> Dict[str, List[str]]:
    """Distinct non-empty values of each canonical field across all forms.

    Examples:
        >>> extract_common_values({
        ...     FormType.DV100: {"caseNumber": "FL123456", "protectedPersonName": "Jane"},
        ...     FormType.DV105: {"caseNumber": "FL123456", "petitionerName": "Jane"},
        ... })["petitionerName"]
        ['Jane']
    """
    return {name: list(values) for name, values in _collect(forms).items()}


def detect_inconsistencies(forms: Mapping[Any, Mapping[str, Any]]) -> List[Inconsistency]:
    """Structured findings for every canonical field with more than one value."""
    findings: List[Inconsistency] = []
    for canonical_field, values in _collect(forms).items():
        if len(values) <= 1:
            continue
        involved: List[Any] = []
        for holders in values.values():
            for form_type in holders:
                if not any(_same_form(form_type, seen) for seen in involved):
                    involved.append(form_type)
        findings.append(Inconsistency(
            field=canonical_field,
            values=tuple(values),
            form_types=tuple(involved),
        ))
    if findings:
        logger.debug("Found %d inconsistent canonical field(s)", len(findings))
    return findings


def find_inconsistencies(forms: Mapping[Any, Mapping[str, Any]]) -> List[str]:
    """One message per canonical field whose values disagree across forms.

    Examples:
        >>> find_inconsistencies({
        ...     FormType.DV100: {"caseNumber": "X"},
        ...     FormType.CLETS001: {"caseNumber": "Y"},
        ... })
        ['caseNumber has inconsistent values: X, Y']
    """
    return [finding.message for finding in detect_inconsistencies(forms)]


def _target_alias(form_type: Any, canonical_field: str) -> Optional[str]:
    """Field name a form records a canonical field under.

    Forms the catalog does not know use the canonical name. Known forms that do
    not record the field get nothing written.
    """
    try:
        spec = FORM_SPECS[coerce_form_type(form_type)]
    except ValueError:
        return canonical_field
    return spec.canonical.get(canonical_field)


def synchronize_common_fields(
    forms: MutableMapping[Any, MutableMapping[str, Any]],
    authoritative: Any,
) -> int:
    """Copy canonical values from the authoritative form into the others.

    A value is written only where the target form has no value for that
    canonical field under any alias; existing values are never overwritten.
    Nothing happens when the authoritative form is absent.

    Args:
        forms: Form type -> form data, modified in place
        authoritative: Form whose canonical values are ground truth

    Returns:
        Number of values written
    """
    source_key = next((key for key in forms if _same_form(key, authoritative)), None)
    if source_key is None or not forms[source_key]:
        return 0

    source_values = canonical_view(forms[source_key])
    written = 0
    for form_type, data in forms.items():
        if form_type is source_key or data is None:
            continue
        for canonical_field, value in source_values.items():
            if canonical_value(data, canonical_field) is not None:
                continue
            alias = _target_alias(form_type, canonical_field)
            if alias is None:
                continue
            data[alias] = value
            written += 1
    if written:
        logger.debug("Synchronized %d canonical value(s) from %s", written, getattr(authoritative, "value", authoritative))
    return written


__all__ = [
    "CANONICAL_FIELDS",
    "Inconsistency",
    "canonical_value",
    "canonical_view",
    "extract_common_values",
    "detect_inconsistencies",
    "find_inconsistencies",
    "synchronize_common_fields",
]
