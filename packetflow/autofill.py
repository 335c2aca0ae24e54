"""Autofill resolver for the PacketFlow engine.

Merges FieldMapper output from several sources into one set of suggested
values for a target form. Sources are folded in an explicit order and a later
source overwrites an earlier one on key collision:

- previous forms are folded in the fixed order of AUTOFILL_SOURCES, so the more
  specific source wins;
- autofill_from_both folds the vault first and previous forms second, because a
  form the user already confirmed outranks a stale personal-data record.

Results depend only on the snapshot passed in, never on call order.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from packetflow.catalog import FormData, coerce_form_type
from packetflow.mapping import FIELD_MAPS, apply_field_map, map_vault_to_form
from packetflow.types import AutofillSource, FormType
from packetflow.validation import has_value

logger = logging.getLogger(__name__)

FormsByType = Mapping[Any, Mapping[str, Any]]

# Target form -> source forms, lowest priority first.
AUTOFILL_SOURCES: Dict[FormType, Tuple[FormType, ...]] = {
    FormType.DV100: (),
    FormType.DV101: (),
    FormType.DV105: (FormType.DV100,),
    FormType.DV109: (),
    FormType.DV110: (),
    FormType.DV120: (),
    FormType.CLETS001: (FormType.DV100,),
    FormType.FL150: (FormType.DV100, FormType.DV120),
    FormType.FL320: (FormType.DV120,),
}

# Order in which autofill_from_both folds its sources; later entries win.
BOTH_SOURCE_ORDER: Tuple[AutofillSource, ...] = (
    AutofillSource.VAULT,
    AutofillSource.PREVIOUS_FORM,
)


@dataclass(frozen=True)
class AutofillResult:
    """Values suggested for a form.

    Attributes:
        fields_autofilled: Number of fields in ``fields``
        fields: Suggested field values
        source: Where the values came from

    Examples:
        >>> result = autofill_from_vault(FormType.DV120, {"full_name": "John Doe"})
        >>> result.fields["respondentName"]
        'John Doe'
        >>> result.source
        <AutofillSource.VAULT: 'vault'>
    """
    fields_autofilled: int
    fields: FormData = field(default_factory=dict)
    source: AutofillSource = AutofillSource.PREVIOUS_FORM

    @classmethod
    def of(cls, fields: FormData, source: AutofillSource) -> "AutofillResult":
        return cls(fields_autofilled=len(fields), fields=fields, source=source)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "fieldsAutofilled": self.fields_autofilled,
            "fields": dict(self.fields),
            "source": self.source.value,
        }


def _lookup(forms: FormsByType, form_type: FormType) -> Optional[Mapping[str, Any]]:
    data = forms.get(form_type)
    if data is None:
        data = forms.get(form_type.value)
    return data or None


def _from_previous(target: FormType, completed_forms: FormsByType) -> FormData:
    fields: FormData = {}
    for source in AUTOFILL_SOURCES[target]:
        source_data = _lookup(completed_forms, source)
        if source_data is None:
            continue
        fields.update(apply_field_map(FIELD_MAPS[(source, target)], source_data))
    return fields


SourceResolver = Callable[[FormType, Mapping[str, Any], FormsByType], FormData]

_SOURCE_RESOLVERS: Dict[AutofillSource, SourceResolver] = {
    AutofillSource.VAULT: lambda target, vault, forms: map_vault_to_form(vault or {}, target),
    AutofillSource.PREVIOUS_FORM: lambda target, vault, forms: _from_previous(target, forms),
}


def resolve_sources(
    target: Any,
    sources: Sequence[AutofillSource],
    vault: Optional[Mapping[str, Any]] = None,
    completed_forms: Optional[FormsByType] = None,
) -> FormData:
    """Fold the given sources in order; later sources overwrite earlier ones."""
    target = coerce_form_type(target)
    merged: FormData = {}
    for source in sources:
        merged.update(_SOURCE_RESOLVERS[source](target, vault or {}, completed_forms or {}))
    return merged


def autofill_from_previous_forms(target: Any, completed_forms: FormsByType) -> AutofillResult:
    """Suggest values for ``target`` from forms already completed in the packet.

    Args:
        target: Form to autofill
        completed_forms: Form type (enum or its string value) -> form data.
            Forms absent from the mapping contribute nothing.

    Returns:
        AutofillResult tagged ``previous_form``
    """
    fields = resolve_sources(target, (AutofillSource.PREVIOUS_FORM,), completed_forms=completed_forms)
    logger.debug("Autofill %s from previous forms: %d field(s)", coerce_form_type(target).value, len(fields))
    return AutofillResult.of(fields, AutofillSource.PREVIOUS_FORM)


def autofill_from_vault(target: Any, vault: Optional[Mapping[str, Any]]) -> AutofillResult:
    """Suggest values for ``target`` from the personal data vault."""
    fields = resolve_sources(target, (AutofillSource.VAULT,), vault=vault)
    return AutofillResult.of(fields, AutofillSource.VAULT)


def autofill_from_both(
    target: Any,
    vault: Optional[Mapping[str, Any]],
    completed_forms: FormsByType,
) -> AutofillResult:
    """Suggest values from the vault and previous forms.

    Previous-form values overwrite vault values on key collision.
    """
    fields = resolve_sources(target, BOTH_SOURCE_ORDER, vault=vault, completed_forms=completed_forms)
    return AutofillResult.of(fields, AutofillSource.BOTH)


def apply_autofill(existing: Optional[Mapping[str, Any]], suggested: Mapping[str, Any]) -> Tuple[FormData, List[str]]:
    """Merge suggestions into a form without touching values already entered.

    Returns:
        (merged data, names of fields that were filled)
    """
    merged: FormData = dict(existing or {})
    applied: List[str] = []
    for name, value in suggested.items():
        if not has_value(merged.get(name)):
            merged[name] = value
            applied.append(name)
    return merged, applied


__all__ = [
    "AUTOFILL_SOURCES",
    "BOTH_SOURCE_ORDER",
    "AutofillResult",
    "resolve_sources",
    "autofill_from_previous_forms",
    "autofill_from_vault",
    "autofill_from_both",
    "apply_autofill",
]
