"""Form requirement catalog for the PacketFlow engine.

This module is the single declarative source for every per-form rule:
- REQUIRED_FIELDS: fields that must hold a value for a form to be complete
- FORM_SPECS: per-form registry (required fields, at-least-one groups,
  conditional requirements, list item requirements, field types, patterns,
  date fields and canonical field aliases)
- CANONICAL_FIELDS: logical values that must agree across a packet, with the
  differently-named fields that record them
- FORM_ORDER: the fixed form order of each packet type
- FORM_DEPENDENCIES: forms that draw on another form of the same packet
- FORM_ESTIMATED_TIME / FORM_TITLES: presentation metadata for progress UIs

Every table keyed by FormType or PacketType is checked at import time to cover
the whole enum, so a new form type cannot silently fall through a rule.

The alias and required-field sets must be confirmed against the official
Judicial Council forms before they are relied on for a real filing.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from packetflow.errors import UnknownFormTypeError
from packetflow.types import FormType, PacketConfig, PacketType

FormData = Dict[str, Any]

# Canonical field names
CASE_NUMBER = "caseNumber"
COUNTY = "county"
PETITIONER_NAME = "petitionerName"
RESPONDENT_NAME = "respondentName"
EMAIL = "email"
TELEPHONE = "telephoneNo"

# Canonical field -> every field name that records it, in lookup order.
CANONICAL_FIELDS: Dict[str, Tuple[str, ...]] = {
    CASE_NUMBER: ("caseNumber",),
    COUNTY: ("county",),
    PETITIONER_NAME: ("petitionerName", "protectedPersonName", "petitioner"),
    RESPONDENT_NAME: ("respondentName", "restrainedPersonName", "respondent"),
    EMAIL: ("email",),
    TELEPHONE: ("telephoneNo",),
}

ZIP_PATTERN = r"^\d{5}(-\d{4})?$"
CASE_NUMBER_PATTERN = r"^([A-Za-z0-9][\s-]*){6,}$"
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
PHONE_PATTERN = r"^\D*(\d\D*){10}$"

STRING = "string"
BOOLEAN = "boolean"
NUMBER = "number"
ARRAY = "array"
TEXT_OR_LIST = ["string", "array"]
AMOUNT = ["number", "string"]


@dataclass(frozen=True)
class FieldGroup:
    """A set of fields of which at least one must be selected.

    Attributes:
        name: Identifier reported in MISSING_GROUP_SELECTION errors
        members: Field names belonging to the group
        message: Human-readable failure message
    """
    name: str
    members: Tuple[str, ...]
    message: str


@dataclass(frozen=True)
class ConditionalRequirement:
    """A field that is required only while a trigger holds on the same form."""
    field: str
    trigger: Callable[[Mapping[str, Any]], bool]
    message: str


@dataclass(frozen=True)
class FormDependency:
    """A form that draws its case and party data from another form.

    Attributes:
        dependent_form: Form that depends on another
        required_form: Form that must be complete first
        reason: Why the dependency exists
        condition: Optional predicate on the packet config; the dependency only
            applies while it holds
    """
    dependent_form: FormType
    required_form: FormType
    reason: str
    condition: Optional[Callable[[PacketConfig], bool]] = None

    def applies(self, config: PacketConfig) -> bool:
        return self.condition is None or self.condition(config)


@dataclass(frozen=True)
class FormSpec:
    """Field registry for one form type.

    Attributes:
        form_type: The form described
        required: Fields that must hold a value
        groups: At-least-one selection groups
        conditionals: Fields required only when their trigger holds
        item_requirements: For list fields, keys every list item must carry
        field_types: JSON Schema type per known field
        patterns: Regex per string field, checked as a warning
        date_fields: Fields parsed as calendar dates, checked as a warning
        canonical: Canonical field name -> the field this form records it under
    """
    form_type: FormType
    required: Tuple[str, ...] = ()
    groups: Tuple[FieldGroup, ...] = ()
    conditionals: Tuple[ConditionalRequirement, ...] = ()
    item_requirements: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    field_types: Dict[str, Any] = field(default_factory=dict)
    patterns: Dict[str, str] = field(default_factory=dict)
    date_fields: Tuple[str, ...] = ()
    canonical: Dict[str, str] = field(default_factory=dict)

    @property
    def requirement_count(self) -> int:
        """Number of unconditional requirements (fields plus groups)."""
        return len(self.required) + len(self.groups)


def _is_true(name: str) -> Callable[[Mapping[str, Any]], bool]:
    return lambda data: data.get(name) is True


def _has_items(name: str) -> Callable[[Mapping[str, Any]], bool]:
    return lambda data: isinstance(data.get(name), list) and len(data[name]) > 0


ABUSE_TYPES = FieldGroup(
    name="abuseTypes",
    members=(
        "physicalAbuse",
        "sexualAbuse",
        "emotionalAbuse",
        "financialAbuse",
        "stalking",
        "harassment",
    ),
    message="At least one type of abuse must be indicated",
)

ORDERS_REQUESTED = FieldGroup(
    name="ordersRequested",
    members=(
        "personalConductOrders",
        "stayAwayOrders",
        "moveOutOrders",
        "childCustodyOrders",
        "childSupportOrders",
        "spousalSupportOrders",
        "propertyOrders",
    ),
    message="At least one order must be requested",
)

_PARTY_CONTACT_TYPES: Dict[str, Any] = {
    "streetAddress": STRING,
    "city": STRING,
    "state": STRING,
    "zipCode": STRING,
    "telephoneNo": STRING,
    "faxNo": STRING,
    "email": STRING,
    "attorneyFor": STRING,
    "firmName": STRING,
    "stateBarNumber": STRING,
}

_CONTACT_PATTERNS: Dict[str, str] = {
    "zipCode": ZIP_PATTERN,
    "email": EMAIL_PATTERN,
    "telephoneNo": PHONE_PATTERN,
    "caseNumber": CASE_NUMBER_PATTERN,
}


def _person_fields(prefix: str) -> Dict[str, Any]:
    suffixes = (
        "Name", "Address", "City", "State", "Zip", "DOB", "Gender", "Race",
        "Height", "Weight", "HairColor", "EyeColor",
    )
    return {f"{prefix}{suffix}": STRING for suffix in suffixes}


FORM_SPECS: Dict[FormType, FormSpec] = {
    FormType.DV100: FormSpec(
        form_type=FormType.DV100,
        required=(
            "protectedPersonName",
            "restrainedPersonName",
            "relationship",
            "abuseDescription",
            "signatureDate",
            "signature",
        ),
        groups=(ABUSE_TYPES, ORDERS_REQUESTED),
        conditionals=(
            ConditionalRequirement(
                field="childNames",
                trigger=_is_true("hasChildren"),
                message="Child names are required when children are involved",
            ),
            ConditionalRequirement(
                field="childSupportAmount",
                trigger=_is_true("requestingChildSupport"),
                message="Child support amount is required when requesting child support",
            ),
            ConditionalRequirement(
                field="spousalSupportAmount",
                trigger=_is_true("requestingSpousalSupport"),
                message="Spousal support amount is required when requesting spousal support",
            ),
        ),
        field_types={
            **_person_fields("protectedPerson"),
            **_person_fields("restrainedPerson"),
            "relationship": STRING,
            "abuseDescription": STRING,
            "signatureDate": STRING,
            "signature": STRING,
            "caseNumber": STRING,
            "county": STRING,
            "email": STRING,
            "telephoneNo": STRING,
            "hasChildren": BOOLEAN,
            "requestingChildSupport": BOOLEAN,
            "requestingSpousalSupport": BOOLEAN,
            "children": ARRAY,
            "childNames": TEXT_OR_LIST,
            "childSupportAmount": AMOUNT,
            "spousalSupportAmount": AMOUNT,
            "numberOfChildren": "integer",
            **{member: BOOLEAN for member in ABUSE_TYPES.members},
            **{member: BOOLEAN for member in ORDERS_REQUESTED.members},
        },
        patterns={
            "protectedPersonZip": ZIP_PATTERN,
            "restrainedPersonZip": ZIP_PATTERN,
            "caseNumber": CASE_NUMBER_PATTERN,
            "email": EMAIL_PATTERN,
            "telephoneNo": PHONE_PATTERN,
        },
        date_fields=("signatureDate", "protectedPersonDOB", "restrainedPersonDOB"),
        canonical={
            CASE_NUMBER: "caseNumber",
            COUNTY: "county",
            PETITIONER_NAME: "protectedPersonName",
            RESPONDENT_NAME: "restrainedPersonName",
            EMAIL: "email",
            TELEPHONE: "telephoneNo",
        },
    ),
    FormType.CLETS001: FormSpec(
        form_type=FormType.CLETS001,
        required=(
            "protectedPersonName",
            "protectedPersonAddress",
            "protectedPersonCity",
            "protectedPersonState",
            "protectedPersonZip",
            "protectedPersonDOB",
            "protectedPersonGender",
            "protectedPersonRace",
            "restrainedPersonName",
            "restrainedPersonDOB",
            "restrainedPersonGender",
            "lawEnforcementAgency",
        ),
        field_types={
            **_person_fields("protectedPerson"),
            **_person_fields("restrainedPerson"),
            "lawEnforcementAgency": STRING,
            "caseNumber": STRING,
            "county": STRING,
        },
        patterns={
            "protectedPersonZip": ZIP_PATTERN,
            "restrainedPersonZip": ZIP_PATTERN,
            "caseNumber": CASE_NUMBER_PATTERN,
        },
        date_fields=("protectedPersonDOB", "restrainedPersonDOB"),
        canonical={
            CASE_NUMBER: "caseNumber",
            COUNTY: "county",
            PETITIONER_NAME: "protectedPersonName",
            RESPONDENT_NAME: "restrainedPersonName",
        },
    ),
    FormType.DV105: FormSpec(
        form_type=FormType.DV105,
        required=(
            "petitionerName",
            "respondentName",
            "caseNumber",
            "children",
            "custodyOrders",
            "visitationOrders",
        ),
        conditionals=(
            ConditionalRequirement(
                field="currentCustodyArrangement",
                trigger=_has_items("children"),
                message="Current custody arrangement must be described",
            ),
        ),
        item_requirements={"children": ("name", "birthdate")},
        field_types={
            "petitionerName": STRING,
            "respondentName": STRING,
            "caseNumber": STRING,
            "county": STRING,
            "children": ARRAY,
            "childNames": TEXT_OR_LIST,
            "childBirthdates": TEXT_OR_LIST,
            "numberOfChildren": "integer",
            "custodyOrders": ["string", "boolean", "object"],
            "visitationOrders": ["string", "boolean", "object"],
            "currentCustodyArrangement": STRING,
        },
        patterns={"caseNumber": CASE_NUMBER_PATTERN},
        canonical={
            CASE_NUMBER: "caseNumber",
            COUNTY: "county",
            PETITIONER_NAME: "petitionerName",
            RESPONDENT_NAME: "respondentName",
        },
    ),
    FormType.FL150: FormSpec(
        form_type=FormType.FL150,
        required=(
            "partyName",
            "caseNumber",
            "averageMonthlyIncome",
            "averageMonthlyExpenses",
            "signatureDate",
            "signature",
        ),
        conditionals=(
            ConditionalRequirement(
                field="employerName",
                trigger=lambda data: data.get("employmentStatus") == "employed",
                message="Employer name is required if employed",
            ),
            ConditionalRequirement(
                field="childCareExpenses",
                trigger=lambda data: bool(data.get("hasChildren")),
                message="Child care expenses must be listed if you have children",
            ),
        ),
        field_types={
            **_PARTY_CONTACT_TYPES,
            "partyName": STRING,
            "petitioner": STRING,
            "respondent": STRING,
            "caseNumber": STRING,
            "county": STRING,
            "averageMonthlyIncome": NUMBER,
            "averageMonthlyExpenses": NUMBER,
            "employmentStatus": STRING,
            "employerName": STRING,
            "hasChildren": BOOLEAN,
            "childCareExpenses": AMOUNT,
            "numberOfChildren": "integer",
            "signatureDate": STRING,
            "signature": STRING,
        },
        patterns=dict(_CONTACT_PATTERNS),
        date_fields=("signatureDate",),
        canonical={
            CASE_NUMBER: "caseNumber",
            COUNTY: "county",
            PETITIONER_NAME: "petitioner",
            RESPONDENT_NAME: "respondent",
            EMAIL: "email",
            TELEPHONE: "telephoneNo",
        },
    ),
    FormType.DV120: FormSpec(
        form_type=FormType.DV120,
        required=(
            "respondentName",
            "petitionerName",
            "caseNumber",
            "agreeOrDisagree",
            "signatureDate",
            "signature",
        ),
        field_types={
            **_PARTY_CONTACT_TYPES,
            "respondentName": STRING,
            "petitionerName": STRING,
            "caseNumber": STRING,
            "county": STRING,
            "agreeOrDisagree": STRING,
            "attorneyName": STRING,
            "signatureDate": STRING,
            "signature": STRING,
        },
        patterns=dict(_CONTACT_PATTERNS),
        date_fields=("signatureDate",),
        canonical={
            CASE_NUMBER: "caseNumber",
            COUNTY: "county",
            PETITIONER_NAME: "petitionerName",
            RESPONDENT_NAME: "respondentName",
            EMAIL: "email",
            TELEPHONE: "telephoneNo",
        },
    ),
    FormType.FL320: FormSpec(
        form_type=FormType.FL320,
        required=(
            "partyName",
            "caseNumber",
            "petitioner",
            "respondent",
            "signatureDate",
            "signature",
        ),
        field_types={
            **_PARTY_CONTACT_TYPES,
            "partyName": STRING,
            "caseNumber": STRING,
            "county": STRING,
            "petitioner": STRING,
            "respondent": STRING,
            "signatureDate": STRING,
            "signature": STRING,
        },
        patterns=dict(_CONTACT_PATTERNS),
        date_fields=("signatureDate",),
        canonical={
            CASE_NUMBER: "caseNumber",
            COUNTY: "county",
            PETITIONER_NAME: "petitioner",
            RESPONDENT_NAME: "respondent",
            EMAIL: "email",
            TELEPHONE: "telephoneNo",
        },
    ),
    FormType.DV101: FormSpec(
        form_type=FormType.DV101,
        required=("incidentDate", "incidentDescription"),
        field_types={
            "incidentDate": STRING,
            "incidentDescription": STRING,
            "caseNumber": STRING,
        },
        patterns={"caseNumber": CASE_NUMBER_PATTERN},
        date_fields=("incidentDate",),
        canonical={CASE_NUMBER: "caseNumber"},
    ),
    # Court generated; the litigant never fills these in.
    FormType.DV109: FormSpec(
        form_type=FormType.DV109,
        canonical={CASE_NUMBER: "caseNumber", COUNTY: "county"},
    ),
    FormType.DV110: FormSpec(
        form_type=FormType.DV110,
        canonical={CASE_NUMBER: "caseNumber", COUNTY: "county"},
    ),
}

REQUIRED_FIELDS: Dict[FormType, Tuple[str, ...]] = {
    form_type: spec.required for form_type, spec in FORM_SPECS.items()
}

FORM_ORDER: Dict[PacketType, Tuple[FormType, ...]] = {
    PacketType.INITIATING_WITHOUT_CHILDREN: (
        FormType.DV100,
        FormType.CLETS001,
        FormType.FL150,
        FormType.DV101,
    ),
    PacketType.INITIATING_WITH_CHILDREN: (
        FormType.DV100,
        FormType.CLETS001,
        FormType.DV105,
        FormType.FL150,
        FormType.DV101,
    ),
    PacketType.RESPONSE: (
        FormType.DV120,
        FormType.FL150,
        FormType.FL320,
    ),
    PacketType.MODIFICATION: (
        FormType.FL320,
        FormType.FL150,
    ),
}

# Minutes a litigant typically needs per form.
FORM_ESTIMATED_TIME: Dict[FormType, int] = {
    FormType.DV100: 30,
    FormType.DV101: 15,
    FormType.DV105: 20,
    FormType.DV109: 5,
    FormType.DV110: 5,
    FormType.DV120: 25,
    FormType.CLETS001: 10,
    FormType.FL150: 45,
    FormType.FL320: 30,
}

FORM_TITLES: Dict[FormType, str] = {
    FormType.DV100: "Request for Domestic Violence Restraining Order",
    FormType.DV101: "Description of Abuse",
    FormType.DV105: "Request for Child Custody and Visitation Orders",
    FormType.DV109: "Notice of Court Hearing",
    FormType.DV110: "Temporary Restraining Order",
    FormType.DV120: "Response to Request for Domestic Violence Restraining Order",
    FormType.CLETS001: "Confidential CLETS Information",
    FormType.FL150: "Income and Expense Declaration",
    FormType.FL320: "Responsive Declaration to Request for Order",
}

FORM_DEPENDENCIES: Tuple[FormDependency, ...] = (
    FormDependency(
        dependent_form=FormType.CLETS001,
        required_form=FormType.DV100,
        reason="CLETS-001 requires information from DV-100",
    ),
    FormDependency(
        dependent_form=FormType.DV105,
        required_form=FormType.DV100,
        reason="DV-105 requires case and party information from DV-100",
    ),
    FormDependency(
        dependent_form=FormType.FL150,
        required_form=FormType.DV100,
        reason="FL-150 is required when requesting support in DV-100",
        condition=lambda config: config.requesting_support,
    ),
    FormDependency(
        dependent_form=FormType.DV101,
        required_form=FormType.DV100,
        reason="DV-101 is an attachment to DV-100",
    ),
    FormDependency(
        dependent_form=FormType.FL320,
        required_form=FormType.DV120,
        reason="FL-320 is filed together with the DV-120 response",
    ),
)


def _require_every_key(table: Mapping[Any, Any], enum_cls: Any, name: str) -> None:
    missing = [member.value for member in enum_cls if member not in table]
    if missing:
        raise RuntimeError(f"{name} has no entry for: {', '.join(missing)}")


_require_every_key(FORM_SPECS, FormType, "FORM_SPECS")
_require_every_key(FORM_ESTIMATED_TIME, FormType, "FORM_ESTIMATED_TIME")
_require_every_key(FORM_TITLES, FormType, "FORM_TITLES")
_require_every_key(FORM_ORDER, PacketType, "FORM_ORDER")


def coerce_form_type(value: Any) -> FormType:
    """Return ``value`` as a FormType.

    Raises:
        UnknownFormTypeError: If the value names no known form
    """
    if isinstance(value, FormType):
        return value
    try:
        return FormType(value)
    except ValueError:
        raise UnknownFormTypeError(value) from None


def coerce_packet_type(value: Any) -> PacketType:
    """Return ``value`` as a PacketType.

    Raises:
        UnknownFormTypeError: If the value names no known packet type
    """
    if isinstance(value, PacketType):
        return value
    try:
        return PacketType(value)
    except ValueError:
        raise UnknownFormTypeError(value) from None


def get_form_spec(form_type: Any) -> FormSpec:
    """Look up the field registry entry for a form type."""
    return FORM_SPECS[coerce_form_type(form_type)]


def get_form_order(packet_type: Any) -> Tuple[FormType, ...]:
    """Ordered forms of a packet type."""
    return FORM_ORDER[coerce_packet_type(packet_type)]


def get_dependencies(form_type: Any) -> List[FormDependency]:
    """Dependencies declared for ``form_type`` as the dependent form."""
    form_type = coerce_form_type(form_type)
    return [dep for dep in FORM_DEPENDENCIES if dep.dependent_form == form_type]


@lru_cache(maxsize=None)
def build_json_schema(form_type: FormType) -> Dict[str, Any]:
    """Generate a Draft 7 JSON Schema describing a form's field shapes.

    The schema carries types and patterns only. Presence rules stay in the
    FormSpec because an empty string or a False checkbox counts as missing.
    """
    spec = get_form_spec(form_type)
    properties: Dict[str, Any] = {}
    for name, json_type in spec.field_types.items():
        properties[name] = {"type": json_type}
    for name, pattern in spec.patterns.items():
        # Patterns only constrain non-empty strings; empties are a presence issue.
        properties.setdefault(name, {"type": STRING})
        properties[name] = {
            **properties[name],
            "if": {"type": "string", "minLength": 1},
            "then": {"pattern": pattern},
        }
    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "title": spec.form_type.value,
        "type": "object",
        "properties": properties,
    }


__all__ = [
    "FormData",
    "FieldGroup",
    "ConditionalRequirement",
    "FormDependency",
    "FormSpec",
    "FORM_SPECS",
    "REQUIRED_FIELDS",
    "CANONICAL_FIELDS",
    "FORM_ORDER",
    "FORM_ESTIMATED_TIME",
    "FORM_TITLES",
    "FORM_DEPENDENCIES",
    "CASE_NUMBER",
    "COUNTY",
    "PETITIONER_NAME",
    "RESPONDENT_NAME",
    "EMAIL",
    "TELEPHONE",
    "coerce_form_type",
    "coerce_packet_type",
    "get_form_spec",
    "get_form_order",
    "get_dependencies",
    "build_json_schema",
]
