"""Field mapping between forms and from the personal data vault.

Each mapping is a declarative table of (source field, destination field) pairs.
A mapper copies a value only when the source field holds one and only into the
destination fields its table declares; it never invents defaults.

Usage:
    >>> from packetflow.mapping import map_dv100_to_dv105
    >>> map_dv100_to_dv105({"protectedPersonName": "Jane Smith", "relationship": "spouse"})
    {'petitionerName': 'Jane Smith'}
"""

from typing import Any, Callable, Dict, Mapping, Tuple

from typing_extensions import TypedDict

from packetflow.catalog import FormData, coerce_form_type
from packetflow.types import FormType
from packetflow.validation import has_value

FieldMap = Tuple[Tuple[str, str], ...]
Mapper = Callable[[Mapping[str, Any]], FormData]


class VaultRecord(TypedDict, total=False):
    """Flat personal-data record kept in the user's vault.

    Every key is optional; the vault holds whatever the user has saved.
    """
    full_name: str
    street_address: str
    city: str
    state: str
    zip_code: str
    phone: str
    email: str
    attorney_name: str
    attorney_firm: str
    attorney_bar_number: str
    county: str
    date_of_birth: str
    gender: str
    race: str
    height: str
    weight: str
    hair_color: str
    eye_color: str


def _identity(*names: str) -> FieldMap:
    return tuple((name, name) for name in names)


def _person(prefix: str) -> FieldMap:
    suffixes = (
        "Name", "Address", "City", "State", "Zip", "DOB", "Gender", "Race",
        "Height", "Weight", "HairColor", "EyeColor",
    )
    return _identity(*(f"{prefix}{suffix}" for suffix in suffixes))


DV100_TO_CLETS: FieldMap = (
    _person("protectedPerson")
    + _person("restrainedPerson")
    + _identity("caseNumber", "county")
)

DV100_TO_DV105: FieldMap = (
    ("protectedPersonName", "petitionerName"),
    ("restrainedPersonName", "respondentName"),
) + _identity(
    "caseNumber",
    "county",
    "children",
    "childNames",
    "childBirthdates",
    "numberOfChildren",
    "currentCustodyArrangement",
)

DV100_TO_FL150: FieldMap = (
    ("protectedPersonName", "partyName"),
    ("caseNumber", "caseNumber"),
    ("county", "county"),
    ("protectedPersonName", "petitioner"),
    ("restrainedPersonName", "respondent"),
    ("numberOfChildren", "numberOfChildren"),
    ("email", "email"),
    ("telephoneNo", "telephoneNo"),
)

DV120_TO_FL150: FieldMap = (
    ("respondentName", "partyName"),
    ("caseNumber", "caseNumber"),
    ("county", "county"),
    ("petitionerName", "petitioner"),
    ("respondentName", "respondent"),
    ("email", "email"),
    ("telephoneNo", "telephoneNo"),
)

# partyName is always the responding party, never their attorney.
DV120_TO_FL320: FieldMap = (
    ("respondentName", "partyName"),
    ("caseNumber", "caseNumber"),
    ("county", "county"),
    ("petitionerName", "petitioner"),
    ("respondentName", "respondent"),
    ("attorneyName", "attorneyFor"),
    ("firmName", "firmName"),
    ("stateBarNumber", "stateBarNumber"),
) + _identity(
    "streetAddress",
    "city",
    "state",
    "zipCode",
    "telephoneNo",
    "faxNo",
    "email",
)

# (source form, destination form) -> field table
FIELD_MAPS: Dict[Tuple[FormType, FormType], FieldMap] = {
    (FormType.DV100, FormType.CLETS001): DV100_TO_CLETS,
    (FormType.DV100, FormType.DV105): DV100_TO_DV105,
    (FormType.DV100, FormType.FL150): DV100_TO_FL150,
    (FormType.DV120, FormType.FL150): DV120_TO_FL150,
    (FormType.DV120, FormType.FL320): DV120_TO_FL320,
}

VAULT_COMMON_FIELDS: FieldMap = (
    ("full_name", "partyName"),
    ("street_address", "streetAddress"),
    ("city", "city"),
    ("state", "state"),
    ("zip_code", "zipCode"),
    ("phone", "telephoneNo"),
    ("email", "email"),
    ("attorney_name", "attorneyFor"),
    ("attorney_firm", "firmName"),
    ("attorney_bar_number", "stateBarNumber"),
    ("county", "county"),
)

_VAULT_PROTECTED_PERSON: FieldMap = (
    ("full_name", "protectedPersonName"),
    ("street_address", "protectedPersonAddress"),
    ("city", "protectedPersonCity"),
    ("state", "protectedPersonState"),
    ("zip_code", "protectedPersonZip"),
    ("date_of_birth", "protectedPersonDOB"),
    ("gender", "protectedPersonGender"),
    ("race", "protectedPersonRace"),
)

# Per-form alias extensions applied after the common table.
VAULT_FORM_EXTENSIONS: Dict[FormType, FieldMap] = {
    FormType.DV100: _VAULT_PROTECTED_PERSON,
    FormType.CLETS001: _VAULT_PROTECTED_PERSON + (
        ("height", "protectedPersonHeight"),
        ("weight", "protectedPersonWeight"),
        ("hair_color", "protectedPersonHairColor"),
        ("eye_color", "protectedPersonEyeColor"),
    ),
    FormType.DV105: (("full_name", "petitionerName"),),
    FormType.DV120: (("full_name", "respondentName"),),
    FormType.FL150: (),
    FormType.FL320: (),
    FormType.DV101: (),
    FormType.DV109: (),
    FormType.DV110: (),
}


def apply_field_map(table: FieldMap, source: Mapping[str, Any]) -> FormData:
    """Copy present source values into their declared destination fields."""
    mapped: FormData = {}
    for source_field, destination_field in table:
        value = source.get(source_field)
        if has_value(value):
            mapped[destination_field] = value
    return mapped


def map_dv100_to_clets(dv100_data: Mapping[str, Any]) -> FormData:
    """Map DV-100 data onto CLETS-001 (protected and restrained person details)."""
    return apply_field_map(DV100_TO_CLETS, dv100_data)


def map_dv100_to_dv105(dv100_data: Mapping[str, Any]) -> FormData:
    """Map DV-100 data onto DV-105 (party names, case and children)."""
    return apply_field_map(DV100_TO_DV105, dv100_data)


def map_dv100_to_fl150(dv100_data: Mapping[str, Any]) -> FormData:
    """Map DV-100 data onto FL-150 (the petitioner fills out the declaration)."""
    return apply_field_map(DV100_TO_FL150, dv100_data)


def map_dv120_to_fl150(dv120_data: Mapping[str, Any]) -> FormData:
    """Map DV-120 data onto FL-150 (the respondent fills out the declaration)."""
    return apply_field_map(DV120_TO_FL150, dv120_data)


def map_dv120_to_fl320(dv120_data: Mapping[str, Any]) -> FormData:
    """Map DV-120 data onto FL-320."""
    return apply_field_map(DV120_TO_FL320, dv120_data)


def get_mapper(source: Any, destination: Any) -> Mapper:
    """Return the mapper for a (source, destination) form pair.

    Raises:
        KeyError: If no mapping is declared for the pair
    """
    table = FIELD_MAPS[(coerce_form_type(source), coerce_form_type(destination))]
    return lambda data: apply_field_map(table, data)


def map_vault_to_form(vault: Mapping[str, Any], form_type: Any) -> FormData:
    """Map a vault record onto any form.

    The common table applies to every form; the per-form extension then adds the
    aliases that form uses for the same person.
    """
    form_type = coerce_form_type(form_type)
    if not vault:
        return {}
    mapped = apply_field_map(VAULT_COMMON_FIELDS, vault)
    mapped.update(apply_field_map(VAULT_FORM_EXTENSIONS[form_type], vault))
    return mapped


__all__ = [
    "VaultRecord",
    "FieldMap",
    "FIELD_MAPS",
    "VAULT_COMMON_FIELDS",
    "VAULT_FORM_EXTENSIONS",
    "apply_field_map",
    "map_dv100_to_clets",
    "map_dv100_to_dv105",
    "map_dv100_to_fl150",
    "map_dv120_to_fl150",
    "map_dv120_to_fl320",
    "get_mapper",
    "map_vault_to_form",
]
