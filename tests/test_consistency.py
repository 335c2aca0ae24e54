"""Unit tests for cross-form consistency checks.

Tests cover:
- Canonical field aliases across forms
- Extraction of common values
- Inconsistency detection and messages
- Synchronization from an authoritative form
"""

from packetflow.consistency import (
    CANONICAL_FIELDS,
    canonical_value,
    detect_inconsistencies,
    extract_common_values,
    find_inconsistencies,
    synchronize_common_fields,
)
from packetflow.types import FormType


class TestCanonicalFields:
    """Test canonical field resolution."""

    def test_public_table(self):
        """Should expose the six canonical fields."""
        assert set(CANONICAL_FIELDS) == {
            "caseNumber", "county", "petitionerName", "respondentName", "email", "telephoneNo",
        }

    def test_alias_resolution(self):
        """Should read a canonical field under any of its aliases."""
        assert canonical_value({"protectedPersonName": "Jane"}, "petitionerName") == "Jane"
        assert canonical_value({"petitioner": "Jane"}, "petitionerName") == "Jane"
        assert canonical_value({"restrainedPersonName": "John"}, "respondentName") == "John"

    def test_stringified_and_stripped(self):
        """Should compare values as trimmed strings."""
        assert canonical_value({"caseNumber": 123456}, "caseNumber") == "123456"
        assert canonical_value({"caseNumber": "  FL1  "}, "caseNumber") == "FL1"
        assert canonical_value({"caseNumber": "   "}, "caseNumber") is None


class TestExtractCommonValues:
    """Test collecting canonical values across forms."""

    def test_distinct_values_in_first_seen_order(self):
        """Should list each distinct value once, in first-seen order."""
        values = extract_common_values({
            FormType.DV100: {"caseNumber": "B"},
            FormType.CLETS001: {"caseNumber": "A"},
            FormType.DV105: {"caseNumber": "B"},
        })
        assert values["caseNumber"] == ["B", "A"]
        assert values["county"] == []

    def test_aliases_merged(self, dv100_data, dv105_data):
        """Should merge values recorded under different aliases."""
        values = extract_common_values({FormType.DV100: dv100_data, FormType.DV105: dv105_data})
        assert values["petitionerName"] == ["Jane Smith"]
        assert values["respondentName"] == ["John Smith"]


class TestFindInconsistencies:
    """Test inconsistency messages."""

    def test_differing_case_numbers(self):
        """Should report one message naming the field and both values."""
        messages = find_inconsistencies({
            FormType.DV100: {"caseNumber": "X"},
            FormType.CLETS001: {"caseNumber": "Y"},
        })
        assert messages == ["caseNumber has inconsistent values: X, Y"]

    def test_equal_values(self):
        """Should report nothing when values agree."""
        assert find_inconsistencies({
            FormType.DV100: {"caseNumber": "X"},
            FormType.CLETS001: {"caseNumber": "X"},
        }) == []

    def test_normalized_values_agree(self):
        """Should not flag values that differ only in type or whitespace."""
        assert find_inconsistencies({
            FormType.DV100: {"caseNumber": 12345},
            FormType.CLETS001: {"caseNumber": "12345 "},
        }) == []

    def test_alias_disagreement(self):
        """Should flag disagreement across alias names."""
        messages = find_inconsistencies({
            FormType.DV100: {"protectedPersonName": "Jane Smith"},
            FormType.DV105: {"petitionerName": "Janet Smith"},
        })
        assert messages == ["petitionerName has inconsistent values: Jane Smith, Janet Smith"]

    def test_empty_values_ignored(self):
        """Should ignore forms that leave the field empty."""
        assert find_inconsistencies({
            FormType.DV100: {"county": "Los Angeles"},
            FormType.CLETS001: {"county": ""},
            FormType.DV105: {},
        }) == []

    def test_structured_findings(self):
        """Should report the forms involved in each inconsistency."""
        findings = detect_inconsistencies({
            FormType.DV100: {"caseNumber": "X", "county": "Kern"},
            FormType.CLETS001: {"caseNumber": "Y", "county": "Kern"},
            FormType.DV105: {"caseNumber": "X"},
        })
        assert len(findings) == 1
        finding = findings[0]
        assert finding.field == "caseNumber"
        assert finding.values == ("X", "Y")
        assert finding.involves(FormType.DV105)
        assert finding.involves("CLETS-001")
        assert not finding.involves(FormType.FL150)
        assert finding.to_dict()["formTypes"] == ["DV-100", "DV-105", "CLETS-001"]


class TestSynchronizeCommonFields:
    """Test copying canonical values from the authoritative form."""

    def test_fills_empty_fields_under_aliases(self):
        """Should write values under each target form's own alias."""
        forms = {
            FormType.DV100: {"caseNumber": "A", "county": "Kern", "protectedPersonName": "Jane"},
            FormType.DV105: {"caseNumber": "B"},
            FormType.DV101: {"incidentDate": "2025-01-01"},
        }
        written = synchronize_common_fields(forms, FormType.DV100)
        assert written == 3
        assert forms[FormType.DV105] == {"caseNumber": "B", "county": "Kern", "petitionerName": "Jane"}
        assert forms[FormType.DV101] == {"incidentDate": "2025-01-01", "caseNumber": "A"}

    def test_never_overwrites(self):
        """Should keep a target's non-empty value even when it disagrees."""
        forms = {
            FormType.DV100: {"caseNumber": "A"},
            FormType.CLETS001: {"caseNumber": "B"},
        }
        assert synchronize_common_fields(forms, FormType.DV100) == 0
        assert forms[FormType.CLETS001]["caseNumber"] == "B"

    def test_value_under_other_alias_counts(self):
        """Should treat a value under any alias as present."""
        forms = {
            FormType.DV100: {"protectedPersonName": "Jane"},
            FormType.FL150: {"petitioner": "Janet"},
        }
        synchronize_common_fields(forms, FormType.DV100)
        assert forms[FormType.FL150] == {"petitioner": "Janet"}

    def test_missing_authoritative_form(self):
        """Should do nothing when the authoritative form is absent."""
        forms = {FormType.CLETS001: {"caseNumber": "B"}}
        assert synchronize_common_fields(forms, FormType.DV100) == 0
        assert synchronize_common_fields({}, "DV-100") == 0
        assert forms == {FormType.CLETS001: {"caseNumber": "B"}}

    def test_string_keyed_forms(self):
        """Should accept forms keyed by string values."""
        forms = {"DV-100": {"county": "Kern"}, "CLETS-001": {}}
        assert synchronize_common_fields(forms, FormType.DV100) == 1
        assert forms["CLETS-001"] == {"county": "Kern"}
