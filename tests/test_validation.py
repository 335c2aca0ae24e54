"""Unit tests for form validation and completion.

Tests cover:
- Required fields, at-least-one groups and conditional requirements
- List item requirements
- Type, pattern and date warnings
- Advisory warnings
- Completion percentage and its agreement with is_form_complete
- Unknown form types and malformed data
"""

import pytest

from packetflow.config import PacketFlowSettings
from packetflow.errors import UnknownFormTypeError
from packetflow.types import ErrorCode, FormType, Severity, WarningCode
from packetflow.validation import (
    ValidationResult,
    get_form_completion_percentage,
    has_value,
    is_form_complete,
    is_plausible_date,
    parse_date,
    validate_form_data,
)


def codes(findings):
    return [f.code for f in findings]


class TestHasValue:
    """Test what counts as a filled-in value."""

    @pytest.mark.parametrize("value", [None, "", "   ", [], {}, False, float("nan")])
    def test_missing_values(self, value):
        """Should treat None, blanks, empty collections, False and NaN as missing."""
        assert has_value(value) is False

    @pytest.mark.parametrize("value", ["x", 0, 0.0, 12, True, ["a"], {"k": "v"}])
    def test_present_values(self, value):
        """Should treat text, numbers including zero, True and non-empty collections as present."""
        assert has_value(value) is True


class TestRequiredFields:
    """Test MISSING_FIELD errors."""

    def test_empty_form_reports_every_required_field(self):
        """Should report all missing required fields, not just the first."""
        result = validate_form_data(FormType.DV101, {})
        assert result.valid is False
        assert codes(result.errors) == [ErrorCode.MISSING_FIELD, ErrorCode.MISSING_FIELD]
        assert result.error_fields == ["incidentDate", "incidentDescription"]

    def test_complete_form_is_valid(self, dv101_data):
        """Should accept a form with every required field."""
        result = validate_form_data(FormType.DV101, dv101_data)
        assert result.valid is True
        assert result.errors == []

    def test_blank_string_is_missing(self, dv101_data):
        """Should treat a whitespace-only value as missing."""
        dv101_data["incidentDescription"] = "   "
        result = validate_form_data(FormType.DV101, dv101_data)
        assert result.error_fields == ["incidentDescription"]

    def test_false_checkbox_is_missing(self, dv105_data):
        """Should treat an unchecked required checkbox as missing."""
        dv105_data["custodyOrders"] = False
        result = validate_form_data(FormType.DV105, dv105_data)
        assert result.error_fields == ["custodyOrders"]

    def test_error_message_names_field(self):
        """Should name the field in the error message."""
        result = validate_form_data(FormType.DV101, {"incidentDate": "2025-01-01"})
        assert result.errors[0].message == "incidentDescription is required"
        assert result.errors[0].form_type == FormType.DV101
        assert result.errors[0].severity == Severity.ERROR


class TestGroups:
    """Test at-least-one selection groups."""

    def test_no_abuse_type_selected(self, dv100_data):
        """Should report MISSING_GROUP_SELECTION when no abuse type is checked."""
        dv100_data["physicalAbuse"] = False
        result = validate_form_data(FormType.DV100, dv100_data)
        assert codes(result.errors) == [ErrorCode.MISSING_GROUP_SELECTION]
        assert result.errors[0].field == "abuseTypes"
        assert result.errors[0].severity == Severity.CRITICAL

    def test_any_member_satisfies_group(self, dv100_data):
        """Should accept any single member of the group."""
        dv100_data["physicalAbuse"] = False
        dv100_data["stalking"] = True
        assert validate_form_data(FormType.DV100, dv100_data).valid is True

    def test_no_orders_requested(self, dv100_data):
        """Should require at least one order."""
        for name in ("personalConductOrders", "stayAwayOrders"):
            dv100_data.pop(name)
        result = validate_form_data(FormType.DV100, dv100_data)
        assert result.error_fields == ["ordersRequested"]


class TestConditionalRequirements:
    """Test fields required only while a trigger holds."""

    def test_child_names_required_with_children(self, dv100_data):
        """Should require childNames when hasChildren is checked."""
        dv100_data["hasChildren"] = True
        result = validate_form_data(FormType.DV100, dv100_data)
        assert codes(result.errors) == [ErrorCode.MISSING_CONDITIONAL_FIELD]
        assert result.errors[0].field == "childNames"

    def test_inactive_conditional_is_ignored(self, dv100_data):
        """Should not require childNames when hasChildren is unchecked."""
        dv100_data["hasChildren"] = False
        assert validate_form_data(FormType.DV100, dv100_data).valid is True

    def test_employer_required_when_employed(self, fl150_data):
        """Should require employerName when employed."""
        fl150_data["employmentStatus"] = "employed"
        result = validate_form_data(FormType.FL150, fl150_data)
        assert result.error_fields == ["employerName"]
        fl150_data["employerName"] = "Acme"
        assert validate_form_data(FormType.FL150, fl150_data).valid is True


class TestListItems:
    """Test requirements on items of list fields."""

    def test_child_without_birthdate(self, dv105_data):
        """Should report the missing key of each incomplete child."""
        dv105_data["children"] = [{"name": "Amy"}, {"name": "", "birthdate": "2018-01-01"}]
        result = validate_form_data(FormType.DV105, dv105_data)
        assert result.error_fields == ["children[0].birthdate", "children[1].name"]

    def test_empty_children_list_is_missing(self, dv105_data):
        """Should treat an empty children list as a missing required field."""
        dv105_data["children"] = []
        result = validate_form_data(FormType.DV105, dv105_data)
        assert "children" in result.error_fields


class TestShapeWarnings:
    """Test that type and format problems are warnings, not errors."""

    def test_wrong_type_is_warning(self, fl150_data):
        """Should warn INVALID_TYPE for a non-numeric income but stay valid."""
        fl150_data["averageMonthlyIncome"] = "about four thousand"
        result = validate_form_data(FormType.FL150, fl150_data)
        assert result.valid is True
        invalid = [w for w in result.warnings if w.code == WarningCode.INVALID_TYPE]
        assert [w.field for w in invalid] == ["averageMonthlyIncome"]

    def test_bad_zip_is_format_warning(self, dv120_data):
        """Should warn INVALID_FORMAT for a malformed ZIP code."""
        dv120_data["zipCode"] = "ABCDE"
        result = validate_form_data(FormType.DV120, dv120_data)
        assert result.valid is True
        assert [(w.code, w.field) for w in result.warnings] == [(WarningCode.INVALID_FORMAT, "zipCode")]

    def test_empty_pattern_field_not_checked(self, dv120_data):
        """Should not check patterns on empty strings."""
        dv120_data["zipCode"] = ""
        dv120_data["email"] = ""
        result = validate_form_data(FormType.DV120, dv120_data)
        assert result.warnings == []

    @pytest.mark.parametrize("phone", ["(213) 555-0100", "213-555-0100", "2135550100"])
    def test_phone_formats_accepted(self, dv120_data, phone):
        """Should accept common ten-digit phone formats."""
        dv120_data["telephoneNo"] = phone
        assert validate_form_data(FormType.DV120, dv120_data).warnings == []

    def test_bad_email_is_format_warning(self, dv120_data):
        """Should warn for an email without a domain."""
        dv120_data["email"] = "john@"
        result = validate_form_data(FormType.DV120, dv120_data)
        assert codes(result.warnings) == [WarningCode.INVALID_FORMAT]


class TestDates:
    """Test calendar date plausibility."""

    def test_parse_date(self):
        """Should parse ISO and US-style dates."""
        assert parse_date("2025-01-31").year == 2025
        assert parse_date("01/31/2025").month == 1
        assert parse_date("not a date") is None
        assert parse_date("") is None

    def test_plausible_range(self):
        """Should accept dates from 1900 up to a year from now."""
        assert is_plausible_date("1950-06-15") is True
        assert is_plausible_date("1850-01-01") is False
        assert is_plausible_date("2999-01-01") is False

    def test_invalid_date_is_warning(self, dv101_data):
        """Should warn INVALID_DATE without making the form invalid."""
        dv101_data["incidentDate"] = "yesterday-ish"
        result = validate_form_data(FormType.DV101, dv101_data)
        assert result.valid is True
        assert [(w.code, w.field) for w in result.warnings] == [(WarningCode.INVALID_DATE, "incidentDate")]


class TestAdvisories:
    """Test advisory warnings."""

    def test_brief_abuse_description(self, dv100_data):
        """Should warn when the abuse description is very short."""
        dv100_data["abuseDescription"] = "He hit me."
        result = validate_form_data(FormType.DV100, dv100_data)
        assert result.valid is True
        assert WarningCode.BRIEF_DESCRIPTION in codes(result.warnings)

    def test_description_threshold_from_settings(self, dv100_data):
        """Should read the minimum description length from settings."""
        dv100_data["abuseDescription"] = "He hit me."
        settings = PacketFlowSettings(min_abuse_description_length=5)
        result = validate_form_data(FormType.DV100, dv100_data, settings)
        assert WarningCode.BRIEF_DESCRIPTION not in codes(result.warnings)

    def test_incomplete_physical_description(self, clets_data):
        """Should warn when the restrained person's description is partial."""
        del clets_data["restrainedPersonEyeColor"]
        result = validate_form_data(FormType.CLETS001, clets_data)
        assert codes(result.warnings) == [WarningCode.INCOMPLETE_DESCRIPTION]
        assert "restrainedPersonEyeColor" in result.warnings[0].suggestion

    def test_expenses_exceed_income(self, fl150_data):
        """Should warn when expenses exceed income by more than 20%."""
        fl150_data["averageMonthlyIncome"] = 1000
        fl150_data["averageMonthlyExpenses"] = 1300
        result = validate_form_data(FormType.FL150, fl150_data)
        assert codes(result.warnings) == [WarningCode.EXPENSES_EXCEED_INCOME]

    def test_expenses_within_ratio(self, fl150_data):
        """Should not warn at exactly 120% of income."""
        fl150_data["averageMonthlyIncome"] = 1000
        fl150_data["averageMonthlyExpenses"] = 1200
        assert validate_form_data(FormType.FL150, fl150_data).warnings == []


class TestCompletionPercentage:
    """Test form completion percentage."""

    def test_empty_form_is_zero(self):
        """Should report 0 for a form with requirements and no data."""
        assert get_form_completion_percentage(FormType.DV101, {}) == 0
        assert get_form_completion_percentage(FormType.DV101, None) == 0

    def test_half_complete(self):
        """Should floor the satisfied share of requirements."""
        assert get_form_completion_percentage(FormType.DV101, {"incidentDate": "2025-01-01"}) == 50

    def test_floored(self):
        """Should floor rather than round."""
        # DV-100 has six required fields and two groups.
        assert get_form_completion_percentage(FormType.DV100, {"relationship": "spouse"}) == 12

    def test_form_without_requirements(self):
        """Should report 100 for court-generated forms."""
        assert get_form_completion_percentage(FormType.DV109, {}) == 100
        assert is_form_complete(FormType.DV109, {}) is True

    def test_monotone_as_fields_are_filled(self, dv100_data):
        """Should never decrease as required fields and group members are filled."""
        order = [
            "protectedPersonName", "restrainedPersonName", "relationship",
            "physicalAbuse", "abuseDescription", "personalConductOrders",
            "signatureDate", "signature",
        ]
        data = {}
        previous = get_form_completion_percentage(FormType.DV100, data)
        for name in order:
            data[name] = dv100_data[name]
            current = get_form_completion_percentage(FormType.DV100, data)
            assert current >= previous
            previous = current
        assert previous == 100

    def test_triggered_conditional_joins_requirements(self, dv100_data):
        """Should count a newly triggered conditional, so completion drops until it is filled."""
        assert get_form_completion_percentage(FormType.DV100, dv100_data) == 100
        triggered = {**dv100_data, "hasChildren": True}
        # Six required fields, two groups and one active conditional.
        assert get_form_completion_percentage(FormType.DV100, triggered) == 88
        assert is_form_complete(FormType.DV100, triggered) is False
        assert get_form_completion_percentage(FormType.DV100, {**triggered, "childNames": "Amy Smith"}) == 100

    @pytest.mark.parametrize("form_type", list(FormType))
    def test_complete_iff_hundred_on_empty(self, form_type):
        """Should agree with is_form_complete for every form on empty data."""
        assert is_form_complete(form_type, {}) == (get_form_completion_percentage(form_type, {}) == 100)

    def test_complete_iff_hundred_on_samples(self, dv100_data, clets_data, dv105_data, fl150_data, dv120_data):
        """Should agree with is_form_complete on complete and broken data."""
        samples = [
            (FormType.DV100, dv100_data),
            (FormType.CLETS001, clets_data),
            (FormType.DV105, dv105_data),
            (FormType.FL150, fl150_data),
            (FormType.DV120, dv120_data),
            (FormType.DV105, {**dv105_data, "children": [{"name": "Amy"}]}),
            (FormType.DV100, {**dv100_data, "hasChildren": True}),
            (FormType.FL150, {**fl150_data, "employmentStatus": "employed"}),
        ]
        for form_type, data in samples:
            pct = get_form_completion_percentage(form_type, data)
            assert is_form_complete(form_type, data) == (pct == 100), form_type


class TestRobustness:
    """Test unknown forms and malformed data."""

    def test_unknown_form_type_raises(self):
        """Should raise UnknownFormTypeError for an unknown form."""
        with pytest.raises(UnknownFormTypeError):
            validate_form_data("XX-999", {})

    def test_unknown_form_type_is_value_error(self):
        """Should also be catchable as ValueError."""
        with pytest.raises(ValueError):
            get_form_completion_percentage("XX-999", {})

    def test_string_form_type_accepted(self, dv101_data):
        """Should accept the form's string value."""
        assert validate_form_data("DV-101", dv101_data).valid is True

    @pytest.mark.parametrize("data", [None, [], "text", 42])
    def test_malformed_data_never_raises(self, data):
        """Should treat non-mapping data as empty."""
        result = validate_form_data(FormType.DV101, data)
        assert result.valid is False
        assert len(result.errors) == 2

    def test_result_to_dict(self):
        """Should serialize errors with camelCase keys."""
        result = validate_form_data(FormType.DV101, {"incidentDate": "2025-01-01"})
        payload = result.to_dict()
        assert payload["valid"] is False
        assert payload["errors"][0] == {
            "code": "MISSING_FIELD",
            "message": "incidentDescription is required",
            "severity": "error",
            "formType": "DV-101",
            "field": "incidentDescription",
        }
        assert isinstance(result, ValidationResult)
