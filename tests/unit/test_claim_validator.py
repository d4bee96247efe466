"""Unit tests for advisory claim validation"""

import json
from pathlib import Path

import pytest

from pdtf_claims.core.models import IssueSeverity, IssueType
from pdtf_claims.validation.claim_validator import ClaimValidator, is_iso8601
from pdtf_claims.validation.schema_checker import SchemaConformanceChecker

SCHEMA = {
    "type": "object",
    "properties": {
        "status": {"type": "string"},
        "propertyPack": {
            "type": "object",
            "properties": {
                "uprn": {"type": "integer"},
                "parking": {
                    "type": "object",
                    "properties": {"yesNo": {"type": "string", "enum": ["Yes", "No"]}},
                },
            },
        },
    },
}


@pytest.fixture
def validator() -> ClaimValidator:
    return ClaimValidator()


@pytest.fixture
def schema_validator() -> ClaimValidator:
    return ClaimValidator(SchemaConformanceChecker(SCHEMA))


def types(issues) -> list[IssueType]:
    return [issue.issue_type for issue in issues]


class TestStructure:
    """Test required claim fields"""

    def test_valid_claim(self, validator: ClaimValidator, make_wire_claim) -> None:
        assert validator.validate_claim(make_wire_claim("c1", {"/status": "For sale"})) == []

    def test_missing_fields(self, validator: ClaimValidator) -> None:
        issues = validator.validate_claim({"claims": {"/status": "x"}}, claim_index=3)

        messages = [issue.message for issue in issues]
        assert "Missing required field: id" in messages
        assert "Missing required field: transactionId" in messages
        assert "Missing required field: verification" in messages
        assert all(issue.claim_index == 3 for issue in issues)

    def test_claims_must_be_mapping(self, validator: ClaimValidator, make_wire_claim) -> None:
        raw = make_wire_claim("c1", {})
        raw["claims"] = ["/status"]
        assert IssueType.STRUCTURE in types(validator.validate_claim(raw))

    def test_non_object_claim(self, validator: ClaimValidator) -> None:
        assert types(validator.validate_claim("claim")) == [IssueType.STRUCTURE]


class TestEntries:
    """Test per-entry path and value checks"""

    def test_path_needs_leading_slash(self, validator: ClaimValidator) -> None:
        issues = validator.validate_entry("status", "x", claim_id="c1")
        assert types(issues) == [IssueType.INVALID_PATH]
        assert issues[0].severity == IssueSeverity.ERROR

    def test_boolean_yes_no_is_error(self, validator: ClaimValidator) -> None:
        issues = validator.validate_entry("/propertyPack/parking/yesNo", True)
        assert types(issues) == [IssueType.INVALID_VALUE]
        assert issues[0].severity == IssueSeverity.ERROR
        assert "suggestion: \"Yes\"" in issues[0].message

    def test_nested_boolean_yes_no(self, validator: ClaimValidator) -> None:
        issues = validator.validate_entry("/propertyPack/parking", {"yesNo": False, "details": "Driveway"})
        assert issues[0].path == "/propertyPack/parking/yesNo"
        assert "suggestion: \"No\"" in issues[0].message

    def test_other_yes_no_value_is_warning(self, validator: ClaimValidator) -> None:
        issues = validator.validate_entry("/propertyPack/parking/yesNo", "Maybe")
        assert issues[0].severity == IssueSeverity.WARNING

    def test_yes_no_strings_pass(self, validator: ClaimValidator) -> None:
        assert validator.validate_entry("/propertyPack/parking/yesNo", "Yes") == []

    def test_schema_invalid_path(self, schema_validator: ClaimValidator) -> None:
        issues = schema_validator.validate_entry("/propertyPack/colour", "red")
        assert types(issues) == [IssueType.INVALID_PATH]

    def test_schema_invalid_value(self, schema_validator: ClaimValidator) -> None:
        issues = schema_validator.validate_entry("/propertyPack/uprn", "abc")
        assert types(issues) == [IssueType.INVALID_VALUE]
        assert issues[0].path == "/propertyPack/uprn"

    def test_schema_valid_entry(self, schema_validator: ClaimValidator) -> None:
        assert schema_validator.validate_entry("/propertyPack/parking/yesNo", "No") == []


class TestVerification:
    """Test verification metadata checks"""

    def test_wrong_trust_framework(self, validator: ClaimValidator, make_wire_claim) -> None:
        raw = make_wire_claim("c1", {"/status": "x"})
        raw["verification"]["trust_framework"] = "other"
        issues = validator.validate_claim(raw)
        assert types(issues) == [IssueType.VERIFICATION]
        assert "uk_pdtf" in issues[0].message

    def test_bad_time(self, validator: ClaimValidator, make_wire_claim) -> None:
        issues = validator.validate_claim(make_wire_claim("c1", {"/status": "x"}, time="03/12/2024"))
        assert types(issues) == [IssueType.VERIFICATION]

    def test_no_evidence(self, validator: ClaimValidator, make_wire_claim) -> None:
        raw = make_wire_claim("c1", {"/status": "x"})
        raw["verification"]["evidence"] = []
        assert types(validator.validate_claim(raw)) == [IssueType.VERIFICATION]

    def test_unknown_evidence_type(self, validator: ClaimValidator, make_wire_claim) -> None:
        raw = make_wire_claim("c1", {"/status": "x"})
        raw["verification"]["evidence"].append({"type": "rumour"})
        issues = validator.validate_claim(raw)
        assert "Evidence item 1 has unknown type 'rumour'" in issues[0].message

    def test_custom_trust_framework(self, make_wire_claim) -> None:
        raw = make_wire_claim("c1", {"/status": "x"})
        assert ClaimValidator(trust_framework="other").validate_claim(raw) != []

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2024-12-03T10:53:33.982Z", True),
            ("2024-12-03T10:53:33+01:00", True),
            ("2024-12-03", False),
            ("not a date", False),
            (None, False),
        ],
    )
    def test_is_iso8601(self, value, expected: bool) -> None:
        assert is_iso8601(value) is expected


class TestReports:
    """Test batch reports"""

    def test_counts(self, validator: ClaimValidator, make_wire_claim) -> None:
        claims = [
            make_wire_claim("good", {"/status": "x"}),
            make_wire_claim("bad", {"status": "x"}),
            make_wire_claim("warn", {"/parking/yesNo": "Maybe"}),
        ]
        report = validator.validate_claims(claims)

        assert report.total_claims == 3
        assert report.valid_claims == 2
        assert report.invalid_claims == 1
        assert not report.valid
        assert report.error_types == {"invalid_path": 1}
        assert report.warning_types == {"invalid_value": 1}

    def test_non_list(self, validator: ClaimValidator) -> None:
        report = validator.validate_claims({"id": "c1"})
        assert report.error_types == {"structure": 1}

    def test_file(self, validator: ClaimValidator, make_wire_claim, tmp_path: Path) -> None:
        path = tmp_path / "t1-claims.json"
        path.write_text(json.dumps([make_wire_claim("c1", {"/status": "x"})]), encoding="utf-8")

        report = validator.validate_claims_file(path)

        assert report.valid
        assert report.total_claims == 1

    def test_unreadable_file(self, validator: ClaimValidator, tmp_path: Path) -> None:
        report = validator.validate_claims_file(tmp_path / "missing.json")
        assert report.error_types == {"file": 1}

    def test_non_array_file(self, validator: ClaimValidator, tmp_path: Path) -> None:
        path = tmp_path / "object.json"
        path.write_text('{"id": "c1"}', encoding="utf-8")
        assert validator.validate_claims_file(path).error_types == {"file": 1}

    def test_state_without_schema(self, validator: ClaimValidator) -> None:
        assert validator.validate_state({"status": 1}) == []

    def test_state_with_schema(self, schema_validator: ClaimValidator) -> None:
        issues = schema_validator.validate_state({"status": 1})
        assert types(issues) == [IssueType.SCHEMA]
        assert issues[0].severity == IssueSeverity.WARNING
