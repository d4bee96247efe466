"""
Advisory validation of raw claims before aggregation.

Checks claim structure, path format, verification metadata and, when a
schema checker is configured, path legality and value conformance.
Nothing reported here stops a claim from being aggregated.
"""

import json
import re
from collections import Counter
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from loguru import logger
from pydantic import BaseModel, Field

from pdtf_claims.core import pointer
from pdtf_claims.core.config import settings
from pdtf_claims.core.models import (
    ClaimIssue,
    EvidenceType,
    IssueSeverity,
    IssueType,
    parse_timestamp,
)
from pdtf_claims.validation.schema_checker import SchemaConformanceChecker

REQUIRED_FIELDS = ("id", "claims", "transactionId", "verification")
YES_NO_VALUES = ("Yes", "No")

_ISO8601_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})?$"
)


def is_iso8601(value: Any) -> bool:
    return (
        isinstance(value, str)
        and bool(_ISO8601_RE.match(value))
        and parse_timestamp(value) is not None
    )


class ValidationReport(BaseModel):
    """Outcome of validating a batch of claims"""

    total_claims: int = 0
    valid_claims: int = 0
    invalid_claims: int = 0
    errors: list[ClaimIssue] = Field(default_factory=list)
    warnings: list[ClaimIssue] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def error_types(self) -> dict[str, int]:
        return dict(Counter(issue.issue_type.value for issue in self.errors))

    @property
    def warning_types(self) -> dict[str, int]:
        return dict(Counter(issue.issue_type.value for issue in self.warnings))

    def add(self, issues: list[ClaimIssue]) -> None:
        for issue in issues:
            if issue.severity == IssueSeverity.ERROR:
                self.errors.append(issue)
            else:
                self.warnings.append(issue)


class ClaimValidator:
    """
    Validates raw (wire-format) claims.

    Errors mark a claim invalid; warnings are informational. Either way
    the claim still goes on to aggregation.
    """

    def __init__(
        self,
        checker: Optional[SchemaConformanceChecker] = None,
        trust_framework: Optional[str] = None,
    ) -> None:
        self.checker = checker
        self.trust_framework = trust_framework or settings.TRUST_FRAMEWORK
        self.claims_validated = 0

    # ------------------------------------------------------------------
    # Single claims
    # ------------------------------------------------------------------

    def validate_claim(self, claim: Any, claim_index: int = 0) -> list[ClaimIssue]:
        """Every issue found in one raw claim"""
        self.claims_validated += 1

        if not isinstance(claim, Mapping):
            return [
                ClaimIssue(
                    severity=IssueSeverity.ERROR,
                    issue_type=IssueType.STRUCTURE,
                    message="Claim must be an object",
                    claim_index=claim_index,
                )
            ]

        claim_id = claim.get("id") if isinstance(claim.get("id"), str) else None
        issues = []

        def error(issue_type: IssueType, message: str, path: Optional[str] = None) -> None:
            issues.append(
                ClaimIssue(
                    severity=IssueSeverity.ERROR,
                    issue_type=issue_type,
                    message=message,
                    claim_id=claim_id,
                    claim_index=claim_index,
                    path=path,
                )
            )

        for field in REQUIRED_FIELDS:
            if not claim.get(field):
                error(IssueType.STRUCTURE, f"Missing required field: {field}")

        entries = claim.get("claims")
        if isinstance(entries, Mapping):
            for path, value in entries.items():
                issues.extend(self.validate_entry(path, value, claim_id, claim_index))
        elif entries is not None:
            error(IssueType.STRUCTURE, "Claims field must be an object with claim paths")

        verification = claim.get("verification")
        if isinstance(verification, Mapping):
            issues.extend(self.validate_verification(verification, claim_id, claim_index))
        elif verification is not None:
            error(IssueType.STRUCTURE, "Verification must be an object")

        return issues

    def validate_entry(
        self,
        path: Any,
        value: Any,
        claim_id: Optional[str] = None,
        claim_index: Optional[int] = None,
    ) -> list[ClaimIssue]:
        """Issues for one (path, value) entry of a claim"""

        def issue(severity: IssueSeverity, issue_type: IssueType, message: str, at: Any = path) -> ClaimIssue:
            return ClaimIssue(
                severity=severity,
                issue_type=issue_type,
                message=message,
                claim_id=claim_id,
                claim_index=claim_index,
                path=str(at),
            )

        if not isinstance(path, str) or not path.startswith("/"):
            return [
                issue(
                    IssueSeverity.ERROR,
                    IssueType.INVALID_PATH,
                    f"Claim path must start with '/' (JSON Pointer format): {path!r}",
                )
            ]

        if self.checker is None:
            return self._basic_checks(path, value, issue)

        if not self.checker.is_path_valid(path):
            return [
                issue(
                    IssueSeverity.ERROR,
                    IssueType.INVALID_PATH,
                    f"Path '{path}' is not valid according to the PDTF schema",
                )
            ]
        return [
            issue(
                IssueSeverity.ERROR,
                IssueType.INVALID_VALUE,
                f"Value does not match schema for path '{path}': {message}",
            )
            for message in self.checker.check_value(path, value)
        ]

    def _basic_checks(self, path: str, value: Any, issue: Any) -> list[ClaimIssue]:
        # Without a schema only the common yesNo mistake is caught
        found = []
        for relative, leaf in pointer.iter_leaves(value):
            leaf_path = pointer.join(path, relative)
            if pointer.segments(leaf_path)[-1:] != ["yesNo"]:
                continue
            if isinstance(leaf, bool):
                suggestion = "Yes" if leaf else "No"
                found.append(
                    issue(
                        IssueSeverity.ERROR,
                        IssueType.INVALID_VALUE,
                        f"yesNo field should be \"Yes\" or \"No\" string, not boolean "
                        f"(suggestion: \"{suggestion}\")",
                        at=leaf_path,
                    )
                )
            elif leaf not in YES_NO_VALUES:
                found.append(
                    issue(
                        IssueSeverity.WARNING,
                        IssueType.INVALID_VALUE,
                        "yesNo field should be \"Yes\" or \"No\"",
                        at=leaf_path,
                    )
                )
        return found

    def validate_verification(
        self,
        verification: Mapping[str, Any],
        claim_id: Optional[str] = None,
        claim_index: Optional[int] = None,
    ) -> list[ClaimIssue]:
        """Issues with a claim's verification block"""
        messages = []

        if verification.get("trust_framework") != self.trust_framework:
            messages.append(
                f"Verification must have trust_framework set to '{self.trust_framework}'"
            )
        if not is_iso8601(verification.get("time")):
            messages.append("Verification must have valid ISO 8601 timestamp")

        evidence = verification.get("evidence")
        if not isinstance(evidence, list) or not evidence:
            messages.append("Verification must have at least one evidence item")
        else:
            known = {evidence_type.value for evidence_type in EvidenceType}
            for position, item in enumerate(evidence):
                kind = item.get("type") if isinstance(item, Mapping) else None
                if kind not in known:
                    messages.append(f"Evidence item {position} has unknown type {kind!r}")

        return [
            ClaimIssue(
                severity=IssueSeverity.ERROR,
                issue_type=IssueType.VERIFICATION,
                message=message,
                claim_id=claim_id,
                claim_index=claim_index,
            )
            for message in messages
        ]

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def validate_claims(self, claims: Any) -> ValidationReport:
        """Validate a whole claim collection into a report"""
        report = ValidationReport()
        if not isinstance(claims, list):
            report.add([
                ClaimIssue(
                    severity=IssueSeverity.ERROR,
                    issue_type=IssueType.STRUCTURE,
                    message="Claims must be an array of claims",
                )
            ])
            return report

        report.total_claims = len(claims)
        for index, claim in enumerate(claims):
            issues = self.validate_claim(claim, index)
            report.add(issues)
            if any(issue.severity == IssueSeverity.ERROR for issue in issues):
                report.invalid_claims += 1
            else:
                report.valid_claims += 1
        return report

    def validate_claims_file(self, path: Union[str, Path]) -> ValidationReport:
        """Validate a JSON file holding an array of claims"""
        logger.info("Validating claims file: {path}", path=str(path))
        message = None
        try:
            claims = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            message = f"Could not read or parse file: {exc}"
        else:
            if not isinstance(claims, list):
                message = "File must contain an array of claims"

        if message is not None:
            report = ValidationReport()
            report.add([
                ClaimIssue(
                    severity=IssueSeverity.ERROR,
                    issue_type=IssueType.FILE,
                    message=message,
                )
            ])
            log_report(report, Path(path).name)
            return report

        report = self.validate_claims(claims)
        log_report(report, Path(path).name)
        return report

    def validate_state(self, state: Mapping[str, Any]) -> list[ClaimIssue]:
        """Schema findings for an aggregated transaction document"""
        if self.checker is None:
            return []
        return [
            ClaimIssue(
                severity=IssueSeverity.WARNING,
                issue_type=IssueType.SCHEMA,
                message=f"Aggregated state: {message}",
            )
            for message in self.checker.check_document(state)
        ]


def log_report(report: ValidationReport, label: str = "claims") -> None:
    """Log a validation report, capped at MAX_REPORTED_ISSUES entries per kind"""
    limit = settings.MAX_REPORTED_ISSUES
    if report.valid:
        logger.info(
            "{label}: all {total} claims are valid ({warnings} warnings)",
            label=label,
            total=report.total_claims,
            warnings=len(report.warnings),
        )
    else:
        logger.warning(
            "{label}: {count} validation errors in {invalid}/{total} claims {types}",
            label=label,
            count=len(report.errors),
            invalid=report.invalid_claims,
            total=report.total_claims,
            types=report.error_types,
        )

    for issue in report.errors[:limit]:
        logger.warning(
            "[{type}] {message} (path={path})",
            type=issue.issue_type.value,
            message=issue.message,
            path=issue.path,
        )
    if len(report.errors) > limit:
        logger.warning("... and {more} more errors", more=len(report.errors) - limit)

    for issue in report.warnings[:limit]:
        logger.info(
            "[{type}] {message} (path={path})",
            type=issue.issue_type.value,
            message=issue.message,
            path=issue.path,
        )
