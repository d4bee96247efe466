"""Folds an ordered claim collection into a single current-state document"""

import copy
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from loguru import logger
from pydantic import ValidationError

from pdtf_claims.core.models import (
    AggregationResult,
    Claim,
    ClaimIssue,
    IssueSeverity,
    IssueType,
)
from pdtf_claims.state.mutator import DocumentMutator

ClaimLike = Union[Claim, Mapping[str, Any]]

# Missing and unparseable times sort before every real timestamp
_UNTIMED = datetime.min.replace(tzinfo=timezone.utc)


def claim_order_key(claim: Claim) -> datetime:
    """Sort key for applying claims: verification time, untimed claims first"""
    return claim.timestamp or _UNTIMED


def sort_claims(claims: Iterable[Claim]) -> list[Claim]:
    """
    Stable ascending sort by verification time.

    Claims with equal or missing times keep their relative input order.
    """
    return sorted(claims, key=claim_order_key)


def ensure_claim_sequence(claims: Any) -> Sequence[Any]:
    if isinstance(claims, (str, bytes, Mapping)) or not isinstance(claims, Sequence):
        raise TypeError(
            f"claims must be a sequence of claims, got {type(claims).__name__}"
        )
    return claims


def coerce_claims(claims: Sequence[ClaimLike]) -> tuple[list[Claim], list[ClaimIssue]]:
    """
    Turn wire-format dicts into Claim models.

    Entries that fail model validation are skipped and reported.

    Raises:
        TypeError: if `claims` is not a sequence
    """
    coerced: list[Claim] = []
    issues: list[ClaimIssue] = []
    for index, raw in enumerate(ensure_claim_sequence(claims)):
        if isinstance(raw, Claim):
            coerced.append(raw)
            continue
        try:
            coerced.append(Claim.model_validate(raw))
        except ValidationError as exc:
            claim_id = raw.get("id") if isinstance(raw, Mapping) else None
            logger.warning(
                "Skipping malformed claim at index {index}: {count} validation errors",
                index=index,
                count=exc.error_count(),
            )
            issues.append(
                ClaimIssue(
                    severity=IssueSeverity.WARNING,
                    issue_type=IssueType.MALFORMED_CLAIM,
                    message=f"Claim failed model validation: {exc.errors()[0]['msg']}",
                    claim_id=claim_id if isinstance(claim_id, str) else None,
                    claim_index=index,
                )
            )
    return coerced, issues


def timestamp_issues(claims: Iterable[Claim]) -> list[ClaimIssue]:
    """Report claims whose verification time cannot be used for ordering"""
    issues = []
    for claim in claims:
        if claim.timestamp is not None:
            continue
        if claim.time:
            issue_type = IssueType.INVALID_TIMESTAMP
            message = f"Unparseable verification time {claim.time!r}; claim sorted first"
        else:
            issue_type = IssueType.MISSING_TIMESTAMP
            message = "Missing verification time; claim sorted first"
        issues.append(
            ClaimIssue(
                severity=IssueSeverity.WARNING,
                issue_type=issue_type,
                message=message,
                claim_id=claim.id,
            )
        )
    return issues


def order_claims(claims: Sequence[ClaimLike]) -> tuple[list[Claim], list[ClaimIssue]]:
    """Coerce and sort claims into application order, collecting issues"""
    coerced, issues = coerce_claims(claims)
    issues.extend(timestamp_issues(coerced))
    return sort_claims(coerced), issues


def aggregate_state(
    claims: Sequence[ClaimLike],
    initial_state: Optional[Mapping[str, Any]] = None,
) -> AggregationResult:
    """
    Build the current-state document from a claim collection.

    Claims are applied in verification-time order on top of a deep copy of
    `initial_state` (an empty object by default). The input claims and
    seed are never modified; the same claim set always yields the same
    document regardless of input order.

    Args:
        claims: Claim models or wire-format dicts
        initial_state: Optional seed document

    Returns:
        AggregationResult with the state, applied order and any issues

    Raises:
        TypeError: if `claims` is not a sequence
    """
    ordered, issues = order_claims(claims)
    state: dict[str, Any] = copy.deepcopy(dict(initial_state)) if initial_state else {}

    mutator = DocumentMutator(state)
    for claim in ordered:
        issues.extend(mutator.apply_claim(claim))

    stats = mutator.get_stats()
    logger.info(
        "Aggregated {count} claims: {applied} entries applied, {skipped} skipped",
        count=len(ordered),
        applied=stats["entries_applied"],
        skipped=stats["entries_skipped"],
    )

    return AggregationResult(state=state, ordered_claims=ordered, issues=issues)
