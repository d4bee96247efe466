"""Pipeline turning a transaction's claim set into state plus provenance"""

from typing import Any, Mapping, Optional, Sequence

from loguru import logger

from pdtf_claims.core.config import settings
from pdtf_claims.core.models import Claim, ClaimIssue
from pdtf_claims.pipeline.claim_source import ClaimSource
from pdtf_claims.provenance.claims_map import ClaimsMap, build_claims_map
from pdtf_claims.provenance.resolver import contributing_claims
from pdtf_claims.state.aggregator import ClaimLike, aggregate_state, ensure_claim_sequence
from pdtf_claims.validation.claim_validator import ClaimValidator, ValidationReport
from pdtf_claims.validation.schema_checker import SchemaConformanceChecker


def transaction_seed(transaction_id: Optional[str] = None) -> dict[str, Any]:
    """Top-level scaffold every transaction document starts from"""
    return {
        "$schema": settings.PDTF_SCHEMA_ID,
        "transactionId": transaction_id or "unknown",
        "participants": [],
        "propertyPack": {},
    }


def _first_transaction_id(raw_claims: Sequence[ClaimLike]) -> Optional[str]:
    for raw in raw_claims:
        if isinstance(raw, Claim):
            found = raw.transaction_id
        elif isinstance(raw, Mapping):
            found = raw.get("transactionId")
        else:
            continue
        if isinstance(found, str) and found:
            return found
    return None


class TransactionView:
    """
    Read-only result of one pipeline run.

    The state and claims map are built once per claim set and shared by
    every consumer; neither is modified after construction.
    """

    def __init__(
        self,
        transaction_id: str,
        state: dict[str, Any],
        claims_map: ClaimsMap,
        ordered_claims: list[Claim],
        issues: list[ClaimIssue],
        validation: Optional[ValidationReport] = None,
    ) -> None:
        self.transaction_id = transaction_id
        self.state = state
        self.claims_map = claims_map
        self.ordered_claims = ordered_claims
        self.issues = issues
        self.validation = validation

    def contributing_claims(self, path: str, value: Any = None) -> list[Claim]:
        """Claims behind the value at `path`, oldest first"""
        return contributing_claims(self.claims_map, path, value)


class TransactionPipeline:
    """
    Fetch -> validate (advisory) -> aggregate -> index.

    Fetching is the only suspending step; everything after it runs
    synchronously over in-memory data and shares no state between runs.
    """

    def __init__(
        self,
        source: Optional[ClaimSource] = None,
        checker: Optional[SchemaConformanceChecker] = None,
        validate: bool = True,
    ) -> None:
        self.source = source
        self.validator = ClaimValidator(checker) if validate else None
        self.transactions_built = 0
        logger.info(
            "TransactionPipeline initialized (validation={validation}, schema={schema})",
            validation="on" if validate else "off",
            schema="yes" if checker else "no",
        )

    async def load(self, transaction_id: str) -> TransactionView:
        """
        Fetch a transaction's claims from the configured source and build its view.

        Raises:
            ClaimSourceError: if the source cannot provide the claims
            RuntimeError: if the pipeline has no source
        """
        if self.source is None:
            raise RuntimeError("TransactionPipeline has no claim source configured")
        raw_claims = await self.source.fetch_claims(transaction_id)
        return self.build_view(raw_claims, transaction_id=transaction_id)

    def build_view(
        self,
        raw_claims: Sequence[ClaimLike],
        transaction_id: Optional[str] = None,
        initial_state: Optional[Mapping[str, Any]] = None,
    ) -> TransactionView:
        """
        Build state and provenance for an already fetched claim set.

        Raises:
            TypeError: if `raw_claims` is not a sequence
        """
        ensure_claim_sequence(raw_claims)
        transaction_id = transaction_id or _first_transaction_id(raw_claims) or "unknown"
        seed = initial_state if initial_state is not None else transaction_seed(transaction_id)

        validation = None
        if self.validator is not None:
            wire_claims = [
                raw.to_wire() if isinstance(raw, Claim) else raw for raw in raw_claims
            ]
            validation = self.validator.validate_claims(wire_claims)

        aggregation = aggregate_state(raw_claims, seed)
        claims_map, _ = build_claims_map(aggregation.ordered_claims, seed)

        issues = list(aggregation.issues)
        if self.validator is not None:
            state_issues = self.validator.validate_state(aggregation.state)
            validation.add(state_issues)

        self.transactions_built += 1
        logger.info(
            "Built transaction {transaction}: {claims} claims, {issues} issues",
            transaction=transaction_id,
            claims=len(aggregation.ordered_claims),
            issues=len(issues),
        )

        return TransactionView(
            transaction_id=transaction_id,
            state=aggregation.state,
            claims_map=claims_map,
            ordered_claims=aggregation.ordered_claims,
            issues=issues,
            validation=validation,
        )

    def get_stats(self) -> dict:
        return {
            "transactions_built": self.transactions_built,
            "claims_validated": self.validator.claims_validated if self.validator else 0,
        }
