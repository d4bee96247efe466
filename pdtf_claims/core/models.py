"""Core data models for PDTF claims, verification metadata and issues"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class EvidenceType(str, Enum):
    """Ways a claim can be substantiated under the trust framework"""

    ELECTRONIC_RECORD = "electronic_record"
    VOUCH = "vouch"


class IssueSeverity(str, Enum):
    """How serious a reported issue is"""

    ERROR = "error"
    WARNING = "warning"


class IssueType(str, Enum):
    """Categories of anomalies found while validating or aggregating claims"""

    # Aggregation anomalies (entry or claim skipped, run continues)
    MALFORMED_PATH = "malformed_path"
    CONTAINER_MISMATCH = "container_mismatch"
    MALFORMED_CLAIM = "malformed_claim"
    MISSING_TIMESTAMP = "missing_timestamp"
    INVALID_TIMESTAMP = "invalid_timestamp"

    # Advisory validation findings
    STRUCTURE = "structure"
    INVALID_PATH = "invalid_path"
    INVALID_VALUE = "invalid_value"
    VERIFICATION = "verification"
    SCHEMA = "schema"
    FILE = "file"


class Attachment(BaseModel):
    """Supporting document attached to a piece of evidence"""

    model_config = ConfigDict(extra="allow", frozen=True)

    url: Optional[str] = None
    desc: Optional[str] = None
    digest: Optional[dict[str, Any]] = None


class RecordSource(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    name: Optional[str] = None


class ElectronicRecord(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    source: RecordSource = Field(default_factory=RecordSource)


class Voucher(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    name: Optional[str] = None


class Attestation(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    type: Optional[str] = None
    voucher: Voucher = Field(default_factory=Voucher)


class ElectronicRecordEvidence(BaseModel):
    """Evidence backed by a record obtained from an electronic data source"""

    model_config = ConfigDict(extra="allow", frozen=True)

    type: Literal["electronic_record"] = EvidenceType.ELECTRONIC_RECORD.value
    record: ElectronicRecord = Field(default_factory=ElectronicRecord)
    attachments: list[Attachment] = Field(default_factory=list)

    @property
    def evidence_type(self) -> EvidenceType:
        return EvidenceType.ELECTRONIC_RECORD

    def source_label(self) -> str:
        """Human readable origin of the record"""
        return self.record.source.name or "Unknown source"


class VouchEvidence(BaseModel):
    """Evidence backed by a named party vouching for the claim"""

    model_config = ConfigDict(extra="allow", frozen=True)

    type: Literal["vouch"] = EvidenceType.VOUCH.value
    attestation: Attestation = Field(default_factory=Attestation)
    attachments: list[Attachment] = Field(default_factory=list)

    @property
    def evidence_type(self) -> EvidenceType:
        return EvidenceType.VOUCH

    def source_label(self) -> str:
        """Human readable origin of the attestation"""
        return f"Vouched by {self.attestation.voucher.name or 'Unknown'}"


Evidence = Annotated[
    Union[ElectronicRecordEvidence, VouchEvidence],
    Field(discriminator="type"),
]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Returns None for missing or unparseable values. Naive timestamps are
    read as UTC.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class Verification(BaseModel):
    """How and when a claim was verified"""

    model_config = ConfigDict(extra="allow", frozen=True)

    time: Optional[str] = None
    trust_framework: Optional[str] = None
    evidence: list[Evidence] = Field(default_factory=list)

    @property
    def timestamp(self) -> Optional[datetime]:
        return parse_timestamp(self.time)


class Claim(BaseModel):
    """
    An immutable, timestamped assertion that values belong at paths of a
    transaction document.

    `claims` maps JSON-Pointer paths to the JSON value written there. A
    path ending in `/-` appends to the array at its parent path.

    Example:
        Claim.model_validate({
            "id": "KHXrXu2wFyWxQwaiwsdV",
            "transactionId": "CNZSJBPzkKuefQogiBUKcr",
            "claims": {"/status": "For sale"},
            "verification": {
                "trust_framework": "uk_pdtf",
                "time": "2024-12-03T10:53:33.982Z",
                "evidence": [{"type": "vouch", "attestation": {"voucher": {"name": "Seller"}}}],
            },
        })
    """

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    id: str
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")
    claims: dict[str, Any] = Field(default_factory=dict)
    verification: Verification = Field(default_factory=Verification)

    @property
    def time(self) -> Optional[str]:
        """Verification time, falling back to a claim-level `timestamp` field"""
        if self.verification.time:
            return self.verification.time
        fallback = (self.model_extra or {}).get("timestamp")
        return fallback if isinstance(fallback, str) else None

    @property
    def timestamp(self) -> Optional[datetime]:
        return parse_timestamp(self.time)

    def source_labels(self) -> list[str]:
        """Origins of every evidence item, in the order they were given"""
        return [evidence.source_label() for evidence in self.verification.evidence]

    def to_wire(self) -> dict[str, Any]:
        """Serialize back to the partner wire format"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ClaimIssue(BaseModel):
    """A single anomaly found while validating or aggregating claims"""

    severity: IssueSeverity = IssueSeverity.WARNING
    issue_type: IssueType
    message: str
    claim_id: Optional[str] = None
    claim_index: Optional[int] = None
    path: Optional[str] = None


class AggregationResult(BaseModel):
    """Aggregated state document plus the order claims were applied in"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    state: dict[str, Any]
    ordered_claims: list[Claim] = Field(default_factory=list)
    issues: list[ClaimIssue] = Field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        return bool(self.issues)
