"""Core data models, paths and configuration"""

from pdtf_claims.core.models import (
    AggregationResult,
    Claim,
    ClaimIssue,
    ElectronicRecordEvidence,
    EvidenceType,
    IssueSeverity,
    IssueType,
    Verification,
    VouchEvidence,
)
from pdtf_claims.core.config import settings

__all__ = [
    "AggregationResult",
    "Claim",
    "ClaimIssue",
    "ElectronicRecordEvidence",
    "EvidenceType",
    "IssueSeverity",
    "IssueType",
    "Verification",
    "VouchEvidence",
    "settings",
]
