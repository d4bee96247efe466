"""Advisory claim and schema validation"""

from pdtf_claims.validation.claim_validator import ClaimValidator, ValidationReport
from pdtf_claims.validation.schema_checker import SchemaConformanceChecker

__all__ = ["ClaimValidator", "ValidationReport", "SchemaConformanceChecker"]
