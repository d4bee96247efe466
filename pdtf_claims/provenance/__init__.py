"""
Provenance for aggregated state

Every value in the aggregated document can be traced to the claims that
wrote it:
- ClaimsMap records claims per leaf path
- contributing_claims unions them for a displayed value
"""

from pdtf_claims.provenance.claims_map import ClaimsMap, build_claims_map
from pdtf_claims.provenance.resolver import ContributingClaimsResolver, contributing_claims

__all__ = ["ClaimsMap", "build_claims_map", "ContributingClaimsResolver", "contributing_claims"]
