"""Claim application and state aggregation"""

from pdtf_claims.state.aggregator import aggregate_state, sort_claims
from pdtf_claims.state.mutator import DocumentMutator

__all__ = ["aggregate_state", "sort_claims", "DocumentMutator"]
