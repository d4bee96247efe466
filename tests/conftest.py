"""Shared claim factories"""

from typing import Any, Callable, Optional

import pytest

from pdtf_claims.core.models import Claim

TRANSACTION_ID = "CNZSJBPzkKuefQogiBUKcr"


def claim_dict(
    claim_id: str,
    claims: dict[str, Any],
    time: Optional[str] = "2024-01-01T00:00:00Z",
    voucher: str = "Seller",
    transaction_id: str = TRANSACTION_ID,
) -> dict[str, Any]:
    """Wire-format claim vouched for by a single named party"""
    verification: dict[str, Any] = {
        "trust_framework": "uk_pdtf",
        "evidence": [{"type": "vouch", "attestation": {"voucher": {"name": voucher}}}],
    }
    if time is not None:
        verification["time"] = time
    return {
        "id": claim_id,
        "transactionId": transaction_id,
        "claims": claims,
        "verification": verification,
    }


@pytest.fixture
def make_claim() -> Callable[..., Claim]:
    """Factory building Claim models from the wire format"""

    def factory(claim_id: str, claims: dict[str, Any], time: Optional[str] = "2024-01-01T00:00:00Z", **kwargs: Any) -> Claim:
        return Claim.model_validate(claim_dict(claim_id, claims, time, **kwargs))

    return factory


@pytest.fixture
def make_wire_claim() -> Callable[..., dict[str, Any]]:
    """Factory building wire-format claim dicts"""
    return claim_dict
