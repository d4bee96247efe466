"""Unit tests for claim data models"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from pdtf_claims.core.models import (
    Claim,
    ElectronicRecordEvidence,
    EvidenceType,
    VouchEvidence,
    parse_timestamp,
)


class TestClaim:
    """Test Claim model parsing"""

    def test_wire_aliases(self, make_wire_claim) -> None:
        """transactionId maps onto transaction_id"""
        claim = Claim.model_validate(make_wire_claim("c1", {"/status": "For sale"}))

        assert claim.id == "c1"
        assert claim.transaction_id == "CNZSJBPzkKuefQogiBUKcr"
        assert claim.claims == {"/status": "For sale"}
        assert claim.time == "2024-01-01T00:00:00Z"

    def test_frozen(self, make_claim) -> None:
        """Claims are immutable"""
        claim = make_claim("c1", {"/a": 1})
        with pytest.raises(ValidationError):
            claim.id = "other"

    def test_defaults(self) -> None:
        """Only the id is required"""
        claim = Claim(id="bare")
        assert claim.claims == {}
        assert claim.verification.evidence == []
        assert claim.timestamp is None

    def test_missing_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Claim.model_validate({"claims": {"/a": 1}})

    def test_extra_fields_preserved(self, make_wire_claim) -> None:
        """Unknown wire fields survive a round trip"""
        raw = make_wire_claim("c1", {"/a": 1})
        raw["source"] = "partner-api"
        claim = Claim.model_validate(raw)

        assert claim.to_wire()["source"] == "partner-api"

    def test_to_wire_uses_aliases(self, make_claim) -> None:
        wire = make_claim("c1", {"/a": 1}).to_wire()
        assert wire["transactionId"] == "CNZSJBPzkKuefQogiBUKcr"
        assert "transaction_id" not in wire
        assert wire["verification"]["evidence"][0]["type"] == "vouch"


class TestEvidence:
    """Test the evidence tagged union"""

    def test_discriminated_variants(self) -> None:
        claim = Claim.model_validate({
            "id": "c1",
            "verification": {
                "evidence": [
                    {"type": "electronic_record", "record": {"source": {"name": "HM Land Registry"}}},
                    {"type": "vouch", "attestation": {"voucher": {"name": "Jane Seller"}}},
                ]
            },
        })
        first, second = claim.verification.evidence

        assert isinstance(first, ElectronicRecordEvidence)
        assert first.evidence_type == EvidenceType.ELECTRONIC_RECORD
        assert isinstance(second, VouchEvidence)
        assert claim.source_labels() == ["HM Land Registry", "Vouched by Jane Seller"]

    def test_label_fallbacks(self) -> None:
        """Missing names fall back to placeholder labels"""
        assert ElectronicRecordEvidence().source_label() == "Unknown source"
        assert VouchEvidence().source_label() == "Vouched by Unknown"

    def test_attachments(self) -> None:
        evidence = VouchEvidence.model_validate({
            "type": "vouch",
            "attachments": [{"url": "https://example.org/epc.pdf", "desc": "EPC"}],
        })
        assert evidence.attachments[0].desc == "EPC"

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Claim.model_validate({"id": "c1", "verification": {"evidence": [{"type": "rumour"}]}})


class TestParseTimestamp:
    """Test verification time parsing"""

    def test_zulu(self) -> None:
        parsed = parse_timestamp("2024-12-03T10:53:33.982Z")
        assert parsed == datetime(2024, 12, 3, 10, 53, 33, 982000, tzinfo=timezone.utc)

    def test_offset_normalized_to_utc(self) -> None:
        """Offsets compare on the same instant, not lexically"""
        assert parse_timestamp("2024-01-01T01:00:00+01:00") == parse_timestamp("2024-01-01T00:00:00Z")

    def test_naive_read_as_utc(self) -> None:
        assert parse_timestamp("2024-01-01T00:00:00").tzinfo == timezone.utc

    @pytest.mark.parametrize("value", [None, "", "   ", "yesterday", 12345])
    def test_unusable(self, value) -> None:
        assert parse_timestamp(value) is None


class TestClaimTime:
    """Test the ordering time of a claim"""

    def test_claim_level_timestamp_fallback(self, make_wire_claim) -> None:
        """A top-level timestamp is used when verification has no time"""
        raw = make_wire_claim("c1", {"/a": 1}, time=None)
        raw["timestamp"] = "2024-02-01T00:00:00Z"
        claim = Claim.model_validate(raw)

        assert claim.time == "2024-02-01T00:00:00Z"
        assert claim.timestamp == datetime(2024, 2, 1, tzinfo=timezone.utc)
        assert claim.to_wire()["timestamp"] == "2024-02-01T00:00:00Z"

    def test_verification_time_preferred(self, make_wire_claim) -> None:
        raw = make_wire_claim("c1", {"/a": 1}, time="2024-01-01T00:00:00Z")
        raw["timestamp"] = "2030-01-01T00:00:00Z"
        assert Claim.model_validate(raw).time == "2024-01-01T00:00:00Z"
