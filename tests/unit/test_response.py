"""Unit tests for the response size governor and envelope."""

import pytest

from imagemcp.core.response import (
    METADATA_TOKENS,
    ResponseEnvelope,
    ResponseMetadata,
    ResponseSizeGovernor,
    estimate_response_tokens,
)


@pytest.mark.unit
class TestEstimateResponseTokens:
    def test_metadata_only(self):
        assert estimate_response_tokens(10_000_000, include_inline=False) == METADATA_TOKENS

    def test_inline_cost(self):
        # 3000 bytes -> 4000 base64 chars -> 1000 tokens; (200 + 1000) * 1.2
        assert estimate_response_tokens(3000, include_inline=True) == 1440

    def test_empty_inline(self):
        assert estimate_response_tokens(0, include_inline=True) == 240

    def test_monotonic(self):
        costs = [estimate_response_tokens(n, True) for n in (0, 1000, 10_000, 100_000)]
        assert costs == sorted(costs)


@pytest.mark.unit
class TestResponseSizeGovernor:
    def test_not_requested(self):
        decision = ResponseSizeGovernor().should_inline_bytes(5_000_000, requested=False)
        assert decision.include is False
        assert decision.estimated_cost == METADATA_TOKENS
        assert decision.warning is None

    def test_small_payload_included_without_warning(self):
        decision = ResponseSizeGovernor(2000, 1500).should_inline_bytes(3000, requested=True)
        assert decision.include is True
        assert decision.estimated_cost == 1440
        assert decision.warning is None

    def test_between_thresholds_included_with_advisory(self):
        decision = ResponseSizeGovernor(2000, 1500).should_inline_bytes(3600, requested=True)
        assert decision.include is True
        assert decision.estimated_cost == 1680
        assert "warning" in decision.warning

    def test_above_ceiling_refused(self):
        decision = ResponseSizeGovernor(2000, 1500).should_inline_bytes(6000, requested=True)
        assert decision.include is False
        assert decision.estimated_cost == 2640
        assert "too large" in decision.warning

    def test_default_thresholds(self):
        governor = ResponseSizeGovernor()
        near = governor.should_inline_bytes(40_000, requested=True)
        over = governor.should_inline_bytes(60_000, requested=True)
        assert near.include is True and near.warning is not None
        assert over.include is False and over.warning is not None


@pytest.mark.unit
class TestResponseEnvelope:
    META = ResponseMetadata(1024, 1024, "png", 10, "2025-01-01T00:00:00.000Z")

    def test_minimal_dict_omits_absent_fields(self):
        data = ResponseEnvelope(metadata=self.META, file_path="/o/a.png").to_dict()
        assert data == {
            "metadata": {
                "width": 1024,
                "height": 1024,
                "format": "png",
                "size_bytes": 10,
                "created_at": "2025-01-01T00:00:00.000Z",
            },
            "file_path": "/o/a.png",
        }

    def test_full_dict(self):
        envelope = ResponseEnvelope(
            metadata=self.META,
            image_url="https://x/a.png",
            inline_data="AAAA",
            warnings=["w"],
        )
        data = envelope.to_dict()
        assert data["image_url"] == "https://x/a.png"
        assert data["inline_data"] == "AAAA"
        assert data["warnings"] == ["w"]
        assert "file_path" not in data
