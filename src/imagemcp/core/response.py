"""
Response size governor and the generate/edit response envelope.

Tool results travel back to a language-model client whose context is
measured in tokens. Embedding base64 image data can blow that budget, so the
governor estimates the cost and decides whether inline data may be included.
"""

import math
from dataclasses import dataclass, field
from typing import Any

from imagemcp.logging_config import get_logger

logger = get_logger(__name__)

# Envelope and metadata cost, in tokens
METADATA_TOKENS = 200
# Average characters per token for base64 text
CHARS_PER_TOKEN = 4
# Inflation for JSON structure and escaping
OVERHEAD_FACTOR = 1.2


def estimate_response_tokens(byte_length: int, include_inline: bool) -> int:
    """
    Estimate the token cost of a response.

    Without inline data only the fixed metadata cost applies. With it, the
    base64 length (4/3 of the raw bytes) is converted to tokens and the total
    is inflated by OVERHEAD_FACTOR.
    """
    if not include_inline:
        return METADATA_TOKENS
    base64_chars = math.ceil(byte_length * 4 / 3)
    base64_tokens = math.ceil(base64_chars / CHARS_PER_TOKEN)
    return math.ceil((METADATA_TOKENS + base64_tokens) * OVERHEAD_FACTOR)


@dataclass(frozen=True)
class InlineDecision:
    include: bool
    estimated_cost: int
    warning: str | None = None


class ResponseSizeGovernor:
    """Decides whether image bytes may be embedded in a response."""

    def __init__(self, max_tokens: int = 20_000, warning_tokens: int = 15_000) -> None:
        self.max_tokens = max_tokens
        self.warning_tokens = warning_tokens

    def should_inline_bytes(self, byte_length: int, requested: bool) -> InlineDecision:
        if not requested:
            return InlineDecision(include=False, estimated_cost=estimate_response_tokens(0, False))

        cost = estimate_response_tokens(byte_length, True)
        if cost > self.max_tokens:
            logger.warning(
                "Inline image refused: %d tokens exceeds limit of %d", cost, self.max_tokens
            )
            return InlineDecision(
                include=False,
                estimated_cost=cost,
                warning=(
                    f"Image too large for inline response ({cost} tokens > {self.max_tokens} "
                    "limit). Use file_path instead."
                ),
            )
        if cost > self.warning_tokens:
            return InlineDecision(
                include=True,
                estimated_cost=cost,
                warning=(
                    f"Large response size warning: {cost} tokens. "
                    "Consider using file_path for better performance."
                ),
            )
        return InlineDecision(include=True, estimated_cost=cost)


@dataclass
class ResponseMetadata:
    width: int
    height: int
    format: str
    size_bytes: int
    created_at: str


@dataclass
class ResponseEnvelope:
    """Result of a generate call: file reference, metadata, optional inline data."""

    metadata: ResponseMetadata
    file_path: str | None = None
    image_url: str | None = None
    inline_data: str | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "metadata": {
                "width": self.metadata.width,
                "height": self.metadata.height,
                "format": self.metadata.format,
                "size_bytes": self.metadata.size_bytes,
                "created_at": self.metadata.created_at,
            }
        }
        if self.file_path is not None:
            result["file_path"] = self.file_path
        if self.image_url is not None:
            result["image_url"] = self.image_url
        if self.inline_data is not None:
            result["inline_data"] = self.inline_data
        if self.warnings:
            result["warnings"] = list(self.warnings)
        return result
