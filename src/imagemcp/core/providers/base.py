"""
Provider protocol for the upstream image API.

Defines the interface the generate/edit pipelines depend on; the pipelines
only need "a remote URL or inline base64 bytes" back from the provider.
"""

from dataclasses import dataclass
from typing import Protocol

from imagemcp.core.config import Config


@dataclass(frozen=True)
class UpstreamImage:
    """One image returned by the upstream API: a URL, base64 data, or both."""

    url: str | None = None
    b64_json: str | None = None
    revised_prompt: str | None = None
    model: str = ""
    duration: float = 0.0


class ImageProvider(Protocol):
    """Protocol for image generation/editing backends."""

    def generate(
        self,
        prompt: str,
        size: str,
        quality: str | None,
        output_format: str,
        timeout: float,
        config: Config,
    ) -> UpstreamImage:
        """Generate an image. May raise APIError, NetworkError or RequestTimeoutError."""
        ...

    def edit(
        self,
        image_png: bytes,
        prompt: str,
        size: str,
        quality: str | None,
        output_format: str,
        timeout: float,
        config: Config,
    ) -> UpstreamImage:
        """Edit a PNG source image. May raise APIError, NetworkError or RequestTimeoutError."""
        ...
