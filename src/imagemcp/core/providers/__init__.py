"""Upstream image providers."""

from imagemcp.core.providers.base import ImageProvider, UpstreamImage
from imagemcp.core.providers.openai import OpenAIImagesProvider

__all__ = ["ImageProvider", "OpenAIImagesProvider", "UpstreamImage"]
