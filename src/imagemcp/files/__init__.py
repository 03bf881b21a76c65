"""Naming, directory organization, conflict resolution and persistence of images."""

from imagemcp.files.manager import FileManager, ImageMetadata, OutputSource
from imagemcp.files.naming import NamingEngine

__all__ = ["FileManager", "ImageMetadata", "NamingEngine", "OutputSource"]
