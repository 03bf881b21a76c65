"""
imagemcp - MCP server and CLI for OpenAI image generation and editing

Exposes generate-image, edit-image and batch-edit as MCP tools, saving the
results locally with configurable naming, directory layout and conflict
handling, and keeping tool responses within the client's size budget.

Library usage:
- ImageService runs the pipelines; pass a Config or use get_config() / set_config().
- Arguments are validated with parse_args(GenerateImageArgs | EditImageArgs | BatchEditArgs, {...}).
- Logging: control verbosity with set_verbosity(0|1|2) or configure_logging(verbose_level, quiet);
  IMAGEMCP_VERBOSITY env (0/1/2) is read when the CLI or server starts.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("imagemcp")
except PackageNotFoundError:
    # Package is not installed (e.g., running from source in development)
    __version__ = "0.0.0.dev"

from imagemcp.core.batch import BatchResult, BatchSettings
from imagemcp.core.config import (
    DEFAULT_IMAGE_MODEL,
    DEFAULT_OPENAI_BASE_URL,
    Config,
    get_config,
    set_config,
)
from imagemcp.core.image_service import EditResult, ImageService
from imagemcp.core.response import ResponseEnvelope, ResponseSizeGovernor
from imagemcp.core.schemas import BatchEditArgs, EditImageArgs, GenerateImageArgs, parse_args
from imagemcp.core.types import FileOutputRequest, ImageInput, SavedImage
from imagemcp.files.manager import FileManager
from imagemcp.logging_config import configure_logging, set_verbosity
from imagemcp.utils.exceptions import (
    APIError,
    BatchProcessingError,
    ConfigurationError,
    FileSystemError,
    ImageMcpError,
    ImageProcessingError,
    InputLoadError,
    NetworkError,
    RequestTimeoutError,
    ValidationError,
)

__all__ = [
    "APIError",
    "BatchEditArgs",
    "BatchProcessingError",
    "BatchResult",
    "BatchSettings",
    "configure_logging",
    "Config",
    "ConfigurationError",
    "DEFAULT_IMAGE_MODEL",
    "DEFAULT_OPENAI_BASE_URL",
    "EditImageArgs",
    "EditResult",
    "FileManager",
    "FileOutputRequest",
    "FileSystemError",
    "GenerateImageArgs",
    "ImageInput",
    "ImageMcpError",
    "ImageProcessingError",
    "ImageService",
    "InputLoadError",
    "NetworkError",
    "RequestTimeoutError",
    "ResponseEnvelope",
    "ResponseSizeGovernor",
    "SavedImage",
    "ValidationError",
    "get_config",
    "parse_args",
    "set_config",
    "set_verbosity",
]
