"""
Configuration management for imagemcp.

This module handles the API key, timeouts, output-directory policy and the
response-size thresholds. Values come from the environment (and a .env file).
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from imagemcp.logging_config import get_logger
from imagemcp.utils.exceptions import ConfigurationError

logger = get_logger(__name__)

# Load environment variables from .env file
load_dotenv()

# Default configuration constants
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_IMAGE_MODEL = "gpt-image-1"
DEFAULT_OUTPUT_DIR = "./generated_images"
DEFAULT_MAX_FILE_SIZE_MB = 50
DEFAULT_MAX_INPUT_BYTES = 10 * 1024 * 1024
DEFAULT_KEEP_FILES_DAYS = 30
DEFAULT_MAX_RESPONSE_TOKENS = 20_000
DEFAULT_RESPONSE_WARNING_TOKENS = 15_000


@dataclass
class Config:
    """Configuration for the imagemcp server and CLI."""

    # API Configuration (openai_api_key excluded from repr to avoid leaking secrets)
    openai_api_key: str = field(default="", repr=False)
    openai_base_url: str = DEFAULT_OPENAI_BASE_URL
    image_model: str = DEFAULT_IMAGE_MODEL

    # Timeout / retry configuration (seconds)
    request_timeout: float = 120.0  # generation and edit calls
    download_timeout: float = 30.0  # plain downloads of generated images
    max_retries: int = 3
    retry_delay: float = 1.0

    # File output
    default_output_dir: str = DEFAULT_OUTPUT_DIR
    max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_MB * 1024 * 1024
    max_input_bytes: int = DEFAULT_MAX_INPUT_BYTES
    enable_file_output: bool = True
    keep_files_days: int = DEFAULT_KEEP_FILES_DAYS

    # Response size thresholds (protocol token units)
    max_response_tokens: int = DEFAULT_MAX_RESPONSE_TOKENS
    response_warning_tokens: int = DEFAULT_RESPONSE_WARNING_TOKENS

    # Debug: log request/response payloads with image data truncated
    debug_api: bool = False

    _validated: bool = field(default=False, repr=False)

    @classmethod
    def from_env(cls) -> "Config":
        """
        Create a Config instance from environment variables.

        Environment variables:
            OPENAI_API_KEY: Required for generation and editing
            OPENAI_BASE_URL: Optional API base URL
            OPENAI_API_TIMEOUT: Request timeout in milliseconds (default 120000)
            OPENAI_MAX_RETRIES: Download retry count (default 3)
            DEFAULT_OUTPUT_DIR: Base directory for saved images
            MAX_FILE_SIZE_MB: Size ceiling for saved images (default 50)
            ENABLE_FILE_OUTPUT: 'false' disables saving entirely
            KEEP_FILES_DAYS: Retention window for cleanup (default 30)
            IMAGEMCP_IMAGE_MODEL, IMAGEMCP_DOWNLOAD_TIMEOUT, IMAGEMCP_RETRY_DELAY,
            IMAGEMCP_DEBUG_API: Optional overrides

        Returns:
            Config instance populated from environment

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """

        def _num_env(name: str, default: float, cast: type = int) -> float:
            val = os.getenv(name)
            if val is None or val.strip() == "":
                return default
            try:
                return cast(val.strip())
            except ValueError as e:
                raise ConfigurationError(f"{name} must be a number, got {val!r}.") from e

        timeout_ms = _num_env("OPENAI_API_TIMEOUT", 120_000)
        max_file_mb = _num_env("MAX_FILE_SIZE_MB", DEFAULT_MAX_FILE_SIZE_MB, float)
        debug_api = os.getenv("IMAGEMCP_DEBUG_API", "").strip().lower() in ("1", "true", "yes")

        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_base_url=os.getenv("OPENAI_BASE_URL") or DEFAULT_OPENAI_BASE_URL,
            image_model=os.getenv("IMAGEMCP_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL,
            request_timeout=timeout_ms / 1000,
            download_timeout=float(_num_env("IMAGEMCP_DOWNLOAD_TIMEOUT", 30.0, float)),
            max_retries=int(_num_env("OPENAI_MAX_RETRIES", 3)),
            retry_delay=float(_num_env("IMAGEMCP_RETRY_DELAY", 1.0, float)),
            default_output_dir=os.getenv("DEFAULT_OUTPUT_DIR") or DEFAULT_OUTPUT_DIR,
            max_file_size_bytes=int(max_file_mb * 1024 * 1024),
            enable_file_output=os.getenv("ENABLE_FILE_OUTPUT", "").strip().lower() != "false",
            keep_files_days=int(_num_env("KEEP_FILES_DAYS", DEFAULT_KEEP_FILES_DAYS)),
            debug_api=debug_api,
        )

    def validate(self) -> None:
        """
        Validate the configuration.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        logger.debug("Validating config")

        if not self.openai_api_key:
            raise ConfigurationError(
                "OpenAI API key is required. "
                "Set OPENAI_API_KEY environment variable or provide it explicitly."
            )
        if self.request_timeout <= 0 or self.download_timeout <= 0:
            raise ConfigurationError("Timeouts must be positive.")
        if self.max_retries < 0:
            raise ConfigurationError(f"max_retries must not be negative, got {self.max_retries}.")
        if self.max_file_size_bytes <= 0 or self.max_input_bytes <= 0:
            raise ConfigurationError("File size limits must be positive.")
        if self.keep_files_days <= 0:
            raise ConfigurationError(
                f"keep_files_days must be positive, got {self.keep_files_days}."
            )
        if self.response_warning_tokens > self.max_response_tokens:
            raise ConfigurationError(
                f"response_warning_tokens ({self.response_warning_tokens}) must not exceed "
                f"max_response_tokens ({self.max_response_tokens})."
            )

        self._validated = True

    def is_valid(self) -> bool:
        """Return True if validate() has been called successfully."""
        return self._validated

    def set_api_key(self, api_key: str) -> None:
        """
        Set the OpenAI API key.

        Raises:
            ConfigurationError: If API key is empty
        """
        if not api_key:
            raise ConfigurationError("API key cannot be empty")

        self.openai_api_key = api_key
        self._validated = False  # Need to revalidate


# Global configuration instance
_global_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance, creating it from the environment."""
    global _global_config
    if _global_config is None:
        _global_config = Config.from_env()
    return _global_config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config
