"""
Load user-facing texts from the bundled messages.yaml file.

Messages are defined in src/imagemcp/messages.yaml and loaded once per
process: a default suggestion per error category, usage examples per tool
and optional notes appended to rendered errors.
"""

import importlib.resources
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from imagemcp.utils.exceptions import ConfigurationError

# Module-level cache for parsed messages
_messages_data: dict[str, Any] | None = None

DEFAULT_CATEGORY = "unknown"


class MessagesSchema(BaseModel):
    """Schema for messages.yaml configuration file."""

    model_config = {"extra": "allow"}

    suggestions: dict[str, str] = Field(..., min_length=1)
    examples: dict[str, list[str]] = Field(default_factory=dict)
    notes: dict[str, str] = Field(default_factory=dict)


def _load_messages() -> dict[str, Any]:
    """Load and parse messages.yaml from the package. Cached after first call.

    Raises:
        ConfigurationError: If YAML is missing, malformed, or fails validation.
    """
    global _messages_data
    if _messages_data is not None:
        return _messages_data

    try:
        with (
            importlib.resources.files("imagemcp")
            .joinpath("messages.yaml")
            .open(encoding="utf-8") as f
        ):
            raw = f.read()
    except FileNotFoundError as e:
        raise ConfigurationError(
            "messages.yaml not found. This file is required and should be bundled with the package."
        ) from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse messages.yaml: {e}. Check YAML syntax and formatting."
        ) from e

    if data is None:
        raise ConfigurationError(
            "messages.yaml is empty. Expected configuration with a 'suggestions' section."
        )

    try:
        MessagesSchema(**data)
    except ValidationError as e:
        errors = "\n".join([f"  - {err['loc'][0]}: {err['msg']}" for err in e.errors()])
        raise ConfigurationError(
            f"Invalid messages.yaml structure:\n{errors}\n"
            "Expected a 'suggestions' mapping and optional 'examples' and 'notes'."
        ) from e

    _messages_data = data
    return _messages_data


def get_suggestion(category: str) -> str:
    """
    Return the default suggestion for an error category.

    Falls back to the 'unknown' category, then to an empty string.
    """
    suggestions = _load_messages()["suggestions"]
    return suggestions.get(category) or suggestions.get(DEFAULT_CATEGORY, "")


def get_examples(tool: str) -> list[str]:
    """Return usage examples for a tool name such as 'generate-image' (may be empty)."""
    examples = _load_messages().get("examples") or {}
    return list(examples.get(tool) or [])


def get_note(category: str) -> str | None:
    notes = _load_messages().get("notes") or {}
    return notes.get(category)
