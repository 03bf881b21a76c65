"""
Text rendering of operation results and errors.

Results are rendered as short human-readable reports for the tool client.
Errors are rendered with their category, message, an actionable suggestion
and, for validation errors, usage examples from messages.yaml.
"""

from imagemcp.core.batch import BatchResult
from imagemcp.core.image_service import EditResult
from imagemcp.core.messages_loader import get_examples, get_note, get_suggestion
from imagemcp.core.response import ResponseEnvelope
from imagemcp.utils.exceptions import (
    APIError,
    BatchProcessingError,
    ConfigurationError,
    DiskSpaceError,
    DownloadError,
    FileSystemError,
    ImageMcpError,
    ImageProcessingError,
    InputLoadError,
    NetworkError,
    RequestTimeoutError,
    ValidationError,
)

# Most specific classes first
_CATEGORIES: tuple[tuple[type[BaseException], str, str], ...] = (
    (ValidationError, "validation", "Validation Error"),
    (InputLoadError, "input", "Input Error"),
    (ConfigurationError, "configuration", "Configuration Error"),
    (APIError, "api", "API Error"),
    (RequestTimeoutError, "timeout", "Timeout Error"),
    (NetworkError, "network", "Network Error"),
    (DiskSpaceError, "disk_space", "File Size Error"),
    (DownloadError, "download", "Download Error"),
    (FileSystemError, "filesystem", "File System Error"),
    (ImageProcessingError, "image", "Image Processing Error"),
    (BatchProcessingError, "batch", "Batch Error"),
)


def error_category(exc: BaseException) -> tuple[str, str]:
    """Return (category key, display title) for an exception."""
    for cls, key, title in _CATEGORIES:
        if isinstance(exc, cls):
            return key, title
    return "unknown", "Error"


def format_error(exc: BaseException, tool: str | None = None) -> str:
    """
    Render an error as a structured text block.

    Args:
        exc: The error to render
        tool: Tool name used to select usage examples for validation errors
    """
    key, title = error_category(exc)
    suggestion = getattr(exc, "suggestion", "") or get_suggestion(key)
    lines = [f"{title}: {exc}"]

    path = getattr(exc, "path", "") if isinstance(exc, FileSystemError) else ""
    if path:
        lines.append(f"Path: {path}")
    if isinstance(exc, APIError) and exc.status_code:
        lines.append(f"Status: {exc.status_code}")
    if isinstance(exc, DownloadError) and exc.attempts:
        lines.append(f"Attempts: {exc.attempts}")
    if isinstance(exc, BatchProcessingError) and exc.failed_refs:
        lines.append("Failed: " + ", ".join(exc.failed_refs))
    if not isinstance(exc, ImageMcpError):
        lines[0] = f"{title}: {type(exc).__name__}: {exc}"

    lines.extend(["", f"Suggestion: {suggestion}"])

    if key == "validation" and tool:
        examples = get_examples(tool)
        if examples:
            lines.extend(["", "Example of correct usage:"])
            lines.extend(f'- "{example}"' for example in examples)
    note = get_note(key)
    if note:
        lines.extend(["", note])
    return "\n".join(lines)


def _warnings_block(warnings: list[str]) -> list[str]:
    if not warnings:
        return []
    return ["", "Warnings:"] + [f"- {w}" for w in warnings]


def render_generate(envelope: ResponseEnvelope, prompt: str, aspect_ratio: str, model: str) -> str:
    meta = envelope.metadata
    lines = [
        "Generated image successfully!",
        "",
        f'Prompt: "{prompt}"',
        f"Size: {meta.width}x{meta.height}",
        f"Aspect ratio: {aspect_ratio}",
        f"Model: {model}",
    ]
    if envelope.file_path:
        lines.extend(
            [
                "",
                f"Local file: {envelope.file_path}",
                f"File size: {meta.size_bytes} bytes",
                f"Format: {meta.format}",
                f"Created at: {meta.created_at}",
            ]
        )
    if envelope.image_url:
        lines.append(f"Image URL: {envelope.image_url}")
    if envelope.inline_data:
        decoded = (len(envelope.inline_data) * 3) // 4
        lines.extend(["", f"Inline image data included in response (~{decoded} bytes)"])
    lines.extend(_warnings_block(envelope.warnings))
    return "\n".join(lines)


def render_edit(result: EditResult) -> str:
    saved = result.saved_image
    lines = [
        "Image editing completed successfully!",
        "",
        f"Original image: {result.original_ref}",
        f"Original size: {result.original_width}x{result.original_height}",
        f"Edit kind: {result.edit_kind.value}",
        f"Edit strength: {result.strength}",
        f'Edit prompt: "{result.original_prompt}"',
    ]
    if result.revised_prompt != result.original_prompt:
        lines.append(f'Revised prompt: "{result.revised_prompt}"')
    lines.append("")
    lines.append(f"Edited image: {result.image_url or (saved.local_path if saved else 'N/A')}")
    if saved:
        lines.extend(
            [
                f"Local file: {saved.local_path}",
                f"File size: {saved.size_bytes} bytes",
                f"Format: {saved.format}",
                f"Saved at: {saved.saved_at}",
            ]
        )
    lines.extend(
        [
            "",
            f"Edit time: {result.edit_time_ms}ms",
            f"Model used: {result.model_used}",
            f"Composition preserved: {result.composition_preserved}",
        ]
    )
    lines.extend(_warnings_block(result.warnings))
    return "\n".join(lines)


def render_batch(result: BatchResult, edit_prompt: str, edit_kind: str) -> str:
    lines = [
        "Batch editing completed!",
        "",
        f"Total images: {result.total}",
        f"Succeeded: {result.succeeded}",
        f"Failed: {result.failed}",
        f"Edit kind: {edit_kind}",
        f'Edit prompt: "{edit_prompt}"',
        "",
        "Results:",
    ]
    for index, item in enumerate(result.items, start=1):
        lines.append(f"Image {index}: {'Success' if item.success else 'Failed'}")
        lines.append(f"- Original: {item.original_ref}")
        if item.success:
            if item.saved_image:
                lines.append(f"- Local file: {item.saved_image.local_path}")
            if item.image_url:
                lines.append(f"- Image URL: {item.image_url}")
        elif item.error:
            lines.append(f"- Error: {item.error}")
    lines.extend(
        [
            "",
            f"Processing time: {result.timing_ms}ms",
            f"Average time per image: {result.average_time_ms:.0f}ms",
            f"Model used: {result.model_used}",
            f"Parallel processing: {result.parallel}",
        ]
    )
    return "\n".join(lines)
