"""Unit tests for result and error rendering."""

import pytest

from imagemcp.core.batch import BatchItemResult, BatchResult
from imagemcp.core.image_service import EditResult
from imagemcp.core.response import ResponseEnvelope, ResponseMetadata
from imagemcp.core.types import EditKind, SavedImage
from imagemcp.render import (
    error_category,
    format_error,
    render_batch,
    render_edit,
    render_generate,
)
from imagemcp.utils.exceptions import (
    APIError,
    BatchProcessingError,
    ConfigurationError,
    DiskSpaceError,
    DownloadError,
    FileSystemError,
    InvalidInputError,
    NetworkError,
    RequestTimeoutError,
    ValidationError,
)

SAVED = SavedImage(
    local_path="/out/image_20250115_103045_abcdef.png",
    filename="image_20250115_103045_abcdef.png",
    directory="/out",
    size_bytes=2048,
    format="png",
    saved_at="2025-01-15T10:30:45.000Z",
)


def _envelope(**kwargs) -> ResponseEnvelope:
    return ResponseEnvelope(
        metadata=ResponseMetadata(
            width=1024,
            height=1024,
            format="png",
            size_bytes=2048,
            created_at="2025-01-15T10:30:45.000Z",
        ),
        **kwargs,
    )


@pytest.mark.unit
class TestErrorCategory:
    @pytest.mark.parametrize(
        ("exc", "key"),
        [
            (ValidationError("bad"), "validation"),
            (InvalidInputError("bad"), "input"),
            (ConfigurationError("bad"), "configuration"),
            (APIError("bad"), "api"),
            (RequestTimeoutError("slow"), "timeout"),
            (NetworkError("down"), "network"),
            (DiskSpaceError("big", attempted_bytes=2, max_bytes=1), "disk_space"),
            (DownloadError("lost", source="u"), "download"),
            (FileSystemError("ro"), "filesystem"),
            (BatchProcessingError("bad"), "batch"),
            (RuntimeError("?"), "unknown"),
        ],
    )
    def test_categories(self, exc, key):
        assert error_category(exc)[0] == key


@pytest.mark.unit
class TestFormatError:
    def test_validation_with_examples_and_note(self):
        text = format_error(ValidationError("Prompt must be in English"), tool="generate-image")
        assert text.startswith("Validation Error: Prompt must be in English")
        assert "Suggestion: Please check your input and try again." in text
        assert "Example of correct usage:" in text
        assert '- "A beautiful sunset over a mountain landscape"' in text
        assert "only accepts English text" in text

    def test_own_suggestion_wins(self):
        text = format_error(ValidationError("bad", suggestion="Translate it first."))
        assert "Suggestion: Translate it first." in text
        assert "Example of correct usage" not in text

    def test_api_error_status(self):
        text = format_error(APIError("Rate limit", status_code=429))
        assert text.splitlines()[0] == "API Error: Rate limit"
        assert "Status: 429" in text

    def test_filesystem_path(self):
        text = format_error(FileSystemError("Permission denied", path="/out/a.png"))
        assert "Path: /out/a.png" in text

    def test_download_attempts(self):
        text = format_error(DownloadError("gave up", source="u", attempts=4))
        assert "Attempts: 4" in text

    def test_unexpected_exception(self):
        text = format_error(KeyError("x"))
        assert text.startswith("Error: KeyError: ")


@pytest.mark.unit
class TestRenderGenerate:
    def test_saved_file(self):
        text = render_generate(_envelope(file_path=SAVED.local_path), "a cube", "square", "m")
        assert text.startswith("Generated image successfully!")
        assert 'Prompt: "a cube"' in text
        assert "Size: 1024x1024" in text
        assert f"Local file: {SAVED.local_path}" in text
        assert "File size: 2048 bytes" in text
        assert "Inline image data" not in text

    def test_inline_and_warnings(self):
        text = render_generate(
            _envelope(inline_data="AAAA", warnings=["Large response size warning"]),
            "a cube",
            "square",
            "m",
        )
        assert "Inline image data included in response (~3 bytes)" in text
        assert "Warnings:\n- Large response size warning" in text
        assert "Local file" not in text


@pytest.mark.unit
class TestRenderEdit:
    def _result(self, **kwargs) -> EditResult:
        defaults = dict(
            original_ref="https://x.test/a.png",
            original_width=800,
            original_height=600,
            original_prompt="make it blue",
            revised_prompt="make it blue",
            edit_kind=EditKind.STYLE_TRANSFER,
            strength=0.8,
            composition_preserved=True,
            edit_time_ms=1500,
            model_used="gpt-image-1",
        )
        defaults.update(kwargs)
        return EditResult(**defaults)

    def test_saved(self):
        text = render_edit(self._result(saved_image=SAVED))
        assert "Original size: 800x600" in text
        assert "Edit kind: styleTransfer" in text
        assert f"Edited image: {SAVED.local_path}" in text
        assert "Revised prompt" not in text
        assert "Edit time: 1500ms" in text

    def test_url_and_revised_prompt(self):
        text = render_edit(
            self._result(image_url="https://img.test/e.png", revised_prompt="make it cobalt")
        )
        assert "Edited image: https://img.test/e.png" in text
        assert 'Revised prompt: "make it cobalt"' in text


@pytest.mark.unit
class TestRenderBatch:
    def test_items(self):
        result = BatchResult(
            total=2,
            succeeded=1,
            failed=1,
            items=[
                BatchItemResult(original_ref="a", success=True, saved_image=SAVED),
                BatchItemResult(original_ref="b", success=False, error="Not found"),
            ],
            timing_ms=3000,
            average_time_ms=1500.0,
            model_used="gpt-image-1",
        )
        text = render_batch(result, "make it blue", "variation")
        assert "Total images: 2" in text
        assert "Image 1: Success" in text
        assert f"- Local file: {SAVED.local_path}" in text
        assert "Image 2: Failed" in text
        assert "- Error: Not found" in text
        assert "Average time per image: 1500ms" in text
