"""Unit tests for the generate, edit and batch-edit pipelines."""

import base64
import re
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from imagemcp.core.config import Config
from imagemcp.core.image_service import ImageService, aspect_ratio_for
from imagemcp.core.providers.base import UpstreamImage
from imagemcp.core.response import ResponseSizeGovernor
from imagemcp.core.schemas import BatchEditArgs, EditImageArgs, GenerateImageArgs, parse_args
from imagemcp.core.types import AspectRatio
from imagemcp.files.manager import FileManager
from imagemcp.files.retry import RetryPolicy
from imagemcp.utils.exceptions import (
    APIError,
    BatchProcessingError,
    ConfigurationError,
    FileSystemError,
    ImageProcessingError,
    InvalidInputError,
)


class FakeProvider:
    """Returns canned upstream images and records the calls made."""

    def __init__(self, result: UpstreamImage | None = None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.generate_calls: list[dict] = []
        self.edit_calls: list[dict] = []

    def generate(self, prompt, size, quality, output_format, timeout, config):
        self.generate_calls.append(
            {"prompt": prompt, "size": size, "quality": quality, "format": output_format}
        )
        if self.error:
            raise self.error
        return self.result

    def edit(self, image_png, prompt, size, quality, output_format, timeout, config):
        self.edit_calls.append({"image": image_png, "prompt": prompt, "size": size})
        if self.error:
            raise self.error
        return self.result


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _service(tmp_path: Path, provider: FakeProvider, **kwargs) -> ImageService:
    config = Config(openai_api_key="sk-test", default_output_dir=str(tmp_path))
    kwargs.setdefault(
        "file_manager",
        FileManager(
            default_output_dir=tmp_path,
            retry_policy=RetryPolicy(max_retries=1, sleep=MagicMock()),
        ),
    )
    return ImageService(config=config, provider=provider, **kwargs)


def _data_url(data: bytes) -> str:
    return f"data:image/png;base64,{_b64(data)}"


@pytest.mark.unit
class TestAspectRatioFor:
    def test_closest_ratio(self):
        assert aspect_ratio_for(800, 600) is AspectRatio.LANDSCAPE
        assert aspect_ratio_for(600, 800) is AspectRatio.PORTRAIT
        assert aspect_ratio_for(512, 512) is AspectRatio.SQUARE


@pytest.mark.unit
class TestGenerate:
    def test_saves_and_reports(self, tmp_path, png_bytes):
        provider = FakeProvider(UpstreamImage(b64_json=_b64(png_bytes), model="gpt-image-1"))
        service = _service(tmp_path, provider)

        envelope = service.generate(
            parse_args(GenerateImageArgs, {"prompt": "A red cube on a white table"})
        )

        assert re.match(r".*image_\d{8}_\d{6}_[0-9a-f]{6}\.png$", envelope.file_path)
        assert Path(envelope.file_path).read_bytes() == png_bytes
        assert envelope.metadata.width == 1024
        assert envelope.metadata.height == 1024
        assert envelope.metadata.format == "png"
        assert envelope.metadata.size_bytes == len(png_bytes)
        assert envelope.inline_data is None
        assert envelope.warnings == []
        assert provider.generate_calls == [
            {
                "prompt": "A red cube on a white table",
                "size": "1024x1024",
                "quality": None,
                "format": "png",
            }
        ]

    def test_landscape_size(self, tmp_path, png_bytes):
        provider = FakeProvider(UpstreamImage(b64_json=_b64(png_bytes)))
        envelope = _service(tmp_path, provider).generate(
            parse_args(
                GenerateImageArgs, {"prompt": "x", "aspect_ratio": "landscape", "quality": "low"}
            )
        )
        assert (envelope.metadata.width, envelope.metadata.height) == (1536, 1024)
        assert provider.generate_calls[0]["size"] == "1536x1024"
        assert provider.generate_calls[0]["quality"] == "low"

    def test_inline_within_budget(self, tmp_path, png_bytes):
        provider = FakeProvider(UpstreamImage(b64_json=_b64(png_bytes)))
        envelope = _service(tmp_path, provider).generate(
            parse_args(GenerateImageArgs, {"prompt": "x", "include_inline_bytes": True})
        )
        assert envelope.inline_data == _b64(png_bytes)
        assert envelope.file_path is not None

    def test_inline_refused_keeps_file(self, tmp_path, png_bytes):
        provider = FakeProvider(UpstreamImage(b64_json=_b64(png_bytes)))
        service = _service(
            tmp_path, provider, governor=ResponseSizeGovernor(max_tokens=240, warning_tokens=240)
        )
        envelope = service.generate(
            parse_args(GenerateImageArgs, {"prompt": "x", "include_inline_bytes": True})
        )
        assert envelope.inline_data is None
        assert envelope.file_path is not None
        assert any("too large for inline" in w for w in envelope.warnings)

    def test_inline_requested_with_url_only(self, tmp_path):
        provider = FakeProvider(UpstreamImage(url="https://img.test/a.png"))
        envelope = _service(tmp_path, provider).generate(
            parse_args(
                GenerateImageArgs,
                {"prompt": "x", "include_inline_bytes": True, "save": False},
            )
        )
        assert envelope.inline_data is None
        assert envelope.image_url == "https://img.test/a.png"
        assert any("only a URL" in w for w in envelope.warnings)

    def test_save_disabled(self, tmp_path, png_bytes):
        provider = FakeProvider(UpstreamImage(b64_json=_b64(png_bytes)))
        envelope = _service(tmp_path, provider).generate(
            parse_args(GenerateImageArgs, {"prompt": "x", "save": False})
        )
        assert envelope.file_path is None
        assert list(tmp_path.iterdir()) == []
        assert envelope.metadata.size_bytes == len(png_bytes)

    def test_save_failure_becomes_warning(self, tmp_path, png_bytes):
        file_manager = MagicMock()
        file_manager.save.side_effect = FileSystemError("disk full", path=str(tmp_path))
        provider = FakeProvider(UpstreamImage(b64_json=_b64(png_bytes)))
        envelope = _service(tmp_path, provider, file_manager=file_manager).generate(
            parse_args(GenerateImageArgs, {"prompt": "x"})
        )
        assert envelope.file_path is None
        assert any("could not be saved" in w for w in envelope.warnings)

    def test_upstream_error_propagates(self, tmp_path):
        provider = FakeProvider(error=APIError("rate limited", status_code=429))
        with pytest.raises(APIError):
            _service(tmp_path, provider).generate(parse_args(GenerateImageArgs, {"prompt": "x"}))

    def test_missing_key(self, tmp_path):
        service = ImageService(config=Config(openai_api_key=""), provider=FakeProvider())
        with pytest.raises(ConfigurationError):
            service.generate(parse_args(GenerateImageArgs, {"prompt": "x"}))


@pytest.mark.unit
class TestEdit:
    def test_url_result_not_saved_when_disabled(self, tmp_path, png_bytes):
        provider = FakeProvider(
            UpstreamImage(url="https://img.test/e.png", revised_prompt="bluer", model="m")
        )
        result = _service(tmp_path, provider).edit(
            parse_args(
                EditImageArgs,
                {
                    "source_image": _data_url(png_bytes),
                    "edit_prompt": "make it blue",
                    "save": False,
                },
            )
        )
        assert result.image_url == "https://img.test/e.png"
        assert result.saved_image is None
        assert result.revised_prompt == "bluer"
        assert result.model_used == "m"
        assert (result.original_width, result.original_height) == (8, 8)
        assert result.original_ref.startswith("inline:data:image/png;base64,")

    def test_inline_result_always_saved(self, tmp_path, png_bytes):
        provider = FakeProvider(UpstreamImage(b64_json=_b64(png_bytes)))
        result = _service(tmp_path, provider).edit(
            parse_args(
                EditImageArgs,
                {"source_image": _data_url(png_bytes), "edit_prompt": "x", "save": False},
            )
        )
        assert result.saved_image is not None
        assert result.saved_image.filename.startswith("edited_image_")
        assert result.revised_prompt == "x"

    def test_source_aspect_ratio_sets_size(self, tmp_path, png_bytes, make_image):
        wide = make_image(40, 20, fmt="JPEG")
        provider = FakeProvider(UpstreamImage(b64_json=_b64(png_bytes)))
        result = _service(tmp_path, provider).edit(
            parse_args(
                EditImageArgs,
                {"source_image": f"data:image/jpeg;base64,{_b64(wide)}", "edit_prompt": "x"},
            )
        )
        assert provider.edit_calls[0]["size"] == "1536x1024"
        assert provider.edit_calls[0]["image"].startswith(b"\x89PNG")
        assert (result.original_width, result.original_height) == (40, 20)

    def test_local_source(self, tmp_path, png_bytes):
        source = tmp_path / "in.png"
        source.write_bytes(png_bytes)
        provider = FakeProvider(UpstreamImage(url="https://img.test/e.png"))
        result = _service(tmp_path, provider).edit(
            parse_args(
                EditImageArgs,
                {
                    "source_image": {"type": "local", "value": str(source)},
                    "edit_prompt": "x",
                    "save": False,
                },
            )
        )
        assert provider.edit_calls[0]["image"] == png_bytes
        assert result.original_ref.startswith("local:")

    def test_undecodable_source(self, tmp_path):
        provider = FakeProvider(UpstreamImage(url="u"))
        with pytest.raises(ImageProcessingError):
            _service(tmp_path, provider).edit(
                parse_args(
                    EditImageArgs,
                    {"source_image": _data_url(b"not an image"), "edit_prompt": "x"},
                )
            )
        assert provider.edit_calls == []

    def test_bad_inline_source(self, tmp_path):
        with pytest.raises(InvalidInputError):
            _service(tmp_path, FakeProvider()).edit(
                parse_args(
                    EditImageArgs,
                    {"source_image": {"type": "base64", "value": "@@@"}, "edit_prompt": "x"},
                )
            )

    def test_to_dict(self, tmp_path, png_bytes):
        provider = FakeProvider(UpstreamImage(url="https://img.test/e.png"))
        result = _service(tmp_path, provider).edit(
            parse_args(
                EditImageArgs,
                {"source_image": _data_url(png_bytes), "edit_prompt": "x", "save": False},
            )
        )
        data = result.to_dict()
        assert data["original_image"]["dimensions"] == {"width": 8, "height": 8}
        assert data["edited_image"]["image_url"] == "https://img.test/e.png"
        assert data["edited_image"]["edit_kind"] == "variation"
        assert data["metadata"]["composition_preserved"] is True
        assert "warnings" not in data


@pytest.mark.unit
class TestBatchEdit:
    def test_partial_failure(self, tmp_path, png_bytes):
        provider = FakeProvider(UpstreamImage(b64_json=_b64(png_bytes)))
        args = parse_args(
            BatchEditArgs,
            {
                "images": [
                    _data_url(png_bytes),
                    {"type": "base64", "value": "@@@"},
                    _data_url(png_bytes),
                ],
                "edit_prompt": "make it blue",
            },
        )
        result = _service(tmp_path, provider).batch_edit(args)

        assert (result.total, result.succeeded, result.failed) == (3, 2, 1)
        assert [item.success for item in result.items] == [True, False, True]
        assert result.items[0].saved_image.filename.startswith("batch_1_image_")
        assert result.items[2].saved_image.filename.startswith("batch_3_image_")
        assert "Invalid base64" in result.items[1].error
        assert result.model_used == "gpt-image-1"

    def test_invalid_concurrency_raises(self, tmp_path, png_bytes):
        args = parse_args(
            BatchEditArgs,
            {
                "images": [_data_url(png_bytes)],
                "edit_prompt": "x",
                "batch_settings": {"max_concurrent": 11},
            },
        )
        with pytest.raises(BatchProcessingError):
            _service(tmp_path, FakeProvider()).batch_edit(args)

    def test_save_failure_fails_item(self, tmp_path, png_bytes):
        file_manager = MagicMock()
        file_manager.save.side_effect = FileSystemError("disk full")
        provider = FakeProvider(UpstreamImage(b64_json=_b64(png_bytes)))
        args = parse_args(BatchEditArgs, {"images": [_data_url(png_bytes)], "edit_prompt": "x"})
        result = _service(tmp_path, provider, file_manager=file_manager).batch_edit(args)
        assert result.failed == 1
        assert "disk full" in result.items[0].error
