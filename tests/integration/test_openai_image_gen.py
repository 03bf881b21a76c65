"""
Integration tests for the OpenAI Images API.

These tests call the real API. They are slow and cost money.
Run rarely and only when you need to verify the live API path.

To run:
  IMAGEMCP_RUN_INTEGRATION_TESTS=1 OPENAI_API_KEY=sk-... pytest -m integration --run-slow
"""

import base64
import io
import os
from pathlib import Path

import pytest
from PIL import Image

from imagemcp.core.config import Config
from imagemcp.core.image_service import ImageService
from imagemcp.core.schemas import EditImageArgs, GenerateImageArgs, parse_args


def _integration_enabled() -> bool:
    return os.getenv("IMAGEMCP_RUN_INTEGRATION_TESTS", "").strip() == "1"


@pytest.mark.integration
@pytest.mark.slow
@pytest.mark.expensive
class TestOpenAIImageGeneration:
    """Real generate and edit calls (requires API key and opt-in env)."""

    @pytest.fixture(autouse=True)
    def _require_opt_in(self) -> None:
        if not _integration_enabled():
            pytest.skip(
                "Integration tests are disabled. "
                "Set IMAGEMCP_RUN_INTEGRATION_TESTS=1 to run (slow, costs money)."
            )
        if not os.getenv("OPENAI_API_KEY", "").strip().startswith("sk-"):
            pytest.skip(
                "OPENAI_API_KEY not set or invalid. "
                "Set it in .env or environment to run integration tests."
            )

    @pytest.fixture
    def service(self, tmp_path: Path) -> ImageService:
        config = Config.from_env()
        config.default_output_dir = str(tmp_path)
        return ImageService(config=config)

    def test_generate_saves_file(self, service: ImageService) -> None:
        args = parse_args(
            GenerateImageArgs,
            {"prompt": "A single red circle on a white background.", "quality": "low"},
        )
        envelope = service.generate(args)

        assert envelope.file_path
        saved = Path(envelope.file_path)
        assert saved.is_file()
        with Image.open(saved) as image:
            assert image.size == (1024, 1024)
        assert envelope.metadata.size_bytes == saved.stat().st_size

    def test_edit_inline_source(self, service: ImageService) -> None:
        buffer = io.BytesIO()
        Image.new("RGB", (256, 256), color=(255, 255, 255)).save(buffer, format="PNG")
        source = "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode()

        result = service.edit(
            parse_args(
                EditImageArgs,
                {
                    "source_image": source,
                    "edit_prompt": "Draw a small blue square in the center.",
                    "quality": "low",
                },
            )
        )

        assert result.saved_image is not None or result.image_url
        assert (result.original_width, result.original_height) == (256, 256)
