"""
Pytest configuration: default runs most tests; use --run-slow to include slow tests.
"""

import io

import pytest
from PIL import Image


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests (live OpenAI Images API). Default: skip them.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-slow", False):
        return
    skip_slow = pytest.mark.skip(reason="Slow test; run with --run-slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


def make_image_bytes(
    width: int = 8, height: int = 8, fmt: str = "PNG", mode: str = "RGB"
) -> bytes:
    """Encode a solid-color image of the given size and format."""
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color=0).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes(fmt="JPEG")


@pytest.fixture
def make_image():
    """Factory fixture: make_image(width, height, fmt, mode) -> encoded bytes."""
    return make_image_bytes
