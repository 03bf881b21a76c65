"""Unit tests for output directory layout."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from imagemcp.core.types import OrganizeBy
from imagemcp.files.organizer import ensure_directory, resolve_directory
from imagemcp.utils.exceptions import DirectoryError, InvalidOptionError


@pytest.mark.unit
class TestResolveDirectory:
    def test_none_is_base(self, tmp_path):
        assert resolve_directory(tmp_path, OrganizeBy.NONE) == tmp_path

    def test_date(self, tmp_path):
        when = datetime(2025, 3, 9, 23, 59, tzinfo=timezone.utc)
        result = resolve_directory(tmp_path, OrganizeBy.DATE, reference_time=when)
        assert result == tmp_path / "2025-03-09"

    def test_dimension_ratio(self, tmp_path):
        result = resolve_directory(tmp_path, OrganizeBy.DIMENSION_RATIO, aspect_ratio="landscape")
        assert result == tmp_path / "landscape"

    def test_quality(self, tmp_path):
        result = resolve_directory(tmp_path, OrganizeBy.QUALITY, quality="high")
        assert result == tmp_path / "high"

    def test_accepts_plain_value(self):
        assert resolve_directory("out", "none") == Path("out")  # type: ignore[arg-type]

    def test_missing_label(self, tmp_path):
        with pytest.raises(InvalidOptionError):
            resolve_directory(tmp_path, OrganizeBy.DIMENSION_RATIO)
        with pytest.raises(InvalidOptionError):
            resolve_directory(tmp_path, OrganizeBy.QUALITY, quality="")

    def test_label_cannot_escape_base(self, tmp_path):
        with pytest.raises(InvalidOptionError):
            resolve_directory(tmp_path, OrganizeBy.QUALITY, quality="../..")
        result = resolve_directory(tmp_path, OrganizeBy.QUALITY, quality="../high")
        assert result == tmp_path / "high"

    def test_unknown_mode(self, tmp_path):
        with pytest.raises(InvalidOptionError):
            resolve_directory(tmp_path, "by-color")  # type: ignore[arg-type]

    def test_does_not_create(self, tmp_path):
        resolve_directory(tmp_path, OrganizeBy.QUALITY, quality="low")
        assert not (tmp_path / "low").exists()


@pytest.mark.unit
class TestEnsureDirectory:
    def test_creates_nested(self, tmp_path):
        target = tmp_path / "a" / "b" / "c"
        assert ensure_directory(target) == target
        assert target.is_dir()

    def test_existing_is_fine(self, tmp_path):
        assert ensure_directory(tmp_path) == tmp_path

    def test_empty_path(self):
        with pytest.raises(DirectoryError):
            ensure_directory("  ")

    def test_failure_carries_path(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(DirectoryError) as exc_info:
            ensure_directory(blocker / "sub")
        assert exc_info.value.path == str(blocker / "sub")
        assert exc_info.value.code == "DIRECTORY_ERROR"
