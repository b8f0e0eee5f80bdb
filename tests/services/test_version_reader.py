import pytest

from dbupgrader.errors import VersionUnknownError
from dbupgrader.services.version_reader import VersionReader


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None


def test_read_returns_trimmed_marker(tmp_path):
    (tmp_path / "PG_VERSION").write_text("9.6\n", encoding="utf-8")

    assert VersionReader(logger=DummyLogger()).read(str(tmp_path)) == "9.6"


def test_read_raises_when_marker_missing(tmp_path):
    with pytest.raises(VersionUnknownError, match="Could not detect the version"):
        VersionReader(logger=DummyLogger()).read(str(tmp_path))


def test_read_raises_when_marker_empty(tmp_path):
    (tmp_path / "PG_VERSION").write_text("  \n", encoding="utf-8")

    with pytest.raises(VersionUnknownError, match="is empty"):
        VersionReader(logger=DummyLogger()).read(str(tmp_path))


def test_custom_version_file_name(tmp_path):
    (tmp_path / "VERSION").write_text("12", encoding="utf-8")

    assert VersionReader(logger=DummyLogger(), version_file="VERSION").read(str(tmp_path)) == "12"


def test_needs_upgrade_uses_exact_string_equality():
    assert VersionReader.needs_upgrade("11", " 11 ") is False
    assert VersionReader.needs_upgrade("11.0", "11") is True
    assert VersionReader.needs_upgrade("9.6", "11") is True


def test_is_downgrade_only_for_newer_on_disk_versions():
    assert VersionReader.is_downgrade("12", "11") is True
    assert VersionReader.is_downgrade("9.6", "11") is False
    assert VersionReader.is_downgrade("not-a-version", "11") is False
