import pytest

from dbupgrader.errors import UpgraderError
from dbupgrader.services.filesystem import FileSystemService


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None

    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


def test_rename_moves_directory(tmp_path):
    source = tmp_path / "postgresql"
    source.mkdir()

    FileSystemService(DummyLogger(), DummyConsole()).rename(str(source), str(tmp_path / "postgresql-9.6"))

    assert (tmp_path / "postgresql-9.6").is_dir()
    assert not source.exists()


def test_rename_refuses_to_overwrite(tmp_path):
    (tmp_path / "postgresql").mkdir()
    (tmp_path / "postgresql-9.6").mkdir()

    with pytest.raises(UpgraderError, match="already exists"):
        FileSystemService(DummyLogger(), DummyConsole()).rename(
            str(tmp_path / "postgresql"), str(tmp_path / "postgresql-9.6")
        )


def test_rename_missing_source_raises(tmp_path):
    with pytest.raises(UpgraderError, match="Failed to rename"):
        FileSystemService(DummyLogger(), DummyConsole()).rename(
            str(tmp_path / "postgresql-11"), str(tmp_path / "postgresql")
        )
