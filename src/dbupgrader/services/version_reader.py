"""On-disk version marker detection."""

import os

from packaging import version

from dbupgrader.constants import DEFAULT_VERSION_FILE
from dbupgrader.errors import VersionUnknownError
from dbupgrader.errors_catalog import actionable_error


class VersionReader:
    """Reads the engine version that wrote a data directory."""

    def __init__(self, logger, version_file: str = DEFAULT_VERSION_FILE):
        self.logger = logger
        self.version_file = version_file

    def read(self, data_dir: str) -> str:
        marker = os.path.join(data_dir, self.version_file)
        try:
            with open(marker, "r", encoding="utf-8") as file_obj:
                value = file_obj.read().strip()
        except (OSError, UnicodeDecodeError) as exc:
            raise VersionUnknownError(
                actionable_error("version_unknown", path=data_dir, reason=str(exc))
            ) from exc

        if not value:
            raise VersionUnknownError(
                actionable_error("version_unknown", path=data_dir, reason=f"{marker} is empty")
            )

        self.logger.debug("Detected on-disk version %s in %s", value, data_dir)
        return value

    @staticmethod
    def needs_upgrade(on_disk: str, expected: str) -> bool:
        return on_disk.strip() != expected.strip()

    @staticmethod
    def is_downgrade(on_disk: str, expected: str) -> bool:
        try:
            return version.parse(on_disk.strip()) > version.parse(expected.strip())
        except version.InvalidVersion:
            return False
