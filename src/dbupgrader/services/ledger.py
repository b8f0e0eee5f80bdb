"""Upgrade status persistence used for crash detection."""

import os
import tempfile

from dbupgrader.constants import LEDGER_FILE_NAME
from dbupgrader.errors import InvalidLedgerStateError, LedgerWriteError
from dbupgrader.errors_catalog import actionable_error
from dbupgrader.models import UpgradeStatus


class StatusLedger:
    """Persists the upgrade status of one version pair inside its workspace."""

    def __init__(self, upgrade_dir: str, logger):
        self.upgrade_dir = upgrade_dir
        self.status_file = os.path.join(upgrade_dir, LEDGER_FILE_NAME)
        self.logger = logger

    def read(self) -> UpgradeStatus:
        if not os.path.exists(self.status_file):
            return UpgradeStatus.EMPTY

        try:
            with open(self.status_file, "r", encoding="utf-8") as file_obj:
                value = file_obj.read().strip()
        except (OSError, UnicodeDecodeError) as exc:
            raise InvalidLedgerStateError(
                f"Could not read status file '{self.status_file}': {exc}"
            ) from exc

        if value in (UpgradeStatus.STARTED.value, UpgradeStatus.DONE.value):
            return UpgradeStatus(value)

        raise InvalidLedgerStateError(
            actionable_error("invalid_ledger_state", path=self.status_file, value=value)
        )

    def write(self, status: UpgradeStatus):
        if status is UpgradeStatus.EMPTY:
            raise ValueError("The empty status is implied by a missing file and cannot be written.")

        fd = None
        temp_path = None
        try:
            os.makedirs(self.upgrade_dir, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(prefix=".status-", dir=self.upgrade_dir)
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                fd = None
                file_obj.write(status.value)
                file_obj.flush()
                os.fsync(file_obj.fileno())
            os.replace(temp_path, self.status_file)
            temp_path = None
        except OSError as exc:
            raise LedgerWriteError(f"Could not write status file '{self.status_file}': {exc}") from exc
        finally:
            if fd is not None:
                os.close(fd)
            if temp_path and os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass

        self.logger.debug("Upgrade status in %s is now %r", self.upgrade_dir, status.value)


def upgrade_dir_for(data_dir: str, old_version: str, new_version: str) -> str:
    """Returns the scratch workspace of an upgrade, next to the data directory."""
    parent = os.path.dirname(os.path.normpath(data_dir))
    return os.path.join(parent, f".{old_version}-to-{new_version}-upgrade")


def parse_upgrade_dir_name(name: str):
    """Returns ``(old_version, new_version)`` for a workspace name, or ``None``."""
    if not (name.startswith(".") and name.endswith("-upgrade")):
        return None
    old_version, sep, new_version = name[1 : -len("-upgrade")].partition("-to-")
    if not sep or not old_version or not new_version:
        return None
    return old_version, new_version
