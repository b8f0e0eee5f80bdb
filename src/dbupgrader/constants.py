"""Shared constants for DBUpgrader."""

DIR_MODE = 0o755

DEFAULT_EXPECTED_VERSION = "11"
DEFAULT_DATA_DIR_NAME = "postgresql"
DEFAULT_VERSION_FILE = "PG_VERSION"
DEFAULT_IMAGE_REPOSITORY = "tianon/postgres-upgrade"
DEFAULT_CONTAINER_DATA_ROOT = "/var/lib/postgresql"
DEFAULT_HELPER_WORKDIR = "/tmp/upgrade"
DEFAULT_ENGINE_USER = "postgres"
DEFAULT_PRIVILEGE_COMMAND = "su-exec"
DEFAULT_OPTIMIZE_SCRIPT = "/postgres-optimize.sh"
DEFAULT_CONTAINER_PREFIX = "dbupgrader"

LEDGER_FILE_NAME = "status"
