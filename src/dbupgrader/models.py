"""Shared domain models for DBUpgrader."""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .constants import (
    DEFAULT_CONTAINER_DATA_ROOT,
    DEFAULT_CONTAINER_PREFIX,
    DEFAULT_ENGINE_USER,
    DEFAULT_EXPECTED_VERSION,
    DEFAULT_HELPER_WORKDIR,
    DEFAULT_IMAGE_REPOSITORY,
    DEFAULT_OPTIMIZE_SCRIPT,
    DEFAULT_PRIVILEGE_COMMAND,
    DEFAULT_VERSION_FILE,
)


class UpgradeStatus(Enum):
    """Persisted progress of an upgrade for one version pair."""

    EMPTY = ""
    STARTED = "started"
    DONE = "done"


class RunnerPhase(Enum):
    IDLE = "idle"
    PULLING = "pulling"
    RUNNING = "running"
    LOGGING = "logging"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class MountBinding:
    """A container path and the host path it is backed by."""

    container_path: str
    host_path: str
    kind: str = "bind"


@dataclass(frozen=True)
class ContainerSpec:
    name: str
    image: str
    working_dir: str
    binds: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class UpgradeJob:
    """Paths and identifiers for a single old -> new upgrade attempt."""

    old_version: str
    new_version: str
    data_dir: str
    host_data_parent_dir: str
    image: str
    upgrade_dir: str
    container_name: str

    @property
    def host_data_dir(self) -> str:
        return os.path.join(self.host_data_parent_dir, os.path.basename(self.data_dir))

    @property
    def host_upgrade_dir(self) -> str:
        return os.path.join(self.host_data_parent_dir, os.path.basename(self.upgrade_dir))

    @property
    def new_data_dir(self) -> str:
        return f"{self.data_dir}-{self.new_version}"

    @property
    def backup_data_dir(self) -> str:
        return f"{self.data_dir}-{self.old_version}"


@dataclass(frozen=True)
class UpgradeConfig:
    """Runtime settings threaded into the orchestrator."""

    data_dir: str
    expected_version: str = DEFAULT_EXPECTED_VERSION
    image_repository: str = DEFAULT_IMAGE_REPOSITORY
    container_data_root: str = DEFAULT_CONTAINER_DATA_ROOT
    helper_workdir: str = DEFAULT_HELPER_WORKDIR
    engine_user: str = DEFAULT_ENGINE_USER
    privilege_command: str = DEFAULT_PRIVILEGE_COMMAND
    optimize_script: str = DEFAULT_OPTIMIZE_SCRIPT
    version_file: str = DEFAULT_VERSION_FILE
    container_prefix: str = DEFAULT_CONTAINER_PREFIX
    docker_command: List[str] = field(default_factory=lambda: ["docker"])
    container_id: Optional[str] = None
    verbose: bool = False
    auto_upgrade: bool = True
    runtime_dir: Optional[str] = None
    initialize_missing: bool = False
    database_name: Optional[str] = None

    def helper_image(self, old_version: str, new_version: str) -> str:
        return f"{self.image_repository}:{old_version}-to-{new_version}"

    def container_data_path(self, version: str) -> str:
        return f"{self.container_data_root.rstrip('/')}/{version}/data"
