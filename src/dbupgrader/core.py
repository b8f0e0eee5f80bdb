import logging
import os
import subprocess
from typing import Optional

from rich.console import Console
from rich.markup import escape

from .errors import UpgradeConfirmationRequiredError, UpgraderError
from .errors_catalog import actionable_error
from .models import UpgradeConfig, UpgradeJob
from .services.bootstrap import ClusterBootstrapService
from .services.command_runner import CommandRunner, PrivilegedExecutor
from .services.docker_runtime import DockerRuntimeService
from .services.environment import CgroupContainerIdentity, StaticContainerIdentity
from .services.filesystem import FileSystemService
from .services.host_path import HostPathResolver
from .services.recovery import RecoveryGate
from .services.upgrade_runner import UpgradeRunner
from .services.version_reader import VersionReader

console = Console()
logger = logging.getLogger("dbupgrader")


class DatabaseUpgrader:
    """Prepares the database data directory before the service starts.

    A non-zero exit code from :meth:`run` means the caller must not start
    serving traffic.
    """

    def __init__(
        self,
        config: UpgradeConfig,
        docker_runtime_service=None,
        executor=None,
        identity=None,
    ):
        self.config = config
        self.data_dir = os.path.normpath(config.data_dir)

        self.command_runner = CommandRunner(logger=logger, subprocess_module=subprocess)
        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.executor = executor or PrivilegedExecutor(
            self.command_runner,
            privilege_command=config.privilege_command,
        )
        self.docker_runtime_service = docker_runtime_service or DockerRuntimeService(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
            docker_command=config.docker_command,
        )
        if identity is None:
            if config.container_id:
                identity = StaticContainerIdentity(config.container_id)
            else:
                identity = CgroupContainerIdentity()
        self.host_path_resolver = HostPathResolver(
            logger=logger,
            docker_runtime=self.docker_runtime_service,
            identity=identity,
        )
        self.version_reader = VersionReader(logger=logger, version_file=config.version_file)
        self.recovery_gate = RecoveryGate(
            logger=logger,
            console=console,
            host_path_resolver=self.host_path_resolver,
        )
        self.bootstrap_service = ClusterBootstrapService(
            logger=logger,
            console=console,
            executor=self.executor,
            filesystem_service=self.filesystem_service,
            engine_user=config.engine_user,
            verbose=config.verbose,
        )
        self.upgrade_runner = UpgradeRunner(
            logger=logger,
            console=console,
            config=config,
            docker_runtime=self.docker_runtime_service,
            host_path_resolver=self.host_path_resolver,
            executor=self.executor,
            filesystem_service=self.filesystem_service,
        )

    def prepare_cluster(self) -> bool:
        """Returns True when a fresh cluster was created and no upgrade applies."""
        if self.config.runtime_dir:
            self.bootstrap_service.ensure_runtime_dir(self.config.runtime_dir)

        if not os.path.exists(self.data_dir):
            if not self.config.initialize_missing:
                return False
            self.bootstrap_service.initialize_cluster(self.data_dir, self.config.database_name)
            return True

        self.bootstrap_service.fix_ownership(self.data_dir)
        return False

    def maybe_upgrade(self) -> Optional[UpgradeJob]:
        old_version = self.version_reader.read(self.data_dir)
        new_version = self.config.expected_version.strip()

        if not self.version_reader.needs_upgrade(old_version, new_version):
            logger.info("Database data is at version %s, no upgrade needed.", new_version)
            return None

        if self.version_reader.is_downgrade(old_version, new_version):
            raise UpgraderError(
                actionable_error(
                    "downgrade_not_supported",
                    old_version=old_version,
                    new_version=new_version,
                )
            )

        if not self.config.auto_upgrade:
            raise UpgradeConfirmationRequiredError(
                actionable_error(
                    "confirmation_required",
                    path=self.data_dir,
                    old_version=old_version,
                    new_version=new_version,
                )
            )

        return self.upgrade_runner.run(old_version, new_version)

    def run(self) -> int:
        try:
            logger.info("Starting DBUpgrader for %s", self.data_dir)

            # Nothing may touch the data directory before interrupted upgrades are ruled out.
            self.recovery_gate.check(self.data_dir)

            if self.prepare_cluster():
                return 0

            self.maybe_upgrade()
            return 0

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1
        except UpgraderError as exc:
            console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
            logger.error(str(exc))
            return 1
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {escape(str(exc))}")
            logger.exception("Unexpected error")
            return 1
