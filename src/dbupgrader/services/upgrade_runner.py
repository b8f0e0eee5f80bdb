"""Helper-container driven major version upgrade."""

import os
import time
from typing import Callable, Optional

from dbupgrader.constants import DIR_MODE
from dbupgrader.errors import FinalizationError, UpgradeContainerFailedError, UpgraderError
from dbupgrader.errors_catalog import actionable_error
from dbupgrader.models import ContainerSpec, RunnerPhase, UpgradeConfig, UpgradeJob, UpgradeStatus
from dbupgrader.services.ledger import StatusLedger, upgrade_dir_for
from dbupgrader.services.output import OutputSink


class UpgradeRunner:
    """Upgrades a data directory in place with a sibling helper container.

    The helper image runs ``pg_upgrade`` between two bind-mounted data
    directories and leaves its generated scripts in a shared workspace. Once it
    exits cleanly the directories are swapped and the optimization script is
    run from that workspace. The status ledger is marked ``started`` before the
    first container is created and ``done`` only after the swap succeeded.
    """

    def __init__(
        self,
        logger,
        console,
        config: UpgradeConfig,
        docker_runtime,
        host_path_resolver,
        executor,
        filesystem_service,
        clock: Callable[[], float] = time.time,
    ):
        self.logger = logger
        self.console = console
        self.config = config
        self.docker_runtime = docker_runtime
        self.host_path_resolver = host_path_resolver
        self.executor = executor
        self.filesystem_service = filesystem_service
        self.clock = clock
        self.phase = RunnerPhase.IDLE

    def _transition(self, phase: RunnerPhase):
        self.logger.debug("Upgrade phase: %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    def prepare_job(self, old_version: str, new_version: str) -> UpgradeJob:
        data_dir = os.path.normpath(self.config.data_dir)
        host_parent = self.host_path_resolver.resolve(os.path.dirname(data_dir))
        upgrade_dir = upgrade_dir_for(data_dir, old_version, new_version)
        self.filesystem_service.ensure_dir(upgrade_dir, DIR_MODE)

        return UpgradeJob(
            old_version=old_version,
            new_version=new_version,
            data_dir=data_dir,
            host_data_parent_dir=host_parent,
            image=self.config.helper_image(old_version, new_version),
            upgrade_dir=upgrade_dir,
            container_name=f"{self.config.container_prefix}-upgrade-{int(self.clock())}",
        )

    def build_container_spec(self, job: UpgradeJob) -> ContainerSpec:
        workdir = self.config.helper_workdir
        return ContainerSpec(
            name=job.container_name,
            image=job.image,
            working_dir=workdir,
            binds=[
                # pg_upgrade leaves its *.sql and *.sh scripts here for the optimization step.
                f"{job.host_upgrade_dir}:{workdir}",
                f"{job.host_data_dir}:{self.config.container_data_path(job.old_version)}",
                f"{job.host_data_dir}-{job.new_version}:{self.config.container_data_path(job.new_version)}",
            ],
        )

    def run(self, old_version: str, new_version: str) -> Optional[UpgradeJob]:
        if old_version == new_version:
            self.logger.debug("Data is already at version %s, nothing to upgrade.", new_version)
            return None

        sink = OutputSink(self.console, verbose=self.config.verbose)
        self.phase = RunnerPhase.IDLE

        try:
            self.docker_runtime.validate_environment()
            job = self.prepare_job(old_version, new_version)
            ledger = StatusLedger(job.upgrade_dir, self.logger)
            ledger.write(UpgradeStatus.STARTED)

            self.console.print(
                "[bold yellow]✱ Upgrading the internal database from "
                f"{old_version} to {new_version}. Please don't interrupt this operation.[/bold yellow]"
            )
            self.logger.info("Upgrading %s from %s to %s", job.data_dir, old_version, new_version)

            self._transition(RunnerPhase.PULLING)
            self.docker_runtime.pull_image(job.image, sink)

            container_id = self.docker_runtime.create_container(self.build_container_spec(job))
            self.docker_runtime.start_container(container_id)
            self._transition(RunnerPhase.RUNNING)
            self._wait_for_helper(job, container_id, sink)

            self.finalize(job, sink)

            ledger.write(UpgradeStatus.DONE)
            self._transition(RunnerPhase.DONE)
        except BaseException:
            failed_phase = self.phase
            self._transition(RunnerPhase.FAILED)
            self.logger.error("Database upgrade failed during the %s phase.", failed_phase.value)
            raise

        self.console.print(f"[green]Database upgraded to {new_version}.[/green]")
        return job

    def _wait_for_helper(self, job: UpgradeJob, container_id: str, sink):
        wait_error: Optional[UpgraderError] = None
        exit_code = None
        try:
            exit_code = self.docker_runtime.wait_container(container_id)
        except UpgraderError as exc:
            wait_error = exc

        self._transition(RunnerPhase.LOGGING)
        failed = wait_error is not None or exit_code != 0
        try:
            self.docker_runtime.fetch_logs(container_id, sink)
        except UpgraderError as exc:
            if not failed:
                raise
            self.logger.warning("Could not retrieve helper container logs: %s", exc)
        finally:
            self.docker_runtime.remove_container(container_id)

        if not failed:
            return

        if wait_error is not None:
            self.logger.error("Waiting for %s failed: %s", job.container_name, wait_error)
        else:
            self.logger.error("Helper container %s exited with code %s", job.container_name, exit_code)
        sink.dump(self.logger, "Helper container output")
        raise UpgradeContainerFailedError(
            actionable_error(
                "upgrade_container_failed",
                name=job.container_name,
                old_version=job.old_version,
                new_version=job.new_version,
            ),
            output=sink.getvalue(),
        ) from wait_error

    def finalize(self, job: UpgradeJob, sink):
        """Swaps the data directories and optimizes the upgraded cluster."""
        self._transition(RunnerPhase.FINALIZING)
        user = self.config.engine_user
        try:
            self.filesystem_service.rename(job.data_dir, job.backup_data_dir)
            self.filesystem_service.rename(job.new_data_dir, job.data_dir)
            self.executor.run(
                [
                    ["chown", "-R", user, job.data_dir],
                    self.executor.as_user(user, [self.config.optimize_script, job.data_dir]),
                ],
                sink,
                cwd=job.upgrade_dir,
            )
        except UpgraderError as exc:
            self.logger.error("%s", exc)
            sink.dump(self.logger, "Upgrade output")
            raise FinalizationError(actionable_error("finalization_failed"), output=sink.getvalue()) from exc
