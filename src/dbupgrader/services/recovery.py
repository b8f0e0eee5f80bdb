"""Detection of interrupted upgrades and operator remediation."""

import os
from typing import List

from dbupgrader.errors import InterruptedUpgradeError, UpgraderError
from dbupgrader.errors_catalog import actionable_error
from dbupgrader.models import UpgradeStatus
from dbupgrader.services.ledger import StatusLedger, parse_upgrade_dir_name


class RecoveryGate:
    """Refuses to start when a previous upgrade never reached ``done``.

    A helper container that died halfway may have left the data in any state,
    so resuming automatically is never attempted. The gate prints the shell
    commands that restore the pre-upgrade layout instead.
    """

    def __init__(self, logger, console, host_path_resolver=None):
        self.logger = logger
        self.console = console
        self.host_path_resolver = host_path_resolver

    def check(self, data_dir: str):
        data_dir = os.path.normpath(data_dir)
        parent = os.path.dirname(data_dir)
        if not os.path.isdir(parent):
            return

        for entry in sorted(os.listdir(parent)):
            versions = parse_upgrade_dir_name(entry)
            upgrade_dir = os.path.join(parent, entry)
            if versions is None or not os.path.isdir(upgrade_dir):
                continue

            status = StatusLedger(upgrade_dir, self.logger).read()
            self.logger.debug("Upgrade status of %s: %r", entry, status.value)
            if status is UpgradeStatus.STARTED:
                old_version, new_version = versions
                self._refuse(data_dir, upgrade_dir, old_version, new_version)

    def remediation_commands(
        self,
        host_path: str,
        host_upgrade_dir: str,
        old_version: str,
        new_version: str,
        base_exists: bool,
        old_exists: bool,
        new_exists: bool,
    ) -> List[str]:
        """Returns the commands that restore the pre-upgrade layout.

        The three flags describe which of ``<path>``, ``<path>-<old>`` and
        ``<path>-<new>`` are present on disk.
        """
        aside = f"{host_path}-{new_version}.bak"
        commands = []
        if old_exists:
            # The swap started: <path>-<old> holds the original cluster.
            if base_exists:
                commands.append(f"mv {host_path} {aside}")
            elif new_exists:
                commands.append(f"mv {host_path}-{new_version} {aside}")
            commands.append(f"mv {host_path}-{old_version} {host_path}")
        else:
            commands.append(f"mv {host_path}-{new_version} {aside}")
        commands.append(f"rm -rf {host_upgrade_dir}")
        return commands

    def _refuse(self, data_dir: str, upgrade_dir: str, old_version: str, new_version: str):
        host_parent = self._host_parent(os.path.dirname(data_dir))
        commands = self.remediation_commands(
            host_path=os.path.join(host_parent, os.path.basename(data_dir)),
            host_upgrade_dir=os.path.join(host_parent, os.path.basename(upgrade_dir)),
            old_version=old_version,
            new_version=new_version,
            base_exists=os.path.isdir(data_dir),
            old_exists=os.path.isdir(f"{data_dir}-{old_version}"),
            new_exists=os.path.isdir(f"{data_dir}-{new_version}"),
        )

        script = "\n".join(f"$ {cmd}" for cmd in commands)
        self.console.print(
            "[bold yellow]✱ The internal database upgrade from "
            f"{old_version} to {new_version} was previously interrupted.[/bold yellow]"
        )
        self.console.print(
            "[yellow]✱ To try again, start the container after running these commands (safe):[/yellow]"
        )
        self.console.print(script, markup=False, highlight=False)
        self.logger.error("Interrupted upgrade detected in %s. Recovery commands:\n%s", upgrade_dir, script)

        raise InterruptedUpgradeError(actionable_error("interrupted_upgrade"), commands=commands)

    def _host_parent(self, parent: str) -> str:
        if self.host_path_resolver is None:
            return parent
        try:
            return self.host_path_resolver.resolve(parent)
        except UpgraderError as exc:
            self.logger.warning("Showing container paths, host path is unknown: %s", exc)
            return parent
