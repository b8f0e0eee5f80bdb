"""Cluster preparation that runs before the version check."""

from typing import List, Optional

from dbupgrader.errors import UpgraderError
from dbupgrader.services.output import OutputSink


class ClusterBootstrapService:
    """Creates a fresh cluster or fixes ownership of an existing one."""

    def __init__(self, logger, console, executor, filesystem_service, engine_user: str, verbose: bool = False):
        self.logger = logger
        self.console = console
        self.executor = executor
        self.filesystem_service = filesystem_service
        self.engine_user = engine_user
        self.verbose = verbose

    def _run(self, commands: List[List[str]], failure: str):
        sink = OutputSink(self.console, verbose=self.verbose)
        try:
            self.executor.run(commands, sink)
        except UpgraderError:
            sink.dump(self.logger, failure)
            raise

    def ensure_runtime_dir(self, path: str):
        """The engine needs a writable directory for its socket and lock files."""
        self._run(
            [
                ["mkdir", "-p", path],
                ["chown", "-R", self.engine_user, path],
            ],
            "Setting up the database runtime directory failed",
        )

    def fix_ownership(self, data_dir: str):
        # The owner of a mounted volume may change between restarts.
        self._run(
            [["chown", "-R", self.engine_user, data_dir]],
            "Adjusting filesystem owners for the database failed",
        )

    def initialize_cluster(self, data_dir: str, database: Optional[str] = None):
        self.console.print("[blue]✱ Initializing the internal database... (may take 15-20 seconds)[/blue]")
        self.logger.info("Setting up the database cluster at %s", data_dir)

        as_user = self.executor.as_user
        server_opts = ["-o", "-c listen_addresses=127.0.0.1", "-l", "/tmp/dbupgrader-init.log", "-w"]
        commands = [
            ["mkdir", "-p", data_dir],
            ["chown", self.engine_user, data_dir],
            # --nosync skips fsync on the initial, empty cluster.
            as_user(self.engine_user, ["initdb", "-D", data_dir, "--nosync"]),
        ]
        if database:
            commands += [
                as_user(self.engine_user, ["pg_ctl", "-D", data_dir, *server_opts, "start"]),
                as_user(self.engine_user, ["createdb", database]),
                as_user(self.engine_user, ["pg_ctl", "-D", data_dir, "-m", "fast", *server_opts[2:], "stop"]),
            ]

        try:
            self._run(commands, "Setting up the database failed")
        except UpgraderError:
            self.filesystem_service.cleanup_dir(data_dir)
            raise

        self.console.print("[green]Database cluster initialized.[/green]")
