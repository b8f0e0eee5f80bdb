"""Docker runtime services for DBUpgrader."""

import json
from typing import List, Optional

from dbupgrader.errors import UpgraderError
from dbupgrader.models import ContainerSpec, MountBinding


class DockerRuntimeService:
    """Drives the subset of the Docker CLI the upgrade needs.

    Every call blocks until Docker answers and none of them is retried.
    """

    def __init__(self, logger, console, command_runner, docker_command: Optional[List[str]] = None):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner
        self.docker_command = list(docker_command or ["docker"])

    def _cmd(self, *args: str) -> List[str]:
        return self.docker_command + list(args)

    def validate_environment(self):
        self.console.print("[blue]Validating Docker environment...[/blue]")
        self.command_runner.run(self._cmd("version"), capture_output=True)
        self.console.print("[green]Docker is available.[/green]")

    def pull_image(self, image: str, sink):
        self.logger.info("Pulling %s", image)
        try:
            self.command_runner.stream(self._cmd("pull", image), sink)
        except UpgraderError as exc:
            raise UpgraderError(f"Failed to pull {image!r}: {exc}") from exc

    def create_container(self, spec: ContainerSpec) -> str:
        cmd = self._cmd("create", "--name", spec.name, "--workdir", spec.working_dir)
        for bind in spec.binds:
            cmd += ["--volume", bind]
        cmd.append(spec.image)

        try:
            result = self.command_runner.run(cmd, capture_output=True)
        except UpgraderError as exc:
            raise UpgraderError(f"Failed to create {spec.name!r}: {exc}") from exc

        container_id = (result.stdout or "").strip().splitlines()
        if not container_id:
            raise UpgraderError(f"Docker did not report an id for {spec.name!r}.")
        return container_id[-1].strip()

    def start_container(self, container_id: str):
        try:
            self.command_runner.run(self._cmd("start", container_id), capture_output=True)
        except UpgraderError as exc:
            raise UpgraderError(f"Failed to start {container_id!r}: {exc}") from exc

    def wait_container(self, container_id: str) -> int:
        """Blocks until the container is no longer running and returns its exit code."""
        result = self.command_runner.run(self._cmd("wait", container_id), capture_output=True)
        lines = (result.stdout or "").strip().splitlines()
        try:
            return int(lines[-1].strip())
        except (IndexError, ValueError) as exc:
            raise UpgraderError(f"Invalid exit code from docker wait: {result.stdout!r}") from exc

    def fetch_logs(self, container_id: str, sink):
        try:
            self.command_runner.stream(self._cmd("logs", container_id), sink)
        except UpgraderError as exc:
            raise UpgraderError(f"Failed to retrieve {container_id!r} logs: {exc}") from exc

    def inspect_container(self, container_id: str) -> List[MountBinding]:
        try:
            result = self.command_runner.run(
                self._cmd("inspect", "--format", "{{json .}}", container_id),
                capture_output=True,
            )
            data = json.loads(result.stdout)
        except (UpgraderError, ValueError) as exc:
            raise UpgraderError(f"Failed to inspect container {container_id!r}: {exc}") from exc

        if isinstance(data, list):
            data = data[0] if data else {}
        return self.parse_bindings(data)

    @staticmethod
    def parse_bindings(data: dict) -> List[MountBinding]:
        """Returns configured binds first, then the runtime's mounts list."""
        bindings: List[MountBinding] = []

        for bind in (data.get("HostConfig") or {}).get("Binds") or []:
            parts = bind.split(":")
            if len(parts) >= 2:
                bindings.append(MountBinding(container_path=parts[1], host_path=parts[0], kind="bind"))

        for mount in data.get("Mounts") or []:
            destination = mount.get("Destination")
            source = mount.get("Source")
            if destination and source:
                bindings.append(MountBinding(container_path=destination, host_path=source, kind="mount"))

        return bindings

    def remove_container(self, container_id: str):
        self.logger.debug("Removing helper container %s", container_id)
        self.command_runner.run(
            self._cmd("rm", "-f", container_id),
            check=False,
            capture_output=True,
        )
