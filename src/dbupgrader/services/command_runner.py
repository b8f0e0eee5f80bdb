"""Subprocess execution services for DBUpgrader."""

import subprocess
from typing import List, Optional, Sequence

from dbupgrader.errors import UpgraderError


class CommandRunner:
    """Runs external commands with consistent error handling."""

    def __init__(self, logger, default_timeout: Optional[float] = None, subprocess_module=subprocess):
        self.logger = logger
        self.default_timeout = default_timeout
        self.subprocess = subprocess_module

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        timeout: Optional[float] = None,
        cwd: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        cmd_str = " ".join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        effective_timeout = timeout if timeout is not None else self.default_timeout

        try:
            result = self.subprocess.run(
                cmd,
                text=True,
                capture_output=capture_output,
                timeout=effective_timeout,
                cwd=cwd,
            )
        except FileNotFoundError as exc:
            raise UpgraderError(
                f"Required command not found: {cmd[0]}. Please install it and try again."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise UpgraderError(f"Command timed out after {effective_timeout}s: {cmd_str}") from exc
        except OSError as exc:
            raise UpgraderError(f"Failed to execute command: {cmd_str}. {exc}") from exc

        if capture_output and result.stdout:
            self.logger.debug("Command output: %s", result.stdout.strip())

        if result.returncode == 0:
            return result

        stderr = (result.stderr or "").strip() if capture_output else ""
        message = f"Command failed ({result.returncode}): {cmd_str}"
        if stderr:
            message = f"{message}\n{stderr}"

        if check:
            raise UpgraderError(message)

        self.logger.warning(message)
        return result

    def stream(self, cmd: List[str], sink, check: bool = True, cwd: Optional[str] = None) -> int:
        """Runs a command, writing its merged stdout/stderr to ``sink`` line by line."""
        cmd_str = " ".join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        try:
            process = self.subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                bufsize=1,
                cwd=cwd,
            )
        except FileNotFoundError as exc:
            raise UpgraderError(
                f"Required command not found: {cmd[0]}. Please install it and try again."
            ) from exc
        except OSError as exc:
            raise UpgraderError(f"Failed to execute command: {cmd_str}. {exc}") from exc

        try:
            if process.stdout:
                for line in process.stdout:
                    sink.write(line)
        finally:
            if process.stdout:
                process.stdout.close()
            process.wait()

        if process.returncode != 0 and check:
            raise UpgraderError(f"Command failed ({process.returncode}): {cmd_str}")
        return process.returncode


class PrivilegedExecutor:
    """Runs command sequences that need elevated or alternate principals.

    Output of every command is merged into one sink and the sequence stops at
    the first non-zero exit.
    """

    def __init__(self, command_runner: CommandRunner, privilege_command: str = "su-exec"):
        self.command_runner = command_runner
        self.privilege_command = privilege_command

    def as_user(self, user: str, cmd: Sequence[str]) -> List[str]:
        return [self.privilege_command, user, *cmd]

    def run(self, commands: Sequence[Sequence[str]], sink, cwd: Optional[str] = None):
        for cmd in commands:
            self.command_runner.stream(list(cmd), sink, check=True, cwd=cwd)
