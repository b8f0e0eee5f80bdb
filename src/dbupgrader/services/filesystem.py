"""Filesystem helpers for DBUpgrader."""

import logging
import os
import shutil

from rich.console import Console

from dbupgrader.errors import UpgraderError


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def ensure_dir(self, path: str, mode: int):
        try:
            os.makedirs(path, mode=mode, exist_ok=True)
        except OSError as exc:
            raise UpgraderError(f"Failed to create directory {path}: {exc}") from exc

    def rename(self, source: str, destination: str):
        if os.path.exists(destination):
            raise UpgraderError(f"Refusing to rename {source}: {destination} already exists.")
        try:
            os.rename(source, destination)
        except OSError as exc:
            raise UpgraderError(f"Failed to rename {source} to {destination}: {exc}") from exc
        self.logger.info("Renamed %s to %s", source, destination)

    def cleanup_dir(self, path: str):
        if os.path.exists(path):
            try:
                shutil.rmtree(path)
                self.logger.debug("Removed directory: %s", path)
            except Exception as exc:
                message = f"Warning: Could not remove {path}: {exc}"
                self.console.print(f"[yellow]{message}[/yellow]")
                self.logger.warning(message)
