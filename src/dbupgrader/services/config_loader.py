"""Configuration loader for DBUpgrader."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from dbupgrader.errors import UpgraderError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "data_dir",
        "expected_version",
        "image_repository",
        "container_data_root",
        "helper_workdir",
        "engine_user",
        "privilege_command",
        "optimize_script",
        "version_file",
        "container_prefix",
        "docker_command",
        "container_id",
        "verbose",
        "log_file",
        "auto_upgrade",
        "runtime_dir",
        "initialize_missing",
        "database_name",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise UpgraderError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise UpgraderError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise UpgraderError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise UpgraderError(f"Unknown configuration keys: {unknown_list}")

        docker_command = parsed.get("docker_command")
        if isinstance(docker_command, str):
            parsed["docker_command"] = docker_command.split()

        return parsed
