"""Actionable error catalog for DBUpgrader."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "version_unknown": {
        "what": "Could not detect the version of the existing data at {path}: {reason}",
        "next": "Check that {path} holds a database cluster and is readable by this process.",
    },
    "invalid_ledger_state": {
        "what": "Upgrade status file {path} contains an unknown value {value!r}.",
        "next": "Inspect the data directory by hand; remove {path} only once it is consistent.",
    },
    "host_path_not_found": {
        "what": "Couldn't find host mountpoint of {path} on container {container_id}.",
        "next": "Bind mount the parent of the data directory from the host (e.g. `-v ~/data:{path}`).",
    },
    "container_identity": {
        "what": "Failed to determine the running container id: {reason}",
        "next": "Pass `--container-id` explicitly or run inside a Docker container.",
    },
    "downgrade_not_supported": {
        "what": "Existing data was written by version {old_version}, newer than {new_version}.",
        "next": "Run a release that ships version {old_version} or newer of the database engine.",
    },
    "confirmation_required": {
        "what": "Data at {path} must be upgraded from {old_version} to {new_version}.",
        "next": "Back up {path}, then rerun with `--auto-upgrade` or set `auto_upgrade: true`.",
    },
    "upgrade_container_failed": {
        "what": "Helper container {name} failed to upgrade the data from {old_version} to {new_version}.",
        "next": "Review the helper output above, then follow the recovery steps printed on next start.",
    },
    "finalization_failed": {
        "what": "Database upgrade failed after the helper container finished.",
        "next": "Review the output above, then follow the recovery steps printed on next start.",
    },
    "interrupted_upgrade": {
        "what": "Interrupted internal database upgrade detected.",
        "next": "Run the commands above on the host, then start the container again.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
