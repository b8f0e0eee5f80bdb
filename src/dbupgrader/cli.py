import logging
import os

import click
from rich.logging import RichHandler

from .constants import (
    DEFAULT_CONTAINER_DATA_ROOT,
    DEFAULT_CONTAINER_PREFIX,
    DEFAULT_DATA_DIR_NAME,
    DEFAULT_ENGINE_USER,
    DEFAULT_EXPECTED_VERSION,
    DEFAULT_HELPER_WORKDIR,
    DEFAULT_IMAGE_REPOSITORY,
    DEFAULT_OPTIMIZE_SCRIPT,
    DEFAULT_PRIVILEGE_COMMAND,
    DEFAULT_VERSION_FILE,
)
from .core import DatabaseUpgrader, UpgraderError
from .models import UpgradeConfig
from .services.config_loader import ConfigLoader


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.option(
    "--data-dir",
    required=False,
    type=click.Path(),
    help="Database data directory. Defaults to $DATA_DIR/postgresql.",
)
@click.option(
    "--expected-version",
    required=False,
    envvar="PG_VERSION",
    help=f"Engine version the service runs (env: PG_VERSION, default: {DEFAULT_EXPECTED_VERSION}).",
)
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help="Path to a YAML configuration file. Defaults to .dbupgrader.yml if present.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging and live helper output")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.option(
    "--image-repository",
    required=False,
    help=f"Repository of the helper images, tagged <old>-to-<new> (default: {DEFAULT_IMAGE_REPOSITORY}).",
)
@click.option(
    "--container-data-root",
    required=False,
    help=f"Root of the versioned data directories inside the helper image (default: {DEFAULT_CONTAINER_DATA_ROOT}).",
)
@click.option(
    "--helper-workdir",
    required=False,
    help=f"Working directory of the helper container (default: {DEFAULT_HELPER_WORKDIR}).",
)
@click.option("--engine-user", required=False, help=f"User owning the data files (default: {DEFAULT_ENGINE_USER}).")
@click.option(
    "--privilege-command",
    required=False,
    help=f"Command used to run steps as the engine user (default: {DEFAULT_PRIVILEGE_COMMAND}).",
)
@click.option(
    "--optimize-script",
    required=False,
    help=f"Script run against the upgraded cluster (default: {DEFAULT_OPTIMIZE_SCRIPT}).",
)
@click.option(
    "--container-id",
    required=False,
    help="Id of the container this runs in. Detected from /proc/self/cgroup when omitted.",
)
@click.option(
    "--runtime-dir",
    required=False,
    type=click.Path(),
    help="Socket directory to create and hand over to the engine user.",
)
@click.option(
    "--initialize-missing",
    is_flag=True,
    default=None,
    help="Initialize a new cluster when the data directory does not exist.",
)
@click.option("--database-name", required=False, help="Database to create when initializing a new cluster.")
@click.option(
    "--auto-upgrade/--no-auto-upgrade",
    default=None,
    help="Upgrade unattended when the data was written by an older version (default: on).",
)
def main(
    data_dir,
    expected_version,
    config,
    verbose,
    log_file,
    image_repository,
    container_data_root,
    helper_workdir,
    engine_user,
    privilege_command,
    optimize_script,
    container_id,
    runtime_dir,
    initialize_missing,
    database_name,
    auto_upgrade,
):
    """Upgrade the database data directory before the service starts."""
    logger = logging.getLogger("dbupgrader")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), ".dbupgrader.yml")
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except UpgraderError as exc:
        raise click.ClickException(str(exc)) from exc

    data_dir = _resolve_option(data_dir, config_values, "data_dir")
    if not data_dir and os.environ.get("DATA_DIR"):
        data_dir = os.path.join(os.environ["DATA_DIR"], DEFAULT_DATA_DIR_NAME)
    if not data_dir:
        raise click.ClickException(
            "Missing required option '--data-dir' (or provide it in config or as $DATA_DIR)."
        )

    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    upgrade_config = UpgradeConfig(
        data_dir=str(data_dir),
        expected_version=str(
            _resolve_option(expected_version, config_values, "expected_version", DEFAULT_EXPECTED_VERSION)
        ).strip()
        or DEFAULT_EXPECTED_VERSION,
        image_repository=_resolve_option(
            image_repository, config_values, "image_repository", DEFAULT_IMAGE_REPOSITORY
        ),
        container_data_root=_resolve_option(
            container_data_root, config_values, "container_data_root", DEFAULT_CONTAINER_DATA_ROOT
        ),
        helper_workdir=_resolve_option(helper_workdir, config_values, "helper_workdir", DEFAULT_HELPER_WORKDIR),
        engine_user=_resolve_option(engine_user, config_values, "engine_user", DEFAULT_ENGINE_USER),
        privilege_command=_resolve_option(
            privilege_command, config_values, "privilege_command", DEFAULT_PRIVILEGE_COMMAND
        ),
        optimize_script=_resolve_option(
            optimize_script, config_values, "optimize_script", DEFAULT_OPTIMIZE_SCRIPT
        ),
        version_file=config_values.get("version_file", DEFAULT_VERSION_FILE),
        container_prefix=config_values.get("container_prefix", DEFAULT_CONTAINER_PREFIX),
        docker_command=config_values.get("docker_command") or ["docker"],
        container_id=_resolve_option(container_id, config_values, "container_id"),
        verbose=verbose,
        auto_upgrade=bool(_resolve_option(auto_upgrade, config_values, "auto_upgrade", default=True)),
        runtime_dir=_resolve_option(runtime_dir, config_values, "runtime_dir"),
        initialize_missing=bool(
            _resolve_option(initialize_missing, config_values, "initialize_missing", default=False)
        ),
        database_name=_resolve_option(database_name, config_values, "database_name"),
    )

    try:
        upgrader = DatabaseUpgrader(upgrade_config)
    except UpgraderError as exc:
        raise click.ClickException(str(exc)) from exc

    raise SystemExit(upgrader.run())


if __name__ == "__main__":
    main()
