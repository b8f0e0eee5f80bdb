import pytest

from dbupgrader.errors import FinalizationError, UpgradeContainerFailedError, UpgraderError
from dbupgrader.models import MountBinding, RunnerPhase, UpgradeConfig, UpgradeStatus
from dbupgrader.services.environment import StaticContainerIdentity
from dbupgrader.services.filesystem import FileSystemService
from dbupgrader.services.host_path import HostPathResolver
from dbupgrader.services.ledger import StatusLedger
from dbupgrader.services.upgrade_runner import UpgradeRunner


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None

    def debug(self, *_args, **_kwargs):
        return None

    def error(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


class FakeRuntime:
    """Plays the helper container by creating the upgraded cluster on wait."""

    def __init__(self, data_parent, exit_code=0, wait_error=None):
        self.data_parent = data_parent
        self.exit_code = exit_code
        self.wait_error = wait_error
        self.calls = []
        self.specs = []
        self.ledger_on_create = None

    def validate_environment(self):
        self.calls.append("validate")

    def inspect_container(self, container_id):
        self.calls.append("inspect")
        return [MountBinding(container_path=str(self.data_parent), host_path="/host/data")]

    def pull_image(self, image, sink):
        self.calls.append(("pull", image))
        sink.write(f"{image}: Pulling from helper\n")

    def create_container(self, spec):
        self.calls.append("create")
        self.specs.append(spec)
        self.ledger_on_create = (self.data_parent / ".9.6-to-11-upgrade" / "status").read_text(encoding="utf-8")
        return "helper-id"

    def start_container(self, container_id):
        self.calls.append("start")

    def wait_container(self, container_id):
        self.calls.append("wait")
        if self.wait_error:
            raise self.wait_error
        if self.exit_code == 0:
            new_dir = self.data_parent / "postgresql-11"
            new_dir.mkdir()
            (new_dir / "PG_VERSION").write_text("11\n", encoding="utf-8")
        return self.exit_code

    def fetch_logs(self, container_id, sink):
        self.calls.append("logs")
        sink.write("Performing Upgrade\n")
        if self.exit_code == 0:
            sink.write("Upgrade Complete\n")
        else:
            sink.write("could not load library\n")

    def remove_container(self, container_id):
        self.calls.append("remove")


class FakeExecutor:
    def __init__(self, fail=False):
        self.fail = fail
        self.runs = []

    def as_user(self, user, cmd):
        return ["su-exec", user, *cmd]

    def run(self, commands, sink, cwd=None):
        self.runs.append((commands, cwd))
        if self.fail:
            sink.write("ERROR: relation does not exist\n")
            raise UpgraderError("Command failed (1): su-exec postgres /postgres-optimize.sh")


def _setup(tmp_path, exit_code=0, wait_error=None, executor_fails=False):
    data_parent = tmp_path / "data"
    data_dir = data_parent / "postgresql"
    data_dir.mkdir(parents=True)
    (data_dir / "PG_VERSION").write_text("9.6\n", encoding="utf-8")

    config = UpgradeConfig(
        data_dir=str(data_dir),
        expected_version="11",
        image_repository="helper-image",
        container_data_root="/var/lib/db",
        helper_workdir="/workspace",
    )
    runtime = FakeRuntime(data_parent, exit_code=exit_code, wait_error=wait_error)
    executor = FakeExecutor(fail=executor_fails)
    runner = UpgradeRunner(
        logger=DummyLogger(),
        console=DummyConsole(),
        config=config,
        docker_runtime=runtime,
        host_path_resolver=HostPathResolver(DummyLogger(), runtime, StaticContainerIdentity("self")),
        executor=executor,
        filesystem_service=FileSystemService(logger=DummyLogger(), console=DummyConsole()),
        clock=lambda: 1700000000,
    )
    return runner, runtime, executor, data_parent


def test_equal_versions_are_a_no_op(tmp_path):
    runner, runtime, executor, data_parent = _setup(tmp_path)

    assert runner.run("11", "11") is None

    assert runtime.calls == []
    assert executor.runs == []
    assert not any(path.name.endswith("-upgrade") for path in data_parent.iterdir())


def test_successful_upgrade_swaps_directories_and_marks_done(tmp_path):
    runner, runtime, executor, data_parent = _setup(tmp_path)

    job = runner.run("9.6", "11")

    assert runtime.calls == [
        "validate",
        "inspect",
        ("pull", "helper-image:9.6-to-11"),
        "create",
        "start",
        "wait",
        "logs",
        "remove",
    ]
    assert runtime.ledger_on_create == "started"

    spec = runtime.specs[0]
    assert spec.name == "dbupgrader-upgrade-1700000000"
    assert spec.image == "helper-image:9.6-to-11"
    assert spec.working_dir == "/workspace"
    assert spec.binds == [
        "/host/data/.9.6-to-11-upgrade:/workspace",
        "/host/data/postgresql:/var/lib/db/9.6/data",
        "/host/data/postgresql-11:/var/lib/db/11/data",
    ]

    assert (data_parent / "postgresql" / "PG_VERSION").read_text(encoding="utf-8").strip() == "11"
    assert (data_parent / "postgresql-9.6" / "PG_VERSION").read_text(encoding="utf-8").strip() == "9.6"
    assert not (data_parent / "postgresql-11").exists()

    commands, cwd = executor.runs[0]
    data_dir = str(data_parent / "postgresql")
    assert commands == [
        ["chown", "-R", "postgres", data_dir],
        ["su-exec", "postgres", "/postgres-optimize.sh", data_dir],
    ]
    assert cwd == job.upgrade_dir

    assert StatusLedger(job.upgrade_dir, DummyLogger()).read() is UpgradeStatus.DONE
    assert runner.phase is RunnerPhase.DONE


def test_failed_helper_container_leaves_data_untouched(tmp_path):
    runner, runtime, executor, data_parent = _setup(tmp_path, exit_code=1)

    with pytest.raises(UpgradeContainerFailedError, match="failed to upgrade the data from 9.6 to 11") as exc_info:
        runner.run("9.6", "11")

    assert "could not load library" in exc_info.value.output
    assert "remove" in runtime.calls
    assert executor.runs == []
    assert (data_parent / "postgresql" / "PG_VERSION").read_text(encoding="utf-8").strip() == "9.6"
    assert not (data_parent / "postgresql-9.6").exists()
    ledger = StatusLedger(str(data_parent / ".9.6-to-11-upgrade"), DummyLogger())
    assert ledger.read() is UpgradeStatus.STARTED
    assert runner.phase is RunnerPhase.FAILED


def test_runtime_wait_error_is_reported_as_container_failure(tmp_path):
    runner, runtime, _, data_parent = _setup(tmp_path, wait_error=UpgraderError("daemon went away"))

    with pytest.raises(UpgradeContainerFailedError) as exc_info:
        runner.run("9.6", "11")

    assert isinstance(exc_info.value.__cause__, UpgraderError)
    assert runtime.calls[-2:] == ["logs", "remove"]
    assert (data_parent / "postgresql").exists()


def test_optimization_failure_surfaces_output_and_keeps_ledger_started(tmp_path):
    runner, _, _, data_parent = _setup(tmp_path, executor_fails=True)

    with pytest.raises(FinalizationError) as exc_info:
        runner.run("9.6", "11")

    assert "relation does not exist" in exc_info.value.output
    assert "Upgrade Complete" in exc_info.value.output
    ledger = StatusLedger(str(data_parent / ".9.6-to-11-upgrade"), DummyLogger())
    assert ledger.read() is UpgradeStatus.STARTED


def test_missing_host_mount_fails_before_ledger_write(tmp_path):
    runner, runtime, _, data_parent = _setup(tmp_path)
    runtime.inspect_container = lambda _container_id: []

    with pytest.raises(UpgraderError, match="Couldn't find host mountpoint"):
        runner.run("9.6", "11")

    assert not (data_parent / ".9.6-to-11-upgrade").exists()
    assert "create" not in runtime.calls


def test_interrupt_during_pull_marks_runner_failed(tmp_path):
    runner, runtime, _, data_parent = _setup(tmp_path)

    def interrupted_pull(image, sink):
        raise KeyboardInterrupt

    runtime.pull_image = interrupted_pull

    with pytest.raises(KeyboardInterrupt):
        runner.run("9.6", "11")

    assert runner.phase is RunnerPhase.FAILED
    assert "create" not in runtime.calls
    ledger = StatusLedger(str(data_parent / ".9.6-to-11-upgrade"), DummyLogger())
    assert ledger.read() is UpgradeStatus.STARTED
