import pytest

from dbupgrader.errors import UpgraderError
from dbupgrader.services.config_loader import ConfigLoader


def test_config_loader_loads_yaml_mapping(tmp_path):
    config_file = tmp_path / ".dbupgrader.yml"
    config_file.write_text(
        "data_dir: /data/postgresql\nexpected_version: '12'\nauto_upgrade: false\n",
        encoding="utf-8",
    )

    loaded = ConfigLoader().load(str(config_file))

    assert loaded["data_dir"] == "/data/postgresql"
    assert loaded["expected_version"] == "12"
    assert loaded["auto_upgrade"] is False


def test_config_loader_splits_docker_command_string(tmp_path):
    config_file = tmp_path / ".dbupgrader.yml"
    config_file.write_text("docker_command: sudo docker\n", encoding="utf-8")

    assert ConfigLoader().load(str(config_file))["docker_command"] == ["sudo", "docker"]


def test_config_loader_rejects_unknown_keys(tmp_path):
    config_file = tmp_path / ".dbupgrader.yml"
    config_file.write_text("unknown_key: true\n", encoding="utf-8")

    with pytest.raises(UpgraderError, match="Unknown configuration keys"):
        ConfigLoader().load(str(config_file))


def test_config_loader_rejects_non_mapping(tmp_path):
    config_file = tmp_path / ".dbupgrader.yml"
    config_file.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(UpgraderError, match="YAML mapping"):
        ConfigLoader().load(str(config_file))


def test_config_loader_missing_file(tmp_path):
    with pytest.raises(UpgraderError, match="Config file not found"):
        ConfigLoader().load(str(tmp_path / "absent.yml"))
