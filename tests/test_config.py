"""Tests for the YAML configuration manager."""

import pytest
import yaml

from pvedash.api.exceptions import ConfigError
from pvedash.config.manager import CONFIG_DIR_ENV, ConfigManager
from pvedash.crypto import AGE_PREFIX
from pvedash.models.config import ServerProfile


@pytest.fixture
def manager(tmp_path):
    return ConfigManager(tmp_path)


def _on_disk(manager: ConfigManager) -> dict:
    return yaml.safe_load(manager.config_file.read_text())


def test_passwords_are_encrypted_on_disk(manager, tmp_path):
    manager.add_server(ServerProfile(name="lab", hostname="pve.lab.local", password="secret"))

    stored = _on_disk(manager)["servers"]["lab"]["password"]
    assert stored.startswith(AGE_PREFIX)
    assert "secret" not in manager.config_file.read_text()

    reloaded = ConfigManager(tmp_path).get_server("lab")
    assert reloaded.password == "secret"


def test_first_server_becomes_default(manager):
    manager.add_server(ServerProfile(name="a", hostname="pve-a.lab.local"))
    manager.add_server(ServerProfile(name="b", hostname="pve-b.lab.local"))

    assert manager.get().default_server == "a"
    assert manager.get_server().name == "a"
    assert manager.get_server("a").is_default
    assert not manager.get_server("b").is_default


def test_set_default_server(manager):
    manager.add_server(ServerProfile(name="a", hostname="pve-a.lab.local"))
    manager.add_server(ServerProfile(name="b", hostname="pve-b.lab.local"))

    manager.set_default_server("b")

    assert manager.get_server().name == "b"
    assert not manager.get_server("a").is_default
    with pytest.raises(ConfigError):
        manager.set_default_server("c")


def test_removing_default_promotes_next(manager):
    manager.add_server(ServerProfile(name="a", hostname="pve-a.lab.local"))
    manager.add_server(ServerProfile(name="b", hostname="pve-b.lab.local"))

    manager.remove_server("a")

    assert manager.list_servers() == ["b"]
    assert manager.get().default_server == "b"
    assert manager.get_server("b").is_default


def test_removing_last_server_clears_default(manager):
    manager.add_server(ServerProfile(name="a", hostname="pve-a.lab.local"))

    manager.remove_server("a")

    assert manager.get().default_server is None
    with pytest.raises(ConfigError):
        manager.remove_server("a")


def test_missing_file_and_missing_server(manager):
    assert not manager.exists()
    with pytest.raises(ConfigError, match="not found"):
        manager.load()

    manager.add_server(ServerProfile(name="a", hostname="pve-a.lab.local"))
    with pytest.raises(ConfigError, match="Available servers: a"):
        manager.get_server("zzz")


def test_plaintext_password_is_reencrypted_on_load(manager, tmp_path):
    manager.config_file.write_text(
        yaml.safe_dump({"default_server": "lab", "servers": {"lab": {"hostname": "pve.lab.local", "password": "secret"}}})
    )

    profile = ConfigManager(tmp_path).get_server()

    assert profile.name == "lab"
    assert profile.password == "secret"
    assert _on_disk(manager)["servers"]["lab"]["password"].startswith(AGE_PREFIX)


def test_invalid_yaml(manager):
    manager.config_file.write_text("servers: [unclosed")

    with pytest.raises(ConfigError, match="Invalid YAML"):
        manager.load()


def test_invalid_values(manager):
    manager.config_file.write_text(yaml.safe_dump({"servers": {"lab": {"port": 70000}}}))

    with pytest.raises(ConfigError, match="Invalid config"):
        manager.load()


def test_defaults_without_file(manager):
    config = manager.get_or_default()

    assert config.servers == {}
    assert config.executor.poll_interval == 1.0
    assert config.session.ticket_lifetime == 7200
    assert config.output.format == "table"


def test_config_dir_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv(CONFIG_DIR_ENV, str(tmp_path / "custom"))

    manager = ConfigManager()

    assert manager.config_file == tmp_path / "custom" / "config.yaml"
