"""Tests for the command-line interface, run against the mock backend."""

import json

import pytest
from typer.testing import CliRunner

from pvedash import __version__
from pvedash.cli.main import app
from pvedash.config import ConfigManager
from pvedash.config.manager import CONFIG_DIR_ENV
from pvedash.utils import console

runner = CliRunner()


@pytest.fixture(autouse=True)
def config_dir(monkeypatch, tmp_path):
    # keep table cells on one line
    monkeypatch.setattr(console, "width", 200)
    monkeypatch.setenv(CONFIG_DIR_ENV, str(tmp_path))
    return tmp_path


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_node_list():
    result = runner.invoke(app, ["node", "list", "--mock"])

    assert result.exit_code == 0
    assert "pve-node1" in result.output
    assert "pve-node2" in result.output


def test_vm_and_ct_list():
    vms = runner.invoke(app, ["vm", "list", "--mock"])
    cts = runner.invoke(app, ["ct", "list", "--mock", "--node", "pve-node1"])

    assert vms.exit_code == 0
    assert "web-server" in vms.output
    assert cts.exit_code == 0
    assert "nginx-proxy" in cts.output


def test_vm_start_and_wait():
    result = runner.invoke(app, ["vm", "start", "101", "--mock", "--wait"])

    assert result.exit_code == 0
    assert "VM 101 started" in result.output


def test_vm_start_already_running():
    result = runner.invoke(app, ["vm", "start", "100", "--mock"])

    assert result.exit_code == 0
    assert "already running" in result.output


def test_unknown_guest():
    result = runner.invoke(app, ["ct", "reboot", "999", "--mock"])

    assert result.exit_code == 1
    assert "not found" in result.output


def test_cluster_health_json():
    result = runner.invoke(app, ["cluster", "health", "--mock", "--json"])

    assert result.exit_code == 0
    health = json.loads(result.output)
    assert health["status"] == "healthy"
    assert health["quorum"] is True
    assert health["summary"]["total_nodes"] == 2


def test_cluster_metrics_panel():
    result = runner.invoke(app, ["cluster", "metrics", "--mock"])

    assert result.exit_code == 0
    assert "2/2 online" in result.output


def test_storage_list():
    result = runner.invoke(app, ["storage", "list", "--mock"])

    assert result.exit_code == 0
    assert "local-lvm" in result.output


def test_script_list_and_run():
    listing = runner.invoke(app, ["script", "list"])
    run = runner.invoke(app, ["script", "run", "disk_usage", "pve-node1", "--mock"])

    assert listing.exit_code == 0
    assert "memory_info" in listing.output
    assert run.exit_code == 0
    assert "Running on node: pve-node1" in run.output


def test_script_outside_whitelist():
    result = runner.invoke(app, ["script", "run", "reboot_all", "pve-node1", "--mock"])

    assert result.exit_code == 1
    assert "not in the allowed scripts whitelist" in result.output


def test_server_add_and_list(config_dir):
    added = runner.invoke(app, ["server", "add", "lab", "--host", "demo", "--yes"])
    listing = runner.invoke(app, ["server", "list"])

    assert added.exit_code == 0
    assert "set as default" in added.output
    assert "lab" in listing.output
    assert ConfigManager(config_dir).get_server().hostname == "demo"


def test_placeholder_server_falls_back_to_sample_data():
    runner.invoke(app, ["server", "add", "lab", "--host", "demo", "--yes"])

    result = runner.invoke(app, ["node", "list"])

    assert result.exit_code == 0
    assert "placeholder host" in result.output
    assert "pve-node1" in result.output


def test_missing_config_is_reported():
    result = runner.invoke(app, ["node", "list"])

    assert result.exit_code == 1
    assert "Error" in result.output


def test_server_test_on_placeholder_host():
    runner.invoke(app, ["server", "add", "lab", "--host", "demo", "--yes"])

    result = runner.invoke(app, ["server", "test"])

    assert result.exit_code == 0
    assert "8.0.4" in result.output


def test_node_metrics_json():
    result = runner.invoke(app, ["node", "metrics", "pve-node1", "--mock", "--json"])

    assert result.exit_code == 0
    metrics = json.loads(result.output)
    assert metrics["status"] == "online"
    assert metrics["memory"]["total"] == 32
