"""Tests for usage aggregation and health classification."""

import pytest

from pvedash.api.metrics import (
    GIB,
    assess_health,
    classify_health,
    is_quorate,
    percentage,
    summarize_cluster,
    summarize_node,
)
from pvedash.models.guest import Container, VirtualMachine
from pvedash.models.node import Node
from pvedash.models.storage import ClusterStatusEntry, StoragePool


def _node(name: str, status: str = "online", cpu: float = 0.5, mem: int = 16 * GIB, maxmem: int = 32 * GIB) -> Node:
    return Node(node=name, status=status, cpu=cpu, maxcpu=4, mem=mem, maxmem=maxmem, uptime=3600)


def test_percentage_rounds_to_two_places():
    assert percentage(1, 3) == 33.33
    assert percentage(2, 3) == 66.67
    assert percentage(50, 100) == 50


@pytest.mark.parametrize("used", [0, 5, 1024])
def test_percentage_with_zero_total_is_zero(used):
    assert percentage(used, 0) == 0


def test_summarize_node_with_zero_memory():
    node = Node(node="pve1", status="online", cpu=0.25, maxcpu=8, mem=0, maxmem=0)

    metrics = summarize_node(node, [], [])

    assert metrics.memory.percentage == 0
    assert metrics.memory.total == 0
    assert metrics.cpu.percentage == 25
    assert metrics.cpu.used == 2


def test_offline_node_without_usage_fields():
    node = Node(node="pve2", status="offline")

    metrics = summarize_node(node, [], [])

    assert metrics.cpu.percentage == 0
    assert metrics.uptime == 0
    assert metrics.status == "offline"


def test_summarize_cluster_converts_units():
    nodes = [_node("pve1"), _node("pve2", status="offline", cpu=0, mem=0)]
    storage = [
        StoragePool(storage="local", node="pve1", maxdisk=100 * GIB, disk=25 * GIB),
        StoragePool(storage="nfs", node="pve2", total=300 * GIB, used=75 * GIB),
    ]
    guests = [
        VirtualMachine(vmid=100, status="running", netin=512 * 1024**2, netout=256 * 1024**2),
        VirtualMachine(vmid=101, status="stopped"),
        Container(vmid=200, status="running", netin=512 * 1024**2),
    ]

    metrics = summarize_cluster(nodes, storage, guests)

    assert metrics.cpu.total == 8
    assert metrics.cpu.used == 2
    assert metrics.cpu.percentage == 25
    assert metrics.memory.used == 16
    assert metrics.memory.total == 64
    assert metrics.memory.percentage == 25
    assert metrics.storage.used == 100
    assert metrics.storage.total == 400
    assert metrics.storage.percentage == 25
    assert metrics.network.inbound == 1024
    assert metrics.network.outbound == 256
    assert metrics.nodes.total == 2
    assert metrics.nodes.online == 1
    assert metrics.nodes.offline == 1


def test_summarize_empty_cluster():
    metrics = summarize_cluster([], [], [])

    assert metrics.cpu.percentage == 0
    assert metrics.memory.percentage == 0
    assert metrics.storage.percentage == 0
    assert metrics.nodes.total == 0


def test_one_offline_node_is_warning():
    nodes = [_node("pve1"), _node("pve2"), _node("pve3", status="offline", cpu=0.5, mem=16 * GIB)]

    health = assess_health(nodes, [])

    assert health.status == "warning"
    assert health.summary.avg_cpu_usage == 50
    assert health.summary.avg_memory_usage == 50
    assert health.summary.offline_nodes == 1


def test_all_nodes_online_is_healthy():
    nodes = [_node("pve1"), _node("pve2"), _node("pve3")]

    health = assess_health(nodes, [ClusterStatusEntry(type="cluster", name="lab", quorate=1)])

    assert health.status == "healthy"
    assert health.quorum is True
    assert [n.name for n in health.nodes] == ["pve1", "pve2", "pve3"]


def test_no_online_nodes_is_critical_even_with_quorum():
    nodes = [_node("pve1", status="offline"), _node("pve2", status="offline")]

    health = assess_health(nodes, [ClusterStatusEntry(type="cluster", quorate=1)])

    assert health.status == "critical"


def test_lost_quorum_is_critical():
    health = assess_health([_node("pve1")], [ClusterStatusEntry(type="cluster", quorate=0)])

    assert health.status == "critical"
    assert health.quorum is False


@pytest.mark.parametrize(
    "avg_cpu, avg_memory, expected",
    [
        (80, 90, "healthy"),
        (80.01, 50, "warning"),
        (50, 90.01, "warning"),
    ],
)
def test_usage_thresholds(avg_cpu, avg_memory, expected):
    assert classify_health(True, 3, 3, avg_cpu, avg_memory) == expected


def test_standalone_node_counts_as_quorate():
    assert is_quorate([]) is True
    assert is_quorate([ClusterStatusEntry(type="node", name="pve1", online=1)]) is True


def test_cluster_with_zero_memory_everywhere():
    nodes = [Node(node=f"pve{i}", status="online", cpu=0.1, maxcpu=2, mem=0, maxmem=0) for i in range(3)]

    metrics = summarize_cluster(nodes, [], [])

    assert metrics.memory.percentage == 0
    assert metrics.memory.total == 0
