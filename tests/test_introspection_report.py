import io
import ipaddress
import json
from pathlib import Path

from pubsub_topo_gen.builders.graph import TopologyGraph
from pubsub_topo_gen.builders.topology import build_pubsub_topology
from pubsub_topo_gen.types import ChainConfig, LinkKind, NodeRole, SimulatorConfig
from pubsub_topo_gen.utils.report import (
    channel_report_lines,
    find_inconsistencies,
    node_report_lines,
    print_reports,
    write_report,
)


def test_channel_report_format():
    topo = build_pubsub_topology(ChainConfig(subscriber_count=1))
    lines = channel_report_lines(topo.graph)
    assert lines[:2] == ["Channel List", "============"]
    assert lines[2] == "Channel 0 (WiFi) has 2 device(s) attached"
    assert lines[3] == "- node:0 | iface:0 | device:0 | (IP STACK NOT INSTALLED)"
    assert lines[4] == "- node:1 | iface:1 | device:0 | #IP:1 | 1st-IP:10.3.0.1"
    assert "Channel 5 (CSMA) has 4 device(s) attached" in lines
    assert "Channel 1 (P2P) has 2 device(s) attached" in lines


def test_node_report_format_and_unattached_marker():
    topo = build_pubsub_topology(ChainConfig(subscriber_count=1))
    lines = node_report_lines(topo.graph)
    assert lines[:2] == ["Node List", "========="]
    assert lines[2] == "Node 0 (subscriber1, subscriber)"
    assert lines[3] == f"- iface:0 | device:0 | channel:{'0 (WiFi)':<10} | (IP STACK NOT INSTALLED)"
    assert lines[4] == "Node 1 (subscriber-gw1, subscriber-gateway)"
    node1 = lines[5:8]
    assert node1[0] == f"- iface:1 | device:0 | channel:{'0 (WiFi)':<10} | #IP:1 | 1st-IP:10.3.0.1"
    assert node1[1] == f"- iface:6 | device:1 | channel:{'3 (P2P)':<10} | #IP:1 | 1st-IP:10.2.0.1"
    assert node1[2] == f"- iface:14 | device:2 | channel:{'none':<10} | #IP:1 | 1st-IP:127.0.0.1"


def test_reports_tolerate_empty_graph():
    g = TopologyGraph()
    assert channel_report_lines(g) == ["Channel List", "============"]
    assert node_report_lines(g) == ["Node List", "========="]
    g.create_node(NodeRole.BROKER)
    assert node_report_lines(g)[-1] == "Node 0 (broker, broker)"


def test_stack_node_without_address_reports_zero():
    g = TopologyGraph()
    a = g.create_node(NodeRole.BROKER_GATEWAY)
    b = g.create_node(NodeRole.BROKER_GATEWAY)
    link = g.connect(LinkKind.POINT_TO_POINT, [a, b])
    g.install_internet_stack([a, b])
    lines = channel_report_lines(g)
    assert lines[3].endswith("| #IP:0")
    problems = find_inconsistencies(g)
    assert len(problems) == 2
    assert all("has no address" in p for p in problems)
    assert link == 0


def test_print_reports_writes_both_sections():
    topo = build_pubsub_topology(ChainConfig(subscriber_count=2))
    buf = io.StringIO()
    print_reports(topo.graph, buf)
    text = buf.getvalue()
    assert text.index("Channel List") < text.index("Node List")
    assert text.count("(WiFi) has 2 device(s) attached") == 2


def test_assembled_topology_is_consistent():
    topo = build_pubsub_topology(ChainConfig(subscriber_count=3))
    assert find_inconsistencies(topo.graph) == []


def test_write_report_md_and_json(tmp_path: Path):
    topo = build_pubsub_topology(ChainConfig(subscriber_count=2, downlink_rate_kbps=128))
    out_md, out_json = write_report(
        str(tmp_path / "out" / "report.md"),
        topo.graph,
        topo.config,
        SimulatorConfig(stop_time=30.0),
        "demo",
    )
    text = Path(out_md).read_text(encoding="utf-8")
    assert "# Topology Report" in text
    assert "Scenario: demo" in text
    assert "- Downlink rate: 128 KBps" in text
    assert "- Stop time: 30s" in text
    assert "| tap-pub | publisher |" in text
    assert "## Pre-flight Check\n- OK" in text
    payload = json.loads(Path(out_json).read_text(encoding="utf-8"))
    assert out_json.endswith("report.json")
    assert payload["scenario"] == "demo"
    assert payload["problems"] == []
    assert payload["address_plan"][0] == "10.1.1.0/24"
    assert len(payload["nodes"]) == 10
    assert {b["name"] for b in payload["bridges"]} == {"tap-pub", "tap-mid", "tap-sub1", "tap-sub2"}


def test_preflight_flags_address_on_node_without_stack():
    topo = build_pubsub_topology(ChainConfig(subscriber_count=1))
    g = topo.graph
    broker_iface = g.interface_on(topo.broker, topo.broker_lan)
    broker_iface.address = ipaddress.IPv4Interface("10.9.0.9/24")
    problems = find_inconsistencies(g)
    assert problems == [
        f"Interface {broker_iface.iface_id} on node {topo.broker} (broker) holds 10.9.0.9/24 without an IP stack"
    ]
