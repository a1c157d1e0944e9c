from __future__ import annotations
import json
import os
import sys
import time
from typing import IO, TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from ..builders.graph import link_capacity
from ..constants import UNATTACHED_MARKER
from ..types import ChainConfig, Interface, LinkKind, SimulatorConfig

if TYPE_CHECKING:  # pragma: no cover
    from ..builders.graph import TopologyGraph

_KIND_LABELS: Dict[LinkKind, str] = {
    LinkKind.POINT_TO_POINT: "P2P",
    LinkKind.SHARED_MEDIUM: "CSMA",
    LinkKind.WIRELESS_ACCESS: "WiFi",
    LinkKind.WIRELESS_STATION: "WiFi-STA",
}


def kind_label(kind: LinkKind) -> str:
    return _KIND_LABELS.get(kind, "Unknown")


def address_summary(graph: "TopologyGraph", iface: Interface) -> str:
    node = graph.nodes[iface.node_id]
    if not node.ip_stack:
        return "(IP STACK NOT INSTALLED)"
    if iface.address is None:
        return "#IP:0"
    return f"#IP:1 | 1st-IP:{iface.address.ip}"


def channel_report_lines(graph: "TopologyGraph") -> List[str]:
    lines: List[str] = ["Channel List", "============"]
    for link in graph.iter_links():
        ifaces = graph.link_interfaces(link.link_id)
        lines.append(
            f"Channel {link.link_id} ({kind_label(link.kind)}) has {len(ifaces)} device(s) attached"
        )
        for iface in ifaces:
            lines.append(
                f"- node:{iface.node_id} | iface:{iface.iface_id} | device:{iface.index} | {address_summary(graph, iface)}"
            )
    return lines


def node_report_lines(graph: "TopologyGraph") -> List[str]:
    lines: List[str] = ["Node List", "========="]
    for node in graph.iter_nodes():
        lines.append(f"Node {node.node_id} ({node.name}, {node.role.value})")
        for iface in graph.node_interfaces(node.node_id):
            if iface.link_id is None:
                channel = UNATTACHED_MARKER
            else:
                channel = f"{iface.link_id} ({kind_label(graph.links[iface.link_id].kind)})"
            lines.append(
                f"- iface:{iface.iface_id} | device:{iface.index} | channel:{channel:<10} | {address_summary(graph, iface)}"
            )
    return lines


def render_reports(graph: "TopologyGraph") -> str:
    return "\n".join(channel_report_lines(graph) + [""] + node_report_lines(graph)) + "\n"


def print_reports(graph: "TopologyGraph", stream: Optional[IO[str]] = None) -> None:
    out = stream if stream is not None else sys.stdout
    out.write(render_reports(graph))
    out.flush()


def find_inconsistencies(graph: "TopologyGraph") -> List[str]:
    """Pre-flight checks over a finished graph; returns human readable problems."""
    problems: List[str] = []
    for link in graph.iter_links():
        lo, hi = link_capacity(link.kind)
        count = len(link.interfaces)
        if count < lo or (hi is not None and count > hi):
            problems.append(f"Link {link.link_id} ({link.kind.value}) has {count} interfaces")
        if not link.finalized:
            problems.append(f"Link {link.link_id} was never finalized")
    seen: Dict[str, int] = {}
    for iface in graph.attached_interfaces():
        node = graph.nodes[iface.node_id]
        if node.ip_stack and iface.address is None:
            problems.append(f"Interface {iface.iface_id} on node {node.node_id} ({node.name}) has no address")
        if not node.ip_stack and iface.address is not None:
            problems.append(
                f"Interface {iface.iface_id} on node {node.node_id} ({node.name}) holds {iface.address} without an IP stack"
            )
        if iface.address is not None:
            key = str(iface.address.ip)
            if key in seen:
                problems.append(f"Address {key} used by interfaces {seen[key]} and {iface.iface_id}")
            else:
                seen[key] = iface.iface_id
    for name, binding in graph.bridges.items():
        iface = graph.interfaces.get(binding.iface_id)
        if iface is None or iface.bridge != name:
            problems.append(f"Bridge {name} does not match interface {binding.iface_id}")
    return problems


def inventory(graph: "TopologyGraph") -> Dict[str, Any]:
    return {
        "nodes": [
            {
                "id": n.node_id,
                "name": n.name,
                "role": n.role.value,
                "ip_stack": n.ip_stack,
                "interfaces": list(n.interfaces),
            }
            for n in graph.iter_nodes()
        ],
        "links": [
            {
                "id": l.link_id,
                "kind": l.kind.value,
                "data_rate": l.params.data_rate,
                "delay": l.params.delay,
                "ssid": l.params.ssid,
                "subnet": str(l.subnet) if l.subnet is not None else None,
                "interfaces": list(l.interfaces),
            }
            for l in graph.iter_links()
        ],
        "interfaces": [
            {
                "id": i.iface_id,
                "node": i.node_id,
                "device": i.index,
                "link": i.link_id,
                "address": str(i.address) if i.address is not None else None,
                "wifi_role": i.wifi_role.value if i.wifi_role is not None else None,
                "bridge": i.bridge,
            }
            for i in graph.interfaces.values()
        ],
        "bridges": [
            {"name": b.bridge_name, "node": b.node_id, "interface": b.iface_id, "mode": b.mode.value}
            for b in graph.bridges.values()
        ],
        "address_plan": [str(graph.links[l].subnet) for l in graph.address_plan],
    }


def write_report(
    out_path: str,
    graph: "TopologyGraph",
    chain: Optional[ChainConfig] = None,
    simulator: Optional[SimulatorConfig] = None,
    scenario_name: Optional[str] = None,
) -> Tuple[str, str]:
    """Write a Markdown inventory plus a JSON sidecar; returns both paths."""
    ts = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
    lines: List[str] = []
    lines.append("# Topology Report")
    lines.append("")
    if scenario_name:
        lines.append(f"Scenario: {scenario_name}")
    lines.append(f"Generated: {ts}")
    lines.append("")
    lines.append("## Summary")
    lines.append(f"- Nodes: {len(graph.nodes)}  |  Links: {len(graph.links)}  |  Interfaces: {len(graph.interfaces)}")
    kinds = {k: len(graph.links_by_kind(k)) for k in LinkKind}
    lines.append("- Links by kind: " + ", ".join(f"{kind_label(k)}={c}" for k, c in kinds.items() if c))
    if chain is not None:
        lines.append(f"- Subscribers: {chain.subscriber_count}")
        rate = f"{chain.downlink_rate_kbps} KBps" if chain.downlink_rate_kbps is not None else "link default"
        lines.append(f"- Downlink rate: {rate}")
    if simulator is not None:
        lines.append(f"- Scheduler: {simulator.implementation} (checksum {'on' if simulator.checksum_enabled else 'off'})")
        lines.append(f"- Stop time: {simulator.stop_time:g}s")
    lines.append("")

    lines.append("## Subnets (allocation order)")
    lines.append("| Link | Kind | Subnet | Rate | Delay |")
    lines.append("| ---: | --- | --- | --- | --- |")
    for link_id in graph.address_plan:
        link = graph.links[link_id]
        lines.append(
            f"| {link_id} | {kind_label(link.kind)} | {link.subnet} | {link.params.data_rate or '-'} | {link.params.delay or '-'} |"
        )
    lines.append("")

    lines.append("## Bridges")
    if graph.bridges:
        lines.append("| Bridge | Node | Interface | Mode |")
        lines.append("| --- | --- | ---: | --- |")
        for b in graph.bridges.values():
            lines.append(f"| {b.bridge_name} | {graph.nodes[b.node_id].name} | {b.iface_id} | {b.mode.value} |")
    else:
        lines.append("- none")
    lines.append("")

    problems = find_inconsistencies(graph)
    lines.append("## Pre-flight Check")
    if problems:
        for p in problems:
            lines.append(f"- {p}")
    else:
        lines.append("- OK")
    lines.append("")

    lines.append("## Channels and Nodes")
    lines.append("```")
    lines.extend(channel_report_lines(graph))
    lines.append("")
    lines.extend(node_report_lines(graph))
    lines.append("```")
    lines.append("")

    out_dir = os.path.dirname(os.path.abspath(out_path))
    os.makedirs(out_dir, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))

    json_path = os.path.splitext(out_path)[0] + ".json"
    payload = inventory(graph)
    payload["generated"] = ts
    if scenario_name:
        payload["scenario"] = scenario_name
    payload["problems"] = problems
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    return out_path, json_path
