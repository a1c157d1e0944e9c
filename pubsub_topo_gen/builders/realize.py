from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..engines.base import HostBridge, SimulationEngine
from ..utils.engine_logging import unwrap_engine
from .graph import TopologyGraph

logger = logging.getLogger(__name__)


@dataclass
class RealizedTopology:
    """Graph id -> engine id mappings produced by :func:`realize_topology`."""

    nodes: Dict[int, int] = field(default_factory=dict)
    links: Dict[int, int] = field(default_factory=dict)
    interfaces: Dict[int, int] = field(default_factory=dict)


def realize_topology(
    graph: TopologyGraph,
    engine: SimulationEngine,
    bridge_host: Optional[HostBridge] = None,
    pcap_prefix: Optional[str] = None,
) -> RealizedTopology:
    """Describe a finished graph to the engine.

    Call order: nodes, links (attachment order preserved), internet stacks,
    mobility for wireless nodes, addresses in allocation order, bridges,
    routing. Engine errors propagate unchanged. The graph is only read.
    """
    host = bridge_host if bridge_host is not None else engine
    out = RealizedTopology()

    for node in graph.iter_nodes():
        out.nodes[node.node_id] = engine.create_node()

    for link in graph.iter_links():
        ifaces = graph.link_interfaces(link.link_id)
        engine_link, engine_ifaces = engine.install_link(
            link.kind,
            link.params,
            [out.nodes[i.node_id] for i in ifaces],
        )
        if len(engine_ifaces) != len(ifaces):
            raise RuntimeError(
                f"Engine returned {len(engine_ifaces)} interfaces for link {link.link_id}, expected {len(ifaces)}"
            )
        out.links[link.link_id] = engine_link
        for iface, engine_iface in zip(ifaces, engine_ifaces):
            out.interfaces[iface.iface_id] = engine_iface

    stack_nodes = graph.stack_nodes()
    if stack_nodes:
        engine.install_internet_stack([out.nodes[n] for n in stack_nodes])
    wireless = graph.wireless_nodes()
    if wireless:
        engine.install_mobility([out.nodes[n] for n in wireless])

    for iface_id in graph.assignments:
        iface = graph.interfaces[iface_id]
        address = iface.address
        subnet = address.network
        host_offset = int(address.ip) - int(subnet.network_address)
        engine.assign_address(out.interfaces[iface_id], subnet.network_address, subnet.prefixlen, host_offset)

    for binding in graph.bridges.values():
        host.create_bridge(
            out.nodes[binding.node_id],
            out.interfaces[binding.iface_id],
            binding.bridge_name,
            binding.mode,
        )

    engine.populate_routing()
    if pcap_prefix:
        engine.enable_pcap(pcap_prefix)
    logger.info(
        "Realized %d nodes, %d links, %d addresses, %d bridges on %s",
        len(out.nodes),
        len(out.links),
        len(graph.assignments),
        len(graph.bridges),
        type(unwrap_engine(engine)).__name__,
    )
    return out
