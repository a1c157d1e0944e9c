from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..constants import (
    BROKER_LAN_DATA_RATE,
    CORE_BAND,
    CSMA_DELAY,
    PUBLISHER_LAN_DATA_RATE,
    SUBSCRIBER_P2P_BAND,
    SUBSCRIBER_WIFI_BAND,
)
from ..errors import InvalidScaleParameter
from ..types import ChainConfig, LinkKind, MediumParams, NodeRole
from ..utils.allocators import AddressPool
from ..utils.bridges import BridgeBinder
from .graph import DEFAULT_MEDIUM, TopologyGraph

logger = logging.getLogger(__name__)


@dataclass
class PubSubTopology:
    """An assembled publish/subscribe overlay plus handles to its landmark entities."""

    graph: TopologyGraph
    config: ChainConfig
    publisher: int = -1
    publisher_gateway: int = -1
    broker: int = -1
    broker_gateways: Tuple[int, int] = (-1, -1)
    master_gateway: int = -1
    subscribers: List[int] = field(default_factory=list)
    subscriber_gateways: List[int] = field(default_factory=list)
    subscriber_wifi_links: List[int] = field(default_factory=list)
    subscriber_p2p_links: List[int] = field(default_factory=list)
    publisher_lan: int = -1
    broker_lan: int = -1
    publisher_uplink: int = -1
    broker_uplink: int = -1


def validate_chain_config(config: ChainConfig) -> None:
    count = config.subscriber_count
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise InvalidScaleParameter(f"Subscriber count must be a positive integer, got {count!r}")
    rate = config.downlink_rate_kbps
    if rate is not None and (isinstance(rate, bool) or not isinstance(rate, int) or rate < 1):
        raise InvalidScaleParameter(f"Downlink rate must be a positive integer (kBps), got {rate!r}")


def downlink_params(config: ChainConfig) -> MediumParams:
    """Medium parameters for each subscriber-gateway to master-gateway link."""
    default = DEFAULT_MEDIUM[LinkKind.POINT_TO_POINT]
    if config.downlink_rate_kbps is None:
        return default
    return MediumParams(data_rate=f"{config.downlink_rate_kbps}KBps", delay=default.delay)


def _numbered(config: ChainConfig, role: NodeRole, index: int) -> str:
    return f"{config.names[role]}{index + 1}"


def build_pubsub_topology(config: ChainConfig, pool: Optional[AddressPool] = None) -> PubSubTopology:
    """Assemble the publisher -> broker -> subscribers gateway chain.

    Every subscriber sits behind its own wireless access segment and gateway;
    all subscriber gateways funnel into one master gateway, so the number of
    broker-facing links stays constant as the subscriber count grows.
    Construction order: nodes, links, IP stacks, addresses, bridges.
    """
    validate_chain_config(config)
    n = config.subscriber_count
    if pool is None:
        pool = AddressPool(config.address_base, config.subnet_prefixlen)
    graph = TopologyGraph()
    topo = PubSubTopology(graph=graph, config=config)
    names = config.names

    # Nodes
    topo.subscribers = [graph.create_node(NodeRole.SUBSCRIBER, _numbered(config, NodeRole.SUBSCRIBER, i)) for i in range(n)]
    topo.subscriber_gateways = [
        graph.create_node(NodeRole.SUBSCRIBER_GATEWAY, _numbered(config, NodeRole.SUBSCRIBER_GATEWAY, i)) for i in range(n)
    ]
    topo.master_gateway = graph.create_node(NodeRole.SUBSCRIBER_MASTER_GATEWAY, names[NodeRole.SUBSCRIBER_MASTER_GATEWAY])
    bgw1 = graph.create_node(NodeRole.BROKER_GATEWAY, _numbered(config, NodeRole.BROKER_GATEWAY, 0))
    topo.broker = graph.create_node(NodeRole.BROKER, names[NodeRole.BROKER])
    bgw2 = graph.create_node(NodeRole.BROKER_GATEWAY, _numbered(config, NodeRole.BROKER_GATEWAY, 1))
    topo.broker_gateways = (bgw1, bgw2)
    topo.publisher_gateway = graph.create_node(NodeRole.PUBLISHER_GATEWAY, names[NodeRole.PUBLISHER_GATEWAY])
    topo.publisher = graph.create_node(NodeRole.PUBLISHER, names[NodeRole.PUBLISHER])

    # Links. The subscriber is attached first so it holds the access point role.
    for i in range(n):
        wifi = MediumParams(ssid=f"wifi{i + 1}")
        topo.subscriber_wifi_links.append(
            graph.connect(LinkKind.WIRELESS_ACCESS, [topo.subscribers[i], topo.subscriber_gateways[i]], wifi)
        )
    topo.publisher_uplink = graph.connect(LinkKind.POINT_TO_POINT, [topo.publisher_gateway, bgw1])
    topo.broker_uplink = graph.connect(LinkKind.POINT_TO_POINT, [topo.master_gateway, bgw2])
    downlink = downlink_params(config)
    for i in range(n):
        topo.subscriber_p2p_links.append(
            graph.connect(LinkKind.POINT_TO_POINT, [topo.subscriber_gateways[i], topo.master_gateway], downlink)
        )
    topo.publisher_lan = graph.connect(
        LinkKind.SHARED_MEDIUM,
        [topo.publisher, topo.publisher_gateway],
        MediumParams(data_rate=PUBLISHER_LAN_DATA_RATE, delay=CSMA_DELAY),
    )
    topo.broker_lan = graph.connect(
        LinkKind.SHARED_MEDIUM,
        [topo.master_gateway, bgw1, topo.broker, bgw2],
        MediumParams(data_rate=BROKER_LAN_DATA_RATE, delay=CSMA_DELAY),
    )

    # Only relays run an IP stack; the endpoints are bridged to host TAP devices.
    graph.install_internet_stack([node.node_id for node in graph.iter_nodes() if node.role.is_gateway])

    # Addresses, in a fixed order so repeated builds number identically.
    graph.address_link(pool, topo.broker_lan, pool.legible_hint(CORE_BAND, 1))
    graph.address_link(pool, topo.broker_uplink, pool.legible_hint(CORE_BAND, 2))
    graph.address_link(pool, topo.publisher_uplink, pool.legible_hint(CORE_BAND, 4))
    graph.address_link(pool, topo.publisher_lan, pool.legible_hint(CORE_BAND, 3))
    for i in range(n):
        graph.address_link(pool, topo.subscriber_wifi_links[i], pool.legible_hint(SUBSCRIBER_WIFI_BAND, i))
        graph.address_link(pool, topo.subscriber_p2p_links[i], pool.legible_hint(SUBSCRIBER_P2P_BAND, i))

    # Bridges
    binder = BridgeBinder(graph, config.bridge_mode)
    binder.bind_bridge(
        topo.publisher,
        graph.interface_on(topo.publisher, topo.publisher_lan).iface_id,
        config.publisher_bridge,
    )
    binder.bind_bridge(
        topo.broker,
        graph.interface_on(topo.broker, topo.broker_lan).iface_id,
        config.broker_bridge,
    )
    for i in range(n):
        subscriber = topo.subscribers[i]
        binder.bind_bridge(
            subscriber,
            graph.interface_on(subscriber, topo.subscriber_wifi_links[i]).iface_id,
            config.subscriber_bridge(i),
        )

    logger.info(
        "Assembled pub/sub topology: subscribers=%d nodes=%d links=%d subnets=%d bridges=%d downlink=%s",
        n,
        len(graph.nodes),
        len(graph.links),
        len(graph.address_plan),
        len(graph.bridges),
        downlink.data_rate,
    )
    return topo
