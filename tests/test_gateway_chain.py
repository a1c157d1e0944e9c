import pytest

import pubsub_topo_gen.builders.topology as topology_mod
from pubsub_topo_gen.builders.topology import build_pubsub_topology, downlink_params
from pubsub_topo_gen.errors import AddressSpaceExhausted, InvalidScaleParameter
from pubsub_topo_gen.types import ChainConfig, LinkKind, NodeRole


def _subnets(topo):
    g = topo.graph
    return [str(g.links[l].subnet) for l in g.address_plan]


@pytest.mark.parametrize("n", [1, 2, 5])
def test_link_counts_per_kind(n):
    topo = build_pubsub_topology(ChainConfig(subscriber_count=n))
    g = topo.graph
    assert len(g.links_by_kind(LinkKind.WIRELESS_ACCESS)) == n
    assert len(g.links_by_kind(LinkKind.SHARED_MEDIUM)) == 2
    assert len(g.links_by_kind(LinkKind.POINT_TO_POINT)) == n + 2
    assert len(topo.subscriber_p2p_links) == n
    assert len(g.nodes) == 2 * n + 6


def test_node_creation_order_and_names():
    topo = build_pubsub_topology(ChainConfig(subscriber_count=2))
    names = [n.name for n in topo.graph.iter_nodes()]
    assert names == [
        "subscriber1",
        "subscriber2",
        "subscriber-gw1",
        "subscriber-gw2",
        "subscriber-master-gw",
        "broker-gw1",
        "broker",
        "broker-gw2",
        "publisher-gw",
        "publisher",
    ]


def test_single_subscriber_uses_default_downlink():
    topo = build_pubsub_topology(ChainConfig(subscriber_count=1))
    link = topo.graph.links[topo.subscriber_p2p_links[0]]
    assert link.params.data_rate == "1Gbps"
    assert link.params.delay == "0ms"


def test_downlink_rate_override_only_touches_subscriber_links():
    topo = build_pubsub_topology(ChainConfig(subscriber_count=2, downlink_rate_kbps=128))
    g = topo.graph
    for link_id in topo.subscriber_p2p_links:
        assert g.links[link_id].params.data_rate == "128KBps"
    assert g.links[topo.publisher_uplink].params.data_rate == "1Gbps"
    assert g.links[topo.broker_uplink].params.data_rate == "1Gbps"
    assert g.links[topo.publisher_lan].params.data_rate == "10Mbps"
    assert g.links[topo.broker_lan].params.data_rate == "1Gbps"


def test_downlink_params_format():
    assert downlink_params(ChainConfig(downlink_rate_kbps=64)).data_rate == "64KBps"


def test_mid_lan_members_and_uplinks():
    topo = build_pubsub_topology(ChainConfig(subscriber_count=1))
    g = topo.graph
    bgw1, bgw2 = topo.broker_gateways
    mid = [i.node_id for i in g.link_interfaces(topo.broker_lan)]
    assert mid == [topo.master_gateway, bgw1, topo.broker, bgw2]
    assert [i.node_id for i in g.link_interfaces(topo.publisher_uplink)] == [topo.publisher_gateway, bgw1]
    assert [i.node_id for i in g.link_interfaces(topo.broker_uplink)] == [topo.master_gateway, bgw2]
    assert [i.node_id for i in g.link_interfaces(topo.publisher_lan)] == [topo.publisher, topo.publisher_gateway]


def test_subscriber_is_access_point_with_ssid():
    topo = build_pubsub_topology(ChainConfig(subscriber_count=2))
    g = topo.graph
    for i, link_id in enumerate(topo.subscriber_wifi_links):
        link = g.links[link_id]
        assert link.params.ssid == f"wifi{i + 1}"
        ap = g.link_interfaces(link_id)[0]
        assert ap.node_id == topo.subscribers[i]


def test_only_gateways_carry_stack():
    topo = build_pubsub_topology(ChainConfig(subscriber_count=2))
    for node in topo.graph.iter_nodes():
        assert node.ip_stack == node.role.is_gateway


def test_legible_subnets_in_allocation_order():
    topo = build_pubsub_topology(ChainConfig(subscriber_count=2))
    assert _subnets(topo) == [
        "10.1.1.0/24",
        "10.1.2.0/24",
        "10.1.4.0/24",
        "10.1.3.0/24",
        "10.3.0.0/24",
        "10.2.0.0/24",
        "10.3.1.0/24",
        "10.2.1.0/24",
    ]
    g = topo.graph
    mid = [str(i.address) if i.address else None for i in g.link_interfaces(topo.broker_lan)]
    assert mid == ["10.1.1.1/24", "10.1.1.2/24", None, "10.1.1.3/24"]


def test_identical_builds_yield_identical_subnets():
    a = build_pubsub_topology(ChainConfig(subscriber_count=4, downlink_rate_kbps=256))
    b = build_pubsub_topology(ChainConfig(subscriber_count=4, downlink_rate_kbps=256))
    assert _subnets(a) == _subnets(b)
    assert len(set(_subnets(a))) == len(_subnets(a))


def test_sequential_addressing_for_narrow_base():
    topo = build_pubsub_topology(ChainConfig(subscriber_count=1, address_base="192.168.0.0/16"))
    assert _subnets(topo)[:2] == ["192.168.0.0/24", "192.168.1.0/24"]


def test_three_subscriber_round_trip():
    topo = build_pubsub_topology(ChainConfig(subscriber_count=3))
    g = topo.graph
    on_wifi = []
    on_p2p = []
    for iface in g.attached_interfaces():
        if g.nodes[iface.node_id].role != NodeRole.SUBSCRIBER_GATEWAY:
            continue
        kind = g.links[iface.link_id].kind
        if kind == LinkKind.WIRELESS_ACCESS:
            on_wifi.append(iface)
        elif kind == LinkKind.POINT_TO_POINT:
            on_p2p.append(iface)
    assert len(on_wifi) == 3
    assert len(on_p2p) == 3
    ids = [i.iface_id for i in on_wifi + on_p2p]
    assert len(set(ids)) == 6
    assert all(i.address is not None for i in on_wifi + on_p2p)


def test_bridges_bound_to_endpoints():
    topo = build_pubsub_topology(ChainConfig(subscriber_count=2))
    g = topo.graph
    assert sorted(g.bridges) == ["tap-mid", "tap-pub", "tap-sub1", "tap-sub2"]
    assert g.bridges["tap-pub"].node_id == topo.publisher
    assert g.bridges["tap-mid"].iface_id == g.interface_on(topo.broker, topo.broker_lan).iface_id
    assert g.bridges["tap-sub2"].node_id == topo.subscribers[1]


@pytest.mark.parametrize("count", [0, -3, True, "2"])
def test_bad_subscriber_count_fails_before_any_node(monkeypatch, count):
    class ExplodingGraph:
        def __init__(self):
            raise AssertionError("graph must not be created")

    monkeypatch.setattr(topology_mod, "TopologyGraph", ExplodingGraph)
    with pytest.raises(InvalidScaleParameter):
        build_pubsub_topology(ChainConfig(subscriber_count=count))


@pytest.mark.parametrize("rate", [0, -1, 1.5])
def test_bad_downlink_rate(rate):
    with pytest.raises(InvalidScaleParameter):
        build_pubsub_topology(ChainConfig(subscriber_count=1, downlink_rate_kbps=rate))


def test_too_many_subscribers_exhaust_third_octet():
    with pytest.raises(AddressSpaceExhausted):
        build_pubsub_topology(ChainConfig(subscriber_count=257))
