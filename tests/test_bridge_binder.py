import pytest

from pubsub_topo_gen.builders.graph import TopologyGraph
from pubsub_topo_gen.errors import DuplicateBridgeName, InterfaceAlreadyBridged, TopologyError
from pubsub_topo_gen.types import BridgeMode, LinkKind, NodeRole
from pubsub_topo_gen.utils.bridges import BridgeBinder


def _pair():
    g = TopologyGraph()
    a = g.create_node(NodeRole.SUBSCRIBER)
    b = g.create_node(NodeRole.SUBSCRIBER_GATEWAY)
    link = g.connect(LinkKind.WIRELESS_ACCESS, [a, b])
    ia, ib = (i.iface_id for i in g.link_interfaces(link))
    return g, a, b, ia, ib


def test_bind_records_binding_and_default_mode():
    g, a, _, ia, _ = _pair()
    binder = BridgeBinder(g, BridgeMode.CONFIGURE_LOCAL)
    binding = binder.bind_bridge(a, ia, "tap-sub1")
    assert binding.mode == BridgeMode.CONFIGURE_LOCAL
    assert g.interfaces[ia].bridge == "tap-sub1"
    assert binder.bindings() == [binding]


def test_two_names_on_one_interface():
    g, a, _, ia, _ = _pair()
    binder = BridgeBinder(g)
    binder.bind_bridge(a, ia, "tap-a")
    with pytest.raises(InterfaceAlreadyBridged):
        binder.bind_bridge(a, ia, "tap-b")


def test_one_name_on_two_interfaces():
    g, a, b, ia, ib = _pair()
    binder = BridgeBinder(g)
    binder.bind_bridge(a, ia, "tap-a")
    with pytest.raises(DuplicateBridgeName):
        binder.bind_bridge(b, ib, "tap-a")
    assert g.interfaces[ib].bridge is None


def test_interface_must_belong_to_node():
    g, a, b, ia, _ = _pair()
    with pytest.raises(TopologyError):
        BridgeBinder(g).bind_bridge(b, ia, "tap-a")


def test_loopback_cannot_be_bridged():
    g, _, b, _, _ = _pair()
    g.install_internet_stack([b])
    loopback = g.node_interfaces(b)[-1]
    with pytest.raises(TopologyError):
        BridgeBinder(g).bind_bridge(b, loopback.iface_id, "tap-lo")


@pytest.mark.parametrize("name", ["", "   ", "a-very-long-bridge0", "tap sub", "tap/1"])
def test_invalid_bridge_names(name):
    g, a, _, ia, _ = _pair()
    with pytest.raises(ValueError):
        BridgeBinder(g).bind_bridge(a, ia, name)


def test_bridge_mode_parse():
    assert BridgeMode.parse("use-bridge") == BridgeMode.USE_BRIDGE
    assert BridgeMode.parse("configure_local") == BridgeMode.CONFIGURE_LOCAL
    assert BridgeMode.parse("UseLocal") == BridgeMode.USE_LOCAL
    with pytest.raises(ValueError):
        BridgeMode.parse("bogus")
