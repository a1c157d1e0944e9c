from __future__ import annotations
import logging
from typing import TYPE_CHECKING, List, Optional

from ..constants import MAX_BRIDGE_NAME_LEN
from ..errors import DuplicateBridgeName, InterfaceAlreadyBridged, TopologyError
from ..types import BridgeBinding, BridgeMode

if TYPE_CHECKING:  # pragma: no cover
    from ..builders.graph import TopologyGraph

logger = logging.getLogger(__name__)


def _normalize_bridge_name(value: str) -> str:
    name = str(value or "").strip()
    if not name:
        raise ValueError("Bridge name must not be empty")
    if len(name) > MAX_BRIDGE_NAME_LEN:
        raise ValueError(f"Bridge name {name!r} exceeds {MAX_BRIDGE_NAME_LEN} characters")
    if any(ch.isspace() or ch == "/" for ch in name):
        raise ValueError(f"Bridge name {name!r} contains whitespace or '/'")
    return name


class BridgeBinder:
    """Record which simulated interfaces the host-bridging subsystem must expose.

    Nothing is moved here; the bindings are consumed when the topology is
    realised on an engine.
    """

    def __init__(self, graph: "TopologyGraph", default_mode: BridgeMode = BridgeMode.USE_BRIDGE):
        self.graph = graph
        self.default_mode = default_mode

    def bind_bridge(
        self,
        node_id: int,
        interface_id: int,
        bridge_name: str,
        mode: Optional[BridgeMode] = None,
    ) -> BridgeBinding:
        name = _normalize_bridge_name(bridge_name)
        iface = self.graph.interface(interface_id)
        if iface.node_id != node_id:
            raise TopologyError(
                f"Interface {interface_id} belongs to node {iface.node_id}, not node {node_id}"
            )
        if iface.link_id is None:
            raise TopologyError(f"Interface {interface_id} is not attached to a link; cannot bridge it")
        existing = self.graph.bridges.get(name)
        if existing is not None and existing.iface_id != interface_id:
            raise DuplicateBridgeName(
                f"Bridge name {name!r} already bound to interface {existing.iface_id} on node {existing.node_id}"
            )
        if iface.bridge is not None:
            raise InterfaceAlreadyBridged(
                f"Interface {interface_id} on node {node_id} already bridged to {iface.bridge!r}"
            )
        binding = BridgeBinding(
            node_id=node_id,
            iface_id=interface_id,
            bridge_name=name,
            mode=mode or self.default_mode,
        )
        iface.bridge = name
        self.graph.bridges[name] = binding
        logger.debug("Bridge %s -> node %d interface %d (%s)", name, node_id, interface_id, binding.mode.value)
        return binding

    def bindings(self) -> List[BridgeBinding]:
        return list(self.graph.bridges.values())
