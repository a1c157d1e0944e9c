from __future__ import annotations
import ipaddress
import logging
from typing import Dict, Iterator, List, Optional, Tuple

from ..constants import (
    CSMA_DATA_RATE,
    CSMA_DELAY,
    LOOPBACK_ADDRESS,
    P2P_DATA_RATE,
    P2P_DELAY,
)
from ..errors import LinkCapacityExceeded, TopologyError
from ..types import BridgeBinding, Interface, Link, LinkKind, MediumParams, Node, NodeRole, WifiRole
from ..utils.allocators import AddressPool

logger = logging.getLogger(__name__)

DEFAULT_MEDIUM: Dict[LinkKind, MediumParams] = {
    LinkKind.POINT_TO_POINT: MediumParams(data_rate=P2P_DATA_RATE, delay=P2P_DELAY),
    LinkKind.SHARED_MEDIUM: MediumParams(data_rate=CSMA_DATA_RATE, delay=CSMA_DELAY),
    # Wireless rates are negotiated by the remote station manager
    LinkKind.WIRELESS_ACCESS: MediumParams(),
    LinkKind.WIRELESS_STATION: MediumParams(),
}

# (min, max) attachments; None means unbounded
_CAPACITY: Dict[LinkKind, Tuple[int, Optional[int]]] = {
    LinkKind.POINT_TO_POINT: (2, 2),
    LinkKind.SHARED_MEDIUM: (2, None),
    LinkKind.WIRELESS_ACCESS: (2, None),
    LinkKind.WIRELESS_STATION: (2, None),
}


def link_capacity(kind: LinkKind) -> Tuple[int, Optional[int]]:
    return _CAPACITY[kind]


class TopologyGraph:
    """In-memory model of nodes, links and interfaces.

    Identifiers are handed out sequentially from 0 per entity type and are never
    reused. Iteration helpers yield entities in creation order, which is the
    order both the introspection reports and the engine realisation rely on.
    """

    def __init__(self) -> None:
        self.nodes: Dict[int, Node] = {}
        self.links: Dict[int, Link] = {}
        self.interfaces: Dict[int, Interface] = {}
        self.bridges: Dict[str, BridgeBinding] = {}
        # link ids in the order their subnets were allocated
        self.address_plan: List[int] = []
        # interface ids in the order addresses were bound
        self.assignments: List[int] = []
        self._next_node = 0
        self._next_link = 0
        self._next_iface = 0

    # --- lookup ---------------------------------------------------------

    def node(self, node_id: int) -> Node:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise TopologyError(f"Unknown node id {node_id}") from None

    def link(self, link_id: int) -> Link:
        try:
            return self.links[link_id]
        except KeyError:
            raise TopologyError(f"Unknown link id {link_id}") from None

    def interface(self, iface_id: int) -> Interface:
        try:
            return self.interfaces[iface_id]
        except KeyError:
            raise TopologyError(f"Unknown interface id {iface_id}") from None

    def iter_nodes(self) -> Iterator[Node]:
        return iter(self.nodes.values())

    def iter_links(self) -> Iterator[Link]:
        return iter(self.links.values())

    def nodes_by_role(self, role: NodeRole) -> List[Node]:
        return [n for n in self.nodes.values() if n.role == role]

    def links_by_kind(self, kind: LinkKind) -> List[Link]:
        return [l for l in self.links.values() if l.kind == kind]

    def link_interfaces(self, link_id: int) -> List[Interface]:
        return [self.interfaces[i] for i in self.link(link_id).interfaces]

    def node_interfaces(self, node_id: int) -> List[Interface]:
        return [self.interfaces[i] for i in self.node(node_id).interfaces]

    def interface_on(self, node_id: int, link_id: int) -> Interface:
        for iface in self.node_interfaces(node_id):
            if iface.link_id == link_id:
                return iface
        raise TopologyError(f"Node {node_id} has no interface on link {link_id}")

    # --- construction ---------------------------------------------------

    def create_node(self, role: NodeRole, name: Optional[str] = None) -> int:
        node_id = self._next_node
        self._next_node += 1
        self.nodes[node_id] = Node(node_id=node_id, role=role, name=name or f"{role.value}-{node_id}")
        return node_id

    def create_link(self, kind: LinkKind, medium_params: Optional[MediumParams] = None) -> int:
        link_id = self._next_link
        self._next_link += 1
        params = medium_params if medium_params is not None else DEFAULT_MEDIUM[kind]
        self.links[link_id] = Link(link_id=link_id, kind=kind, params=params)
        logger.debug("Created link %d (%s) rate=%s delay=%s", link_id, kind.value, params.data_rate, params.delay)
        return link_id

    def _new_interface(self, node: Node, link_id: Optional[int]) -> Interface:
        iface = Interface(
            iface_id=self._next_iface,
            node_id=node.node_id,
            index=len(node.interfaces),
            link_id=link_id,
        )
        self._next_iface += 1
        self.interfaces[iface.iface_id] = iface
        node.interfaces.append(iface.iface_id)
        return iface

    def attach(self, link_id: int, node_id: int) -> int:
        link = self.link(link_id)
        node = self.node(node_id)
        if link.finalized:
            raise TopologyError(f"Link {link_id} is finalized; cannot attach node {node_id}")
        _, max_attach = _CAPACITY[link.kind]
        if max_attach is not None and len(link.interfaces) >= max_attach:
            raise LinkCapacityExceeded(
                f"Link {link_id} ({link.kind.value}) already has {len(link.interfaces)} interfaces; cannot attach node {node_id}"
            )
        iface = self._new_interface(node, link_id)
        if link.kind == LinkKind.WIRELESS_ACCESS:
            iface.wifi_role = WifiRole.ACCESS_POINT if not link.interfaces else WifiRole.STATION
        elif link.kind == LinkKind.WIRELESS_STATION:
            iface.wifi_role = WifiRole.STATION
        link.interfaces.append(iface.iface_id)
        return iface.iface_id

    def connect(self, kind: LinkKind, node_ids: List[int], medium_params: Optional[MediumParams] = None) -> int:
        """Create a link, attach ``node_ids`` in order and finalize it."""
        link_id = self.create_link(kind, medium_params)
        for node_id in node_ids:
            self.attach(link_id, node_id)
        self.finalize_link(link_id)
        return link_id

    def finalize_link(self, link_id: int) -> None:
        link = self.link(link_id)
        min_attach, _ = _CAPACITY[link.kind]
        if len(link.interfaces) < min_attach:
            raise TopologyError(
                f"Link {link_id} ({link.kind.value}) needs at least {min_attach} interfaces, has {len(link.interfaces)}"
            )
        link.finalized = True

    def install_internet_stack(self, node_ids: List[int]) -> None:
        """Mark nodes as IP capable; each gets an unattached loopback interface."""
        for node_id in node_ids:
            node = self.node(node_id)
            if node.ip_stack:
                continue
            node.ip_stack = True
            loopback = self._new_interface(node, None)
            loopback.address = ipaddress.IPv4Interface(LOOPBACK_ADDRESS)

    # --- addressing -----------------------------------------------------

    def address_link(self, pool: AddressPool, link_id: int, base_hint: Optional[int] = None) -> ipaddress.IPv4Network:
        """Allocate a subnet for a finalized link and number its IP-capable interfaces.

        Host offsets run 1, 2, ... in attachment order; interfaces whose node has
        no IP stack are skipped and stay unaddressed.
        """
        link = self.link(link_id)
        if not link.finalized:
            raise TopologyError(f"Link {link_id} must be finalized before address assignment")
        if link.subnet is not None:
            raise TopologyError(f"Link {link_id} already carries subnet {link.subnet}")
        subnet = pool.allocate_network(base_hint)
        link.subnet = subnet
        self.address_plan.append(link_id)
        offset = 1
        for iface in self.link_interfaces(link_id):
            if not self.nodes[iface.node_id].ip_stack:
                continue
            self.assign_address(pool, subnet, iface.iface_id, offset)
            offset += 1
        logger.debug("Link %d addressed from %s (%d hosts)", link_id, subnet, offset - 1)
        return subnet

    def assign_address(self, pool: AddressPool, subnet: ipaddress.IPv4Network, iface_id: int, host_offset: int) -> ipaddress.IPv4Interface:
        iface = self.interface(iface_id)
        if iface.link_id is None or not self.links[iface.link_id].finalized:
            raise TopologyError(f"Interface {iface_id} is not on a finalized link")
        node = self.nodes[iface.node_id]
        if not node.ip_stack:
            raise TopologyError(
                f"Interface {iface_id} on node {node.node_id} ({node.name}) cannot take an address; the node has no IP stack"
            )
        address = pool.assign_address(subnet, iface, host_offset)
        self.assignments.append(iface_id)
        return address

    # --- summaries ------------------------------------------------------

    def attached_interfaces(self) -> List[Interface]:
        return [i for i in self.interfaces.values() if i.link_id is not None]

    def stack_nodes(self) -> List[int]:
        return [n.node_id for n in self.nodes.values() if n.ip_stack]

    def wireless_nodes(self) -> List[int]:
        seen: List[int] = []
        for link in self.links.values():
            if not link.kind.is_wireless:
                continue
            for iface in self.link_interfaces(link.link_id):
                if iface.node_id not in seen:
                    seen.append(iface.node_id)
        return seen
