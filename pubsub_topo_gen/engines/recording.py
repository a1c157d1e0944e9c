from __future__ import annotations
import ipaddress
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..types import BridgeMode, LinkKind, MediumParams, SimulatorConfig

logger = logging.getLogger(__name__)


class RecordingEngine:
    """Offline engine that records every call instead of simulating.

    Used for ``--dry-run`` and in tests. Identifiers mimic ns-3: nodes,
    channels and devices are numbered from 0 in creation order.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.config: Optional[SimulatorConfig] = None
        self.nodes: List[int] = []
        self.links: Dict[int, Dict[str, Any]] = {}
        self.devices: Dict[int, int] = {}  # device id -> node id
        self.stack_nodes: List[int] = []
        self.mobile_nodes: List[int] = []
        self.addresses: Dict[int, ipaddress.IPv4Interface] = {}
        self.bridges: Dict[str, Tuple[int, int, BridgeMode]] = {}
        self.pcap_prefix: Optional[str] = None
        self.routing_populated = False
        self.stopped_at: Optional[float] = None
        self.destroyed = False

    def _record(self, name: str, /, **kwargs: Any) -> None:
        self.calls.append((name, kwargs))

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def setup(self, config: SimulatorConfig) -> None:
        self._record("setup", config=config)
        self.config = config

    def create_node(self) -> int:
        node_id = len(self.nodes)
        self.nodes.append(node_id)
        self._record("create_node", node_id=node_id)
        return node_id

    def install_link(self, kind: LinkKind, params: MediumParams, node_ids: Sequence[int]) -> Tuple[int, List[int]]:
        for node_id in node_ids:
            if node_id not in self.nodes:
                raise ValueError(f"Unknown engine node {node_id}")
        link_id = len(self.links)
        device_ids: List[int] = []
        for node_id in node_ids:
            device_id = len(self.devices)
            self.devices[device_id] = node_id
            device_ids.append(device_id)
        self.links[link_id] = {"kind": kind, "params": params, "nodes": list(node_ids), "devices": device_ids}
        self._record("install_link", kind=kind, params=params, node_ids=list(node_ids))
        return link_id, device_ids

    def install_internet_stack(self, node_ids: Sequence[int]) -> None:
        self._record("install_internet_stack", node_ids=list(node_ids))
        self.stack_nodes.extend(n for n in node_ids if n not in self.stack_nodes)

    def install_mobility(self, node_ids: Sequence[int]) -> None:
        self._record("install_mobility", node_ids=list(node_ids))
        self.mobile_nodes.extend(n for n in node_ids if n not in self.mobile_nodes)

    def assign_address(self, interface_id: int, network: ipaddress.IPv4Address, prefix: int, host_offset: int) -> None:
        if interface_id not in self.devices:
            raise ValueError(f"Unknown engine device {interface_id}")
        if self.devices[interface_id] not in self.stack_nodes:
            raise ValueError(f"Device {interface_id} is on a node without an internet stack")
        address = ipaddress.IPv4Interface((int(network) + host_offset, prefix))
        self.addresses[interface_id] = address
        self._record("assign_address", interface_id=interface_id, address=str(address))

    def create_bridge(self, node_id: int, interface_id: int, external_name: str, mode: BridgeMode) -> None:
        if self.devices.get(interface_id) != node_id:
            raise ValueError(f"Device {interface_id} is not installed on node {node_id}")
        self.bridges[external_name] = (node_id, interface_id, mode)
        self._record("create_bridge", node_id=node_id, interface_id=interface_id, name=external_name, mode=mode)

    def populate_routing(self) -> None:
        self.routing_populated = True
        self._record("populate_routing")

    def enable_pcap(self, prefix: str) -> None:
        self.pcap_prefix = prefix
        self._record("enable_pcap", prefix=prefix)

    def run_until(self, stop_time: float) -> None:
        logger.info("Dry run: not advancing the scheduler (stop time %.1fs)", stop_time)
        self.stopped_at = stop_time
        self._record("run_until", stop_time=stop_time)

    def destroy(self) -> None:
        self.destroyed = True
        self._record("destroy")
