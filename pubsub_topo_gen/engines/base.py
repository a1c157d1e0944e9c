from __future__ import annotations
import ipaddress
from typing import List, Protocol, Sequence, Tuple

from ..types import BridgeMode, LinkKind, MediumParams, SimulatorConfig


class SimulationEngine(Protocol):
    """What the realiser needs from a discrete-event simulator.

    Identifiers returned by the engine are its own; the realiser keeps the
    mapping to graph identifiers.
    """

    def setup(self, config: SimulatorConfig) -> None: ...

    def create_node(self) -> int: ...

    def install_link(
        self,
        kind: LinkKind,
        params: MediumParams,
        node_ids: Sequence[int],
    ) -> Tuple[int, List[int]]: ...

    def install_internet_stack(self, node_ids: Sequence[int]) -> None: ...

    def install_mobility(self, node_ids: Sequence[int]) -> None: ...

    def assign_address(
        self,
        interface_id: int,
        network: ipaddress.IPv4Address,
        prefix: int,
        host_offset: int,
    ) -> None: ...

    def populate_routing(self) -> None: ...

    def enable_pcap(self, prefix: str) -> None: ...

    def run_until(self, stop_time: float) -> None: ...

    def destroy(self) -> None: ...


class HostBridge(Protocol):
    """Host-bridging subsystem that pipes simulated frames to a host TAP device."""

    def create_bridge(
        self,
        node_id: int,
        interface_id: int,
        external_name: str,
        mode: BridgeMode,
    ) -> None: ...
