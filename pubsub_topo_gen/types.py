from __future__ import annotations
import ipaddress
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .constants import (
    DEFAULT_ADDRESS_BASE,
    DEFAULT_BROKER_BRIDGE,
    DEFAULT_IPV4_PREFIXLEN,
    DEFAULT_PUBLISHER_BRIDGE,
    DEFAULT_SIMULATOR_IMPL,
    DEFAULT_STOP_TIME_S,
    DEFAULT_SUBSCRIBER_BRIDGE_PREFIX,
)


class NodeRole(str, Enum):
    PUBLISHER = "publisher"
    PUBLISHER_GATEWAY = "publisher-gateway"
    BROKER = "broker"
    BROKER_GATEWAY = "broker-gateway"
    SUBSCRIBER = "subscriber"
    SUBSCRIBER_GATEWAY = "subscriber-gateway"
    SUBSCRIBER_MASTER_GATEWAY = "subscriber-master-gateway"

    @property
    def is_gateway(self) -> bool:
        return self.value.endswith("gateway")


class LinkKind(str, Enum):
    WIRELESS_ACCESS = "wireless-access"
    WIRELESS_STATION = "wireless-station"
    SHARED_MEDIUM = "shared-medium"
    POINT_TO_POINT = "point-to-point"

    @property
    def is_wireless(self) -> bool:
        return self in (LinkKind.WIRELESS_ACCESS, LinkKind.WIRELESS_STATION)


class WifiRole(str, Enum):
    ACCESS_POINT = "ap"
    STATION = "sta"


class BridgeMode(str, Enum):
    """TapBridge operating modes understood by the host-bridging subsystem."""

    CONFIGURE_LOCAL = "ConfigureLocal"
    USE_LOCAL = "UseLocal"
    USE_BRIDGE = "UseBridge"

    @classmethod
    def parse(cls, value: str) -> "BridgeMode":
        key = str(value or "").strip().lower().replace("-", "").replace("_", "")
        for mode in cls:
            if mode.value.lower() == key:
                return mode
        raise ValueError(f"Unknown bridge mode {value!r}; expected one of {', '.join(m.value for m in cls)}")


@dataclass(frozen=True)
class MediumParams:
    data_rate: Optional[str] = None
    delay: Optional[str] = None
    # Wireless links only
    ssid: Optional[str] = None


@dataclass
class Interface:
    iface_id: int
    node_id: int
    # Per-node device index (attachment order on the owning node)
    index: int
    link_id: Optional[int] = None
    address: Optional[ipaddress.IPv4Interface] = None
    wifi_role: Optional[WifiRole] = None
    bridge: Optional[str] = None


@dataclass
class Node:
    node_id: int
    role: NodeRole
    name: str
    interfaces: List[int] = field(default_factory=list)
    ip_stack: bool = False


@dataclass
class Link:
    link_id: int
    kind: LinkKind
    params: MediumParams
    interfaces: List[int] = field(default_factory=list)
    finalized: bool = False
    subnet: Optional[ipaddress.IPv4Network] = None


@dataclass(frozen=True)
class BridgeBinding:
    node_id: int
    iface_id: int
    bridge_name: str
    mode: BridgeMode = BridgeMode.USE_BRIDGE


# Node-name stems; numbered roles get a 1-based suffix ("subscriber-gw3")
ROLE_NAMES: Dict[NodeRole, str] = {
    NodeRole.PUBLISHER: "publisher",
    NodeRole.PUBLISHER_GATEWAY: "publisher-gw",
    NodeRole.BROKER: "broker",
    NodeRole.BROKER_GATEWAY: "broker-gw",
    NodeRole.SUBSCRIBER: "subscriber",
    NodeRole.SUBSCRIBER_GATEWAY: "subscriber-gw",
    NodeRole.SUBSCRIBER_MASTER_GATEWAY: "subscriber-master-gw",
}


def _default_role_names() -> Dict[NodeRole, str]:
    return dict(ROLE_NAMES)


@dataclass
class ChainConfig:
    subscriber_count: int = 1
    # kilobytes per second; None keeps the point-to-point default
    downlink_rate_kbps: Optional[int] = None
    names: Dict[NodeRole, str] = field(default_factory=_default_role_names)
    publisher_bridge: str = DEFAULT_PUBLISHER_BRIDGE
    broker_bridge: str = DEFAULT_BROKER_BRIDGE
    subscriber_bridge_prefix: str = DEFAULT_SUBSCRIBER_BRIDGE_PREFIX
    bridge_mode: BridgeMode = BridgeMode.USE_BRIDGE
    address_base: str = DEFAULT_ADDRESS_BASE
    subnet_prefixlen: int = DEFAULT_IPV4_PREFIXLEN

    def subscriber_bridge(self, index: int) -> str:
        return f"{self.subscriber_bridge_prefix}{index + 1}"


@dataclass
class SimulatorConfig:
    implementation: str = DEFAULT_SIMULATOR_IMPL
    checksum_enabled: bool = True
    stop_time: float = DEFAULT_STOP_TIME_S
    pcap_prefix: Optional[str] = None
