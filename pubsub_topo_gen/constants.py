"""Small, shared constants used across pubsub_topo_gen.

Keep this module dependency-free to avoid import cycles.
"""

DEFAULT_IPV4_PREFIXLEN: int = 24
DEFAULT_ADDRESS_BASE: str = "10.0.0.0/8"

# Medium parameters (ns-3 attribute syntax)
P2P_DATA_RATE: str = "1Gbps"
P2P_DELAY: str = "0ms"
CSMA_DATA_RATE: str = "100Mbps"
CSMA_DELAY: str = "0ms"
PUBLISHER_LAN_DATA_RATE: str = "10Mbps"
BROKER_LAN_DATA_RATE: str = "1Gbps"
WIFI_REMOTE_STATION_MANAGER: str = "ns3::ArfWifiManager"

# Second octet of the legible subnet hints (10.<band>.<index>.0/24)
CORE_BAND: int = 1
SUBSCRIBER_P2P_BAND: int = 2
SUBSCRIBER_WIFI_BAND: int = 3

LOOPBACK_ADDRESS: str = "127.0.0.1/8"

# Linux IFNAMSIZ minus the trailing NUL
MAX_BRIDGE_NAME_LEN: int = 15

DEFAULT_PUBLISHER_BRIDGE: str = "tap-pub"
DEFAULT_BROKER_BRIDGE: str = "tap-mid"
DEFAULT_SUBSCRIBER_BRIDGE_PREFIX: str = "tap-sub"

DEFAULT_SIMULATOR_IMPL: str = "ns3::RealtimeSimulatorImpl"
DEFAULT_STOP_TIME_S: float = 6000.0

UNATTACHED_MARKER: str = "none"
