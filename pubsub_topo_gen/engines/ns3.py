from __future__ import annotations
import ipaddress
import logging
from typing import Any, Dict, List, Sequence, Tuple

from ..constants import WIFI_REMOTE_STATION_MANAGER
from ..types import BridgeMode, LinkKind, MediumParams, SimulatorConfig

logger = logging.getLogger(__name__)


def _load_ns() -> Any:
    """Import the cppyy-based ns-3 bindings (``pip install ns3``)."""
    try:
        from ns import ns  # type: ignore
    except ImportError as exc:
        raise RuntimeError(
            "ns-3 Python bindings are not installed; install the 'ns3' package or use --dry-run"
        ) from exc
    return ns


class Ns3Engine:
    """Drive an in-process ns-3 simulator through its Python bindings.

    Node ids are the ns-3 node ids; link ids are channel ids; interface ids
    index the devices this engine installed, in installation order.
    """

    def __init__(self) -> None:
        self.ns = _load_ns()
        self._nodes: Dict[int, Any] = {}
        self._devices: List[Any] = []
        # last helper per link kind, used for pcap tracing
        self._trace_helpers: Dict[LinkKind, Any] = {}

    def setup(self, config: SimulatorConfig) -> None:
        ns = self.ns
        ns.GlobalValue.Bind("SimulatorImplementationType", ns.StringValue(config.implementation))
        ns.GlobalValue.Bind("ChecksumEnabled", ns.BooleanValue(bool(config.checksum_enabled)))
        logger.debug("ns-3 scheduler=%s checksum=%s", config.implementation, config.checksum_enabled)

    def create_node(self) -> int:
        container = self.ns.NodeContainer()
        container.Create(1)
        node = container.Get(0)
        node_id = int(node.GetId())
        self._nodes[node_id] = node
        return node_id

    def _container(self, node_ids: Sequence[int]) -> Any:
        container = self.ns.NodeContainer()
        for node_id in node_ids:
            container.Add(self._nodes[node_id])
        return container

    def _install_p2p(self, params: MediumParams, node_ids: Sequence[int]) -> Any:
        ns = self.ns
        helper = ns.PointToPointHelper()
        if params.data_rate:
            helper.SetDeviceAttribute("DataRate", ns.StringValue(params.data_rate))
        if params.delay:
            helper.SetChannelAttribute("Delay", ns.StringValue(params.delay))
        self._trace_helpers[LinkKind.POINT_TO_POINT] = helper
        return helper.Install(self._container(node_ids))

    def _install_csma(self, params: MediumParams, node_ids: Sequence[int]) -> Any:
        ns = self.ns
        helper = ns.CsmaHelper()
        if params.data_rate:
            helper.SetChannelAttribute("DataRate", ns.StringValue(params.data_rate))
        if params.delay:
            helper.SetChannelAttribute("Delay", ns.StringValue(params.delay))
        self._trace_helpers[LinkKind.SHARED_MEDIUM] = helper
        return helper.Install(self._container(node_ids))

    def _install_wifi(self, kind: LinkKind, params: MediumParams, node_ids: Sequence[int]) -> Any:
        ns = self.ns
        channel = ns.YansWifiChannelHelper.Default()
        phy = ns.YansWifiPhyHelper()
        phy.SetChannel(channel.Create())
        wifi = ns.WifiHelper()
        wifi.SetRemoteStationManager(WIFI_REMOTE_STATION_MANAGER)
        mac = ns.WifiMacHelper()
        ssid = ns.Ssid(params.ssid or "ns-3-ssid")
        devices = ns.NetDeviceContainer()
        stations = list(node_ids)
        if kind == LinkKind.WIRELESS_ACCESS:
            mac.SetType("ns3::ApWifiMac", "Ssid", ns.SsidValue(ssid))
            devices.Add(wifi.Install(phy, mac, self._container(stations[:1])))
            stations = stations[1:]
        mac.SetType("ns3::StaWifiMac", "Ssid", ns.SsidValue(ssid), "ActiveProbing", ns.BooleanValue(False))
        devices.Add(wifi.Install(phy, mac, self._container(stations)))
        self._trace_helpers[kind] = phy
        return devices

    def install_link(self, kind: LinkKind, params: MediumParams, node_ids: Sequence[int]) -> Tuple[int, List[int]]:
        if kind == LinkKind.POINT_TO_POINT:
            devices = self._install_p2p(params, node_ids)
        elif kind == LinkKind.SHARED_MEDIUM:
            devices = self._install_csma(params, node_ids)
        else:
            devices = self._install_wifi(kind, params, node_ids)
        device_ids: List[int] = []
        for i in range(int(devices.GetN())):
            device_ids.append(len(self._devices))
            self._devices.append(devices.Get(i))
        channel_id = int(devices.Get(0).GetChannel().GetId())
        return channel_id, device_ids

    def install_internet_stack(self, node_ids: Sequence[int]) -> None:
        self.ns.InternetStackHelper().Install(self._container(node_ids))

    def install_mobility(self, node_ids: Sequence[int]) -> None:
        self.ns.MobilityHelper().Install(self._container(node_ids))

    def assign_address(self, interface_id: int, network: ipaddress.IPv4Address, prefix: int, host_offset: int) -> None:
        ns = self.ns
        net = ipaddress.IPv4Network((network, prefix))
        helper = ns.Ipv4AddressHelper()
        helper.SetBase(
            ns.Ipv4Address(str(net.network_address)),
            ns.Ipv4Mask(str(net.netmask)),
            ns.Ipv4Address(str(ipaddress.IPv4Address(host_offset))),
        )
        helper.Assign(ns.NetDeviceContainer(self._devices[interface_id]))

    def create_bridge(self, node_id: int, interface_id: int, external_name: str, mode: BridgeMode) -> None:
        ns = self.ns
        helper = ns.TapBridgeHelper()
        helper.SetAttribute("Mode", ns.StringValue(mode.value))
        helper.SetAttribute("DeviceName", ns.StringValue(external_name))
        helper.Install(self._nodes[node_id], self._devices[interface_id])
        logger.info("Tap bridge = %s (node %d, mode %s)", external_name, node_id, mode.value)

    def populate_routing(self) -> None:
        self.ns.Ipv4GlobalRoutingHelper.PopulateRoutingTables()

    def enable_pcap(self, prefix: str) -> None:
        for kind, helper in self._trace_helpers.items():
            if kind == LinkKind.SHARED_MEDIUM:
                helper.EnablePcapAll(prefix, False)
            else:
                helper.EnablePcapAll(prefix)

    def run_until(self, stop_time: float) -> None:
        ns = self.ns
        ns.Simulator.Stop(ns.Seconds(float(stop_time)))
        ns.Simulator.Run()

    def destroy(self) -> None:
        self.ns.Simulator.Destroy()
