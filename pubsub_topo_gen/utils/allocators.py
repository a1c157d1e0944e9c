from __future__ import annotations
import ipaddress
import logging
from typing import Dict, Optional, Set, Tuple

from ..constants import DEFAULT_ADDRESS_BASE, DEFAULT_IPV4_PREFIXLEN
from ..errors import AddressSpaceExhausted, DuplicateAssignment, TopologyError
from ..types import Interface

logger = logging.getLogger(__name__)


class AddressPool:
    """Allocate unique, equally sized IPv4 subnets from a base network.

    Subnets are addressed by slot: slot ``k`` is the k-th ``/prefixlen`` block
    of the base network. For the default 10.0.0.0/8 split into /24s, slot
    ``second_octet * 256 + third_octet`` is ``10.<second>.<third>.0/24``.
    """

    def __init__(self, base: str = DEFAULT_ADDRESS_BASE, prefixlen: int = DEFAULT_IPV4_PREFIXLEN):
        self.base = ipaddress.IPv4Network(base, strict=False)
        if prefixlen < self.base.prefixlen or prefixlen > 30:
            raise ValueError(f"Subnet prefix /{prefixlen} does not fit inside {self.base}")
        self.prefixlen = prefixlen
        self._size = 1 << (32 - prefixlen)
        self._slots = self.base.num_addresses // self._size
        self._allocated: Set[int] = set()
        self._next_slot = 0
        # (network_address, host_offset) pairs already handed to an interface
        self._assigned: Dict[Tuple[int, int], int] = {}

    @property
    def slot_count(self) -> int:
        return self._slots

    def reset(self) -> None:
        """Forget every issued subnet and rewind the cursor for a fresh build."""
        self._allocated.clear()
        self._assigned.clear()
        self._next_slot = 0

    def _subnet_at(self, slot: int) -> ipaddress.IPv4Network:
        start = int(self.base.network_address) + slot * self._size
        return ipaddress.IPv4Network((ipaddress.IPv4Address(start), self.prefixlen))

    def allocate_subnet(self, base_hint: Optional[int] = None) -> Tuple[ipaddress.IPv4Address, int]:
        """Issue the next subnet, or the one named by ``base_hint`` (a slot index)."""
        net = self.allocate_network(base_hint)
        return net.network_address, net.prefixlen

    def allocate_network(self, base_hint: Optional[int] = None) -> ipaddress.IPv4Network:
        if base_hint is not None:
            if base_hint < 0 or base_hint >= self._slots:
                raise AddressSpaceExhausted(
                    f"Subnet hint {base_hint} lies outside {self.base} (/{self.prefixlen} slots 0..{self._slots - 1})"
                )
            if base_hint in self._allocated:
                raise AddressSpaceExhausted(
                    f"Subnet hint {base_hint} collides with already issued {self._subnet_at(base_hint)}"
                )
            self._allocated.add(base_hint)
            net = self._subnet_at(base_hint)
            logger.debug("Issued subnet %s (hint %d)", net, base_hint)
            return net
        while self._next_slot < self._slots:
            slot = self._next_slot
            self._next_slot += 1
            if slot in self._allocated:
                continue
            self._allocated.add(slot)
            net = self._subnet_at(slot)
            logger.debug("Issued subnet %s (slot %d)", net, slot)
            return net
        raise AddressSpaceExhausted(f"No /{self.prefixlen} subnets left in {self.base}")

    def legible_hint(self, band: int, index: int) -> Optional[int]:
        """Slot of ``<a>.<band>.<index>.0/24`` when the pool is a /8 (or wider) cut into /24s.

        Returns None for other pool shapes so callers fall back to sequential order.
        """
        if self.base.prefixlen > 8 or self.prefixlen != 24:
            return None
        if not 0 <= index < 256:
            raise AddressSpaceExhausted(
                f"Segment index {index} does not fit the third octet of {self.base.network_address.packed[0]}.{band}.x.0/24"
            )
        return band * 256 + index

    def is_issued(self, subnet: ipaddress.IPv4Network) -> bool:
        if subnet.prefixlen != self.prefixlen or not subnet.subnet_of(self.base):
            return False
        slot = (int(subnet.network_address) - int(self.base.network_address)) // self._size
        return slot in self._allocated

    def assign_address(self, subnet: ipaddress.IPv4Network, interface: Interface, host_offset: int) -> ipaddress.IPv4Interface:
        if not self.is_issued(subnet):
            raise TopologyError(f"Subnet {subnet} was not issued by pool {self.base}")
        # offset 0 is the network address, the last offset is broadcast
        if host_offset < 1 or host_offset >= subnet.num_addresses - 1:
            raise ValueError(
                f"Host offset {host_offset} outside 1..{subnet.num_addresses - 2} for {subnet}"
            )
        if interface.address is not None:
            raise DuplicateAssignment(
                f"Interface {interface.iface_id} already has address {interface.address}"
            )
        key = (int(subnet.network_address), host_offset)
        if key in self._assigned:
            raise DuplicateAssignment(
                f"Address {subnet.network_address + host_offset} in {subnet} already bound to interface {self._assigned[key]}"
            )
        interface.address = ipaddress.IPv4Interface((int(subnet.network_address) + host_offset, subnet.prefixlen))
        self._assigned[key] = interface.iface_id
        return interface.address

