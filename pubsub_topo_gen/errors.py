from __future__ import annotations


class TopologyError(Exception):
    """Raised when the topology cannot be assembled as requested."""


class AddressSpaceExhausted(TopologyError):
    pass


class DuplicateAssignment(TopologyError):
    pass


class LinkCapacityExceeded(TopologyError):
    pass


class DuplicateBridgeName(TopologyError):
    pass


class InterfaceAlreadyBridged(TopologyError):
    pass


class InvalidScaleParameter(TopologyError):
    pass
