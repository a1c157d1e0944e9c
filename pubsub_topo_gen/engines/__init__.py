"""Simulation engine adapters.

The realiser talks to engines through the small protocol in ``base``;
``RecordingEngine`` realises a topology offline, ``Ns3Engine`` drives ns-3.
"""

from .base import HostBridge, SimulationEngine  # noqa: F401
from .recording import RecordingEngine  # noqa: F401


def make_engine(dry_run: bool = False):
    """Return an offline recording engine, or an ns-3 engine (imports the bindings)."""
    if dry_run:
        return RecordingEngine()
    from .ns3 import Ns3Engine
    return Ns3Engine()


__all__ = [
    "HostBridge",
    "SimulationEngine",
    "RecordingEngine",
    "make_engine",
]
