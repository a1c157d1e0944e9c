from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from ..types import BridgeMode, ChainConfig, NodeRole, SimulatorConfig

logger = logging.getLogger(__name__)

_TOP_KEYS = {"subscribers", "downlink_rate_kbps", "names", "bridges", "addressing", "simulator"}
_BRIDGE_KEYS = {"publisher", "broker", "subscriber_prefix", "mode"}
_ADDRESSING_KEYS = {"base", "prefixlen"}
_SIMULATOR_KEYS = {"implementation", "checksum", "stop_time", "pcap"}


def load_scenario_yaml(path: str | Path) -> Dict[str, Any]:
    """Load a YAML scenario file into a dict (empty file -> empty dict)."""
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        doc = yaml.safe_load(f) or {}
    if not isinstance(doc, dict):
        raise ValueError("Scenario YAML must be a mapping at the document root")
    return doc


def _warn_unknown(section: str, doc: Dict[str, Any], allowed: set) -> None:
    for key in doc:
        if key not in allowed:
            logger.warning("Ignoring unknown scenario key %s%s", f"{section}." if section else "", key)


def _section(doc: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = doc.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{key} must be a mapping")
    return value


def _int(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return value


def _str(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {value!r}")
    return value


def _float(key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number, got {value!r}")
    return float(value)


def apply_scenario(
    doc: Dict[str, Any],
    chain: Optional[ChainConfig] = None,
    simulator: Optional[SimulatorConfig] = None,
) -> Tuple[ChainConfig, SimulatorConfig]:
    """Overlay a scenario document onto chain and simulator configs.

    Missing keys keep the incoming values. Unknown keys are logged and
    ignored; wrongly typed values raise ValueError naming the key.
    Range checks are left to topology assembly.
    """
    chain = chain if chain is not None else ChainConfig()
    simulator = simulator if simulator is not None else SimulatorConfig()
    _warn_unknown("", doc, _TOP_KEYS)

    if doc.get("subscribers") is not None:
        chain.subscriber_count = _int("subscribers", doc["subscribers"])
    if doc.get("downlink_rate_kbps") is not None:
        chain.downlink_rate_kbps = _int("downlink_rate_kbps", doc["downlink_rate_kbps"])

    names = _section(doc, "names")
    for role_key, stem in names.items():
        try:
            role = NodeRole(str(role_key))
        except ValueError:
            logger.warning("Ignoring unknown scenario key names.%s", role_key)
            continue
        chain.names[role] = _str(f"names.{role_key}", stem)

    bridges = _section(doc, "bridges")
    _warn_unknown("bridges", bridges, _BRIDGE_KEYS)
    if bridges.get("publisher") is not None:
        chain.publisher_bridge = _str("bridges.publisher", bridges["publisher"])
    if bridges.get("broker") is not None:
        chain.broker_bridge = _str("bridges.broker", bridges["broker"])
    if bridges.get("subscriber_prefix") is not None:
        chain.subscriber_bridge_prefix = _str("bridges.subscriber_prefix", bridges["subscriber_prefix"])
    if bridges.get("mode") is not None:
        try:
            chain.bridge_mode = BridgeMode.parse(_str("bridges.mode", bridges["mode"]))
        except ValueError as exc:
            raise ValueError(f"bridges.mode: {exc}") from exc

    addressing = _section(doc, "addressing")
    _warn_unknown("addressing", addressing, _ADDRESSING_KEYS)
    if addressing.get("base") is not None:
        chain.address_base = _str("addressing.base", addressing["base"])
    if addressing.get("prefixlen") is not None:
        chain.subnet_prefixlen = _int("addressing.prefixlen", addressing["prefixlen"])

    sim = _section(doc, "simulator")
    _warn_unknown("simulator", sim, _SIMULATOR_KEYS)
    if sim.get("implementation") is not None:
        simulator.implementation = _str("simulator.implementation", sim["implementation"])
    if sim.get("checksum") is not None:
        if not isinstance(sim["checksum"], bool):
            raise ValueError(f"simulator.checksum must be a boolean, got {sim['checksum']!r}")
        simulator.checksum_enabled = sim["checksum"]
    if sim.get("stop_time") is not None:
        simulator.stop_time = _float("simulator.stop_time", sim["stop_time"])
    if sim.get("pcap") is not None:
        simulator.pcap_prefix = _str("simulator.pcap", sim["pcap"])

    logger.debug("Scenario applied: %s %s", chain, simulator)
    return chain, simulator
