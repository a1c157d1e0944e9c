from __future__ import annotations
import argparse
import logging
import os
from typing import List, Optional

import yaml

from .builders.realize import realize_topology
from .builders.topology import build_pubsub_topology
from .engines import make_engine
from .errors import TopologyError
from .parsers.scenario import apply_scenario, load_scenario_yaml
from .types import BridgeMode, ChainConfig, SimulatorConfig
from .utils.engine_logging import engine_trace_enabled, wrap_engine
from .utils.report import find_inconsistencies, print_reports, write_report

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="pubsub-topo-gen",
        description="Assemble a publisher -> broker -> subscribers overlay and run it on ns-3",
    )
    ap.add_argument("--scenario", default=None, help="YAML scenario file; CLI flags override its values")
    ap.add_argument(
        "--num-nodes",
        "--subscribers",
        dest="subscribers",
        type=int,
        default=None,
        help="Number of subscribers (default 1)",
    )
    ap.add_argument(
        "--static-downlink-rate",
        dest="downlink_rate",
        type=int,
        default=None,
        help="Data rate of each subscriber-gateway downlink in KBps; 0 keeps the link default",
    )
    ap.add_argument("--stop-time", type=float, default=None, help="Simulation stop time in seconds (default 6000)")
    ap.add_argument(
        "--mode",
        default=None,
        help="Tap bridge mode: ConfigureLocal, UseLocal or UseBridge (default UseBridge)",
    )
    ap.add_argument("--publisher-bridge", default=None, help="Host device name for the publisher (default tap-pub)")
    ap.add_argument("--broker-bridge", default=None, help="Host device name for the broker (default tap-mid)")
    ap.add_argument(
        "--subscriber-bridge-prefix",
        default=None,
        help="Host device prefix for subscribers; subscriber i gets <prefix><i+1> (default tap-sub)",
    )
    ap.add_argument("--simulator-impl", default=None, help="ns-3 SimulatorImplementationType")
    ap.add_argument("--no-checksum", action="store_true", help="Disable ns-3 checksum computation")
    ap.add_argument("--pcap", default=None, metavar="PREFIX", help="Enable pcap tracing with this file prefix")
    ap.add_argument("--dry-run", action="store_true", help="Realise on the recording engine; never start ns-3")
    ap.add_argument("--report-out", default=None, help="Write a Markdown report (plus JSON sidecar) to this path")
    ap.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return ap


def _resolve_config(args: argparse.Namespace) -> tuple:
    chain = ChainConfig()
    sim = SimulatorConfig()
    if args.scenario:
        doc = load_scenario_yaml(args.scenario)
        logger.info("Loaded scenario %s", os.path.abspath(args.scenario))
        chain, sim = apply_scenario(doc, chain, sim)
    if args.subscribers is not None:
        chain.subscriber_count = args.subscribers
    if args.downlink_rate is not None:
        # 0 keeps the link default
        chain.downlink_rate_kbps = args.downlink_rate or None
    if args.mode is not None:
        chain.bridge_mode = BridgeMode.parse(args.mode)
    if args.publisher_bridge is not None:
        chain.publisher_bridge = args.publisher_bridge
    if args.broker_bridge is not None:
        chain.broker_bridge = args.broker_bridge
    if args.subscriber_bridge_prefix is not None:
        chain.subscriber_bridge_prefix = args.subscriber_bridge_prefix
    if args.simulator_impl is not None:
        sim.implementation = args.simulator_impl
    if args.no_checksum:
        sim.checksum_enabled = False
    if args.stop_time is not None:
        sim.stop_time = args.stop_time
    if args.pcap is not None:
        sim.pcap_prefix = args.pcap
    if sim.stop_time <= 0:
        raise ValueError(f"Stop time must be positive, got {sim.stop_time!r}")
    return chain, sim


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )

    try:
        chain, sim = _resolve_config(args)
        topo = build_pubsub_topology(chain)
    except (TopologyError, ValueError, OSError, yaml.YAMLError) as e:
        logger.error("Topology assembly failed: %s", e)
        return 2

    problems = find_inconsistencies(topo.graph)
    if problems:
        for p in problems:
            logger.warning("Pre-flight: %s", p)
        logger.error("Pre-flight check found %d problem(s); not starting the simulator", len(problems))
        return 2

    print_reports(topo.graph)

    if args.report_out:
        scenario_name = os.path.splitext(os.path.basename(args.scenario))[0] if args.scenario else None
        try:
            md_path, json_path = write_report(args.report_out, topo.graph, chain, sim, scenario_name)
            logger.info("Report written to %s (%s)", md_path, json_path)
        except OSError as e:
            logger.exception("Failed to write report: %s", e)

    try:
        engine = make_engine(dry_run=args.dry_run)
        if engine_trace_enabled():
            engine = wrap_engine(engine)
        engine.setup(sim)
        realize_topology(topo.graph, engine, pcap_prefix=sim.pcap_prefix)
        logger.info("Running simulation until t=%gs", sim.stop_time)
        engine.run_until(sim.stop_time)
        engine.destroy()
    except Exception as e:
        logging.exception("Simulation failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
