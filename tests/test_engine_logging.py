import logging

import pytest

from pubsub_topo_gen.engines import RecordingEngine
from pubsub_topo_gen.utils.engine_logging import engine_trace_enabled, unwrap_engine, wrap_engine


def test_trace_flag(monkeypatch):
    monkeypatch.delenv("PSTG_ENGINE_TRACE", raising=False)
    assert engine_trace_enabled() is True
    for off in ("0", "false", ""):
        monkeypatch.setenv("PSTG_ENGINE_TRACE", off)
        assert engine_trace_enabled() is False
    monkeypatch.setenv("PSTG_ENGINE_TRACE", "1")
    assert engine_trace_enabled() is True


def test_proxy_logs_calls_and_passes_through(caplog):
    caplog.set_level(logging.INFO, logger="pubsub_topo_gen.engine")
    inner = RecordingEngine()
    engine = wrap_engine(inner)
    assert engine.create_node() == 0
    assert engine.nodes == [0]
    assert unwrap_engine(engine) is inner
    assert wrap_engine(engine) is engine
    assert any("[engine] RecordingEngine.create_node() ok in" in r.getMessage() for r in caplog.records)


def test_proxy_debug_includes_arguments(caplog):
    caplog.set_level(logging.DEBUG, logger="pubsub_topo_gen.engine")
    engine = wrap_engine(RecordingEngine())
    engine.enable_pcap("trace")
    messages = [r.getMessage() for r in caplog.records]
    assert any("RecordingEngine.enable_pcap('trace') -> calling" in m for m in messages)


def test_proxy_reraises_failures(caplog):
    caplog.set_level(logging.INFO, logger="pubsub_topo_gen.engine")
    engine = wrap_engine(RecordingEngine())
    with pytest.raises(ValueError):
        engine.install_link(None, None, [5])
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert warnings and "install_link() failed" in warnings[0].getMessage()
