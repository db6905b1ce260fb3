from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from receipt_engine.logger import JsonFormatter, configure_logging, log_document_event
from receipt_engine.metrics import MetricsCollector


def test_json_formatter_includes_event_fields() -> None:
    logger = logging.getLogger("test-observability")
    record = logger.makeRecord(
        name=logger.name,
        level=logging.INFO,
        fn="test",
        lno=1,
        msg="Reconciled receipt %s",
        args=("doc-1",),
        exc_info=None,
        extra={
            "document_id": "doc-1",
            "stage": "reconciliation",
            "extractor": "regex",
            "latency_ms": 12,
            "outcome": "success",
        },
    )
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "Reconciled receipt doc-1"
    assert payload["document_id"] == "doc-1"
    assert payload["stage"] == "reconciliation"
    assert payload["extractor"] == "regex"
    assert payload["latency_ms"] == 12
    assert "error_code" not in payload


def test_json_formatter_keeps_turkish_text_readable() -> None:
    logger = logging.getLogger("test-observability")
    record = logger.makeRecord(logger.name, logging.INFO, "test", 1, "Ürün Bulunamadı", (), None)
    assert "Ürün Bulunamadı" in JsonFormatter().format(record)


def test_log_document_event_sets_only_given_fields(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("test-observability-helper")
    with caplog.at_level(logging.INFO, logger=logger.name):
        log_document_event(
            logger,
            logging.WARNING,
            "amount_mismatch",
            document_id="doc-22",
            stage="reconciliation",
            outcome="error",
        )
    [record] = caplog.records
    assert record.document_id == "doc-22"
    assert record.outcome == "error"
    assert not hasattr(record, "latency_ms")


def test_metrics_collector_snapshot() -> None:
    metrics = MetricsCollector()
    metrics.increment("documents_processed_total")
    metrics.increment("fallback_extractions_total", 2)
    metrics.increment("consistency_warnings_total")
    metrics.observe_latency(50)
    metrics.observe_latency(200)
    metrics.observe_latency(100)

    snapshot = metrics.snapshot()
    assert snapshot["throughput_total"] == 1
    assert snapshot["fallback_total"] == 2
    assert snapshot["model_total"] == 0
    assert snapshot["consistency_warnings_total"] == 1
    assert snapshot["latency_p95_ms"] >= 100


def test_metrics_collector_is_thread_safe() -> None:
    metrics = MetricsCollector()
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda _: metrics.increment("documents_processed_total"), range(500)))
    assert metrics.snapshot()["throughput_total"] == 500


def test_configure_logging_installs_json_formatter(monkeypatch: pytest.MonkeyPatch) -> None:
    root = logging.getLogger()
    handler = logging.StreamHandler()
    monkeypatch.setattr(root, "handlers", [handler])
    monkeypatch.setattr(root, "level", root.level)

    configure_logging("debug")

    assert isinstance(handler.formatter, JsonFormatter)
    assert root.level == logging.DEBUG
