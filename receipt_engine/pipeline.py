from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable
from uuid import uuid4

from receipt_engine.config import Settings, load_dotenv
from receipt_engine.extraction_service import (
    ModelReceiptExtractor,
    ReceiptExtractor,
    StructuredModelClient,
    build_default_client,
    client_for_provider,
    provider_model,
)
from receipt_engine.fallback_parser import RegexReceiptExtractor
from receipt_engine.logger import configure_logging, log_document_event
from receipt_engine.metrics import MetricsCollector
from receipt_engine.reconciler import reconcile
from receipt_engine.validation import evaluate_consistency
from schemas.receipt_schema import ReceiptRecord

logger = logging.getLogger(__name__)


def build_extractor(
    settings: Settings,
    *,
    client: StructuredModelClient | None = None,
    metrics: MetricsCollector | None = None,
) -> ReceiptExtractor:
    fallback = RegexReceiptExtractor(
        default_vat_rate=settings.fallback_vat_rate,
        assumed_tax_rate=settings.fallback_assumed_tax_rate,
    )
    if client is not None:
        model_name = provider_model(settings.extraction_provider, settings.extraction_model)
        return ModelReceiptExtractor(client, model_name, fallback=fallback, metrics=metrics)
    if not settings.has_model_credential:
        logger.info("No extraction credential configured, using regex parser")
        return fallback
    try:
        active_client, model_name = build_default_client(settings)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Could not build extraction client, using regex parser: %s", exc)
        return fallback
    return ModelReceiptExtractor(active_client, model_name, fallback=fallback, metrics=metrics)


class ReceiptPipeline:
    """OCR markdown in, reconciled receipt out. Holds no per-document state."""

    def __init__(
        self,
        extractor: ReceiptExtractor,
        *,
        metrics: MetricsCollector | None = None,
        amount_tolerance: float = 0.01,
        consistency_checks: bool = True,
    ) -> None:
        self.extractor = extractor
        self.metrics = metrics or MetricsCollector()
        self._amount_tolerance = amount_tolerance
        self._consistency_checks = consistency_checks

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        client: StructuredModelClient | None = None,
    ) -> "ReceiptPipeline":
        metrics = MetricsCollector()
        return cls(
            build_extractor(settings, client=client, metrics=metrics),
            metrics=metrics,
            amount_tolerance=settings.amount_tolerance,
            consistency_checks=settings.consistency_checks,
        )

    @classmethod
    def from_env(cls, env_file: str | Path = ".env") -> "ReceiptPipeline":
        """Build a pipeline from the process environment, after applying ``env_file``."""
        load_dotenv(env_file)
        settings = Settings.from_env()
        configure_logging(settings.log_level)
        return cls.from_settings(settings)

    def process(self, markdown_text: str, *, document_id: str | None = None) -> ReceiptRecord:
        active_id = document_id or uuid4().hex
        started = time.perf_counter()
        self.metrics.increment("documents_processed_total")
        if isinstance(self.extractor, RegexReceiptExtractor):
            self.metrics.increment("fallback_extractions_total")

        candidate = self.extractor.extract(markdown_text)
        record = reconcile(candidate)

        if self._consistency_checks:
            violations = evaluate_consistency(record, amount_tolerance=self._amount_tolerance)
            for violation in violations:
                self.metrics.increment("consistency_warnings_total")
                log_document_event(
                    logger,
                    logging.WARNING,
                    f"Consistency check {violation['code']}: {violation['message']}",
                    document_id=active_id,
                    stage="reconciliation",
                    outcome=violation["severity"],
                )

        latency_ms = int((time.perf_counter() - started) * 1000)
        self.metrics.observe_latency(latency_ms)
        log_document_event(
            logger,
            logging.INFO,
            f"Reconciled receipt with {len(record.items)} item(s), total={record.total:.2f}",
            document_id=active_id,
            stage="reconciliation",
            extractor=getattr(self.extractor, "name", type(self.extractor).__name__),
            latency_ms=latency_ms,
            outcome="success",
        )
        return record

    def process_many(self, markdown_texts: Iterable[str], *, max_workers: int = 4) -> list[ReceiptRecord]:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(self.process, markdown_texts))


def process_receipt(
    markdown_text: str,
    credential: str | None = None,
    *,
    provider: str = "gemini",
    model_name: str = "auto",
    client: StructuredModelClient | None = None,
) -> ReceiptRecord:
    """Extract and reconcile one document; without a credential or client the regex parser is used."""
    extractor: ReceiptExtractor = RegexReceiptExtractor()
    if client is not None:
        extractor = ModelReceiptExtractor(client, provider_model(provider, model_name))
    elif credential and credential.strip():
        try:
            extractor = ModelReceiptExtractor(
                client_for_provider(provider, credential.strip()),
                provider_model(provider, model_name),
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not build %s client, using regex parser: %s", provider, exc)
    return ReceiptPipeline(extractor).process(markdown_text)
