from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from threading import Lock
from typing import Any


@dataclass
class MetricsCollector:
    counters: Counter[str] = field(default_factory=Counter)
    latencies_ms: list[int] = field(default_factory=list)
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    def increment(self, name: str, value: int = 1) -> None:
        with self._lock:
            self.counters[name] += value

    def observe_latency(self, value_ms: int) -> None:
        with self._lock:
            self.latencies_ms.append(value_ms)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            ordered = sorted(self.latencies_ms)
            counters = dict(self.counters)
        p95 = ordered[int(0.95 * (len(ordered) - 1))] if ordered else 0
        return {
            "throughput_total": counters.get("documents_processed_total", 0),
            "model_total": counters.get("model_extractions_total", 0),
            "fallback_total": counters.get("fallback_extractions_total", 0),
            "consistency_warnings_total": counters.get("consistency_warnings_total", 0),
            "latency_p95_ms": p95,
        }
