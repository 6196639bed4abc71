"""
Prometheus counters and latency histograms on a private registry.

Metric families are created lazily on first use and keyed by name plus label
names. A second call with the same name but other label names is ignored,
since prometheus_client refuses to register the family twice.
"""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Union

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

# seconds; webhook posts time out at 5s
LATENCY_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)

_Family = Union[Counter, Histogram]

_registry = CollectorRegistry()
_families: dict[tuple[str, str, tuple[str, ...]], Optional[_Family]] = {}


def reset_registry() -> None:
    global _registry
    _registry = CollectorRegistry()
    _families.clear()


def _metric_name(name: str) -> str:
    return name.replace(".", "_").replace("-", "_")


def _child(kind: str, name: str, labels: dict[str, Any]) -> Optional[_Family]:
    names = tuple(sorted(labels))
    key = (kind, name, names)
    if key not in _families:
        try:
            if kind == "counter":
                _families[key] = Counter(name, name, names, registry=_registry)
            else:
                _families[key] = Histogram(name, name, names, buckets=LATENCY_BUCKETS, registry=_registry)
        except ValueError:
            _families[key] = None
    family = _families[key]
    if family is None or not labels:
        return family
    return family.labels(**{k: str(v) for k, v in labels.items()})


def inc(name: str, **labels: Any) -> None:
    # prometheus_client appends _total itself
    base = _metric_name(name)
    if base.endswith("_total"):
        base = base[: -len("_total")]
    counter = _child("counter", base, labels)
    if counter is not None:
        counter.inc()


def observe(name: str, value_ms: float, **labels: Any) -> None:
    """Record a latency given in milliseconds; the histogram stores seconds."""
    hist = _child("histogram", _metric_name(name), labels)
    if hist is not None:
        hist.observe(float(value_ms) / 1000.0)


def counter_value(name: str, **labels: Any) -> float:
    """0.0 for a counter or label combination that was never incremented."""
    sample = _metric_name(name)
    if not sample.endswith("_total"):
        sample += "_total"
    value = _registry.get_sample_value(sample, {k: str(v) for k, v in labels.items()})
    return float(value) if value is not None else 0.0


def export_text() -> str:
    return generate_latest(_registry).decode("utf-8")


@asynccontextmanager
async def atimer(name: str, **labels: Any) -> AsyncIterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        observe(name, (time.perf_counter() - started) * 1000.0, **labels)
