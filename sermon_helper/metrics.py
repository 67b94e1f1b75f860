"""Prometheus metrics for the sermon helper guardrails.

Request, guardrail, token, cost and fallback series are kept in-process and
rendered as Prometheus text on ``/metrics``. All state sits behind one lock.
"""

import threading
from collections import defaultdict
from dataclasses import dataclass, field

from fastapi import APIRouter, Response

LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0)

SERIES_HELP = {
    "shg_requests_total": "Sermon helper pipeline runs by feature and outcome.",
    "shg_request_duration_seconds": "Pipeline run duration in seconds.",
    "shg_guardrail_triggers_total": "Guardrail decisions that changed a response.",
    "shg_tokens_total": "Provider tokens by direction.",
    "shg_cost_usd_total": "Estimated provider cost in USD.",
    "shg_fallbacks_total": "Suggestion responses replaced by the empty fallback.",
}

# Sorted (label, value) pairs
LabelKey = tuple[tuple[str, str], ...]


@dataclass
class _HistogramSeries:
    total: float = 0.0
    count: int = 0
    # cumulative: bucket i counts observations <= LATENCY_BUCKETS[i]
    buckets: list[int] = field(default_factory=lambda: [0] * len(LATENCY_BUCKETS))

    def observe(self, value: float) -> None:
        self.total += value
        self.count += 1
        for index, bound in enumerate(LATENCY_BUCKETS):
            if value <= bound:
                self.buckets[index] += 1


_lock = threading.Lock()
_counters: dict[str, dict[LabelKey, float]] = defaultdict(lambda: defaultdict(float))
_histograms: dict[str, dict[LabelKey, _HistogramSeries]] = defaultdict(
    lambda: defaultdict(_HistogramSeries)
)


def _key(labels: dict[str, str]) -> LabelKey:
    return tuple(sorted(labels.items()))


def inc_counter(name: str, labels: dict[str, str], value: float = 1.0) -> None:
    with _lock:
        _counters[name][_key(labels)] += value


def observe_histogram(name: str, labels: dict[str, str], value: float) -> None:
    with _lock:
        _histograms[name][_key(labels)].observe(value)


def counter_value(name: str, labels: dict[str, str]) -> float:
    with _lock:
        return _counters.get(name, {}).get(_key(labels), 0.0)


def reset_metrics() -> None:
    with _lock:
        _counters.clear()
        _histograms.clear()


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _format_labels(labels: LabelKey, le: str | None = None) -> str:
    pairs = list(labels)
    if le is not None:
        pairs = sorted([*pairs, ("le", le)])
    if not pairs:
        return ""
    return "{" + ",".join(f'{name}="{_escape(value)}"' for name, value in pairs) + "}"


def _header(name: str, kind: str) -> list[str]:
    lines = []
    if name in SERIES_HELP:
        lines.append(f"# HELP {name} {SERIES_HELP[name]}")
    lines.append(f"# TYPE {name} {kind}")
    return lines


def render_metrics() -> str:
    lines: list[str] = []
    with _lock:
        for name, series in sorted(_counters.items()):
            lines.extend(_header(name, "counter"))
            for labels, value in sorted(series.items()):
                lines.append(f"{name}{_format_labels(labels)} {value}")

        for name, series in sorted(_histograms.items()):
            lines.extend(_header(name, "histogram"))
            for labels, histogram in sorted(series.items()):
                for bound, hits in zip(LATENCY_BUCKETS, histogram.buckets):
                    lines.append(f"{name}_bucket{_format_labels(labels, str(bound))} {hits}")
                lines.append(f"{name}_bucket{_format_labels(labels, '+Inf')} {histogram.count}")
                lines.append(f"{name}_sum{_format_labels(labels)} {histogram.total}")
                lines.append(f"{name}_count{_format_labels(labels)} {histogram.count}")

    lines.append("")
    return "\n".join(lines)


def record_pipeline_request(
    feature: str,
    outcome: str,
    latency_s: float,
    model: str | None = None,
    tokens_in: int = 0,
    tokens_out: int = 0,
    cost_usd: float = 0.0,
    fallback: bool = False,
) -> None:
    """Record the metrics for one finished pipeline run."""
    inc_counter("shg_requests_total", {"feature": feature, "outcome": outcome})
    observe_histogram("shg_request_duration_seconds", {"feature": feature}, latency_s)

    if model is not None:
        if tokens_in > 0:
            inc_counter(
                "shg_tokens_total",
                {"feature": feature, "model": model, "direction": "input"},
                float(tokens_in),
            )
        if tokens_out > 0:
            inc_counter(
                "shg_tokens_total",
                {"feature": feature, "model": model, "direction": "output"},
                float(tokens_out),
            )
        if cost_usd > 0:
            inc_counter("shg_cost_usd_total", {"feature": feature, "model": model}, cost_usd)
    if fallback:
        inc_counter("shg_fallbacks_total", {"feature": feature})


def record_guardrail_trigger(feature: str, guardrail: str) -> None:
    inc_counter("shg_guardrail_triggers_total", {"feature": feature, "guardrail": guardrail})


metrics_router = APIRouter()


@metrics_router.get("/metrics")
def prometheus_metrics() -> Response:
    return Response(
        content=render_metrics(),
        media_type="text/plain; charset=utf-8",
    )
