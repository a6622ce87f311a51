"""Minimal Prometheus-style metric collectors with text exposition."""

from __future__ import annotations

import math
import threading
from decimal import Decimal
from typing import Callable, Iterable, Sequence

DEF_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


def exponential_buckets(start: float, factor: float, count: int) -> list[float]:
    """Return `count` buckets, the first `start`, each `factor` times the last."""
    if count < 1:
        raise ValueError("exponential_buckets needs a positive count")
    if start <= 0:
        raise ValueError("exponential_buckets needs a positive start value")
    if factor <= 1:
        raise ValueError("exponential_buckets needs a factor greater than 1")
    buckets = []
    for _ in range(count):
        buckets.append(start)
        start *= factor
    return buckets


def _format_float(value: float) -> str:
    """Format a float the way the Prometheus text format does (shortest %g)."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "0"
    dec = Decimal(repr(float(value))).normalize()
    sign, digits, exponent = dec.as_tuple()
    exp10 = len(digits) + exponent - 1
    prefix = "-" if sign else ""
    if exp10 < -4 or exp10 >= 6:
        text = "".join(str(d) for d in digits)
        mantissa = text[0] + ("." + text[1:] if len(text) > 1 else "")
        esign = "+" if exp10 >= 0 else "-"
        return f"{prefix}{mantissa}e{esign}{abs(exp10):02d}"
    return f"{dec:f}"


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class _Metric:
    kind = "untyped"

    def __init__(self, name: str, help: str, label_names: Iterable[str] = ()):
        self.name = name
        self.help = help
        self.label_names = tuple(label_names)
        self._lock = threading.Lock()
        self._series: dict[tuple[str, ...], object] = {}

    def _key(self, args: Sequence[str]) -> tuple[str, ...]:
        if len(args) != len(self.label_names):
            raise ValueError(
                f"{self.name}: expected {len(self.label_names)} label values, got {len(args)}"
            )
        return tuple(str(a) for a in args)

    def _labels(self, key: tuple[str, ...], extra: tuple[tuple[str, str], ...] = ()) -> str:
        pairs = list(zip(self.label_names, key)) + list(extra)
        if not pairs:
            return ""
        return "{" + ",".join(f'{k}="{_escape(v)}"' for k, v in pairs) + "}"

    def reset(self) -> None:
        with self._lock:
            self._series.clear()

    def _header(self) -> list[str]:
        return [
            f"# HELP {self.name} [ALPHA] {self.help}",
            f"# TYPE {self.name} {self.kind}",
        ]

    def _body(self, key: tuple[str, ...], state: object) -> list[str]:
        return [f"{self.name}{self._labels(key)} {_format_float(state)}"]

    def expose(self) -> str:
        """Render the collected series in the Prometheus text format."""
        with self._lock:
            items = sorted(self._series.items())
            if not items:
                return ""
            lines = self._header()
            for key, state in items:
                lines.extend(self._body(key, state))
        return "\n".join(lines) + "\n"


class _HistogramState:
    __slots__ = ("counts", "total", "count")

    def __init__(self, size: int):
        self.counts = [0] * size
        self.total = 0.0
        self.count = 0


class Histogram(_Metric):
    kind = "histogram"

    def __init__(self, name: str, help: str, buckets: Iterable[float] = DEF_BUCKETS,
                 label_names: Iterable[str] = ()):
        super().__init__(name, help, label_names)
        self.buckets = tuple(sorted(float(b) for b in buckets))

    def observe(self, value: float, *args: str) -> None:
        key = self._key(args)
        with self._lock:
            state = self._series.get(key)
            if state is None:
                state = self._series[key] = _HistogramState(len(self.buckets))
            for i, bound in enumerate(self.buckets):
                if value <= bound:
                    state.counts[i] += 1
            state.total += value
            state.count += 1

    def reset(self) -> None:
        super().reset()

    def expose(self) -> str:
        return super().expose()

    def _body(self, key, state) -> list[str]:
        lines = [
            f"{self.name}_bucket{self._labels(key, (('le', _format_float(bound)),))} {n}"
            for bound, n in zip(self.buckets, state.counts)
        ]
        lines.append(f"{self.name}_bucket{self._labels(key, (('le', '+Inf'),))} {state.count}")
        lines.append(f"{self.name}_sum{self._labels(key)} {_format_float(state.total)}")
        lines.append(f"{self.name}_count{self._labels(key)} {state.count}")
        return lines


class Counter(_Metric):
    kind = "counter"

    def __init__(self, name: str, help: str, label_names: Iterable[str] = ()):
        super().__init__(name, help, label_names)

    def inc(self, *args: str) -> None:
        key = self._key(args)
        with self._lock:
            self._series[key] = self._series.get(key, 0.0) + 1.0

    def reset(self) -> None:
        super().reset()

    def expose(self) -> str:
        return super().expose()


class Gauge(_Metric):
    kind = "gauge"

    def __init__(self, name: str, help: str, label_names: Iterable[str] = ()):
        super().__init__(name, help, label_names)

    def set(self, value: float, *args: str) -> None:
        key = self._key(args)
        with self._lock:
            self._series[key] = float(value)

    def reset(self) -> None:
        super().reset()

    def expose(self) -> str:
        return super().expose()


metric_freshness = Histogram(
    "metrics_server_api_metric_freshness_seconds",
    "Freshness of metrics exported",
    exponential_buckets(1, 1.364, 20),
    (),
)


def register_api_metrics(register: Callable[[_Metric], object]):
    """Register the histogram of exported metric freshness."""
    return register(metric_freshness)