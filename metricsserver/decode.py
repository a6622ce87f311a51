"""Decoding of the kubelet resource metrics endpoint (Prometheus text format)."""

from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional, Union

from .model import MetricsBatch, MetricsPoint, NamespacedName, PodMetricsPoint

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_UINT64_MAX = 2**64 - 1
_INT64_MAX = 2**63 - 1

NODE_CPU = "node_cpu_usage_seconds_total"
NODE_MEM = "node_memory_working_set_bytes"
CONTAINER_CPU = "container_cpu_usage_seconds_total"
CONTAINER_MEM = "container_memory_working_set_bytes"
CONTAINER_START = "container_start_time_seconds"

_NAME_RE = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*")
_LABEL_RE = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")
_TS_RE = re.compile(r"[0-9]+")
_TYPES = {"counter", "gauge", "histogram", "summary", "untyped"}


class DecodeError(ValueError):
    """Raised when a metrics payload cannot be parsed."""


def _skip_spaces(line: str, pos: int) -> int:
    while pos < len(line) and line[pos] in " \t":
        pos += 1
    return pos


def _parse_labels(line: str, pos: int) -> int:
    """Parse a label set starting after '{'; return the index after '}'."""
    while True:
        pos = _skip_spaces(line, pos)
        if pos < len(line) and line[pos] == "}":
            return pos + 1
        m = _LABEL_RE.match(line, pos)
        if not m:
            raise DecodeError(f"invalid label name in {line!r}")
        pos = _skip_spaces(line, m.end())
        if pos >= len(line) or line[pos] != "=":
            raise DecodeError(f"expected '=' in {line!r}")
        pos = _skip_spaces(line, pos + 1)
        if pos >= len(line) or line[pos] != '"':
            raise DecodeError(f"expected label value in {line!r}")
        pos += 1
        while True:
            if pos >= len(line):
                raise DecodeError(f"unterminated label value in {line!r}")
            ch = line[pos]
            if ch == "\\":
                pos += 2
                continue
            pos += 1
            if ch == '"':
                break
        pos = _skip_spaces(line, pos)
        if pos >= len(line):
            raise DecodeError(f"unterminated label set in {line!r}")
        if line[pos] == ",":
            pos += 1
        elif line[pos] != "}":
            raise DecodeError(f"expected ',' or '}}' in {line!r}")


def _parse_value(token: str) -> float:
    if "_" in token:
        raise DecodeError(f"invalid value {token!r}")
    try:
        return float(token)
    except ValueError as exc:
        raise DecodeError(f"invalid value {token!r}") from exc


def _parse_series(line: str) -> tuple[str, Optional[int], float]:
    m = _NAME_RE.match(line)
    if not m:
        raise DecodeError(f"invalid metric name in {line!r}")
    pos = m.end()
    if pos < len(line) and line[pos] == "{":
        pos = _parse_labels(line, pos + 1)
    series = line[:pos]
    if pos >= len(line) or line[pos] not in " \t":
        raise DecodeError(f"expected value after series in {line!r}")
    tokens = line[pos:].split()
    if len(tokens) not in (1, 2):
        raise DecodeError(f"unexpected tokens in {line!r}")
    value = _parse_value(tokens[0])
    timestamp = None
    if len(tokens) == 2:
        if not _TS_RE.fullmatch(tokens[1]):
            raise DecodeError(f"invalid timestamp {tokens[1]!r}")
        timestamp = int(tokens[1])
        if timestamp > _INT64_MAX:
            raise DecodeError(f"timestamp out of range {tokens[1]!r}")
    return series, timestamp, value


def iter_series(data: Union[bytes, str]) -> Iterator[tuple[str, Optional[int], float]]:
    """Yield (series, timestamp in ms or None, value) for each sample line."""
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"invalid encoding: {exc}") from exc
    for raw in data.split("\n"):
        line = raw.rstrip("\r")
        if not line.strip():
            continue
        if line.lstrip().startswith("#"):
            parts = line.lstrip()[1:].split(None, 2)
            if parts and parts[0] in ("HELP", "TYPE"):
                if len(parts) < 2 or not _NAME_RE.fullmatch(parts[1]):
                    raise DecodeError(f"invalid metadata line {line!r}")
                if parts[0] == "TYPE" and (len(parts) < 3 or parts[2].strip() not in _TYPES):
                    raise DecodeError(f"invalid metric type in {line!r}")
            continue
        yield _parse_series(line)


def timeseries_matches_name(series: str, name: str) -> bool:
    return series.startswith(name) and (len(series) == len(name) or series[len(name)] == "{")


def _extract(labels: str, tag: str) -> str:
    start = labels.find(tag)
    if start < 0:
        return ""
    start += len(tag)
    end = labels.find('"', start)
    return labels[start:end] if end >= 0 else ""


def parse_container_labels(labels: str) -> tuple[NamespacedName, str]:
    """Return the pod reference and container name found in a label set."""
    container = _extract(labels, 'container="')
    pod = _extract(labels, 'pod="')
    namespace = _extract(labels, 'namespace="')
    return NamespacedName(namespace=namespace, name=pod), container


def _from_millis(ms: Optional[int]) -> Optional[datetime]:
    if ms is None:
        return None
    try:
        return _EPOCH + timedelta(milliseconds=ms)
    except OverflowError:
        return None


def _from_seconds(value: float) -> Optional[datetime]:
    if not math.isfinite(value):
        return None
    try:
        return _EPOCH + timedelta(microseconds=round(value * 1e6))
    except OverflowError:
        return None


def _to_uint(value: float) -> int:
    if not math.isfinite(value) or value <= 0:
        return 0
    return min(int(value), _UINT64_MAX)


def _container(pods: dict, series: str, metric: str) -> MetricsPoint:
    ref, name = parse_container_labels(series[len(metric):])
    pod = pods.setdefault(ref, PodMetricsPoint())
    return pod.containers.setdefault(name, MetricsPoint())


def _check_containers(pod: PodMetricsPoint) -> Optional[dict[str, MetricsPoint]]:
    result = {}
    for name, point in pod.containers.items():
        if point.is_empty():
            continue
        if point.cumulative_cpu_used == 0 or point.memory_usage == 0:
            return None
        result[name] = point
    return result


def decode_batch(
    data: Union[bytes, str], default_time: Optional[datetime], node_name: str
) -> MetricsBatch:
    """Decode a resource metrics payload into a batch for one node."""
    batch = MetricsBatch()
    node = MetricsPoint()
    pods: dict[NamespacedName, PodMetricsPoint] = {}
    default_ts = _EPOCH if default_time is None else None

    for series, ms, value in iter_series(data):
        if ms is not None:
            ts = _from_millis(ms)
        elif default_time is not None:
            ts = default_time
        else:
            ts = None if default_ts is not None else None
        if timeseries_matches_name(series, NODE_CPU):
            node.cumulative_cpu_used = _to_uint(value * 1e9)
            node.timestamp = ts
        elif timeseries_matches_name(series, NODE_MEM):
            node.memory_usage = _to_uint(value)
            node.timestamp = ts
        elif timeseries_matches_name(series, CONTAINER_CPU):
            point = _container(pods, series, CONTAINER_CPU)
            point.cumulative_cpu_used = _to_uint(value * 1e9)
            point.timestamp = ts
        elif timeseries_matches_name(series, CONTAINER_MEM):
            point = _container(pods, series, CONTAINER_MEM)
            point.memory_usage = _to_uint(value)
            point.timestamp = ts
        elif timeseries_matches_name(series, CONTAINER_START):
            point = _container(pods, series, CONTAINER_START)
            point.start_time = _from_seconds(value)

    if node.timestamp is not None and node.cumulative_cpu_used and node.memory_usage:
        batch.nodes[node_name] = node

    for ref, pod in pods.items():
        if not pod.containers:
            continue
        containers = _check_containers(pod)
        if containers is not None:
            batch.pods[ref] = PodMetricsPoint(containers=containers)
    return batch