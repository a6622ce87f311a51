"""Tabular rendering of node and pod metrics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from .durations import format_duration
from .model import NodeMetrics, PodMetrics
from .quantity import Quantity


@dataclass
class ColumnDefinition:
    name: str
    type: str
    format: str
    description: str = ""


@dataclass
class TableRow:
    cells: list[Any]
    object: Any = None


@dataclass
class Table:
    column_definitions: list[ColumnDefinition] = field(default_factory=list)
    rows: list[TableRow] = field(default_factory=list)
    resource_version: str = ""
    self_link: str = ""
    continue_token: str = ""


def _as_quantity(value: Any) -> Quantity:
    return value if isinstance(value, Quantity) else Quantity.parse(str(value))


def _columns(names: list[str]) -> list[ColumnDefinition]:
    columns = [ColumnDefinition("Name", "string", "name", "Name of the resource")]
    columns.extend(ColumnDefinition(name, "string", "quantity") for name in names)
    columns.append(ColumnDefinition("Window", "string", "duration"))
    return columns


def _add_rows(table: Table, items: Iterable[Any], usage_of) -> None:
    names: Optional[list[str]] = None
    for item in items:
        usage = usage_of(item)
        if names is None:
            names = sorted(usage) or None
            table.column_definitions = _columns(names or [])
        cells: list[Any] = [item.name]
        cells.extend(str(usage.get(name, Quantity())) for name in names or [])
        cells.append(format_duration(item.window))
        table.rows.append(TableRow(cells=cells, object=item))


def _pod_usage(pod: PodMetrics) -> dict[str, Quantity]:
    usage: dict[str, Quantity] = {}
    for container in pod.containers:
        for name, value in container.usage.items():
            usage[name] = usage.get(name, Quantity()) + _as_quantity(value)
    return usage


def _node_usage(node: NodeMetrics) -> dict[str, Quantity]:
    return {name: _as_quantity(value) for name, value in node.usage.items()}


def add_pod_metrics_to_table(table: Table, pods: Iterable[PodMetrics]) -> None:
    """Append one row per pod, summing usage over its containers."""
    _add_rows(table, pods, _pod_usage)


def add_node_metrics_to_table(table: Table, nodes: Iterable[NodeMetrics]) -> None:
    """Append one row per node."""
    _add_rows(table, nodes, _node_usage)