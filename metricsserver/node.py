"""Read-only storage that serves node resource metrics."""

from __future__ import annotations

import logging
from typing import Any, Optional

from .clock import ZERO_TIME, RealClock
from .metrics import metric_freshness
from .model import Node, NodeMetrics, NodeMetricsList, NotFoundError
from .selectors import ListOptions, Selector, filter_nodes
from .table import Table, add_node_metrics_to_table

logger = logging.getLogger(__name__)


class NodeMetricsStorage:
    """Serves NodeMetrics for the nodes known to a node lister.

    ``metrics.get_node_metrics(nodes)`` returns the latest NodeMetrics for the
    given nodes.  ``node_lister.list(selector)`` returns the nodes whose labels
    match, and ``node_lister.get(name)`` returns one node or None.
    """

    def __init__(self, group_resource: str, metrics: Any, node_lister: Any,
                 clock: Optional[Any] = None):
        self.group_resource = group_resource
        self.metrics = metrics
        self.node_lister = node_lister
        self.clock = clock if clock is not None else RealClock()

    def new(self) -> NodeMetrics:
        return NodeMetrics()

    def kind(self) -> str:
        return "NodeMetrics"

    def new_list(self) -> NodeMetricsList:
        return NodeMetricsList()

    def list(self, options: Optional[ListOptions] = None) -> NodeMetricsList:
        """Return metrics of every node matching the options, sorted by name."""
        nodes = self._nodes(options)
        try:
            items = self._get_metrics(nodes)
        except Exception as exc:
            logger.error("Failed reading nodes metrics: %s", exc)
            raise RuntimeError(f"failed reading nodes metrics: {exc}") from exc
        return NodeMetricsList(items=items)

    def _nodes(self, options: Optional[ListOptions]) -> list[Node]:
        label_selector = Selector.everything()
        if options is not None and options.label_selector is not None:
            label_selector = options.label_selector
        try:
            nodes = list(self.node_lister.list(label_selector))
        except Exception as exc:
            logger.error("Failed listing nodes, labelSelector=%s: %s", label_selector, exc)
            raise RuntimeError(f"failed listing nodes: {exc}") from exc
        if options is not None and options.field_selector is not None:
            nodes = filter_nodes(nodes, options.field_selector)
        return nodes

    def get(self, name: str) -> NodeMetrics:
        """Return metrics of one node; raise NotFoundError if there are none."""
        try:
            node = self.node_lister.get(name)
        except NotFoundError:
            raise
        except Exception as exc:
            logger.error("Failed getting node %s: %s", name, exc)
            raise RuntimeError(f"failed getting node: {exc}") from exc
        if node is None:
            raise NotFoundError(self.group_resource, name)
        try:
            items = self._get_metrics([node])
        except Exception as exc:
            logger.error("Failed reading node metrics, node=%s: %s", name, exc)
            raise RuntimeError(f"failed reading node metrics: {exc}") from exc
        if not items:
            raise NotFoundError(self.group_resource, name)
        return items[0]

    def convert_to_table(self, obj: Any) -> Table:
        """Render a NodeMetrics or NodeMetricsList as a table."""
        table = Table()
        if isinstance(obj, NodeMetrics):
            table.resource_version = obj.metadata.resource_version
            table.self_link = obj.metadata.self_link
            add_node_metrics_to_table(table, [obj])
        elif isinstance(obj, NodeMetricsList):
            table.resource_version = obj.resource_version
            table.self_link = obj.self_link
            table.continue_token = obj.continue_token
            add_node_metrics_to_table(table, obj.items)
        return table

    def _get_metrics(self, nodes: list[Node]) -> list[NodeMetrics]:
        items = list(self.metrics.get_node_metrics(nodes))
        for item in items:
            stamp = item.timestamp if item.timestamp is not None else ZERO_TIME
            metric_freshness.observe(self.clock.since(stamp).total_seconds())
        # Keep the same ordering the Kubernetes API uses for nodes.
        items.sort(key=lambda m: m.name)
        return items

    def namespace_scoped(self) -> bool:
        return False