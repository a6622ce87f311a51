"""Read-only storage that serves pod resource metrics."""

from __future__ import annotations

import logging
from typing import Any, Optional

from .clock import ZERO_TIME, RealClock
from .metrics import metric_freshness
from .model import NotFoundError, ObjectMeta, PodMetrics, PodMetricsList
from .selectors import ListOptions, Selector, filter_partial_object_metadata
from .table import Table, add_pod_metrics_to_table

logger = logging.getLogger(__name__)


def _meta(obj: Any) -> ObjectMeta:
    return obj if isinstance(obj, ObjectMeta) else obj.metadata


class PodMetricsStorage:
    """Serves PodMetrics for the pods known to a pod metadata lister.

    ``metrics.get_pod_metrics(pods)`` returns the latest PodMetrics for the
    given pod metadata.  ``pod_lister.by_namespace(namespace)`` returns an
    object with ``list(selector)`` and ``get(name)`` (None when absent).
    """

    def __init__(self, group_resource: str, metrics: Any, pod_lister: Any,
                 clock: Optional[Any] = None):
        self.group_resource = group_resource
        self.metrics = metrics
        self.pod_lister = pod_lister
        self.clock = clock if clock is not None else RealClock()

    def new(self) -> PodMetrics:
        return PodMetrics()

    def kind(self) -> str:
        return "PodMetrics"

    def new_list(self) -> PodMetricsList:
        return PodMetricsList()

    def list(self, namespace: str = "", options: Optional[ListOptions] = None) -> PodMetricsList:
        """Return metrics of matching pods, sorted by namespace then name."""
        pods = self._pods(namespace, options)
        try:
            items = self._get_metrics(pods)
        except Exception as exc:
            logger.error("Failed reading pods metrics, namespace=%s: %s", namespace, exc)
            raise RuntimeError(f"failed reading pods metrics: {exc}") from exc
        return PodMetricsList(items=items)

    def _pods(self, namespace: str, options: Optional[ListOptions]) -> list[Any]:
        label_selector = Selector.everything()
        if options is not None and options.label_selector is not None:
            label_selector = options.label_selector
        try:
            pods = list(self.pod_lister.by_namespace(namespace).list(label_selector))
        except Exception as exc:
            logger.error("Failed listing pods, labelSelector=%s namespace=%s: %s",
                         label_selector, namespace, exc)
            raise RuntimeError(f"failed listing pods: {exc}") from exc
        if options is not None and options.field_selector is not None:
            pods = filter_partial_object_metadata(pods, options.field_selector)
        return pods

    def get(self, namespace: str, name: str) -> PodMetrics:
        """Return metrics of one pod; raise NotFoundError if there are none."""
        try:
            pod = self.pod_lister.by_namespace(namespace).get(name)
        except NotFoundError:
            raise
        except Exception as exc:
            logger.error("Failed getting pod %s/%s: %s", namespace, name, exc)
            raise RuntimeError(f"failed getting pod: {exc}") from exc
        if pod is None:
            raise NotFoundError("pods", f"{namespace}/{name}")
        try:
            items = self._get_metrics([pod])
        except Exception as exc:
            logger.error("Failed reading pod metrics, pod=%s/%s: %s", namespace, name, exc)
            raise RuntimeError(f"failed pod metrics: {exc}") from exc
        if not items:
            raise NotFoundError(self.group_resource, f"{namespace}/{name}")
        return items[0]

    def convert_to_table(self, obj: Any) -> Table:
        """Render a PodMetrics or PodMetricsList as a table."""
        table = Table()
        if isinstance(obj, PodMetrics):
            table.resource_version = obj.metadata.resource_version
            table.self_link = obj.metadata.self_link
            add_pod_metrics_to_table(table, [obj])
        elif isinstance(obj, PodMetricsList):
            table.resource_version = obj.resource_version
            table.self_link = obj.self_link
            table.continue_token = obj.continue_token
            add_pod_metrics_to_table(table, obj.items)
        return table

    def _get_metrics(self, pods: list[Any]) -> list[PodMetrics]:
        items = list(self.metrics.get_pod_metrics([_meta(p) for p in pods]))
        for item in items:
            stamp = item.timestamp if item.timestamp is not None else ZERO_TIME
            metric_freshness.observe(self.clock.since(stamp).total_seconds())
        items.sort(key=lambda m: (m.namespace, m.name))
        return items

    def namespace_scoped(self) -> bool:
        return True