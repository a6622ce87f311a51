"""Concurrent collection of resource metrics from every node's kubelet."""

from __future__ import annotations

import logging
import math
import queue
import random
import threading
import time
from typing import Any, Callable, Optional

from .clock import RealClock
from .metrics import DEF_BUCKETS, Counter, Gauge, Histogram
from .model import MetricsBatch, Node

logger = logging.getLogger(__name__)

MAX_DELAY_MS = 4 * 1000
DELAY_PER_SOURCE_MS = 8
_RESULT_GRACE = 0.05

request_duration = Histogram(
    "metrics_server_kubelet_request_duration_seconds",
    "Duration of requests to Kubelet API in seconds",
    DEF_BUCKETS,
    ["node"],
)
request_total = Counter(
    "metrics_server_kubelet_request_total",
    "Number of requests sent to Kubelet API",
    ["success"],
)
last_request_time = Gauge(
    "metrics_server_kubelet_last_request_time_seconds",
    "Time of last request performed to Kubelet API since unix epoch in seconds",
    ["node"],
)


def register_scraper_metrics(register: Callable[[Any], object]) -> None:
    """Register rate, error and duration metrics of kubelet scrapes."""
    for metric in (request_duration, request_total, last_request_time):
        register(metric)


class Scraper:
    """Scrapes all nodes listed by a lister and merges their batches.

    The node lister's ``list()`` returns every node; the kubelet client's
    ``get_metrics(node, timeout)`` returns a MetricsBatch for one node.
    """

    def __init__(self, node_lister: Any, kubelet_client: Any, scrape_timeout: float,
                 clock: Optional[Any] = None):
        self.node_lister = node_lister
        self.kubelet_client = kubelet_client
        self.scrape_timeout = scrape_timeout
        self.clock = clock if clock is not None else RealClock()

    def scrape(self, timeout: Optional[float] = None) -> MetricsBatch:
        """Scrape every node; `timeout` bounds the whole scrape in seconds."""
        try:
            nodes = list(self.node_lister.list())
        except Exception:
            logger.exception("Failed to list nodes")
            nodes = []
        logger.debug("Scraping metrics from nodes, nodeCount=%d", len(nodes))

        started = time.monotonic()
        start_time = self.clock.now()
        base_deadline = started + timeout if timeout is not None else None
        delay_ms = min(DELAY_PER_SOURCE_MS * len(nodes), MAX_DELAY_MS)

        results: "queue.Queue[Optional[MetricsBatch]]" = queue.Queue()
        for node in nodes:
            threading.Thread(
                target=self._worker,
                args=(node, delay_ms, base_deadline, results),
                daemon=True,
            ).start()

        wait_deadline = started + delay_ms / 1000 + self.scrape_timeout
        if base_deadline is not None:
            wait_deadline = min(wait_deadline, base_deadline)
        wait_deadline += _RESULT_GRACE

        res = MetricsBatch()
        for _ in nodes:
            remaining = wait_deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                batch = results.get(timeout=remaining)
            except queue.Empty:
                break
            if batch is None:
                continue
            for node_name, point in batch.nodes.items():
                if node_name in res.nodes:
                    logger.error("Got duplicate node point, node=%s", node_name)
                    continue
                res.nodes[node_name] = point
            for ref, pod_point in batch.pods.items():
                if ref in res.pods:
                    logger.error("Got duplicate pod point, pod=%s", ref)
                    continue
                res.pods[ref] = pod_point

        logger.debug(
            "Scrape finished, duration=%s nodeCount=%d podCount=%d",
            self.clock.since(start_time), len(res.nodes), len(res.pods),
        )
        return res

    def _worker(self, node: Node, delay_ms: int, base_deadline: Optional[float],
                results: "queue.Queue[Optional[MetricsBatch]]") -> None:
        batch = None
        try:
            # Stagger requests to avoid network congestion.
            time.sleep(random.randrange(delay_ms) / 1000 if delay_ms > 0 else 0)
            node_timeout = self.scrape_timeout
            if base_deadline is not None:
                node_timeout = min(node_timeout, base_deadline - time.monotonic())
            node_timeout = max(node_timeout, 0.0)
            logger.debug("Scraping node %s", node.name)
            batch = self._collect_node(node, node_timeout)
        except TimeoutError:
            logger.error("Failed to scrape node %s, timeout to access kubelet (timeout=%ss)",
                         node.name, self.scrape_timeout)
        except Exception:
            logger.exception("Failed to scrape node %s", node.name)
        finally:
            results.put(batch)

    def _collect_node(self, node: Node, timeout: float) -> MetricsBatch:
        start = self.clock.now()
        try:
            batch = self.kubelet_client.get_metrics(node, timeout)
        except Exception:
            request_total.inc("false")
            raise
        finally:
            request_duration.observe(self.clock.since(start).total_seconds(), node.name)
            last_request_time.set(float(math.floor(self.clock.now().timestamp())), node.name)
        request_total.inc("true")
        return batch