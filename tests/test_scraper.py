import textwrap
import time
from datetime import datetime, timedelta, timezone

import pytest

from metricsserver.model import (
    MetricsBatch,
    MetricsPoint,
    NamespacedName,
    Node,
    NodeAddress,
    ObjectMeta,
    PodMetricsPoint,
)
from metricsserver.scraper import (
    Scraper,
    last_request_time,
    register_scraper_metrics,
    request_duration,
    request_total,
)

TIME_DRIFT = 0.1


def metric_point(cpu, memory, when):
    return MetricsPoint(timestamp=when, cumulative_cpu_used=cpu, memory_usage=memory)


def make_node(name, host_name, addr):
    addresses = []
    if host_name:
        addresses.append(NodeAddress("Hostname", host_name))
    if addr:
        addresses.append(NodeAddress("InternalIP", addr))
    return Node(metadata=ObjectMeta(name=name), addresses=addresses)


class FakeKubeletClient:
    def __init__(self, metrics):
        self.metrics = metrics
        self.delay = {}
        self.default_delay = 0.0

    def get_metrics(self, node, timeout):
        delay = self.delay.get(node.name, self.default_delay)
        if node.name not in self.metrics:
            raise RuntimeError(f"Unknown node {node.name!r}")
        if timeout is not None and delay > timeout:
            time.sleep(timeout)
            raise TimeoutError("timed out")
        time.sleep(delay)
        return self.metrics[node.name]


class FakeNodeLister:
    def __init__(self, nodes, error=None):
        self.nodes = nodes
        self.error = error

    def list(self):
        if self.error is not None:
            raise self.error
        return self.nodes


class MockClock:
    def __init__(self, now, later):
        self._now = now
        self._later = later

    def now(self):
        return self._now

    def since(self, then):
        return self._later - then


def node_names(batch):
    return sorted(batch.nodes)


def pod_names(batch):
    return sorted(f"{ref.namespace}/{ref.name}" for ref in batch.pods)


@pytest.fixture
def setup():
    scrape_time = datetime.now(timezone.utc)
    node1 = make_node("node1", "node1.somedomain", "10.0.1.2")
    node2 = make_node("node-no-host", "", "10.0.1.3")
    node3 = make_node("node3", "node3.somedomain", "10.0.1.4")
    node4 = make_node("node4", "node4.somedomain", "10.0.1.5")
    ms = timedelta(milliseconds=1)
    mb = MetricsBatch(
        nodes={"node1": metric_point(100, 200, scrape_time)},
        pods={
            NamespacedName("ns1", "pod1"): PodMetricsPoint(containers={
                "container1": metric_point(300, 400, scrape_time + 10 * ms),
                "container2": metric_point(500, 600, scrape_time + 20 * ms),
            }),
            NamespacedName("ns1", "pod2"): PodMetricsPoint(containers={
                "container1": metric_point(700, 800, scrape_time + 30 * ms),
            }),
            NamespacedName("ns2", "pod1"): PodMetricsPoint(containers={
                "container1": metric_point(900, 1000, scrape_time + 40 * ms),
            }),
            NamespacedName("ns3", "pod1"): PodMetricsPoint(containers={
                "container1": metric_point(1100, 1200, scrape_time + 50 * ms),
            }),
        },
    )
    client = FakeKubeletClient({
        "node1": mb,
        "node-no-host": MetricsBatch(nodes={"node-no-host": metric_point(100, 200, scrape_time)}),
        "node3": MetricsBatch(nodes={"node3": metric_point(100, 200, scrape_time)}),
        "node4": MetricsBatch(nodes={"node4": metric_point(100, 200, scrape_time)}),
    })
    lister = FakeNodeLister([node1, node2, node3, node4])
    return lister, client, node1


def test_all_nodes_return_in_time(setup):
    lister, client, _ = setup
    client.default_delay = 0.1
    start = time.monotonic()
    batch = Scraper(lister, client, 0.3).scrape(timeout=0.4)
    assert time.monotonic() - start <= 0.3
    assert node_names(batch) == sorted(["node1", "node-no-host", "node3", "node4"])
    assert pod_names(batch) == ["ns1/pod1", "ns1/pod2", "ns2/pod1", "ns3/pod1"]


def test_scrape_timeout_applies_per_source(setup):
    lister, client, _ = setup
    client.delay["node1"] = 0.4
    client.default_delay = 0.1
    start = time.monotonic()
    batch = Scraper(lister, client, 0.2).scrape()
    assert abs((time.monotonic() - start) - 0.2) < TIME_DRIFT
    assert node_names(batch) == sorted(["node-no-host", "node3", "node4"])
    assert pod_names(batch) == []


def test_parent_timeout_respected(setup):
    lister, client, _ = setup
    client.default_delay = 0.4
    start = time.monotonic()
    batch = Scraper(lister, client, 0.5).scrape(timeout=0.1)
    assert abs((time.monotonic() - start) - 0.1) < TIME_DRIFT
    assert batch.nodes == {}


def test_scrape_records_metrics(setup):
    _, client, node1 = setup
    for metric in (request_duration, request_total, last_request_time):
        metric.reset()
    zero = datetime(1, 1, 1, tzinfo=timezone.utc)
    clock = MockClock(zero, zero + timedelta(seconds=1))
    client.default_delay = 0.05
    Scraper(FakeNodeLister([node1]), client, 3, clock=clock).scrape()

    expected_duration = textwrap.dedent("""\
        # HELP metrics_server_kubelet_request_duration_seconds [ALPHA] Duration of requests to Kubelet API in seconds
        # TYPE metrics_server_kubelet_request_duration_seconds histogram
        metrics_server_kubelet_request_duration_seconds_bucket{node="node1",le="0.005"} 0
        metrics_server_kubelet_request_duration_seconds_bucket{node="node1",le="0.01"} 0
        metrics_server_kubelet_request_duration_seconds_bucket{node="node1",le="0.025"} 0
        metrics_server_kubelet_request_duration_seconds_bucket{node="node1",le="0.05"} 0
        metrics_server_kubelet_request_duration_seconds_bucket{node="node1",le="0.1"} 0
        metrics_server_kubelet_request_duration_seconds_bucket{node="node1",le="0.25"} 0
        metrics_server_kubelet_request_duration_seconds_bucket{node="node1",le="0.5"} 0
        metrics_server_kubelet_request_duration_seconds_bucket{node="node1",le="1"} 1
        metrics_server_kubelet_request_duration_seconds_bucket{node="node1",le="2.5"} 1
        metrics_server_kubelet_request_duration_seconds_bucket{node="node1",le="5"} 1
        metrics_server_kubelet_request_duration_seconds_bucket{node="node1",le="10"} 1
        metrics_server_kubelet_request_duration_seconds_bucket{node="node1",le="+Inf"} 1
        metrics_server_kubelet_request_duration_seconds_sum{node="node1"} 1
        metrics_server_kubelet_request_duration_seconds_count{node="node1"} 1
        """)
    expected_total = textwrap.dedent("""\
        # HELP metrics_server_kubelet_request_total [ALPHA] Number of requests sent to Kubelet API
        # TYPE metrics_server_kubelet_request_total counter
        metrics_server_kubelet_request_total{success="true"} 1
        """)
    expected_last = textwrap.dedent("""\
        # HELP metrics_server_kubelet_last_request_time_seconds [ALPHA] Time of last request performed to Kubelet API since unix epoch in seconds
        # TYPE metrics_server_kubelet_last_request_time_seconds gauge
        metrics_server_kubelet_last_request_time_seconds{node="node1"} -6.21355968e+10
        """)
    try:
        assert request_duration.expose() == expected_duration
        assert request_total.expose() == expected_total
        assert last_request_time.expose() == expected_last
    finally:
        for metric in (request_duration, request_total, last_request_time):
            metric.reset()


def test_continues_on_error_for_one_node(setup):
    lister, client, node1 = setup
    node1.addresses = []
    del client.metrics["node1"]
    batch = Scraper(lister, client, 5).scrape()
    assert node_names(batch) == sorted(["node4", "node-no-host", "node3"])
    assert pod_names(batch) == []


def test_list_error_gives_empty_batch(setup):
    lister, client, _ = setup
    lister.error = RuntimeError("something went wrong, expectedly")
    batch = Scraper(lister, client, 5).scrape()
    assert batch.nodes == {}
    assert batch.pods == {}


def test_duplicate_points_keep_first(setup):
    lister, client, node1 = setup
    shared = MetricsBatch(nodes={"dup": metric_point(1, 2, None)})
    client.metrics = {"node1": shared, "node-no-host": shared}
    lister.nodes = [node1, make_node("node-no-host", "", "10.0.1.3")]
    batch = Scraper(lister, client, 1).scrape()
    assert list(batch.nodes) == ["dup"]


def test_register_scraper_metrics_registers_all():
    seen = []
    register_scraper_metrics(seen.append)
    assert seen == [request_duration, request_total, last_request_time]