# metricsserver

Building blocks for collecting node and container resource usage from
Kubernetes kubelets and presenting it in the shape of the `metrics.k8s.io`
resources (`NodeMetrics`, `PodMetrics`). Only the Python standard library
is needed.

## Modules

- `metricsserver.model` – the shared data classes: `MetricsPoint`,
  `PodMetricsPoint`, `MetricsBatch`, `NamespacedName`, `Node`,
  `NodeAddress`, `ObjectMeta`, `NodeMetrics`, `PodMetrics`,
  `ContainerMetrics`, `NodeMetricsList`, `PodMetricsList`,
  `RestConfig`, `TLSClientConfig`, `KubeletClientConfig`, and the
  `NotFoundError` exception. `RestConfig.copy()` makes a deep copy;
  `RestConfig.anonymous()` drops all credentials but keeps host, CA
  settings, timeout and content type.
- `metricsserver.decode` – `decode_batch(data, default_time, node_name)`
  reads the Prometheus text format served at a kubelet's
  `/metrics/resource` and returns a `MetricsBatch`. It uses
  `node_cpu_usage_seconds_total`, `node_memory_working_set_bytes`,
  `container_cpu_usage_seconds_total`,
  `container_memory_working_set_bytes` and `container_start_time_seconds`;
  CPU seconds become nanoseconds, millisecond timestamps become UTC
  datetimes, and samples without a timestamp take `default_time`. A node
  is kept only if it has a timestamp and non-zero CPU and memory; a pod is
  dropped if any of its containers lacks non-zero CPU or memory. Malformed
  input raises `DecodeError`. `iter_series`, `timeseries_matches_name` and
  `parse_container_labels` are the lower-level helpers.
- `metricsserver.client` – `KubeletClient` builds the URL
  `<scheme>://<address>:<port>/metrics/resource` for a node (using the
  port from the node status when `use_node_status_port` is set and the
  node reports one), fetches it with `urllib`, and decodes it. A non-200
  answer raises `RuntimeError`. `KubeletClient.from_config(config,
  resolver)` sets up TLS from a `KubeletClientConfig` and sends the bearer
  token, if any. The resolver is any object with a `node_address(node)`
  method.
- `metricsserver.scraper` – `Scraper(node_lister, kubelet_client,
  scrape_timeout, clock=None)`; `scrape(timeout=None)` queries all nodes
  from `node_lister.list()` in parallel threads, staggering starts by a
  few milliseconds per node (at most 4 s), bounds each node by
  `scrape_timeout` seconds and the whole scrape by `timeout`, and merges
  the batches, skipping duplicates and failed nodes. It records
  `metrics_server_kubelet_request_duration_seconds`,
  `metrics_server_kubelet_request_total` and
  `metrics_server_kubelet_last_request_time_seconds`;
  `register_scraper_metrics(register)` hands them to a registry callback.
- `metricsserver.metrics` – small `Histogram`, `Counter` and `Gauge`
  collectors with `reset()` and `expose()` (Prometheus text format), plus
  `exponential_buckets`. `register_api_metrics(register)` registers the
  `metrics_server_api_metric_freshness_seconds` histogram.
- `metricsserver.clock` – `RealClock` (UTC system time) and `FakeClock`
  (moved with `advance(seconds)`) for tests.
- `metricsserver.node` / `metricsserver.pod` – `NodeMetricsStorage` and
  `PodMetricsStorage` list and get metrics through a metrics getter
  (`get_node_metrics(nodes)` / `get_pod_metrics(pods)`) and a lister.
  They apply label and field selectors from `ListOptions`, sort results by
  name (pods by namespace, then name), record metric freshness, raise
  `NotFoundError` for unknown objects or objects without metrics, and
  render tables with `convert_to_table`.
- `metricsserver.selectors` – `Selector` (equality requirements, built
  with `from_set` or `everything`), `ListOptions`, `object_meta_fields`,
  `filter_nodes` and `filter_partial_object_metadata`.
- `metricsserver.table` – `Table`, `ColumnDefinition`, `TableRow`, and
  `add_node_metrics_to_table` / `add_pod_metrics_to_table`, which produce a
  `Name` column, one column per resource (sorted) and a `Window` column.
- `metricsserver.quantity` – `Quantity.parse`, addition and formatting of
  resource quantities such as `10m`, `5Mi` or `1`.
- `metricsserver.durations` – `parse_duration` (`"1m30s"` → nanoseconds)
  and `format_duration` (nanoseconds → `"1µs"`, `"1h2m3.5s"`).
- `metricsserver.kubelet_options` / `metricsserver.options` –
  `KubeletClientOptions` and `Options` hold the settings with their
  defaults (kubelet port 10250, address types Hostname, InternalDNS,
  InternalIP, ExternalDNS, ExternalIP, a 10 s request timeout, a 60 s
  metric resolution), add them to an `argparse` parser with
  `add_arguments`, and return a list of problems from `validate()`. The
  metric resolution must be at least 10 s, and nine tenths of it must not
  be less than the kubelet request timeout. `KubeletClientOptions.config`
  turns the options into a `KubeletClientConfig`; `Options.from_args(argv)`
  parses a command line.

## Example

```python
from datetime import datetime, timezone

from metricsserver.decode import decode_batch

document = b"""
node_cpu_usage_seconds_total 357.35491 1633253809720
node_memory_working_set_bytes 1.616273408e+09 1633253809720
"""

batch = decode_batch(document, datetime.now(timezone.utc), "node1")
point = batch.nodes["node1"]
print(point.cumulative_cpu_used, point.memory_usage)
```

Validating settings taken from a command line:

```python
from metricsserver.options import Options

options = Options.from_args(["--metric-resolution", "15s"])
for problem in options.validate():
    print(problem)
```

## What it does not do

The package is a library. It has no command-line program and does not run
an HTTP API server: nothing here serves the views over the network,
handles authentication or authorization, or installs an API group. It
keeps no history of scraped batches and does not compute CPU rates from
them; the metrics getters passed to `NodeMetricsStorage` and
`PodMetricsStorage`, the node and pod listers, and the node address
resolver passed to `KubeletClient` are supplied by the caller. Options do
not read kubeconfig files or in-cluster configuration.

## Tests

The test suite uses pytest; install the package with its `test` extra and
run `pytest`.