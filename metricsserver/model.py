"""Core data types shared by the scraper, the decoder and the API layer."""

from __future__ import annotations

import copy as _copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


class NotFoundError(LookupError):
    """Raised when a requested resource does not exist."""

    def __init__(self, resource: str, name: str):
        super().__init__(f'{resource} "{name}" not found')
        self.resource = resource
        self.name = name


@dataclass(frozen=True, order=True)
class NamespacedName:
    namespace: str = ""
    name: str = ""

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class MetricsPoint:
    """A single resource usage sample."""

    start_time: Optional[datetime] = None
    timestamp: Optional[datetime] = None
    cumulative_cpu_used: int = 0
    memory_usage: int = 0

    def is_empty(self) -> bool:
        return self == MetricsPoint()


@dataclass
class PodMetricsPoint:
    containers: dict[str, MetricsPoint] = field(default_factory=dict)


@dataclass
class MetricsBatch:
    nodes: dict[str, MetricsPoint] = field(default_factory=dict)
    pods: dict[NamespacedName, PodMetricsPoint] = field(default_factory=dict)


@dataclass(frozen=True)
class NodeAddress:
    type: str
    address: str


@dataclass
class ObjectMeta:
    name: str = ""
    namespace: str = ""
    labels: Optional[dict[str, str]] = None
    resource_version: str = ""
    self_link: str = ""


@dataclass
class Node:
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    addresses: list[NodeAddress] = field(default_factory=list)
    kubelet_port: int = 0

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def labels(self) -> Optional[dict[str, str]]:
        return self.metadata.labels


@dataclass
class ContainerMetrics:
    name: str
    usage: dict[str, Any] = field(default_factory=dict)


@dataclass
class NodeMetrics:
    """Usage of one node; window is in nanoseconds."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    timestamp: Optional[datetime] = None
    window: int = 0
    usage: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def labels(self) -> Optional[dict[str, str]]:
        return self.metadata.labels


@dataclass
class PodMetrics:
    """Usage of one pod; window is in nanoseconds."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    timestamp: Optional[datetime] = None
    window: int = 0
    containers: list[ContainerMetrics] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def labels(self) -> Optional[dict[str, str]]:
        return self.metadata.labels


@dataclass
class NodeMetricsList:
    items: list[NodeMetrics] = field(default_factory=list)
    resource_version: str = ""
    self_link: str = ""
    continue_token: str = ""


@dataclass
class PodMetricsList:
    items: list[PodMetrics] = field(default_factory=list)
    resource_version: str = ""
    self_link: str = ""
    continue_token: str = ""


@dataclass
class TLSClientConfig:
    insecure: bool = False
    ca_file: str = ""
    ca_data: Optional[bytes] = None
    cert_file: str = ""
    cert_data: Optional[bytes] = None
    key_file: str = ""
    key_data: Optional[bytes] = None


@dataclass
class RestConfig:
    """Connection settings for talking to Kubernetes endpoints."""

    host: str = ""
    bearer_token: str = ""
    username: str = ""
    password: str = ""
    tls: TLSClientConfig = field(default_factory=TLSClientConfig)
    timeout: Optional[float] = None
    content_type: str = ""

    def copy(self) -> "RestConfig":
        return _copy.deepcopy(self)

    def anonymous(self) -> "RestConfig":
        """Return a copy without any credentials, keeping CA trust settings."""
        return RestConfig(
            host=self.host,
            tls=TLSClientConfig(
                insecure=self.tls.insecure,
                ca_file=self.tls.ca_file,
                ca_data=self.tls.ca_data,
            ),
            timeout=self.timeout,
            content_type=self.content_type,
        )


@dataclass
class KubeletClientConfig:
    client: RestConfig = field(default_factory=RestConfig)
    address_type_priority: list[str] = field(default_factory=list)
    scheme: str = "https"
    default_port: int = 0
    use_node_status_port: bool = False