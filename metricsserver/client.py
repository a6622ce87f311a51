"""HTTP client that fetches resource metrics from kubelets."""

from __future__ import annotations

import os
import ssl
import tempfile
import urllib.error
import urllib.request
from datetime import datetime, timezone
from typing import Any, Optional

from .decode import decode_batch
from .model import KubeletClientConfig, MetricsBatch, Node, TLSClientConfig


def _join_host_port(host: str, port: int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def _load_pem_pair(context: ssl.SSLContext, cert: bytes, key: bytes) -> None:
    paths = []
    try:
        for blob in (cert, key):
            fd, path = tempfile.mkstemp(suffix=".pem")
            paths.append(path)
            with os.fdopen(fd, "wb") as handle:
                handle.write(blob)
        context.load_cert_chain(paths[0], paths[1])
    finally:
        for path in paths:
            os.unlink(path)


def _ssl_context(tls: TLSClientConfig) -> ssl.SSLContext:
    context = ssl.create_default_context()
    if tls.insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    else:
        if tls.ca_file:
            context.load_verify_locations(cafile=tls.ca_file)
        if tls.ca_data:
            context.load_verify_locations(cadata=tls.ca_data.decode("ascii"))
    if tls.cert_file or tls.key_file:
        context.load_cert_chain(tls.cert_file, tls.key_file or None)
    elif tls.cert_data and tls.key_data:
        _load_pem_pair(context, tls.cert_data, tls.key_data)
    return context


class KubeletClient:
    """Fetches and decodes /metrics/resource from a node's kubelet."""

    def __init__(
        self,
        resolver: Any,
        default_port: int,
        scheme: str,
        use_node_status_port: bool,
        ssl_context: Optional[ssl.SSLContext] = None,
        timeout: Optional[float] = None,
    ):
        self.resolver = resolver
        self.default_port = default_port
        self.scheme = scheme
        self.use_node_status_port = use_node_status_port
        self.ssl_context = ssl_context
        self.timeout = timeout
        self.headers: dict[str, str] = {}

    @classmethod
    def from_config(cls, config: KubeletClientConfig, resolver: Any) -> "KubeletClient":
        context = _ssl_context(config.client.tls) if config.scheme == "https" else None
        client = cls(
            resolver,
            config.default_port,
            config.scheme,
            config.use_node_status_port,
            ssl_context=context,
            timeout=config.client.timeout,
        )
        if config.client.bearer_token:
            client.headers["Authorization"] = f"Bearer {config.client.bearer_token}"
        return client

    def get_metrics(self, node: Node, timeout: Optional[float] = None) -> MetricsBatch:
        port = self.default_port
        if self.use_node_status_port and node.kubelet_port:
            port = node.kubelet_port
        address = self.resolver.node_address(node)
        url = f"{self.scheme}://{_join_host_port(address, port)}/metrics/resource"
        return self.fetch(url, node.name, timeout)

    def fetch(self, url: str, node_name: str, timeout: Optional[float] = None) -> MetricsBatch:
        request = urllib.request.Request(url, headers=self.headers, method="GET")
        request_time = datetime.now(timezone.utc)
        effective = timeout if timeout is not None else self.timeout
        try:
            with urllib.request.urlopen(request, timeout=effective, context=self.ssl_context) as resp:
                if resp.status != 200:
                    raise RuntimeError(f"request failed, status: {resp.status} {resp.reason}")
                body = resp.read()
        except urllib.error.HTTPError as exc:
            raise RuntimeError(f"request failed, status: {exc.code} {exc.reason}") from exc
        return decode_batch(body, request_time, node_name)