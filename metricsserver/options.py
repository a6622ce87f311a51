"""Top-level command-line options of the metrics server."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from .durations import SECOND, format_duration, parse_duration
from .kubelet_options import KubeletClientOptions, _Bind, bind_bool


@dataclass
class Options:
    """Server options; metric_resolution is in nanoseconds."""

    kubelet_client: KubeletClientOptions = field(default_factory=KubeletClientOptions)
    metric_resolution: int = 60 * SECOND
    show_version: bool = False
    kubeconfig: str = ""
    # Only to be used for testing.
    disable_auth_for_testing: bool = False

    def validate(self) -> list[ValueError]:
        """Return every problem found with these options."""
        errors = self.kubelet_client.validate()
        errors.extend(self._validate())
        return errors

    def _validate(self) -> list[ValueError]:
        errors = []
        timeout = self.kubelet_client.kubelet_request_timeout
        if self.metric_resolution < 10 * SECOND:
            errors.append(ValueError(
                "metric-resolution should be a time duration at least 10s, but value "
                f"{format_duration(self.metric_resolution)} provided"))
        if self.metric_resolution * 9 // 10 < timeout:
            errors.append(ValueError(
                "metric-resolution should be larger than kubelet-request-timeout, but "
                f"metric-resolution value {format_duration(self.metric_resolution)} "
                f"kubelet-request-timeout value {format_duration(timeout)} provided"))
        return errors

    def add_arguments(self, parser: Any) -> None:
        """Register all flags; parsed values are stored on this object."""
        server = parser.add_argument_group("metrics server")
        server.add_argument("--metric-resolution", dest="metric_resolution", action=_Bind,
                            target=self, type=parse_duration,
                            help="The resolution at which metrics-server will retain metrics, "
                                 "must set value at least 10s.")
        bind_bool(server, "--version", self, "show_version", "Show version")
        server.add_argument("--kubeconfig", dest="kubeconfig", action=_Bind, target=self,
                            help="The path to the kubeconfig used to connect to the Kubernetes "
                                 "API server and the Kubelets (defaults to in-cluster config)")
        self.kubelet_client.add_arguments(parser.add_argument_group("kubelet client"))

    @classmethod
    def from_args(cls, argv: Optional[Sequence[str]] = None) -> "Options":
        """Build options from defaults overridden by command-line arguments."""
        options = cls()
        parser = argparse.ArgumentParser(prog="metrics-server",
                                         description="Launch metrics-server")
        options.add_arguments(parser)
        parser.parse_args(argv)
        return options