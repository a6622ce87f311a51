"""Command-line options that configure how kubelets are contacted."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import Any

from .durations import SECOND, parse_duration
from .model import KubeletClientConfig, RestConfig, TLSClientConfig

DEFAULT_ADDRESS_TYPE_PRIORITY = (
    "Hostname",
    "InternalDNS",
    "InternalIP",
    "ExternalDNS",
    "ExternalIP",
)

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def parse_bool(text: str) -> bool:
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"invalid boolean value {text!r}")


class _Bind(argparse.Action):
    """Store a parsed value straight onto an options object."""

    def __init__(self, option_strings, dest, target=None, **kwargs):
        kwargs.setdefault("default", argparse.SUPPRESS)
        super().__init__(option_strings, dest, **kwargs)
        self.target = target

    def __call__(self, parser, namespace, values, option_string=None):
        setattr(self.target, self.dest, values)


class _BindSlice(_Bind):
    """Comma separated list: the first use replaces the default, later uses extend it."""

    def __call__(self, parser, namespace, values, option_string=None):
        marker = f"_seen_{self.dest}"
        items = [] if values == "" else values.split(",")
        if getattr(namespace, marker, False):
            getattr(self.target, self.dest).extend(items)
        else:
            setattr(self.target, self.dest, items)
            setattr(namespace, marker, True)


def bind_bool(parser: Any, flag: str, target: Any, dest: str, help: str) -> None:
    parser.add_argument(flag, dest=dest, action=_Bind, target=target, nargs="?",
                        const=True, type=parse_bool, metavar="BOOL", help=help)


@dataclass
class KubeletClientOptions:
    """Kubelet connection options; kubelet_request_timeout is in nanoseconds."""

    kubelet_use_node_status_port: bool = False
    kubelet_port: int = 10250
    insecure_kubelet_tls: bool = False
    kubelet_preferred_address_types: list[str] = field(
        default_factory=lambda: list(DEFAULT_ADDRESS_TYPE_PRIORITY)
    )
    kubelet_ca_file: str = ""
    kubelet_client_key_file: str = ""
    kubelet_client_cert_file: str = ""
    deprecated_completely_insecure_kubelet: bool = False
    kubelet_request_timeout: int = 10 * SECOND

    def validate(self) -> list[ValueError]:
        """Return every problem found with these options."""
        errors = []
        insecure = self.deprecated_completely_insecure_kubelet
        if self.kubelet_ca_file and self.insecure_kubelet_tls:
            errors.append(ValueError(
                "cannot use both --kubelet-certificate-authority and --kubelet-insecure-tls"))
        if bool(self.kubelet_client_key_file) != bool(self.kubelet_client_cert_file):
            errors.append(ValueError(
                "need both --kubelet-client-key and --kubelet-client-certificate"))
        if self.kubelet_client_key_file and insecure:
            errors.append(ValueError(
                "cannot use both --kubelet-client-key and --deprecated-kubelet-completely-insecure"))
        if self.kubelet_client_cert_file and insecure:
            errors.append(ValueError(
                "cannot use both --kubelet-client-certificate and "
                "--deprecated-kubelet-completely-insecure"))
        if self.insecure_kubelet_tls and insecure:
            errors.append(ValueError(
                "cannot use both --kubelet-insecure-tls and --deprecated-kubelet-completely-insecure"))
        if self.kubelet_ca_file and insecure:
            errors.append(ValueError(
                "cannot use both --kubelet-certificate-authority and "
                "--deprecated-kubelet-completely-insecure"))
        if self.kubelet_request_timeout <= 0:
            errors.append(ValueError("kubelet-request-timeout should be positive"))
        return errors

    def add_arguments(self, parser: Any) -> None:
        """Register the kubelet flags; parsed values are stored on this object."""
        bind_bool(parser, "--kubelet-insecure-tls", self, "insecure_kubelet_tls",
                  "Do not verify CA of serving certificates presented by Kubelets.  "
                  "For testing purposes only.")
        bind_bool(parser, "--kubelet-use-node-status-port", self, "kubelet_use_node_status_port",
                  "Use the port in the node status. Takes precedence over --kubelet-port flag.")
        parser.add_argument("--kubelet-port", dest="kubelet_port", action=_Bind, target=self,
                            type=int, help="The port to use to connect to Kubelets.")
        parser.add_argument("--kubelet-preferred-address-types",
                            dest="kubelet_preferred_address_types", action=_BindSlice,
                            target=self,
                            help="The priority of node address types to use when determining "
                                 "which address to use to connect to a particular node")
        parser.add_argument("--kubelet-certificate-authority", dest="kubelet_ca_file",
                            action=_Bind, target=self,
                            help="Path to the CA to use to validate the Kubelet's serving "
                                 "certificates.")
        parser.add_argument("--kubelet-client-key", dest="kubelet_client_key_file",
                            action=_Bind, target=self, help="Path to a client key file for TLS.")
        parser.add_argument("--kubelet-client-certificate", dest="kubelet_client_cert_file",
                            action=_Bind, target=self, help="Path to a client cert file for TLS.")
        parser.add_argument("--kubelet-request-timeout", dest="kubelet_request_timeout",
                            action=_Bind, target=self, type=parse_duration,
                            help="The length of time to wait before giving up on a single "
                                 "request to Kubelet. Non-zero values should contain a "
                                 "corresponding time unit (e.g. 1s, 2m, 3h).")
        bind_bool(parser, "--deprecated-kubelet-completely-insecure", self,
                  "deprecated_completely_insecure_kubelet",
                  "DEPRECATED: Do not use any encryption, authorization, or authentication "
                  "when communicating with the Kubelet.")

    def config(self, rest_config: RestConfig) -> KubeletClientConfig:
        """Build the kubelet client configuration from a base REST config."""
        config = KubeletClientConfig(
            client=rest_config.copy(),
            address_type_priority=self.address_type_priority(),
            scheme="https",
            default_port=self.kubelet_port,
            use_node_status_port=self.kubelet_use_node_status_port,
        )
        if self.deprecated_completely_insecure_kubelet:
            config.scheme = "http"
            # No credentials, and no TLS, towards an insecure endpoint.
            config.client = config.client.anonymous()
            config.client.tls = TLSClientConfig()
        tls = config.client.tls
        if self.insecure_kubelet_tls:
            tls.insecure = True
            tls.ca_data = None
            tls.ca_file = ""
        if self.kubelet_ca_file:
            tls.ca_file = self.kubelet_ca_file
            tls.ca_data = None
        if self.kubelet_client_cert_file:
            tls.cert_file = self.kubelet_client_cert_file
            tls.cert_data = None
        if self.kubelet_client_key_file:
            tls.key_file = self.kubelet_client_key_file
            tls.key_data = None
        return config

    def address_type_priority(self) -> list[str]:
        return list(self.kubelet_preferred_address_types)