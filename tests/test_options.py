import argparse

import pytest

from metricsserver.durations import parse_duration
from metricsserver.kubelet_options import KubeletClientOptions
from metricsserver.options import Options


@pytest.mark.parametrize(
    "resolution,timeout,expected",
    [
        ("10s", "9s", 0),
        ("10s", "10s", 1),
    ],
)
def test_resolution_against_request_timeout(resolution, timeout, expected):
    opts = Options(
        metric_resolution=parse_duration(resolution),
        kubelet_client=KubeletClientOptions(kubelet_request_timeout=parse_duration(timeout)),
    )
    assert len(opts.validate()) == expected


def test_defaults_valid():
    opts = Options()
    assert opts.metric_resolution == parse_duration("60s")
    assert opts.show_version is False
    assert opts.validate() == []


def test_resolution_too_small_message():
    opts = Options(
        metric_resolution=parse_duration("5s"),
        kubelet_client=KubeletClientOptions(kubelet_request_timeout=parse_duration("1s")),
    )
    assert [str(e) for e in opts.validate()] == [
        "metric-resolution should be a time duration at least 10s, but value 5s provided"
    ]


def test_timeout_too_large_message():
    opts = Options(metric_resolution=parse_duration("10s"))
    assert [str(e) for e in opts.validate()] == [
        "metric-resolution should be larger than kubelet-request-timeout, but "
        "metric-resolution value 10s kubelet-request-timeout value 10s provided"
    ]


def test_kubelet_errors_come_first():
    opts = Options(
        metric_resolution=parse_duration("5s"),
        kubelet_client=KubeletClientOptions(kubelet_request_timeout=0),
    )
    messages = [str(e) for e in opts.validate()]
    assert messages[0] == "kubelet-request-timeout should be positive"
    assert len(messages) == 2


def test_from_args():
    opts = Options.from_args([
        "--metric-resolution=30s",
        "--kubeconfig", "/tmp/kubeconfig",
        "--version",
        "--kubelet-port=1234",
        "--kubelet-request-timeout=5s",
    ])
    assert opts.metric_resolution == parse_duration("30s")
    assert opts.kubeconfig == "/tmp/kubeconfig"
    assert opts.show_version is True
    assert opts.kubelet_client.kubelet_port == 1234
    assert opts.kubelet_client.kubelet_request_timeout == parse_duration("5s")
    assert opts.validate() == []


def test_from_args_without_arguments_keeps_defaults():
    assert Options.from_args([]) == Options()


def test_from_args_rejects_unknown_flag():
    with pytest.raises(SystemExit):
        Options.from_args(["--no-such-flag"])


def test_add_arguments_binds_to_instance():
    opts = Options()
    parser = argparse.ArgumentParser()
    opts.add_arguments(parser)
    parser.parse_args(["--metric-resolution=2m", "--kubelet-insecure-tls"])
    assert opts.metric_resolution == 2 * parse_duration("1m")
    assert opts.kubelet_client.insecure_kubelet_tls is True