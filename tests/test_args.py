"""Tests for the getcert request/resubmit argument builders."""

from __future__ import annotations

import pytest

from getcert_reconcile.args import build_base_args, build_request_args, is_ip_literal
from getcert_reconcile.errors import MissingCA, MissingCertfile, MissingKeyfile
from getcert_reconcile.model import DesiredState


def desired(**kwargs) -> DesiredState:
    return DesiredState.from_mapping({"name": "httpd", **kwargs})


class TestBaseArgs:
    def test_minimal(self):
        d = desired(certfile="/tmp/s.crt", keyfile="/tmp/s.key", ca="IPA")
        assert build_base_args(d) == ["-f", "/tmp/s.crt", "-c", "IPA"]

    def test_missing_ca(self):
        with pytest.raises(MissingCA):
            build_base_args(desired(certfile="/tmp/s.crt", keyfile="/tmp/s.key"))

    def test_missing_certfile(self):
        with pytest.raises(MissingCertfile):
            build_base_args(desired(keyfile="/tmp/s.key", ca="IPA"))

    def test_certfile_checked_before_ca(self):
        with pytest.raises(MissingCertfile):
            build_base_args(desired())

    def test_hostname_sans_and_ekus(self):
        d = desired(
            certfile="/tmp/s.crt",
            ca="IPA",
            hostname="myhost.example.com",
            dnsname=["www.example.com", "myhost.example.com"],
            eku=["id-kp-clientAuth", "id-kp-serverAuth"],
        )
        assert build_base_args(d) == [
            "-f", "/tmp/s.crt",
            "-c", "IPA",
            "-N", "CN=myhost.example.com",
            "-D", "www.example.com",
            "-D", "myhost.example.com",
            "-U", "id-kp-clientAuth",
            "-U", "id-kp-serverAuth",
        ]

    def test_ip_sans_keep_input_order(self):
        d = desired(certfile="/c", ca="IPA", dnsname=["10.0.0.1", "host.example.com", "fd00::1"])
        assert build_base_args(d)[4:] == [
            "-A", "10.0.0.1",
            "-D", "host.example.com",
            "-A", "fd00::1",
        ]

    def test_string_values_are_single_entries(self):
        d = desired(certfile="/c", ca="IPA", dnsname="www.example.com", eku="id-kp-serverAuth")
        assert build_base_args(d)[4:] == ["-D", "www.example.com", "-U", "id-kp-serverAuth"]

    def test_full_order(self):
        d = desired(
            certfile="/c",
            ca="IPA",
            hostname="h.example.com",
            principal="HTTP/h.example.com",
            dnsname="h.example.com",
            eku="id-kp-serverAuth",
            presave_cmd="/bin/systemctl stop httpd",
            postsave_cmd="/bin/systemctl start httpd",
            wait=True,
        )
        assert build_base_args(d) == [
            "-f", "/c",
            "-c", "IPA",
            "-N", "CN=h.example.com",
            "-K", "HTTP/h.example.com",
            "-D", "h.example.com",
            "-U", "id-kp-serverAuth",
            "-B", "/bin/systemctl stop httpd",
            "-C", "/bin/systemctl start httpd",
            "-w",
        ]

    def test_multiple_principals(self):
        d = desired(certfile="/c", ca="IPA", principal=["HTTP/a", "HTTP/b"])
        assert build_base_args(d)[4:] == ["-K", "HTTP/a", "-K", "HTTP/b"]

    def test_same_input_same_args(self):
        d = desired(certfile="/c", ca="IPA", dnsname=["b", "a"], eku=["y", "x"])
        assert build_base_args(d) == build_base_args(d)


class TestRequestArgs:
    def test_minimal(self):
        assert build_request_args(desired(keyfile="/tmp/s.key")) == ["-k", "/tmp/s.key"]

    def test_missing_keyfile(self):
        with pytest.raises(MissingKeyfile):
            build_request_args(desired(certfile="/c", ca="IPA"))

    def test_all_options(self):
        d = desired(
            keyfile="/k",
            profile="caIPAserviceCert",
            cacertfile="/etc/ipa/ca.crt",
            key_size=4096,
        )
        assert build_request_args(d) == [
            "-k", "/k",
            "-T", "caIPAserviceCert",
            "-F", "/etc/ipa/ca.crt",
            "-g", "4096",
        ]


@pytest.mark.parametrize(
    "value,expected",
    [
        ("10.0.0.1", True),
        ("::1", True),
        ("host.example.com", False),
        ("10.0.0", False),
        ("", False),
    ],
)
def test_is_ip_literal(value, expected):
    assert is_ip_literal(value) is expected
