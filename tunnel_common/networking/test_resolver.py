"""
Tests for remote selection and name resolution.
"""
import socket
import ipaddress

import pytest

from tunnel_common.errors import ResolverError
from tunnel_common.networking import resolver as resolver_module
from tunnel_common.networking.resolver import Remote, SystemResolver, resolve_remote


class StubResolver:
    def __init__(self, answer=None, error=None):
        self.answer = answer
        self.error = error
        self.queries = []

    def resolve(self, name):
        self.queries.append(name)
        if self.error:
            raise ResolverError(self.error)
        return self.answer


def test_remote_classifies_literals_and_names():
    assert Remote("10.0.0.1", 1194).address == ipaddress.ip_address("10.0.0.1")
    assert Remote("2001:db8::1", 443).address.version == 6
    assert Remote("example.test", 1194).is_domain


def test_literal_address_returned_unchanged():
    stub = StubResolver()
    address, port = resolve_remote([Remote("192.0.2.7", 443)], stub)

    assert address == ipaddress.ip_address("192.0.2.7")
    assert port == 443
    assert stub.queries == []


def test_domain_is_resolved_with_configured_port():
    stub = StubResolver(answer=ipaddress.ip_address("10.0.0.5"))

    endpoint = resolve_remote([Remote("example.test", 1194)], stub)

    assert endpoint == (ipaddress.ip_address("10.0.0.5"), 1194)
    assert stub.queries == ["example.test"]


def test_only_first_remote_is_used():
    stub = StubResolver(error="NXDOMAIN")

    with pytest.raises(ResolverError):
        resolve_remote([Remote("missing.test", 1194), Remote("10.0.0.9", 1194)], stub)

    assert stub.queries == ["missing.test"]


def test_empty_remote_list_fails_without_lookup():
    stub = StubResolver()

    with pytest.raises(ResolverError) as excinfo:
        resolve_remote([], stub)

    assert "no remote configured" in str(excinfo.value)
    assert stub.queries == []


def test_lookup_failure_is_resolver_error():
    stub = StubResolver(error="server failure")

    with pytest.raises(ResolverError) as excinfo:
        resolve_remote([Remote("example.test", 1194)], stub)

    assert "resolver error" in str(excinfo.value)
    assert "server failure" in str(excinfo.value)


def test_system_resolver_returns_first_answer(monkeypatch):
    calls = []

    def fake_getaddrinfo(host, port, family, type):
        calls.append((host, family, type))
        return [
            (socket.AF_INET, socket.SOCK_STREAM, 6, '', ('198.51.100.4', 0)),
            (socket.AF_INET, socket.SOCK_STREAM, 6, '', ('198.51.100.5', 0)),
        ]

    monkeypatch.setattr(resolver_module.socket, "getaddrinfo", fake_getaddrinfo)

    assert SystemResolver().resolve("vpn.example.test") == ipaddress.ip_address("198.51.100.4")
    assert calls == [("vpn.example.test", socket.AF_INET, socket.SOCK_STREAM)]


def test_system_resolver_wraps_lookup_errors(monkeypatch):
    def fake_getaddrinfo(*args):
        raise socket.gaierror(-2, "Name or service not known")

    monkeypatch.setattr(resolver_module.socket, "getaddrinfo", fake_getaddrinfo)

    with pytest.raises(ResolverError) as excinfo:
        SystemResolver("any").resolve("nowhere.test")

    assert "Name or service not known" in str(excinfo.value)


def test_system_resolver_rejects_unknown_family():
    with pytest.raises(ValueError):
        SystemResolver("ipx")
