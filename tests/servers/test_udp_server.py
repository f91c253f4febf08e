"""
Brief: Unit tests for the UDP listener and DNSServer over real sockets.

Inputs:
  - None

Outputs:
  - None
"""

import socket
import threading

import pytest
from dnslib import QTYPE, RCODE, DNSRecord

from pajatso.handler import DNSHandler
from pajatso.servers.server import DNSServer
from pajatso.servers.udp_server import DNSUDPServer


def _echo_resolver(q: bytes, client_ip: str) -> bytes:
    return q


class _ServeInThread:
    def __init__(self, srv):
        self.srv = srv
        self.thread = threading.Thread(target=srv.serve_forever, daemon=True)
        self.thread.start()

    def stop(self):
        self.srv.shutdown()
        self.srv.server_close()
        self.thread.join(2.0)


@pytest.fixture
def running_udp_server():
    srv = DNSUDPServer(("127.0.0.1", 0), _echo_resolver)
    runner = _ServeInThread(srv)
    yield srv.server_address[:2]
    runner.stop()


def _udp_exchange(address, payload, timeout=2.0):
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.settimeout(timeout)
        sock.sendto(payload, address)
        data, _ = sock.recvfrom(4096)
        return data
    finally:
        sock.close()


def test_udp_server_roundtrip(running_udp_server):
    q = b"\x12\x34hello"
    assert _udp_exchange(running_udp_server, q) == q


def test_udp_server_drops_empty_and_failing_responses():
    calls = []

    def resolver(q: bytes, client_ip: str) -> bytes:
        calls.append(client_ip)
        if q == b"boom":
            raise RuntimeError("boom")
        if q == b"drop":
            return b""
        return b"ok"

    srv = DNSUDPServer(("127.0.0.1", 0), resolver)
    runner = _ServeInThread(srv)
    try:
        address = srv.server_address[:2]
        with pytest.raises(socket.timeout):
            _udp_exchange(address, b"boom", timeout=0.3)
        with pytest.raises(socket.timeout):
            _udp_exchange(address, b"drop", timeout=0.3)
        # The listener keeps serving after a resolver failure.
        assert _udp_exchange(address, b"fine") == b"ok"
        assert calls[0] == "127.0.0.1"
    finally:
        runner.stop()


def test_dns_server_answers_queries_over_udp(zone, store):
    """
    Brief: DNSServer binds on port 0 and answers a real UDP query.

    Inputs:
      - zone/store fixtures

    Outputs:
      - None: Asserts a TXT answer for a stored value
    """
    store.set("over-udp")
    server = DNSServer(DNSHandler(zone, store), "127.0.0.1", 0, tcp=False)
    server.start()
    try:
        request = DNSRecord.question("_acme-challenge.example.com", "TXT")
        data = _udp_exchange(server.udp_address, request.pack())
        reply = DNSRecord.parse(data)
        assert reply.header.id == request.header.id
        assert reply.header.rcode == RCODE.NOERROR
        assert reply.rr[0].rtype == QTYPE.TXT
        assert reply.rr[0].rdata.data == [b"over-udp"]
    finally:
        server.stop()
    assert server.tcp_address is None


def test_dns_server_requires_a_transport(zone):
    with pytest.raises(ValueError):
        DNSServer(DNSHandler(zone), "127.0.0.1", 0, udp=False, tcp=False)


def test_dns_server_bind_conflict_raises(zone):
    blocker = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    blocker.bind(("127.0.0.1", 0))
    try:
        port = blocker.getsockname()[1]
        with pytest.raises(OSError):
            DNSServer(DNSHandler(zone), "127.0.0.1", port, tcp=False)
    finally:
        blocker.close()
