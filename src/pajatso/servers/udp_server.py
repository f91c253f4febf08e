import logging
import socket
import socketserver
from typing import Callable, Tuple

logger = logging.getLogger("pajatso.server")

Resolver = Callable[[bytes, str], bytes]


class _UDPHandler(socketserver.BaseRequestHandler):
    """
    Brief: Per-datagram handler that delegates to the server's resolver.

    Inputs:
    - request: (data, socket) tuple provided by socketserver
    - client_address: peer address

    Outputs:
    - None
    """

    def handle(self) -> None:
        data, sock = self.request  # type: ignore
        peer_ip = (
            self.client_address[0]
            if isinstance(self.client_address, tuple)
            else "0.0.0.0"
        )
        try:
            resp = self.server.resolver(data, peer_ip)  # type: ignore[attr-defined]
        except Exception:
            logger.exception("Unhandled error answering UDP message from %s", peer_ip)
            return
        # An empty response means the message is dropped.
        if not resp:
            return
        sock.sendto(resp, self.client_address)


class DNSUDPServer(socketserver.ThreadingUDPServer):
    """
    Brief: ThreadingUDPServer carrying its own resolver callable.

    Inputs:
    - server_address: (host, port) to bind
    - resolver: callable mapping (query_bytes, client_ip) -> response_bytes

    Outputs:
    - DNSUDPServer instance; each datagram is handled on its own thread.
    """

    daemon_threads = True

    def __init__(self, server_address: Tuple[str, int], resolver: Resolver):
        if ":" in server_address[0]:
            self.address_family = socket.AF_INET6
        self.resolver = resolver
        super().__init__(server_address, _UDPHandler)

