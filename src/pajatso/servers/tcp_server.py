import logging
import socket
import socketserver
from typing import Tuple

from .udp_server import Resolver

logger = logging.getLogger("pajatso.server")


def _recv_exact(sock: socket.socket, n: int) -> bytes:
    """
    Read exactly n bytes from a stream socket.

    Inputs:
      - sock: connected socket
      - n: number of bytes to read
    Outputs:
      - bytes: exactly n bytes unless EOF occurs early.
    """
    data = b""
    while len(data) < n:
        chunk = sock.recv(n - len(data))
        if not chunk:
            break
        data += chunk
    return data


class _TCPHandler(socketserver.BaseRequestHandler):
    """
    Handle one DNS-over-TCP connection (RFC 1035 section 4.2.2 framing).

    Several length-prefixed messages may arrive on the same connection; the
    loop ends on EOF, a short read, an idle timeout or a dropped message.
    """

    def handle(self) -> None:
        sock: socket.socket = self.request
        sock.settimeout(self.server.idle_timeout)  # type: ignore[attr-defined]
        peer_ip = (
            self.client_address[0]
            if isinstance(self.client_address, tuple)
            else "0.0.0.0"
        )
        try:
            while True:
                hdr = _recv_exact(sock, 2)
                if len(hdr) != 2:
                    break
                ln = int.from_bytes(hdr, "big")
                if ln == 0:
                    break
                query = _recv_exact(sock, ln)
                if len(query) != ln:
                    break
                try:
                    resp = self.server.resolver(query, peer_ip)  # type: ignore[attr-defined]
                except Exception:
                    logger.exception(
                        "Unhandled error answering TCP message from %s", peer_ip
                    )
                    break
                if not resp:
                    break
                sock.sendall(len(resp).to_bytes(2, "big") + resp)
        except socket.timeout:
            logger.debug("TCP connection from %s idle, closing", peer_ip)
        except OSError as exc:
            logger.debug("TCP connection from %s failed: %s", peer_ip, exc)


class DNSTCPServer(socketserver.ThreadingTCPServer):
    """
    Brief: ThreadingTCPServer carrying its own resolver callable.

    Inputs:
      - server_address: (host, port) to bind
      - resolver: callable mapping (query_bytes, client_ip) -> response_bytes
      - idle_timeout: seconds a connection may sit idle between messages

    Outputs:
      - DNSTCPServer instance; each connection is handled on its own thread.
    """

    daemon_threads = True
    allow_reuse_address = True

    def __init__(
        self,
        server_address: Tuple[str, int],
        resolver: Resolver,
        idle_timeout: float = 15.0,
    ):
        if ":" in server_address[0]:
            self.address_family = socket.AF_INET6
        self.resolver = resolver
        self.idle_timeout = float(idle_timeout)
        super().__init__(server_address, _TCPHandler)

