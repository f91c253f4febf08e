import logging
import socketserver
import threading
from typing import List, Optional, Tuple

from ..handler import DNSHandler
from .tcp_server import DNSTCPServer
from .udp_server import DNSUDPServer

logger = logging.getLogger("pajatso.server")


class DNSServer:
    """Brief: UDP and TCP listeners sharing one DNSHandler.

    Inputs:
      - handler: DNSHandler answering every message.
      - host: Listen address ("" or "0.0.0.0" for all IPv4 interfaces, an
        IPv6 literal for IPv6).
      - port: Listen port. With port 0 the UDP listener picks a free port and
        the TCP listener reuses it, which keeps tests simple.
      - udp, tcp: Enable the respective listener.
      - tcp_idle_timeout: Seconds an idle TCP connection is kept open.

    Outputs:
      - DNSServer instance with sockets already bound.

    Example use:
        >>> server = DNSServer(DNSHandler(zone), "127.0.0.1", 0)
        >>> server.start()
        >>> host, port = server.udp_address
        >>> server.stop()
    """

    def __init__(
        self,
        handler: DNSHandler,
        host: str,
        port: int,
        *,
        udp: bool = True,
        tcp: bool = True,
        tcp_idle_timeout: float = 15.0,
    ) -> None:
        if not udp and not tcp:
            raise ValueError("at least one of udp/tcp must be enabled")
        self.handler = handler
        self.udp_server: Optional[DNSUDPServer] = None
        self.tcp_server: Optional[DNSTCPServer] = None
        self._threads: List[Tuple[socketserver.BaseServer, threading.Thread]] = []

        try:
            if udp:
                self.udp_server = DNSUDPServer((host, port), handler.handle)
                port = self.udp_server.server_address[1]
                logger.debug("DNS UDP server bound to %s:%d", host, port)
            if tcp:
                self.tcp_server = DNSTCPServer(
                    (host, port), handler.handle, idle_timeout=tcp_idle_timeout
                )
                port = self.tcp_server.server_address[1]
                logger.debug("DNS TCP server bound to %s:%d", host, port)
        except PermissionError as e:
            logger.error(
                "Permission denied when binding to %s:%d. Try a port >1024 or run with elevated privileges. Original error: %s",
                host,
                port,
                e,
            )
            self._close_sockets()
            raise
        except OSError:
            self._close_sockets()
            raise

    @property
    def udp_address(self) -> Optional[Tuple[str, int]]:
        if self.udp_server is None:
            return None
        return self.udp_server.server_address[:2]

    @property
    def tcp_address(self) -> Optional[Tuple[str, int]]:
        if self.tcp_server is None:
            return None
        return self.tcp_server.server_address[:2]

    def _listeners(self) -> List[socketserver.BaseServer]:
        return [s for s in (self.udp_server, self.tcp_server) if s is not None]

    def start(self) -> None:
        """Run every listener loop in a background daemon thread."""
        if self._threads:
            return
        for srv in self._listeners():
            name = "pajatso-udp" if srv is self.udp_server else "pajatso-tcp"
            t = threading.Thread(target=srv.serve_forever, name=name, daemon=True)
            t.start()
            self._threads.append((srv, t))

    def serve_forever(self) -> None:
        """Start the listeners and block until stop() is called."""
        self.start()
        for _, t in list(self._threads):
            t.join()

    def stop(self) -> None:
        """
        Request graceful shutdown and close the sockets.

        Inputs:
          - None
        Outputs:
          - None; safe to call from a signal handler thread.
        """
        for srv, t in self._threads:
            if t.is_alive():
                try:
                    srv.shutdown()
                except Exception:
                    logger.exception("Error while shutting down DNS listener")
        self._close_sockets()

    def _close_sockets(self) -> None:
        for srv in self._listeners():
            try:
                srv.server_close()
            except OSError:
                logger.exception("Error while closing DNS listener socket")
