from __future__ import annotations

import logging
from typing import Optional

from dnslib import OPCODE, RCODE, DNSError, DNSHeader, DNSRecord
from dnslib.label import DNSBuffer

from .responder import QueryResponder
from .store import RecordStore
from .tsig import TSIGAuthenticator
from .update import UpdateProcessor
from .zone import ZoneConfig

logger = logging.getLogger("pajatso.handler")


def _set_response_id(wire: bytes, req_id: int) -> bytes:
    """Rewrite the first two octets of a response with the request ID."""
    if len(wire) < 2:
        return wire
    return int(req_id).to_bytes(2, "big") + wire[2:]


class DNSHandler:
    """
    Brief: Route each inbound message to the query or update path.

    Inputs:
      - zone: ZoneConfig for the hosted zone.
      - store: Optional RecordStore; a fresh one is created when omitted.

    Outputs:
      - DNSHandler instance; handle() maps request bytes to response bytes.

    The handler owns the only mutable state of a server, the RecordStore,
    and hands the same instance to both the responder and the updater.

    Example:
      >>> handler = DNSHandler(zone)
      >>> wire = handler.handle(query_bytes, "127.0.0.1")
    """

    def __init__(self, zone: ZoneConfig, store: Optional[RecordStore] = None):
        self.zone = zone
        self.store = store if store is not None else RecordStore()
        self.responder = QueryResponder(zone, self.store)
        self.updater = UpdateProcessor(
            zone, self.store, TSIGAuthenticator.from_zone(zone)
        )

    def handle(self, data: bytes, client_ip: str) -> bytes:
        """
        Brief: Answer a single DNS message.

        Inputs:
          - data: Wire-format request bytes.
          - client_ip: Peer address, used for logging only.

        Outputs:
          - bytes: Wire-format response, or b"" when the message should be
            dropped (too short for a header, or itself a response).
        """
        try:
            header = DNSHeader.parse(DNSBuffer(data))
        except DNSError as exc:
            logger.debug("dropping short/garbled message from %s: %s", client_ip, exc)
            return b""
        if header.qr:
            logger.debug("dropping response message from %s", client_ip)
            return b""

        if header.opcode == OPCODE.UPDATE:
            logger.debug("update from %s id=%d", client_ip, header.id)
            wire = self.updater.process(data)
        else:
            wire = self._handle_query(data, header, client_ip)
        return _set_response_id(wire, header.id)

    def _handle_query(self, data: bytes, header: DNSHeader, client_ip: str) -> bytes:
        try:
            request = DNSRecord.parse(data)
        except DNSError as exc:
            logger.warning("malformed query from %s: %s", client_ip, exc)
            reply = DNSRecord(
                DNSHeader(
                    id=header.id,
                    qr=1,
                    aa=1,
                    rd=header.rd,
                    opcode=header.opcode,
                    rcode=RCODE.FORMERR,
                )
            )
            return reply.pack()
        return self.responder.respond(request).pack()
