from __future__ import annotations

import logging
from typing import List

from dnslib import EDNS0, NS, QTYPE, RCODE, RR, SOA, TXT, DNSHeader, DNSRecord

from .store import RecordStore
from .zone import ZoneConfig

logger = logging.getLogger("pajatso.responder")

# Synthesized SOA timers: (serial, refresh, retry, expire, minimum). The
# minimum stays short so resolvers do not hold on to negative answers while a
# challenge is being published.
SOA_TIMES = (1, 7200, 3600, 1209600, 60)
SOA_TTL = 60
NS_TTL = 3600
TXT_TTL = 60
EDNS_UDP_PAYLOAD = 1232

# Longest character-string a TXT record can carry. Values are stored as
# latin-1 text so arbitrary octets round-trip unchanged.
_TXT_CHUNK = 255


def _txt_chunks(value: str) -> List[bytes]:
    raw = value.encode("latin-1", "replace")
    if not raw:
        return [b""]
    return [raw[i : i + _TXT_CHUNK] for i in range(0, len(raw), _TXT_CHUNK)]


class QueryResponder:
    """
    Brief: Answer queries as the authoritative server for a single zone.

    Inputs:
      - zone: ZoneConfig describing the apex, nameserver and challenge name.
      - store: RecordStore shared with the update processor.

    Outputs:
      - QueryResponder instance; respond() builds one reply per request.

    Behaviour:
      - Names outside the zone are REFUSED.
      - The apex carries a synthesized SOA and NS RRset.
      - The challenge name carries the stored TXT value while it is live.
      - Every other name under the apex is NXDOMAIN.
      - NODATA and NXDOMAIN replies place the SOA in the authority section.
    """

    def __init__(self, zone: ZoneConfig, store: RecordStore):
        self.zone = zone
        self.store = store

    def soa_rr(self) -> RR:
        return RR(
            self.zone.zone,
            QTYPE.SOA,
            ttl=SOA_TTL,
            rdata=SOA(self.zone.nameserver, "hostmaster." + self.zone.zone, SOA_TIMES),
        )

    def ns_rr(self) -> RR:
        return RR(self.zone.zone, QTYPE.NS, ttl=NS_TTL, rdata=NS(self.zone.nameserver))

    def txt_rr(self, value: str) -> RR:
        return RR(
            self.zone.challenge_name,
            QTYPE.TXT,
            ttl=TXT_TTL,
            rdata=TXT(_txt_chunks(value)),
        )

    def respond(self, request: DNSRecord) -> DNSRecord:
        """
        Brief: Build the authoritative reply for a parsed query.

        Inputs:
          - request: dnslib DNSRecord holding the client query.

        Outputs:
          - DNSRecord reply with AA set, the request ID and the first question
            echoed back.
        """
        reply = DNSRecord(
            DNSHeader(
                id=request.header.id,
                qr=1,
                aa=1,
                rd=request.header.rd,
                opcode=request.header.opcode,
            ),
        )
        if any(rr.rtype == QTYPE.OPT for rr in request.ar):
            reply.add_ar(EDNS0(udp_len=EDNS_UDP_PAYLOAD))

        if not request.questions:
            reply.header.rcode = RCODE.FORMERR
            return reply

        q = request.questions[0]
        reply.add_question(q)
        qname = str(q.qname).lower()
        qtype = int(q.qtype)
        type_name = QTYPE.get(qtype, str(qtype))
        logger.debug("query %s %s", qname, type_name)

        if not self.zone.contains(qname):
            reply.header.rcode = RCODE.REFUSED
            return reply

        if qname == self.zone.zone:
            if qtype in (QTYPE.SOA, QTYPE.ANY):
                reply.add_answer(self.soa_rr())
                if qtype == QTYPE.ANY:
                    reply.add_answer(self.ns_rr())
            elif qtype == QTYPE.NS:
                reply.add_answer(self.ns_rr())
            else:
                reply.add_auth(self.soa_rr())
            return reply

        if qname == self.zone.challenge_name:
            if qtype in (QTYPE.TXT, QTYPE.ANY):
                value, found = self.store.get()
                if found:
                    reply.add_answer(self.txt_rr(value))
                    logger.info("query: served %s TXT", self.zone.challenge_name)
                    return reply
            reply.add_auth(self.soa_rr())
            return reply

        reply.header.rcode = RCODE.NXDOMAIN
        reply.add_auth(self.soa_rr())
        return reply
