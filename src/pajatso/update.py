from __future__ import annotations

import enum
import logging

import dns.exception
import dns.flags
import dns.message
import dns.name
import dns.opcode
import dns.rcode
import dns.rdataclass
import dns.rdatatype
import dns.rrset
import dns.update

from .store import RecordStore
from .tsig import TSIGAuthenticator, TSIGError
from .zone import ZoneConfig

logger = logging.getLogger("pajatso.update")


class UpdateRejected(Exception):
    """
    Brief: An update request failed one of the validation steps.

    Inputs:
      - rcode: dns.rcode value to answer with.
      - reason: Short human-readable explanation for the logs.

    Outputs:
      - Exception instance.
    """

    def __init__(self, rcode: int, reason: str):
        super().__init__(reason)
        self.rcode = rcode
        self.reason = reason


class EntryClass(enum.Enum):
    """RFC 2136 meaning of an update-section RR, derived from its class."""

    ADD = "add"
    DELETE_RR = "delete-rr"
    DELETE_RRSET = "delete-rrset"
    OTHER = "other"


def classify(rrset: dns.rrset.RRset) -> EntryClass:
    """
    Brief: Map an update RR onto its closed set of meanings.

    Inputs:
      - rrset: Single-RR RRset from the update section. dnspython folds class
        NONE/ANY into ``rrset.deleting`` and reports the zone class instead.

    Outputs:
      - EntryClass member.
    """
    if rrset.deleting == dns.rdataclass.NONE:
        return EntryClass.DELETE_RR
    if rrset.deleting == dns.rdataclass.ANY:
        return EntryClass.DELETE_RRSET
    if rrset.deleting is None and rrset.rdclass == dns.rdataclass.IN:
        return EntryClass.ADD
    return EntryClass.OTHER


def _bare_response(request_id: int, rcode: int) -> dns.message.Message:
    response = dns.update.UpdateMessage(id=request_id)
    response.flags = dns.flags.QR
    response.set_opcode(dns.opcode.UPDATE)
    response.set_rcode(rcode)
    return response


def _unsigned_response(request: dns.message.Message, rcode: int) -> dns.message.Message:
    response = _bare_response(request.id, rcode)
    response.flags |= request.flags & dns.flags.RD
    response.question = list(request.question)
    return response


class UpdateProcessor:
    """
    Brief: Authenticate, validate and apply RFC 2136 updates to the store.

    Inputs:
      - zone: ZoneConfig for the hosted zone.
      - store: RecordStore shared with the query responder.
      - authenticator: TSIGAuthenticator for the configured key.

    Outputs:
      - UpdateProcessor instance; process() turns request bytes into
        response bytes and mutates the store as a side effect.

    Notes:
      - Validation stops at the first failing step. Entries applied before a
        failing entry stay applied.
      - Rejections before the TSIG MAC has been verified go out unsigned;
        every later response is signed with the request MAC as context.
    """

    def __init__(
        self,
        zone: ZoneConfig,
        store: RecordStore,
        authenticator: TSIGAuthenticator,
    ):
        self.zone = zone
        self.store = store
        self.authenticator = authenticator
        self._apex = dns.name.from_text(zone.zone)
        self._challenge = dns.name.from_text(zone.challenge_name)

    def process(self, wire: bytes) -> bytes:
        """
        Brief: Handle one UPDATE message.

        Inputs:
          - wire: Request bytes (header already known to be an UPDATE).

        Outputs:
          - bytes: Wire-format response.
        """
        try:
            request = self.authenticator.parse(wire)
        except (dns.exception.DNSException, ValueError) as exc:
            logger.warning("update rejected: malformed message: %s", exc)
            request_id = int.from_bytes(wire[:2], "big")
            return _bare_response(request_id, dns.rcode.FORMERR).to_wire()

        if not request.had_tsig:
            logger.warning("update rejected: no TSIG record")
            return _unsigned_response(request, dns.rcode.REFUSED).to_wire()

        if not self.authenticator.matches_key(request):
            logger.warning("update rejected: unknown TSIG key %s", request.keyname)
            return _unsigned_response(request, dns.rcode.NOTAUTH).to_wire()

        try:
            request = self.authenticator.verify(wire, request.keyalgorithm)
        except TSIGError as exc:
            logger.warning("update rejected: TSIG verification failed: %s", exc)
            return _unsigned_response(request, dns.rcode.NOTAUTH).to_wire()

        response = dns.message.make_response(request)
        try:
            self._check_zone(request)
            for rrset in request.update:
                self._apply(rrset)
        except UpdateRejected as exc:
            logger.warning("update refused: %s", exc.reason)
            response.set_rcode(exc.rcode)
        else:
            response.set_rcode(dns.rcode.NOERROR)
        return response.to_wire()

    def _check_zone(self, request: dns.update.UpdateMessage) -> None:
        zone = request.zone
        if len(zone) != 1 or zone[0].name != self._apex:
            names = ", ".join(str(rrset.name) for rrset in zone) or "<none>"
            raise UpdateRejected(dns.rcode.REFUSED, f"wrong zone: {names}")

    def _apply(self, rrset: dns.rrset.RRset) -> None:
        if rrset.name != self._challenge:
            raise UpdateRejected(
                dns.rcode.REFUSED,
                f"wrong name: {rrset.name} (expected {self._challenge})",
            )

        rdtype = rrset.rdtype
        type_name = dns.rdatatype.to_text(rdtype)
        kind = classify(rrset)

        if kind is EntryClass.ADD:
            if rdtype != dns.rdatatype.TXT:
                raise UpdateRejected(dns.rcode.REFUSED, f"wrong record type: {type_name}")
            strings = [s for rd in rrset for s in rd.strings]
            # Recent dnspython already rejects an empty TXT rdata while parsing,
            # before authentication. An RRset without strings is the same error.
            if not strings:
                raise UpdateRejected(dns.rcode.FORMERR, "TXT record without data")
            self.store.set(b"".join(strings).decode("latin-1"))
            logger.info("update: set %s TXT", self._challenge)

        elif kind is EntryClass.DELETE_RR:
            if rdtype != dns.rdatatype.TXT:
                raise UpdateRejected(dns.rcode.REFUSED, f"wrong record type: {type_name}")
            self.store.delete()
            logger.info("update: deleted %s TXT", self._challenge)

        elif kind is EntryClass.DELETE_RRSET:
            if rdtype not in (dns.rdatatype.TXT, dns.rdatatype.ANY):
                raise UpdateRejected(dns.rcode.REFUSED, f"wrong record type: {type_name}")
            self.store.delete()
            logger.info("update: deleted %s TXT (class ANY)", self._challenge)

        else:
            raise UpdateRejected(
                dns.rcode.REFUSED,
                f"unsupported class: {dns.rdataclass.to_text(rrset.rdclass)}",
            )
