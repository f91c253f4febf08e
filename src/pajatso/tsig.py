# TSIG handling for dynamic updates, built on dnspython.
from __future__ import annotations

import dns.exception
import dns.message
import dns.name
import dns.tsig

from .zone import ZoneConfig


class TSIGError(Exception):
    """
    Brief: A TSIG record failed verification.

    Inputs:
      - message: Description, usually the wrapped dnspython error.

    Outputs:
      - Exception instance.
    """

    pass


class TSIGAuthenticator:
    """
    Brief: Verify signed update requests against the configured shared key.

    Inputs:
      - key_name: Fully-qualified TSIG key name.
      - secret: Raw (already base64-decoded) HMAC key bytes.

    Outputs:
      - TSIGAuthenticator instance.

    The HMAC algorithm is taken from the request; only the key name and the
    secret are pinned. Responses produced with dns.message.make_response() on
    a verified request are signed with the same key and carry the request MAC.
    """

    def __init__(self, key_name: str, secret: bytes):
        self.key_name = dns.name.from_text(key_name)
        self._secret = bytes(secret)

    @classmethod
    def from_zone(cls, zone: ZoneConfig) -> "TSIGAuthenticator":
        return cls(zone.key_name, zone.secret)

    @staticmethod
    def parse(wire: bytes) -> dns.message.Message:
        """
        Brief: Fully decode a message without checking its TSIG record.

        Inputs:
          - wire: DNS message bytes.

        Outputs:
          - dns.message.Message (an UpdateMessage for opcode UPDATE), with
            one RRset per RR so update entries keep their wire order.

        Raises:
          - dns.exception.DNSException or ValueError when the bytes do not
            decode.
        """
        return dns.message.from_wire(wire, keyring=False, one_rr_per_rrset=True)

    def matches_key(self, request: dns.message.Message) -> bool:
        """True when the request's TSIG record names the configured key."""
        return request.keyname is not None and request.keyname == self.key_name

    def verify(self, wire: bytes, algorithm: dns.name.Name) -> dns.message.Message:
        """
        Brief: Decode a message and validate its TSIG MAC.

        Inputs:
          - wire: DNS message bytes.
          - algorithm: HMAC algorithm name taken from the request TSIG record.

        Outputs:
          - dns.message.Message whose keyring is the verified key, ready to be
            answered with a signed response.

        Raises:
          - TSIGError: on a bad MAC, bad time, unknown algorithm or key.
        """
        try:
            key = dns.tsig.Key(self.key_name, self._secret, algorithm)
            return dns.message.from_wire(wire, keyring=key, one_rr_per_rrset=True)
        except (dns.exception.DNSException, ValueError, NotImplementedError) as exc:
            raise TSIGError(f"{type(exc).__name__}: {exc}") from exc
