from __future__ import annotations

import base64
import binascii

from pydantic import BaseModel, Field, validator

CHALLENGE_LABEL = "_acme-challenge"


def ensure_fqdn(name: str) -> str:
    """
    Brief: Normalize a domain name to lower-case fully-qualified form.

    Inputs:
      - name: Domain name with or without a trailing dot.

    Outputs:
      - str: Lower-cased name ending in exactly one dot.

    Example:
      >>> ensure_fqdn("Example.COM")
      'example.com.'
    """
    s = str(name or "").strip().lower()
    return s.rstrip(".") + "."


def decode_secret(secret: str) -> bytes:
    """
    Brief: Decode a base64 TSIG secret.

    Inputs:
      - secret: Base64 text as produced by tsig-keygen and friends.

    Outputs:
      - bytes: Raw HMAC key.

    Raises:
      - ValueError: when the text is not valid base64 or decodes to nothing.
    """
    try:
        raw = base64.b64decode(str(secret).strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid TSIG secret: {exc}") from exc
    if not raw:
        raise ValueError("invalid TSIG secret: empty key")
    return raw


class ZoneConfig(BaseModel):
    """Brief: Immutable settings for the single hosted zone.

    Inputs:
      - zone: Apex of the zone, e.g. ``example.com``.
      - nameserver: Authoritative nameserver hostname published in NS/SOA.
      - key_name: TSIG key name expected on updates.
      - key_secret: Base64-encoded TSIG secret.

    Outputs:
      - ZoneConfig instance with every name in lower-case FQDN form.

    Raises:
      - pydantic.ValidationError (a ValueError) for an empty or root zone and
        for an undecodable secret, so a bad configuration fails at startup
        instead of per request.
    """

    zone: str
    nameserver: str
    key_name: str
    key_secret: str = Field(repr=False)

    @validator("zone", pre=True)
    def _normalize_zone(cls, v):  # type: ignore[no-untyped-def]
        fqdn = ensure_fqdn(v)
        if fqdn == ".":
            raise ValueError("zone must not be empty or the root")
        return fqdn

    @validator("nameserver", "key_name", pre=True)
    def _normalize_name(cls, v):  # type: ignore[no-untyped-def]
        fqdn = ensure_fqdn(v)
        if fqdn == ".":
            raise ValueError("name must not be empty")
        return fqdn

    @validator("key_secret")
    def _check_secret(cls, v):  # type: ignore[no-untyped-def]
        decode_secret(v)
        return str(v).strip()

    class Config:
        frozen = True

    @property
    def challenge_name(self) -> str:
        return f"{CHALLENGE_LABEL}.{self.zone}"

    @property
    def secret(self) -> bytes:
        return decode_secret(self.key_secret)

    def contains(self, name: str) -> bool:
        """True when name is the apex or any name below it."""
        n = ensure_fqdn(name)
        return n == self.zone or n.endswith("." + self.zone)
