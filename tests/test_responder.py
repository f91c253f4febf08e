"""
Brief: Tests for pajatso.responder.QueryResponder decision table.

Inputs:
  - None

Outputs:
  - None
"""

import pytest
from dnslib import EDNS0, QTYPE, RCODE, DNSRecord

from pajatso.responder import NS_TTL, SOA_TTL, TXT_TTL, QueryResponder


@pytest.fixture
def responder(zone, store):
    return QueryResponder(zone, store)


def _ask(responder, name, qtype):
    request = DNSRecord.question(name, qtype)
    reply = responder.respond(request)
    # Round-trip through the wire format so packing problems surface here.
    return request, DNSRecord.parse(reply.pack())


def test_outside_zone_is_refused(responder):
    _, reply = _ask(responder, "www.example.org", "A")
    assert reply.header.rcode == RCODE.REFUSED
    assert reply.rr == [] and reply.auth == []


def test_apex_soa(responder):
    _, reply = _ask(responder, "example.com", "SOA")
    assert reply.header.rcode == RCODE.NOERROR
    assert reply.header.aa == 1
    assert len(reply.rr) == 1
    soa = reply.rr[0]
    assert soa.rtype == QTYPE.SOA
    assert soa.ttl == SOA_TTL
    assert str(soa.rdata.mname) == "ns1.example.com."
    assert str(soa.rdata.rname) == "hostmaster.example.com."
    assert soa.rdata.times == (1, 7200, 3600, 1209600, 60)


def test_apex_ns(responder):
    _, reply = _ask(responder, "example.com", "NS")
    assert [rr.rtype for rr in reply.rr] == [QTYPE.NS]
    assert reply.rr[0].ttl == NS_TTL
    assert str(reply.rr[0].rdata) == "ns1.example.com."


def test_apex_any_returns_soa_and_ns(responder):
    _, reply = _ask(responder, "example.com", "ANY")
    assert [rr.rtype for rr in reply.rr] == [QTYPE.SOA, QTYPE.NS]


def test_apex_other_type_is_nodata(responder):
    _, reply = _ask(responder, "example.com", "A")
    assert reply.header.rcode == RCODE.NOERROR
    assert reply.rr == []
    assert [rr.rtype for rr in reply.auth] == [QTYPE.SOA]


def test_challenge_without_value_is_nodata(responder):
    _, reply = _ask(responder, "_acme-challenge.example.com", "TXT")
    assert reply.header.rcode == RCODE.NOERROR
    assert reply.rr == []
    assert [rr.rtype for rr in reply.auth] == [QTYPE.SOA]


@pytest.mark.parametrize("qtype", ["TXT", "ANY"])
def test_challenge_with_value_answers_txt(responder, store, qtype):
    store.set("token-value")
    _, reply = _ask(responder, "_ACME-Challenge.Example.com", qtype)
    assert reply.header.rcode == RCODE.NOERROR
    assert len(reply.rr) == 1
    txt = reply.rr[0]
    assert txt.rtype == QTYPE.TXT
    assert txt.ttl == TXT_TTL
    assert txt.rdata.data == [b"token-value"]
    assert reply.auth == []


def test_challenge_other_type_is_nodata_even_with_value(responder, store):
    store.set("token-value")
    _, reply = _ask(responder, "_acme-challenge.example.com", "A")
    assert reply.rr == []
    assert [rr.rtype for rr in reply.auth] == [QTYPE.SOA]


def test_challenge_after_expiry_is_nodata(responder, store, clock):
    store.set("token-value")
    clock.advance(601)
    _, reply = _ask(responder, "_acme-challenge.example.com", "TXT")
    assert reply.rr == []


def test_long_value_is_split_into_strings(responder, store):
    store.set("x" * 300)
    _, reply = _ask(responder, "_acme-challenge.example.com", "TXT")
    assert reply.rr[0].rdata.data == [b"x" * 255, b"x" * 45]


def test_unknown_name_under_apex_is_nxdomain(responder):
    _, reply = _ask(responder, "www.example.com", "A")
    assert reply.header.rcode == RCODE.NXDOMAIN
    assert reply.rr == []
    assert [rr.rtype for rr in reply.auth] == [QTYPE.SOA]


def test_reply_echoes_id_question_and_rd(responder):
    request, reply = _ask(responder, "example.com", "SOA")
    assert reply.header.id == request.header.id
    assert reply.header.qr == 1
    assert reply.header.rd == request.header.rd
    assert str(reply.q.qname) == "example.com."


def test_no_questions_is_formerr(responder):
    request = DNSRecord()
    reply = responder.respond(request)
    assert reply.header.rcode == RCODE.FORMERR


def test_edns_is_echoed_only_when_requested(responder):
    plain = DNSRecord.question("example.com", "SOA")
    assert not [rr for rr in responder.respond(plain).ar if rr.rtype == QTYPE.OPT]

    with_opt = DNSRecord.question("example.com", "SOA")
    with_opt.add_ar(EDNS0(udp_len=4096))
    reply = DNSRecord.parse(responder.respond(with_opt).pack())
    opts = [rr for rr in reply.ar if rr.rtype == QTYPE.OPT]
    assert len(opts) == 1
