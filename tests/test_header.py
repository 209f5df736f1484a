"""Tests for xrd_bridge.soap.header: X-Road header composition and parsing."""

from __future__ import annotations

import pytest
from lxml import etree

from xrd_bridge.errors import DeserializationError
from xrd_bridge.models import ConsumerMember, ProducerMember, ServiceRequest
from xrd_bridge.soap.envelope import SoapEnvelope
from xrd_bridge.soap.header import (
    IDENTIFIERS_NS,
    PROTOCOL_VERSION,
    XROAD_NS,
    XRoadHeaderComposer,
    parse_header,
)


def _make_request(**kwargs: object) -> ServiceRequest:
    consumer = ConsumerMember("FI", "GOV", "1234567-8", "ConsumerService")
    producer = ProducerMember(
        "FI", "COM", "7654321-0", "getRandom", subsystem_code="TestService", service_version="v1"
    )
    return ServiceRequest(consumer=consumer, producer=producer, id="msg-1", **kwargs)


def _populated(request: ServiceRequest) -> SoapEnvelope:
    composer = XRoadHeaderComposer()
    envelope = SoapEnvelope(nsmap=composer.namespaces)
    composer.populate_header(request, envelope)
    return envelope


class TestXRoadHeaderComposer:
    def test_client_block(self) -> None:
        header = _populated(_make_request()).header
        client = header.find(f"{{{XROAD_NS}}}client")
        assert client.get(f"{{{IDENTIFIERS_NS}}}objectType") == "SUBSYSTEM"
        assert [etree.QName(child).localname for child in client] == [
            "xRoadInstance",
            "memberClass",
            "memberCode",
            "subsystemCode",
        ]
        assert client.findtext(f"{{{IDENTIFIERS_NS}}}memberCode") == "1234567-8"

    def test_member_object_type_without_subsystem(self) -> None:
        request = _make_request()
        request.consumer = ConsumerMember("FI", "GOV", "1234567-8")
        client = _populated(request).header.find(f"{{{XROAD_NS}}}client")
        assert client.get(f"{{{IDENTIFIERS_NS}}}objectType") == "MEMBER"
        assert client.find(f"{{{IDENTIFIERS_NS}}}subsystemCode") is None

    def test_service_block(self) -> None:
        service = _populated(_make_request()).header.find(f"{{{XROAD_NS}}}service")
        assert service.get(f"{{{IDENTIFIERS_NS}}}objectType") == "SERVICE"
        assert service.findtext(f"{{{IDENTIFIERS_NS}}}serviceCode") == "getRandom"
        assert service.findtext(f"{{{IDENTIFIERS_NS}}}serviceVersion") == "v1"

    def test_id_user_and_protocol_version(self) -> None:
        header = _populated(_make_request(user_id="EE1234567890")).header
        assert header.findtext(f"{{{XROAD_NS}}}id") == "msg-1"
        assert header.findtext(f"{{{XROAD_NS}}}userId") == "EE1234567890"
        assert header.findtext(f"{{{XROAD_NS}}}protocolVersion") == PROTOCOL_VERSION

    def test_user_id_omitted_when_unset(self) -> None:
        header = _populated(_make_request()).header
        assert header.find(f"{{{XROAD_NS}}}userId") is None

    def test_prefixes_from_root(self) -> None:
        xml = _populated(_make_request()).to_string()
        assert "<xrd:client id:objectType=\"SUBSYSTEM\">" in xml


class TestParseHeader:
    def test_reads_back_identity(self) -> None:
        request = _make_request(user_id="u-1")
        fields = parse_header(SoapEnvelope.from_bytes(_populated(request).to_bytes()))
        assert fields.consumer == request.consumer
        assert fields.producer == request.producer
        assert fields.id == "msg-1"
        assert fields.user_id == "u-1"
        assert fields.protocol_version == "4.0"

    def test_missing_header_elements(self) -> None:
        with pytest.raises(DeserializationError, match="client, service or id"):
            parse_header(SoapEnvelope())

    def test_missing_member_code(self) -> None:
        envelope = _populated(_make_request())
        client = envelope.header.find(f"{{{XROAD_NS}}}client")
        client.remove(client.find(f"{{{IDENTIFIERS_NS}}}memberCode"))
        with pytest.raises(DeserializationError, match="memberCode"):
            parse_header(envelope)
