"""Tests for xrd_bridge.soap.deserializer: response envelope decoding."""

from __future__ import annotations

import copy

import pytest
from lxml import etree

from xrd_bridge.errors import DeserializationError
from xrd_bridge.models import ANY_NAMESPACE, ConsumerMember, ProducerMember, ServiceRequest
from xrd_bridge.soap.deserializer import AbstractResponseDeserializer, CallbackResponseDeserializer
from xrd_bridge.soap.envelope import SOAP_ENV_NS, SoapEnvelope
from xrd_bridge.soap.header import XRoadHeaderComposer
from xrd_bridge.soap.serializer import CallbackRequestSerializer

NS = "http://test.x-road.fi/producer"


def _make_request(namespace: str | None = NS, processing_wrappers: bool = True) -> ServiceRequest:
    return ServiceRequest(
        consumer=ConsumerMember("FI", "GOV", "1234567-8", "ConsumerService"),
        producer=ProducerMember(
            "FI",
            "COM",
            "7654321-0",
            "getRandom",
            subsystem_code="TestService",
            service_version="v1",
            namespace_url=namespace,
            namespace_prefix="ts1" if namespace else None,
        ),
        request_data="7",
        processing_wrappers=processing_wrappers,
    )


def _response_envelope(
    request: ServiceRequest,
    value: str = "42",
    namespace: str | None = NS,
    wrapped: bool = True,
) -> SoapEnvelope:
    """Build the envelope a producer would answer ``request`` with."""
    composer = XRoadHeaderComposer()
    envelope = SoapEnvelope(nsmap=composer.namespaces)
    composer.populate_header(request, envelope)
    body_element = envelope.add_body_element(
        "getRandomResponse", namespace, "ts1" if namespace else None
    )
    if wrapped:
        echoed = etree.SubElement(body_element, "request")
        etree.SubElement(echoed, "seed").text = "7"
        target = etree.SubElement(body_element, "response")
    else:
        target = body_element
    etree.SubElement(target, "data").text = value
    # Producers send bytes; parse to get a detached tree like a real reply
    return SoapEnvelope.from_bytes(envelope.to_bytes())


def _read_data(element: etree._Element) -> str:
    return element.findtext("data")


class TestDeserialize:
    def test_payload_decoded(self) -> None:
        request = _make_request()
        response = CallbackResponseDeserializer(_read_data).deserialize(
            _response_envelope(request), NS
        )
        assert response.response_data == "42"
        assert response.id == request.id
        assert not response.has_error

    def test_identity_matches_request(self) -> None:
        request = _make_request()
        response = CallbackResponseDeserializer(_read_data).deserialize(
            _response_envelope(request), NS
        )
        assert response.consumer == request.consumer
        assert response.producer == request.producer

    def test_wildcard_namespace(self) -> None:
        request = _make_request()
        response = CallbackResponseDeserializer(_read_data).deserialize(
            _response_envelope(request), ANY_NAMESPACE
        )
        assert response.response_data == "42"

    def test_unqualified_response_with_wildcard(self) -> None:
        request = _make_request(namespace=None)
        envelope = _response_envelope(request, namespace=None)
        response = CallbackResponseDeserializer(_read_data).deserialize(envelope, ANY_NAMESPACE)
        assert response.response_data == "42"
        assert response.producer.namespace_url is None

    def test_namespace_mismatch(self) -> None:
        request = _make_request()
        with pytest.raises(DeserializationError, match="getRandomResponse"):
            CallbackResponseDeserializer(_read_data).deserialize(
                _response_envelope(request), "http://other.example.com"
            )

    def test_unwrapped_response(self) -> None:
        request = _make_request(processing_wrappers=False)
        deserializer = CallbackResponseDeserializer(_read_data, processing_wrappers=False)
        response = deserializer.deserialize(_response_envelope(request, wrapped=False), NS)
        assert response.response_data == "42"

    def test_missing_response_wrapper(self) -> None:
        request = _make_request()
        with pytest.raises(DeserializationError, match="response"):
            CallbackResponseDeserializer(_read_data).deserialize(
                _response_envelope(request, wrapped=False), NS
            )

    def test_echoed_request_decoded(self) -> None:
        class EchoDeserializer(AbstractResponseDeserializer):
            def deserialize_request(self, element: etree._Element) -> str:
                return element.findtext("seed")

            def deserialize_response(self, element: etree._Element) -> str:
                return element.findtext("data")

        response = EchoDeserializer().deserialize(_response_envelope(_make_request()), NS)
        assert response.request_data == "7"
        assert response.response_data == "42"

    def test_decoder_error_wrapped(self) -> None:
        def broken(element: etree._Element) -> str:
            raise ValueError("bad number")

        with pytest.raises(DeserializationError, match="bad number"):
            CallbackResponseDeserializer(broken).deserialize(
                _response_envelope(_make_request()), NS
            )

    def test_missing_header(self) -> None:
        envelope = _response_envelope(_make_request())
        envelope.root.remove(envelope.header)
        with pytest.raises(DeserializationError):
            CallbackResponseDeserializer(_read_data).deserialize(envelope, NS)


class TestFault:
    def test_fault_reported_on_response(self) -> None:
        request = _make_request()
        envelope = _response_envelope(request)
        body = envelope.body
        for child in list(body):
            body.remove(child)
        fault = etree.SubElement(body, f"{{{SOAP_ENV_NS}}}Fault")
        etree.SubElement(fault, "faultcode").text = "Server.ServerProxy.SERVICE_FAILED"
        etree.SubElement(fault, "faultstring").text = "Producer unavailable"

        response = CallbackResponseDeserializer(_read_data).deserialize(envelope, NS)
        assert response.has_error
        assert response.error_code == "Server.ServerProxy.SERVICE_FAILED"
        assert response.error_message == "Producer unavailable"
        assert response.response_data is None
        assert response.consumer == request.consumer


class TestRoundTrip:
    def test_serialized_request_matches_response_identity(self) -> None:
        request = _make_request()

        def fill_seed(r: ServiceRequest, target: etree._Element, env: SoapEnvelope) -> None:
            etree.SubElement(target, "seed").text = r.request_data

        serializer = CallbackRequestSerializer(fill_seed)
        request_envelope = serializer.serialize(request).unwrap()

        reply = SoapEnvelope.from_bytes(request_envelope.to_bytes())
        body_element = reply.body_elements()[0]
        body_element.tag = f"{{{NS}}}getRandomResponse"
        echoed = copy.deepcopy(body_element[0])
        body_element.clear()
        body_element.append(echoed)
        etree.SubElement(body_element, "response").append(etree.fromstring("<data>99</data>"))

        response = CallbackResponseDeserializer(_read_data).deserialize(
            reply, request.producer.namespace_filter
        )
        assert response.consumer == request.consumer
        assert response.producer == request.producer
        assert response.id == request.id
        assert response.response_data == "99"
