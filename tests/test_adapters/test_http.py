"""Tests for the HTTP envelope transport."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from xrd_bridge.adapters.http import SOAP_CONTENT_TYPE, HttpEnvelopeTransport
from xrd_bridge.errors import EnvelopeParseError, SoapTransportError
from xrd_bridge.soap.envelope import SOAP_ENV_NS, SoapEnvelope

URL = "http://localhost:8080/cgi-bin/consumer_proxy"

REPLY_XML = f"""<?xml version="1.0" encoding="UTF-8"?>
<SOAP-ENV:Envelope xmlns:SOAP-ENV="{SOAP_ENV_NS}">
  <SOAP-ENV:Header/>
  <SOAP-ENV:Body><ping xmlns="http://producer.example.com">pong</ping></SOAP-ENV:Body>
</SOAP-ENV:Envelope>""".encode()

FAULT_XML = f"""<?xml version="1.0" encoding="UTF-8"?>
<SOAP-ENV:Envelope xmlns:SOAP-ENV="{SOAP_ENV_NS}">
  <SOAP-ENV:Body>
    <SOAP-ENV:Fault>
      <faultcode>Server.ServerProxy.SERVICE_FAILED</faultcode>
      <faultstring>Producer unavailable</faultstring>
    </SOAP-ENV:Fault>
  </SOAP-ENV:Body>
</SOAP-ENV:Envelope>""".encode()


def _transport(
    handler: Callable[[httpx.Request], httpx.Response],
    seen: list[httpx.Request] | None = None,
) -> HttpEnvelopeTransport:
    def record(request: httpx.Request) -> httpx.Response:
        request.read()
        if seen is not None:
            seen.append(request)
        return handler(request)

    return HttpEnvelopeTransport(client=httpx.Client(transport=httpx.MockTransport(record)))


class TestCall:
    def test_success_parsed(self) -> None:
        seen: list[httpx.Request] = []
        transport = _transport(
            lambda request: httpx.Response(
                200, headers={"Content-Type": "text/xml"}, content=REPLY_XML
            ),
            seen,
        )
        envelope = SoapEnvelope()
        envelope.add_body_element("ping", "http://producer.example.com")

        response = transport.call(envelope, URL)

        assert response.body_elements()[0].text == "pong"
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == URL
        assert request.headers["Content-Type"] == SOAP_CONTENT_TYPE
        assert request.headers["SOAPAction"] == '""'
        assert SoapEnvelope.from_bytes(request.content).body_elements()[0].tag == (
            "{http://producer.example.com}ping"
        )

    def test_fault_with_server_error_returned(self) -> None:
        transport = _transport(
            lambda request: httpx.Response(
                500, headers={"Content-Type": "text/xml; charset=utf-8"}, content=FAULT_XML
            )
        )
        response = transport.call(SoapEnvelope(), URL)
        assert response.fault() == ("Server.ServerProxy.SERVICE_FAILED", "Producer unavailable")

    def test_non_xml_error_status_raises(self) -> None:
        transport = _transport(
            lambda request: httpx.Response(
                502, headers={"Content-Type": "text/html"}, content=b"<h1>Bad Gateway</h1>"
            )
        )
        with pytest.raises(SoapTransportError, match="502 Bad Gateway"):
            transport.call(SoapEnvelope(), URL)

    def test_unparseable_xml_error_status_raises_transport_error(self) -> None:
        transport = _transport(
            lambda request: httpx.Response(
                500, headers={"Content-Type": "text/xml"}, content=b"<broken"
            )
        )
        with pytest.raises(SoapTransportError, match="500"):
            transport.call(SoapEnvelope(), URL)

    def test_malformed_success_body_raises_parse_error(self) -> None:
        transport = _transport(lambda request: httpx.Response(200, content=b"not xml at all"))
        with pytest.raises(EnvelopeParseError):
            transport.call(SoapEnvelope(), URL)

    def test_connection_error_wrapped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = _transport(handler)
        with pytest.raises(SoapTransportError, match="connection refused") as excinfo:
            transport.call(SoapEnvelope(), URL)
        assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


class TestLifecycle:
    def test_call_after_close_raises(self) -> None:
        transport = _transport(lambda request: httpx.Response(200, content=REPLY_XML))
        transport.close()
        with pytest.raises(SoapTransportError, match="closed"):
            transport.call(SoapEnvelope(), URL)

    def test_close_is_idempotent(self) -> None:
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        transport = HttpEnvelopeTransport(client=client)
        transport.close()
        transport.close()
        assert client.is_closed

    def test_context_manager_closes_client(self) -> None:
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        with HttpEnvelopeTransport(client=client) as transport:
            assert isinstance(transport, HttpEnvelopeTransport)
            assert not client.is_closed
        assert client.is_closed
