"""HTTP envelope transport.

Posts serialized envelopes with ``httpx`` and parses the reply back into
a SoapEnvelope. SOAP faults usually arrive with HTTP 500, so any reply
carrying an XML body is returned to the caller; other HTTP errors are
transport failures.
"""

from __future__ import annotations

import logging
from types import TracebackType

import httpx

from xrd_bridge.config import ClientSettings
from xrd_bridge.errors import EnvelopeParseError, SoapTransportError
from xrd_bridge.soap.envelope import SoapEnvelope

logger = logging.getLogger(__name__)

SOAP_CONTENT_TYPE = "text/xml; charset=utf-8"


class HttpEnvelopeTransport:
    """Envelope transport over a single ``httpx.Client``.

    Args:
        settings: Timeout and TLS settings.
        client: Pre-built client; one is created from ``settings`` when
            omitted. The transport closes it either way.

    Example:
        with HttpEnvelopeTransport() as transport:
            response = transport.call(envelope, "http://localhost:8080/cgi-bin/consumer_proxy")
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        settings = settings or ClientSettings()
        self._client = client or httpx.Client(
            timeout=settings.timeout,
            verify=settings.verify_tls,
            trust_env=False,
        )
        self._closed = False

    def __enter__(self) -> HttpEnvelopeTransport:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def call(self, envelope: SoapEnvelope, url: str) -> SoapEnvelope:
        if self._closed:
            raise SoapTransportError("HttpEnvelopeTransport is closed")
        try:
            response = self._client.post(
                url,
                content=envelope.to_bytes(),
                headers={"Content-Type": SOAP_CONTENT_TYPE, "SOAPAction": '""'},
            )
        except httpx.HTTPError as exc:
            raise SoapTransportError(f"SOAP request to {url} failed: {exc}") from exc

        logger.debug("SOAP endpoint answered %d %s", response.status_code, response.reason_phrase)
        if response.is_success or _is_xml(response):
            try:
                return SoapEnvelope.from_bytes(response.content)
            except EnvelopeParseError:
                if response.is_success:
                    raise
        raise SoapTransportError(
            f"SOAP request to {url} failed: {response.status_code} {response.reason_phrase}"
        )

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._client.close()


def _is_xml(response: httpx.Response) -> bool:
    content_type = response.headers.get("Content-Type", "")
    return "xml" in content_type.lower()
