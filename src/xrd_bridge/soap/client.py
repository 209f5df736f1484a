"""SOAP client for xrd-bridge.

Sends envelopes, or ServiceRequests serialized to envelopes, to SOAP
producers over an envelope transport. Each send uses its own transport
connection, closed before returning.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from xrd_bridge.adapters.base import EnvelopeTransport
from xrd_bridge.adapters.http import HttpEnvelopeTransport
from xrd_bridge.config import ClientSettings
from xrd_bridge.models import ServiceRequest, ServiceResponse
from xrd_bridge.soap.deserializer import AbstractResponseDeserializer
from xrd_bridge.soap.envelope import SoapEnvelope
from xrd_bridge.soap.serializer import AbstractServiceRequestSerializer
from xrd_bridge.urls import validate_url

logger = logging.getLogger(__name__)

TransportFactory = Callable[[], EnvelopeTransport]


class SOAPClient:
    """Blocking SOAP client.

    Args:
        settings: Used to build the default HTTP envelope transport.
        transport_factory: Creates one transport per send. Overrides
            ``settings`` when given.

    Example:
        >>> client = SOAPClient()
        >>> response = client.send_request(request, url, serializer, deserializer)
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        if transport_factory is None:
            settings = settings or ClientSettings()

            def transport_factory() -> EnvelopeTransport:
                return HttpEnvelopeTransport(settings)

        self._transport_factory = transport_factory

    def send(self, envelope: SoapEnvelope, url: str) -> SoapEnvelope:
        """Send an envelope and block until the response envelope arrives.

        Args:
            envelope: The request envelope.
            url: The producer endpoint.

        Returns:
            The response envelope.

        Raises:
            InvalidURLError: If ``url`` is not an http(s) URL.
            SoapTransportError: If the round trip fails. Not retried.
        """
        validate_url(url)
        transport = self._transport_factory()
        try:
            logger.debug('Send SOAP message to "%s".', url)
            logger.debug('Outgoing SOAP request : "%s".', envelope)
            response = transport.call(envelope, url)
            logger.debug("SOAP response received.")
            logger.debug('Incoming SOAP response : "%s".', response)
        finally:
            transport.close()
        return response

    def send_request(
        self,
        request: ServiceRequest,
        url: str,
        serializer: AbstractServiceRequestSerializer,
        deserializer: AbstractResponseDeserializer,
    ) -> ServiceResponse:
        """Serialize a request, send it and deserialize the response.

        The response body element is looked up in the request producer's
        namespace, or in any namespace when the producer has none.

        Args:
            request: The request to send.
            url: The producer endpoint.
            serializer: Builds the request envelope.
            deserializer: Decodes the response envelope.

        Returns:
            The decoded ServiceResponse.

        Raises:
            SerializationError: If the request cannot be serialized.
            InvalidURLError: If ``url`` is not an http(s) URL.
            SoapTransportError: If the round trip fails.
            EnvelopeParseError: If the reply is not an envelope.
            DeserializationError: If the reply cannot be decoded.
        """
        envelope = serializer.serialize(request).unwrap()
        logger.info('Send ServiceRequest to "%s". Request id : "%s"', url, request.id)
        logger.debug("Consumer : %s", request.consumer)
        logger.debug("Producer : %s", request.producer)
        soap_response = self.send(envelope, url)
        response = deserializer.deserialize(soap_response, request.producer.namespace_filter)
        logger.info('ServiceResponse received. Request id : "%s"', request.id)
        return response
