"""Deserialization of SOAP response envelopes to ServiceResponse objects.

The base deserializer reads the header identity, detects SOAP faults,
locates the ``<serviceCode>Response`` body element within the expected
producer namespace and unwraps the optional ``response`` element.
Subclasses decode the payload.
"""

from __future__ import annotations

import dataclasses
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from lxml import etree

from xrd_bridge.errors import DeserializationError
from xrd_bridge.models import ANY_NAMESPACE, ServiceResponse
from xrd_bridge.soap.envelope import SoapEnvelope, local_name, namespace_of
from xrd_bridge.soap.header import parse_header

logger = logging.getLogger(__name__)

RESPONSE_WRAPPER = "response"
REQUEST_WRAPPER = "request"


class AbstractResponseDeserializer(ABC):
    """Base class for deserializers turning envelopes into ServiceResponses.

    Args:
        processing_wrappers: Expect payload inside ``request``/``response``
            wrapper elements.
    """

    def __init__(self, processing_wrappers: bool = True) -> None:
        self.processing_wrappers = processing_wrappers

    @abstractmethod
    def deserialize_response(self, element: etree._Element) -> Any:
        """Decode the response payload element.

        Args:
            element: The ``response`` wrapper, or the body element itself
                when wrappers are not processed.

        Returns:
            The application-level response object.
        """

    def deserialize_request(self, element: etree._Element) -> Any:
        """Decode the echoed request payload. Not decoded by default."""
        return None

    def deserialize(self, envelope: SoapEnvelope, producer_namespace: str) -> ServiceResponse:
        """Decode a response envelope.

        Args:
            envelope: The envelope received from the producer.
            producer_namespace: Namespace of the expected body element, or
                ``*`` to accept any namespace.

        Returns:
            A ServiceResponse. SOAP faults are reported through its error
            fields rather than raised.

        Raises:
            DeserializationError: If the header or the expected body
                element is missing, or payload decoding fails.
        """
        logger.debug("Deserialize SOAP message to ServiceResponse.")
        fields = parse_header(envelope)
        response = ServiceResponse(
            consumer=fields.consumer,
            producer=fields.producer,
            id=fields.id,
            envelope=envelope,
        )

        fault = envelope.fault()
        if fault is not None:
            response.error_code, response.error_message = fault
            logger.warning('SOAP fault received : "%s" "%s".', *fault)
            return response

        body_element = self._find_body_element(
            envelope, fields.producer.service_code, producer_namespace
        )
        namespace = namespace_of(body_element)
        if namespace:
            response.producer = dataclasses.replace(
                fields.producer,
                namespace_url=namespace,
                namespace_prefix=body_element.prefix or "ns",
            )

        try:
            if self.processing_wrappers:
                request_element = _child(body_element, REQUEST_WRAPPER)
                if request_element is not None:
                    response.request_data = self.deserialize_request(request_element)
                payload = _child(body_element, RESPONSE_WRAPPER)
                if payload is None:
                    raise DeserializationError('Body element has no "response" wrapper')
            else:
                payload = body_element
            response.response_data = self.deserialize_response(payload)
        except DeserializationError:
            raise
        except Exception as exc:
            raise DeserializationError(f"Failed to decode response payload: {exc}") from exc

        logger.debug("SOAP message was deserialized successfully.")
        return response

    def _find_body_element(
        self, envelope: SoapEnvelope, service_code: str, producer_namespace: str
    ) -> etree._Element:
        expected = f"{service_code}Response"
        for element in envelope.body_elements():
            if local_name(element) != expected:
                continue
            if producer_namespace == ANY_NAMESPACE or namespace_of(element) == producer_namespace:
                return element
        raise DeserializationError(
            f'No "{expected}" element in namespace "{producer_namespace}" found in SOAP body'
        )


class CallbackResponseDeserializer(AbstractResponseDeserializer):
    """Deserializer that delegates payload decoding to a plain function.

    Args:
        decode: Called with the payload element.
        processing_wrappers: Expect ``response`` wrapper elements.
    """

    def __init__(
        self,
        decode: Callable[[etree._Element], Any],
        processing_wrappers: bool = True,
    ) -> None:
        super().__init__(processing_wrappers)
        self._decode = decode

    def deserialize_response(self, element: etree._Element) -> Any:
        return self._decode(element)


def _child(parent: etree._Element, name: str) -> etree._Element | None:
    # Wrapper elements may be qualified or not depending on the producer
    for child in parent:
        if isinstance(child.tag, str) and local_name(child) == name:
            return child
    return None
