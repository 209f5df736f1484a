"""Serialization of ServiceRequest objects to SOAP envelopes.

The base serializer builds the envelope, delegates the header to a
header composer and lays out the body according to the request's body
and namespace policies. Subclasses only fill the payload element.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from lxml import etree

from xrd_bridge.errors import SerializationError
from xrd_bridge.models import BodyPolicy, NamespacePolicy, ServiceRequest
from xrd_bridge.soap.envelope import SoapEnvelope, add_namespace
from xrd_bridge.soap.header import HeaderComposer, XRoadHeaderComposer

logger = logging.getLogger(__name__)

REQUEST_WRAPPER = "request"


@dataclass(frozen=True)
class BodyLayout:
    """How the payload is placed inside the body element.

    Args:
        wrap: Payload goes under a ``request`` child element.
        propagate_namespace: Payload elements move into the producer
            namespace (only when the producer has one).
    """

    wrap: bool
    propagate_namespace: bool


BODY_LAYOUTS: dict[tuple[BodyPolicy, NamespacePolicy], BodyLayout] = {
    (BodyPolicy.WRAPPED, NamespacePolicy.PROPAGATE): BodyLayout(True, True),
    (BodyPolicy.WRAPPED, NamespacePolicy.NONE): BodyLayout(True, False),
    (BodyPolicy.UNWRAPPED, NamespacePolicy.PROPAGATE): BodyLayout(False, True),
    (BodyPolicy.UNWRAPPED, NamespacePolicy.NONE): BodyLayout(False, False),
}


@dataclass(frozen=True)
class SerializationResult:
    """Outcome of serializing a request.

    Exactly one of ``envelope`` and ``error`` is set.

    Args:
        envelope: The complete envelope on success.
        error: The cause on failure.
    """

    envelope: SoapEnvelope | None = None
    error: SerializationError | None = None

    @property
    def ok(self) -> bool:
        return self.envelope is not None

    def unwrap(self) -> SoapEnvelope:
        """Return the envelope or raise the stored error."""
        if self.envelope is None:
            raise self.error or SerializationError("Serialization produced no envelope")
        return self.envelope


class AbstractServiceRequestSerializer(ABC):
    """Base class for serializers turning ServiceRequests into envelopes.

    Subclasses implement ``serialize_request`` to write the application
    payload into the element they are handed.

    Args:
        header_composer: Fills the message header. Defaults to the X-Road
            header.
    """

    def __init__(self, header_composer: HeaderComposer | None = None) -> None:
        self.header_composer = header_composer or XRoadHeaderComposer()

    @abstractmethod
    def serialize_request(
        self,
        request: ServiceRequest,
        target: etree._Element,
        envelope: SoapEnvelope,
    ) -> None:
        """Write the request payload into ``target``.

        Args:
            request: The request holding the application payload.
            target: The ``request`` wrapper, or the body element itself
                when wrappers are not processed.
            envelope: The envelope being built.
        """

    def serialize(self, request: ServiceRequest) -> SerializationResult:
        """Serialize a request into a new envelope.

        The envelope is attached to ``request.envelope``. Failures never
        raise; they are reported in the returned result and the request is
        left without an envelope.

        Args:
            request: The request to serialize.

        Returns:
            A SerializationResult holding either the envelope or the error.
        """
        logger.debug("Serialize ServiceRequest message to SOAP.")
        try:
            envelope = SoapEnvelope(nsmap=dict(self.header_composer.namespaces))
            request.envelope = envelope
            self.header_composer.populate_header(request, envelope)
            self._serialize_body(request, envelope)
        except Exception as exc:
            logger.error("%s", exc, exc_info=True)
            logger.warning("Failed to serialize ServiceRequest message to SOAP.")
            request.envelope = None
            error = exc if isinstance(exc, SerializationError) else SerializationError(str(exc))
            if error is not exc:
                error.__cause__ = exc
            return SerializationResult(error=error)
        logger.debug("ServiceRequest message was serialized successfully.")
        return SerializationResult(envelope=envelope)

    def _serialize_body(self, request: ServiceRequest, envelope: SoapEnvelope) -> None:
        producer = request.producer
        logger.debug('Use producer namespace "%s".', producer.namespace_url)

        if producer.has_namespace:
            body_element = envelope.add_body_element(
                producer.service_code, producer.namespace_url, producer.namespace_prefix
            )
        else:
            body_element = envelope.add_body_element(producer.service_code)

        if request.request_data is None:
            logger.debug("Request has no payload, body element is left empty.")
            return

        layout = BODY_LAYOUTS[(request.body_policy(), request.namespace_policy())]
        if layout.wrap:
            logger.debug('Adding "request" wrapper to request message.')
            target = etree.SubElement(body_element, REQUEST_WRAPPER)
        else:
            logger.debug('Skipping addition of "request" wrapper to request message.')
            target = body_element

        self.serialize_request(request, target, envelope)

        if producer.has_namespace and layout.propagate_namespace:
            add_namespace(target, producer.namespace_url)


class CallbackRequestSerializer(AbstractServiceRequestSerializer):
    """Serializer that delegates the payload to a plain function.

    Args:
        fill: Called as ``fill(request, target, envelope)``.
        header_composer: Fills the message header.
    """

    def __init__(
        self,
        fill: Callable[[ServiceRequest, etree._Element, SoapEnvelope], None],
        header_composer: HeaderComposer | None = None,
    ) -> None:
        super().__init__(header_composer)
        self._fill = fill

    def serialize_request(
        self,
        request: ServiceRequest,
        target: etree._Element,
        envelope: SoapEnvelope,
    ) -> None:
        self._fill(request, target, envelope)
