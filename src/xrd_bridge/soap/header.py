"""X-Road message header composition and parsing.

The header composer fills the protocol header of an outgoing envelope
from the request's consumer and producer identity. ``parse_header`` does
the reverse for incoming envelopes. Field extraction stays in this module
so the serializer and deserializer never reach into header internals.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from lxml import etree

from xrd_bridge.errors import DeserializationError
from xrd_bridge.models import ConsumerMember, ProducerMember, ServiceRequest
from xrd_bridge.soap.envelope import SoapEnvelope

XROAD_NS = "http://x-road.eu/xsd/xroad.xsd"
XROAD_PREFIX = "xrd"
IDENTIFIERS_NS = "http://x-road.eu/xsd/identifiers"
IDENTIFIERS_PREFIX = "id"
PROTOCOL_VERSION = "4.0"

_OBJECT_TYPE = f"{{{IDENTIFIERS_NS}}}objectType"


def _xrd(name: str) -> str:
    return f"{{{XROAD_NS}}}{name}"


def _id(name: str) -> str:
    return f"{{{IDENTIFIERS_NS}}}{name}"


class HeaderComposer(Protocol):
    """Interface for header composers.

    ``namespaces`` lists the prefixes the composer needs; they are declared
    on the envelope root when the envelope is created.
    """

    namespaces: dict[str, str]

    def populate_header(self, request: ServiceRequest, envelope: SoapEnvelope) -> None:
        """Fill the envelope's header from the request identity.

        Args:
            request: The request being serialized.
            envelope: The envelope whose Header is populated.
        """
        ...


@dataclass
class HeaderFields:
    """Identity fields read from a message header.

    Args:
        consumer: The ``client`` block.
        producer: The ``service`` block, without namespace information.
        id: Message id.
        user_id: End-user id, if present.
        protocol_version: Protocol version, if present.
    """

    consumer: ConsumerMember
    producer: ProducerMember
    id: str
    user_id: str | None = None
    protocol_version: str | None = None


class XRoadHeaderComposer:
    """Writes the X-Road 4.0 ``client``/``service``/``id`` header.

    Args:
        protocol_version: Value of the ``protocolVersion`` element.
    """

    namespaces = {XROAD_PREFIX: XROAD_NS, IDENTIFIERS_PREFIX: IDENTIFIERS_NS}

    def __init__(self, protocol_version: str = PROTOCOL_VERSION) -> None:
        self.protocol_version = protocol_version

    def populate_header(self, request: ServiceRequest, envelope: SoapEnvelope) -> None:
        header = envelope.header
        consumer = request.consumer
        producer = request.producer

        client = etree.SubElement(header, _xrd("client"))
        client.set(_OBJECT_TYPE, consumer.object_type)
        _add_member(client, consumer.x_road_instance, consumer.member_class,
                    consumer.member_code, consumer.subsystem_code)

        service = etree.SubElement(header, _xrd("service"))
        service.set(_OBJECT_TYPE, "SERVICE")
        _add_member(service, producer.x_road_instance, producer.member_class,
                    producer.member_code, producer.subsystem_code)
        etree.SubElement(service, _id("serviceCode")).text = producer.service_code
        if producer.service_version:
            etree.SubElement(service, _id("serviceVersion")).text = producer.service_version

        if request.user_id:
            etree.SubElement(header, _xrd("userId")).text = request.user_id
        etree.SubElement(header, _xrd("id")).text = request.id
        etree.SubElement(header, _xrd("protocolVersion")).text = self.protocol_version


def parse_header(envelope: SoapEnvelope) -> HeaderFields:
    """Read the consumer, producer and message id from an envelope header.

    Raises:
        DeserializationError: If a mandatory header element is missing.
    """
    header = envelope.header
    client = header.find(_xrd("client"))
    service = header.find(_xrd("service"))
    message_id = header.findtext(_xrd("id"))
    if client is None or service is None or message_id is None:
        raise DeserializationError("Message header is missing client, service or id")

    consumer = ConsumerMember(
        x_road_instance=_required(client, "xRoadInstance"),
        member_class=_required(client, "memberClass"),
        member_code=_required(client, "memberCode"),
        subsystem_code=client.findtext(_id("subsystemCode")),
    )
    producer = ProducerMember(
        x_road_instance=_required(service, "xRoadInstance"),
        member_class=_required(service, "memberClass"),
        member_code=_required(service, "memberCode"),
        subsystem_code=service.findtext(_id("subsystemCode")),
        service_code=_required(service, "serviceCode"),
        service_version=service.findtext(_id("serviceVersion")),
    )
    return HeaderFields(
        consumer=consumer,
        producer=producer,
        id=message_id.strip(),
        user_id=header.findtext(_xrd("userId")),
        protocol_version=header.findtext(_xrd("protocolVersion")),
    )


def _add_member(
    parent: etree._Element,
    instance: str,
    member_class: str,
    member_code: str,
    subsystem_code: str | None,
) -> None:
    etree.SubElement(parent, _id("xRoadInstance")).text = instance
    etree.SubElement(parent, _id("memberClass")).text = member_class
    etree.SubElement(parent, _id("memberCode")).text = member_code
    if subsystem_code:
        etree.SubElement(parent, _id("subsystemCode")).text = subsystem_code


def _required(parent: etree._Element, name: str) -> str:
    value = parent.findtext(_id(name))
    if not value:
        raise DeserializationError(f"Message header is missing {name}")
    return value.strip()
