"""SOAP envelope construction, header handling and (de)serialization."""

from xrd_bridge.soap.deserializer import AbstractResponseDeserializer, CallbackResponseDeserializer
from xrd_bridge.soap.envelope import SoapEnvelope
from xrd_bridge.soap.header import HeaderComposer, XRoadHeaderComposer, parse_header
from xrd_bridge.soap.serializer import (
    AbstractServiceRequestSerializer,
    CallbackRequestSerializer,
    SerializationResult,
)

__all__ = [
    "AbstractResponseDeserializer",
    "AbstractServiceRequestSerializer",
    "CallbackRequestSerializer",
    "CallbackResponseDeserializer",
    "HeaderComposer",
    "SerializationResult",
    "SoapEnvelope",
    "XRoadHeaderComposer",
    "parse_header",
]
