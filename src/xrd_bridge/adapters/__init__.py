"""Envelope transports: carry SOAP envelopes between the client and a producer."""

from xrd_bridge.adapters.base import EnvelopeTransport
from xrd_bridge.adapters.http import HttpEnvelopeTransport

__all__ = ["EnvelopeTransport", "HttpEnvelopeTransport"]
