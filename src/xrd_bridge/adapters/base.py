"""Envelope transport protocol for xrd-bridge.

The SOAP client interacts only with this interface. It never sees how
envelopes are framed on the wire or which HTTP library carries them.
"""

from typing import Protocol

from xrd_bridge.soap.envelope import SoapEnvelope


class EnvelopeTransport(Protocol):
    """Interface for XML envelope transports.

    A transport instance serves one connection: the SOAP client creates
    it, performs a single ``call()`` and then ``close()``s it.
    """

    def call(self, envelope: SoapEnvelope, url: str) -> SoapEnvelope:
        """Send an envelope and block until the response envelope arrives.

        Args:
            envelope: The request envelope.
            url: The producer endpoint.

        Returns:
            The response envelope.

        Raises:
            SoapTransportError: If the round trip fails.
            EnvelopeParseError: If the response is not an envelope.
        """
        ...

    def close(self) -> None:
        """Release the connection. Safe to call multiple times."""
        ...
