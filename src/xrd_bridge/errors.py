"""Exception types raised by xrd-bridge."""


class XRdBridgeError(Exception):
    """Base class for all xrd-bridge errors."""


class InvalidURLError(XRdBridgeError, ValueError):
    """A target URL is missing, malformed, or uses an unsupported scheme."""


class ParameterEncodingError(XRdBridgeError):
    """A URL parameter could not be form-encoded."""


class ProxyResolutionError(XRdBridgeError):
    """Proxy discovery failed unexpectedly (not the same as "no proxy")."""


class SoapTransportError(XRdBridgeError):
    """The XML envelope round trip failed below the SOAP layer."""


class EnvelopeParseError(XRdBridgeError):
    """Bytes received from a producer are not a SOAP envelope."""


class SerializationError(XRdBridgeError):
    """A ServiceRequest could not be turned into an envelope."""


class DeserializationError(XRdBridgeError):
    """A response envelope could not be turned into a ServiceResponse."""
