"""SOAP 1.1 envelope model backed by lxml.

SoapEnvelope is the wire envelope passed between the serializer, the
envelope transport and the deserializer. It only exposes element,
namespace and attribute operations; framing is the transport's job.
"""

from __future__ import annotations

from lxml import etree

from xrd_bridge.errors import EnvelopeParseError

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
SOAP_ENV_PREFIX = "SOAP-ENV"

_ENVELOPE = f"{{{SOAP_ENV_NS}}}Envelope"
_HEADER = f"{{{SOAP_ENV_NS}}}Header"
_BODY = f"{{{SOAP_ENV_NS}}}Body"
_FAULT = f"{{{SOAP_ENV_NS}}}Fault"

# Keeps entity expansion and network access out of parsing untrusted responses
_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=True)


def qname(namespace: str | None, local_name: str) -> str:
    """Clark-notation element name; unqualified when ``namespace`` is empty."""
    return f"{{{namespace}}}{local_name}" if namespace else local_name


def local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


def namespace_of(element: etree._Element) -> str | None:
    return etree.QName(element).namespace


class SoapEnvelope:
    """A SOAP envelope with a header and a body section.

    Args:
        root: An existing ``Envelope`` element. A new empty envelope is
            created when omitted.
        nsmap: Extra namespace declarations for a new envelope root.

    Raises:
        EnvelopeParseError: If ``root`` is not a SOAP 1.1 Envelope or has
            no Body.
    """

    def __init__(
        self,
        root: etree._Element | None = None,
        nsmap: dict[str, str] | None = None,
    ) -> None:
        if root is None:
            namespaces = {SOAP_ENV_PREFIX: SOAP_ENV_NS}
            namespaces.update(nsmap or {})
            root = etree.Element(_ENVELOPE, nsmap=namespaces)
            etree.SubElement(root, _HEADER)
            etree.SubElement(root, _BODY)
        elif root.tag != _ENVELOPE:
            raise EnvelopeParseError(f"Root element is {root.tag!r}, not a SOAP Envelope")
        self._root = root
        if self.body is None:
            raise EnvelopeParseError("SOAP Envelope has no Body")

    @classmethod
    def from_bytes(cls, data: bytes | str) -> SoapEnvelope:
        """Parse a serialized envelope.

        Raises:
            EnvelopeParseError: If the data is not well-formed XML or not
                a SOAP envelope.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        try:
            root = etree.fromstring(data, parser=_PARSER)
        except etree.XMLSyntaxError as exc:
            raise EnvelopeParseError(f"Malformed SOAP envelope: {exc}") from exc
        return cls(root)

    @property
    def root(self) -> etree._Element:
        return self._root

    @property
    def header(self) -> etree._Element:
        """The Header element, created on first access if missing."""
        header = self._root.find(_HEADER)
        if header is None:
            header = etree.Element(_HEADER)
            self._root.insert(0, header)
        return header

    @property
    def body(self) -> etree._Element | None:
        return self._root.find(_BODY)

    def add_body_element(
        self,
        name: str,
        namespace: str | None = None,
        prefix: str | None = None,
    ) -> etree._Element:
        """Append a top-level element to the Body.

        Args:
            name: Local name of the element.
            namespace: Namespace URI. None creates an unqualified element.
            prefix: Prefix declared for ``namespace`` on the new element.
        """
        nsmap = {prefix: namespace} if namespace and prefix else None
        return etree.SubElement(self.body, qname(namespace, name), nsmap=nsmap)

    def body_elements(self) -> list[etree._Element]:
        return [child for child in self.body if isinstance(child.tag, str)]

    def fault(self) -> tuple[str, str] | None:
        """Return ``(faultcode, faultstring)`` if the Body holds a Fault."""
        fault = self.body.find(_FAULT)
        if fault is None:
            return None
        return (fault.findtext("faultcode", default=""), fault.findtext("faultstring", default=""))

    def to_bytes(self) -> bytes:
        return etree.tostring(self._root, xml_declaration=True, encoding="UTF-8")

    def to_string(self, pretty: bool = False) -> str:
        return etree.tostring(self._root, encoding="unicode", pretty_print=pretty)

    def __str__(self) -> str:
        return self.to_string()


def add_namespace(element: etree._Element, namespace: str) -> None:
    """Move ``element`` and its unqualified descendants into ``namespace``.

    Elements that already carry a namespace keep it. Serialization uses
    the prefix an ancestor binds to ``namespace``.
    """
    for node in element.iter():
        if isinstance(node.tag, str) and namespace_of(node) is None:
            node.tag = qname(namespace, node.tag)
