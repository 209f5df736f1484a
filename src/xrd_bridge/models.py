"""Core data models for xrd-bridge.

Defines the member identities exchanged in message headers, the request
and response containers passed through the SOAP pipeline, the normalized
REST response record, and the policy enumerations that drive envelope
body construction.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

if TYPE_CHECKING:
    from xrd_bridge.soap.envelope import SoapEnvelope

# Namespace filter meaning "any producer namespace"
ANY_NAMESPACE = "*"


class HttpMethod(StrEnum):
    """HTTP method of a REST dispatcher variant.

    Attributes:
        GET: Body-less read request.
        POST: Request carrying an optional entity body.
        PUT: Request carrying an optional entity body.
        DELETE: Body-less delete request.
    """

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class BodyPolicy(StrEnum):
    """Whether payload content is nested inside a ``request`` wrapper.

    Attributes:
        WRAPPED: Payload goes under a ``request`` child of the body element.
        UNWRAPPED: Payload goes directly under the body element.
    """

    WRAPPED = "wrapped"
    UNWRAPPED = "unwrapped"


class NamespacePolicy(StrEnum):
    """Whether the producer namespace is pushed onto serialized payload.

    Attributes:
        PROPAGATE: Unqualified payload elements move into the producer namespace.
        NONE: Payload elements are left as the serializer created them.
    """

    PROPAGATE = "propagate"
    NONE = "none"


@dataclass(frozen=True)
class ConsumerMember:
    """Identity of the service-requesting party.

    Args:
        x_road_instance: Instance identifier (e.g. ``FI``).
        member_class: Member class (e.g. ``GOV``, ``COM``).
        member_code: Member code, usually a business id.
        subsystem_code: Optional subsystem of the member.
    """

    x_road_instance: str
    member_class: str
    member_code: str
    subsystem_code: str | None = None

    @property
    def object_type(self) -> str:
        return "SUBSYSTEM" if self.subsystem_code else "MEMBER"

    def __str__(self) -> str:
        parts = [self.x_road_instance, self.member_class, self.member_code]
        if self.subsystem_code:
            parts.append(self.subsystem_code)
        return ".".join(parts)


@dataclass(frozen=True)
class ProducerMember:
    """Identity of the service-providing party and the service it offers.

    Args:
        x_road_instance: Instance identifier.
        member_class: Member class.
        member_code: Member code.
        service_code: Name of the invoked service; also the body element name.
        subsystem_code: Optional subsystem of the member.
        service_version: Optional version of the service.
        namespace_url: Producer namespace. None or empty means no namespace.
        namespace_prefix: Prefix bound to ``namespace_url``. Required when
            a namespace is set.

    Raises:
        ValueError: If ``service_code`` is empty or a namespace is given
            without a prefix.
    """

    x_road_instance: str
    member_class: str
    member_code: str
    service_code: str
    subsystem_code: str | None = None
    service_version: str | None = None
    namespace_url: str | None = None
    namespace_prefix: str | None = None

    def __post_init__(self) -> None:
        if not self.service_code:
            raise ValueError("ProducerMember requires a service code")
        if self.has_namespace and not self.namespace_prefix:
            raise ValueError("ProducerMember namespace requires a namespace prefix")

    @property
    def has_namespace(self) -> bool:
        return bool(self.namespace_url)

    @property
    def namespace_filter(self) -> str:
        """Namespace used to select response elements; ``*`` when unset."""
        return self.namespace_url if self.namespace_url else ANY_NAMESPACE

    def __str__(self) -> str:
        parts = [self.x_road_instance, self.member_class, self.member_code]
        if self.subsystem_code:
            parts.append(self.subsystem_code)
        parts.append(self.service_code)
        if self.service_version:
            parts.append(self.service_version)
        return ".".join(parts)


@dataclass
class ServiceRequest:
    """A request travelling from a consumer to a SOAP producer.

    Args:
        consumer: Requesting party.
        producer: Providing party and service.
        request_data: Opaque payload handed to the body serializer.
        id: Unique message id. Generated when not given.
        user_id: Optional end-user identifier carried in the header.
        processing_wrappers: Nest payload inside a ``request`` element.
        add_namespace_to_request: Move payload elements into the producer
            namespace after serialization.
        envelope: Set by the serializer to the envelope built for this
            request.
    """

    consumer: ConsumerMember
    producer: ProducerMember
    request_data: Any = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str | None = None
    processing_wrappers: bool = True
    add_namespace_to_request: bool = True
    envelope: SoapEnvelope | None = None

    def body_policy(self) -> BodyPolicy:
        return BodyPolicy.WRAPPED if self.processing_wrappers else BodyPolicy.UNWRAPPED

    def namespace_policy(self) -> NamespacePolicy:
        if self.add_namespace_to_request:
            return NamespacePolicy.PROPAGATE
        return NamespacePolicy.NONE


@dataclass
class ServiceResponse:
    """A decoded response envelope.

    Args:
        consumer: Requesting party as echoed in the response header.
        producer: Providing party as echoed in the response header.
        id: Message id as echoed in the response header.
        response_data: Payload decoded by the response deserializer.
        request_data: Echoed request payload, when decoded.
        error_code: Fault code when the producer returned a fault.
        error_message: Fault string when the producer returned a fault.
        envelope: The envelope this response was decoded from.
    """

    consumer: ConsumerMember
    producer: ProducerMember
    id: str
    response_data: Any = None
    request_data: Any = None
    error_code: str | None = None
    error_message: str | None = None
    envelope: SoapEnvelope | None = None

    @property
    def has_error(self) -> bool:
        return self.error_code is not None or self.error_message is not None


@dataclass(frozen=True)
class ClientResponse:
    """Normalized result of one REST call.

    Args:
        data: Response body as text.
        content_type: First ``Content-Type`` header value, if any.
        status_code: Numeric HTTP status.
        reason_phrase: Reason phrase from the status line.
    """

    data: str | None
    content_type: str | None
    status_code: int
    reason_phrase: str


@dataclass(frozen=True)
class ProxyHost:
    """A proxy endpoint selected for a target URL.

    Args:
        host: Proxy hostname or address.
        port: Proxy port.
        scheme: Scheme used to reach the proxy.
        username: Proxy user, when the proxy URL carries credentials.
        password: Proxy password. Left out of ``repr``.
    """

    host: str
    port: int
    scheme: str = "http"
    username: str | None = None
    password: str | None = field(default=None, repr=False)

    @property
    def url(self) -> str:
        """Proxy URL for httpx, with credentials percent-encoded as userinfo."""
        userinfo = ""
        if self.username is not None:
            userinfo = quote(self.username, safe="")
            if self.password is not None:
                userinfo += ":" + quote(self.password, safe="")
            userinfo += "@"
        return f"{self.scheme}://{userinfo}{self.host}:{self.port}"
