"""REST dispatch for xrd-bridge.

A RESTClient composes the target URL, resolves an optional proxy, builds
the method-specific request, sends it over a per-call ``httpx.Client``
and normalizes the answer into a ClientResponse. The four HTTP methods
share everything except how the request body is attached, which is
looked up from a small strategy table.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass

import httpx

from xrd_bridge.config import ClientSettings
from xrd_bridge.models import ClientResponse, HttpMethod, ProxyHost
from xrd_bridge.proxy import ProxyResolver
from xrd_bridge.urls import ParamValue, build_target_url, validate_url

logger = logging.getLogger(__name__)

# Builds a transport client for one call, routed through the proxy if given.
ClientFactory = Callable[[ProxyHost | None], httpx.Client]

# Returns the entity bytes and the headers that describe them.
BodyBuilder = Callable[
    [str | None, Mapping[str, str] | None, str], tuple[bytes | None, dict[str, str]]
]


def _no_body(
    body: str | None, headers: Mapping[str, str] | None, default_content_type: str
) -> tuple[bytes | None, dict[str, str]]:
    return None, {}


def _entity_body(
    body: str | None, headers: Mapping[str, str] | None, default_content_type: str
) -> tuple[bytes | None, dict[str, str]]:
    if body is None:
        logger.debug("No request body found for request.")
        return None, {}
    content_type = _find_header(headers, "Content-Type") or default_content_type
    return body.encode("utf-8"), {"Content-Type": content_type}


@dataclass(frozen=True)
class RequestStrategy:
    """How a given HTTP method turns a body into a request.

    Args:
        method: The HTTP method.
        build_body: Produces the entity and its headers from the caller's
            body and headers.
    """

    method: HttpMethod
    build_body: BodyBuilder

    def build_request(
        self,
        client: httpx.Client,
        url: str,
        body: str | None,
        headers: Mapping[str, str] | None,
        default_content_type: str,
    ) -> httpx.Request:
        logger.debug("Build new HTTP %s request.", self.method)
        content, entity_headers = self.build_body(body, headers, default_content_type)
        return client.build_request(
            self.method.value, url, content=content, headers=entity_headers
        )


STRATEGIES: dict[HttpMethod, RequestStrategy] = {
    HttpMethod.GET: RequestStrategy(HttpMethod.GET, _no_body),
    HttpMethod.POST: RequestStrategy(HttpMethod.POST, _entity_body),
    HttpMethod.PUT: RequestStrategy(HttpMethod.PUT, _entity_body),
    HttpMethod.DELETE: RequestStrategy(HttpMethod.DELETE, _no_body),
}


def default_client_factory(settings: ClientSettings) -> ClientFactory:
    """Factory creating a fresh ``httpx.Client`` for every call.

    Environment proxy variables are ignored by httpx itself; proxies only
    come from the ProxyResolver.
    """

    def factory(proxy: ProxyHost | None) -> httpx.Client:
        return httpx.Client(
            proxy=proxy.url if proxy is not None else None,
            timeout=settings.timeout,
            verify=settings.verify_tls,
            trust_env=False,
        )

    return factory


def normalize_response(response: httpx.Response) -> ClientResponse:
    """Read a transport response into a ClientResponse.

    Args:
        response: An httpx response whose body may still be unread.

    Returns:
        The status code, reason phrase, first Content-Type value and the
        body decoded as text.
    """
    content_types = response.headers.get_list("Content-Type")
    content_type = content_types[0] if content_types else None
    response.read()
    return ClientResponse(
        data=response.text,
        content_type=content_type,
        status_code=response.status_code,
        reason_phrase=response.reason_phrase,
    )


class RESTClient:
    """Sends requests to REST producers for one HTTP method.

    Args:
        method: HTTP method this client sends.
        settings: Timeouts, TLS and default content type.
        proxy_resolver: Proxy selection. Defaults to environment discovery
            when ``settings.use_system_proxy`` is set, otherwise no proxy.
        client_factory: Creates the per-call ``httpx.Client``.

    Example:
        >>> client = RESTClient(HttpMethod.GET)
        >>> response = client.send("http://localhost:8080/api/items", params={"resourceId": "42"})
    """

    def __init__(
        self,
        method: HttpMethod | str,
        settings: ClientSettings | None = None,
        proxy_resolver: ProxyResolver | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._settings = settings or ClientSettings()
        self._strategy = STRATEGIES[HttpMethod(str(method).upper())]
        if proxy_resolver is None:
            proxy_resolver = (
                ProxyResolver.from_environment()
                if self._settings.use_system_proxy
                else ProxyResolver.disabled()
            )
        self._proxy_resolver = proxy_resolver
        self._client_factory = client_factory or default_client_factory(self._settings)

    @property
    def method(self) -> HttpMethod:
        return self._strategy.method

    def send(
        self,
        url: str,
        request_body: str | None = None,
        params: Mapping[str, ParamValue] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> ClientResponse | None:
        """Send one request and return the normalized response.

        ``resourceId`` in ``params`` is appended to the URL path; all other
        parameters go to the query string. ``params`` is not modified.

        Args:
            url: Base URL of the producer endpoint.
            request_body: Entity body for POST/PUT. None sends no body.
            params: URL parameters.
            headers: Headers applied last, overriding any set by the body
                builder.

        Returns:
            The ClientResponse, or None if the transport failed.

        Raises:
            InvalidURLError: If the composed URL is not an http(s) URL.
            ParameterEncodingError: If a parameter cannot be encoded.
            ProxyResolutionError: If proxy discovery fails unexpectedly.
        """
        target = build_target_url(url, params)
        validate_url(target)
        proxy = self._proxy_resolver.resolve(target)

        with self._client_factory(proxy) as client:
            request = self._strategy.build_request(
                client, target, request_body, headers, self._settings.default_content_type
            )
            logger.info("Starting HTTP %s operation.", request.method)
            for name, value in (headers or {}).items():
                logger.debug('Add header : "%s" = "%s"', name, value)
                request.headers[name] = value

            try:
                with contextlib.closing(client.send(request, stream=True)) as response:
                    result = normalize_response(response)
            except httpx.RequestError as exc:
                logger.error("%s", exc, exc_info=True)
                logger.warning("HTTP %s operation failed. No response is returned.", request.method)
                return None

        logger.debug('REST response content type: "%s".', result.content_type)
        logger.debug('REST response status code: "%s".', result.status_code)
        logger.debug('REST response reason phrase: "%s".', result.reason_phrase)
        logger.debug('REST response : "%s".', result.data)
        logger.info("HTTP %s operation completed.", request.method)
        return result


def get_client(settings: ClientSettings | None = None, **kwargs) -> RESTClient:
    return RESTClient(HttpMethod.GET, settings, **kwargs)


def post_client(settings: ClientSettings | None = None, **kwargs) -> RESTClient:
    return RESTClient(HttpMethod.POST, settings, **kwargs)


def put_client(settings: ClientSettings | None = None, **kwargs) -> RESTClient:
    return RESTClient(HttpMethod.PUT, settings, **kwargs)


def delete_client(settings: ClientSettings | None = None, **kwargs) -> RESTClient:
    return RESTClient(HttpMethod.DELETE, settings, **kwargs)


def _find_header(headers: Mapping[str, str] | None, name: str) -> str | None:
    if not headers:
        return None
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None
