"""Proxy discovery for REST dispatch.

A ProxyResolver asks a selector for the ranked proxy candidates of a
target URL and uses the first one. Environment discovery is opt-in via
``ProxyResolver.from_environment()``; nothing here mutates process-wide
state.
"""

from __future__ import annotations

import logging
import urllib.request
from collections.abc import Callable, Sequence
from urllib.parse import unquote, urlsplit

from xrd_bridge.errors import ProxyResolutionError
from xrd_bridge.models import ProxyHost

logger = logging.getLogger(__name__)

# Returns ranked candidates for a target URL: proxy URLs, "host:port"
# strings, ProxyHost values, or "DIRECT".
ProxySelector = Callable[[str], Sequence[str | ProxyHost]]

_DIRECT = "DIRECT"
_DEFAULT_PORTS = {"http": 80, "https": 443, "socks5": 1080, "socks5h": 1080}


def environment_selector(url: str) -> list[str]:
    """Select proxies from the standard proxy environment variables.

    Honours ``no_proxy`` for the target host. Returns at most one
    candidate, matching the target scheme first and ``all_proxy`` second.
    """
    parts = urlsplit(url)
    if parts.hostname and urllib.request.proxy_bypass(parts.hostname):
        logger.debug('Proxy bypassed for host "%s".', parts.hostname)
        return []
    proxies = urllib.request.getproxies()
    candidate = proxies.get(parts.scheme) or proxies.get("all")
    return [candidate] if candidate else []


class ProxyResolver:
    """Resolves the proxy to use for a target URL.

    Args:
        selector: Source of ranked proxy candidates. None disables proxy
            use entirely.

    Example:
        >>> resolver = ProxyResolver(lambda url: ["http://proxy.local:3128"])
        >>> resolver.resolve("http://example.com/api")
        ProxyHost(host='proxy.local', port=3128, scheme='http', username=None)
    """

    def __init__(self, selector: ProxySelector | None = None) -> None:
        self._selector = selector

    @classmethod
    def from_environment(cls) -> ProxyResolver:
        """Resolver backed by the host's proxy environment settings."""
        return cls(environment_selector)

    @classmethod
    def disabled(cls) -> ProxyResolver:
        """Resolver that never selects a proxy."""
        return cls(None)

    def resolve(self, url: str) -> ProxyHost | None:
        """Return the first proxy candidate for ``url``, if any.

        Args:
            url: The fully composed target URL.

        Returns:
            The first candidate as a ProxyHost, or None when there is no
            selector, no candidate, or the first candidate has no usable
            host/port. Later candidates are never tried.

        Raises:
            ProxyResolutionError: If the selector or candidate parsing
                fails unexpectedly.
        """
        if self._selector is None:
            logger.debug("Proxy selector is not set, not using proxy.")
            return None
        try:
            candidates = list(self._selector(url))
            logger.debug("Proxy candidates found: %d", len(candidates))
            if not candidates:
                logger.info("No proxy found for %s", url)
                return None
            proxy = _to_proxy_host(candidates[0])
        except Exception as exc:
            raise ProxyResolutionError(f"Proxy resolution failed for {url}: {exc}") from exc
        if proxy is None:
            logger.info("No proxy (address is not resolvable)")
        else:
            logger.info("Using proxy %s:%d", proxy.host, proxy.port)
        return proxy


def _to_proxy_host(candidate: str | ProxyHost) -> ProxyHost | None:
    if isinstance(candidate, ProxyHost):
        return candidate
    candidate = candidate.strip()
    if not candidate or candidate.upper() == _DIRECT:
        return None
    if "://" not in candidate:
        candidate = f"http://{candidate}"
    parts = urlsplit(candidate)
    if not parts.hostname:
        return None
    try:
        port = parts.port or _DEFAULT_PORTS.get(parts.scheme)
    except ValueError:
        return None
    if port is None:
        return None
    return ProxyHost(
        host=parts.hostname,
        port=port,
        scheme=parts.scheme,
        username=unquote(parts.username) if parts.username else None,
        password=unquote(parts.password) if parts.password else None,
    )
