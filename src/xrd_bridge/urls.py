"""Target URL composition for REST producers.

Parameters are appended as a form-encoded query string, except for the
reserved ``resourceId`` parameter which becomes the last path segment.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from urllib.parse import quote_plus, urlsplit

from xrd_bridge.errors import InvalidURLError, ParameterEncodingError

logger = logging.getLogger(__name__)

RESOURCE_ID = "resourceId"

ParamValue = str | Sequence[str]

_LINE_BREAKS = re.compile(r"\r\n|\r|\n")


def clean_value(value: str) -> str:
    """Remove line breaks and surrounding whitespace from a parameter value."""
    return _LINE_BREAKS.sub("", value).strip()


def build_target_url(url: str, params: Mapping[str, ParamValue] | None) -> str:
    """Build the full request URL from a base URL and parameters.

    The caller's mapping is not modified; ``resourceId`` is removed from
    a private copy before the query string is built.

    Args:
        url: Base URL of the producer endpoint.
        params: Ordered parameters. A sequence value repeats the parameter
            once per element.

    Returns:
        The base URL with the resource id path segment and query string
        appended. ``url`` itself when there are no parameters.

    Raises:
        ParameterEncodingError: If a value is not a string or cannot be
            encoded as UTF-8.
    """
    logger.debug('Target URL : "%s".', url)
    if not params:
        logger.debug("URL parameters are empty. Return target URL.")
        return url

    remaining = dict(params)
    processed = _append_resource_id(url, remaining)
    if not remaining:
        return processed

    if "?" not in processed:
        processed += "?"
    elif not processed.endswith(("?", "&")):
        processed += "&"

    final_url = processed + build_query_string(remaining)
    logger.debug('Request parameters added to URL : "%s".', final_url)
    return final_url


def build_query_string(params: Mapping[str, ParamValue]) -> str:
    """Serialize parameters as ``name=value`` pairs joined by ``&``.

    Args:
        params: Ordered parameters; insertion order is kept.

    Returns:
        The encoded query string without a leading ``?``.
    """
    pairs: list[str] = []
    for name, value in params.items():
        if isinstance(value, str):
            pairs.append(_encode_pair(name, value))
        elif isinstance(value, Sequence):
            pairs.extend(_encode_pair(name, item) for item in value)
        else:
            raise ParameterEncodingError(
                f"Parameter {name!r} must be a string or a sequence of strings"
            )
    return "&".join(pairs)


def _append_resource_id(url: str, params: dict[str, ParamValue]) -> str:
    if RESOURCE_ID not in params:
        return url
    value = params.pop(RESOURCE_ID)
    if not isinstance(value, str):
        if not value:
            raise ParameterEncodingError(f"Parameter {RESOURCE_ID!r} has no value")
        value = value[0]
    if not isinstance(value, str):
        raise ParameterEncodingError(f"Parameter {RESOURCE_ID!r} must be a string")
    resource_id = clean_value(value)
    logger.debug('Resource ID found from parameters. Resource ID value : "%s".', resource_id)
    if not url.endswith("/"):
        url += "/"
    url += resource_id
    logger.debug('Resource ID added to URL : "%s".', url)
    return url


def _encode_pair(name: str, value: str) -> str:
    if not isinstance(value, str):
        raise ParameterEncodingError(f"Parameter {name!r} has a non-string value")
    try:
        encoded = quote_plus(clean_value(value), encoding="utf-8", errors="strict")
    except UnicodeEncodeError as exc:
        raise ParameterEncodingError(f"Parameter {name!r} is not valid UTF-8") from exc
    logger.debug('Parameter : "%s"="%s"', name, encoded)
    return f"{name}={encoded}"


def validate_url(url: str) -> None:
    """Check that ``url`` is an absolute http(s) URL.

    Raises:
        InvalidURLError: If the URL is empty, relative or not http(s).
    """
    if not url:
        raise InvalidURLError("Target URL is empty")
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise InvalidURLError(f"Not an http(s) URL: {url}")
