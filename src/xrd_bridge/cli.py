"""CLI entry point for xrd-bridge."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import click

from xrd_bridge.config import ClientSettings
from xrd_bridge.errors import XRdBridgeError
from xrd_bridge.models import HttpMethod


@click.group()
@click.version_option(package_name="xrd-bridge")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log debug output to stderr.")
def main(verbose: bool) -> None:
    """SOAP and REST adapter for X-Road style service exchange."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_pairs(values: tuple[str, ...], option: str) -> dict[str, list[str]]:
    """Parse repeated ``name=value`` options, keeping first-seen order."""
    pairs: dict[str, list[str]] = {}
    for item in values:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected name=value, got {item!r}", param_hint=option)
        pairs.setdefault(name, []).append(value)
    return pairs


def _load_settings(config: str | None, overrides: dict[str, Any]) -> ClientSettings:
    try:
        settings = ClientSettings.load(Path(config)) if config else ClientSettings()
    except Exception as exc:
        raise click.ClickException(f"Failed to load config: {exc}") from exc
    updates = {key: value for key, value in overrides.items() if value is not None}
    return settings.model_copy(update=updates)


@main.command()
@click.argument("method", type=click.Choice([m.value for m in HttpMethod], case_sensitive=False))
@click.argument("url")
@click.option(
    "--param", "-p", "params", multiple=True, help="URL parameter name=value (repeatable)."
)
@click.option(
    "--header", "-H", "headers", multiple=True, help="HTTP header name=value (repeatable)."
)
@click.option("--data", "-d", type=str, help="Request body (POST/PUT).")
@click.option(
    "--data-file", type=click.Path(exists=True, dir_okay=False), help="Read request body from file."
)
@click.option(
    "--system-proxy/--no-system-proxy", default=None, help="Resolve proxy from the environment."
)
@click.option("--timeout", type=float, help="Request timeout (seconds).")
@click.option("--config", type=click.Path(exists=True, dir_okay=False), help="JSON settings file.")
def rest(
    method: str,
    url: str,
    params: tuple[str, ...],
    headers: tuple[str, ...],
    data: str | None,
    data_file: str | None,
    system_proxy: bool | None,
    timeout: float | None,
    config: str | None,
) -> None:
    """Send a REST request and print the response."""
    from xrd_bridge.rest import RESTClient

    if data is not None and data_file is not None:
        raise click.UsageError("Use either --data or --data-file, not both.")
    if data_file is not None:
        data = Path(data_file).read_text(encoding="utf-8")

    settings = _load_settings(config, {"use_system_proxy": system_proxy, "timeout": timeout})
    param_map: dict[str, str | list[str]] = {
        name: values[0] if len(values) == 1 else values
        for name, values in _parse_pairs(params, "--param").items()
    }
    header_map = {name: values[-1] for name, values in _parse_pairs(headers, "--header").items()}

    client = RESTClient(method, settings=settings)
    try:
        response = client.send(url, data, param_map, header_map)
    except XRdBridgeError as exc:
        raise click.ClickException(str(exc)) from exc

    if response is None:
        raise click.ClickException(f"HTTP {client.method} request to {url} failed.")

    click.echo(f"{response.status_code} {response.reason_phrase}")
    if response.content_type:
        click.echo(f"Content-Type: {response.content_type}")
    click.echo("")
    click.echo(response.data or "")


@main.group()
def soap() -> None:
    """SOAP envelope commands."""


@soap.command(name="send")
@click.argument("url")
@click.option(
    "--envelope-file",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="File holding the request envelope.",
)
@click.option("--output", type=click.Path(), help="Save the response envelope to this file.")
@click.option("--timeout", type=float, help="Request timeout (seconds).")
@click.option("--config", type=click.Path(exists=True, dir_okay=False), help="JSON settings file.")
def send_envelope(
    url: str,
    envelope_file: str,
    output: str | None,
    timeout: float | None,
    config: str | None,
) -> None:
    """Send a SOAP envelope and print the response envelope."""
    from xrd_bridge.soap.client import SOAPClient
    from xrd_bridge.soap.envelope import SoapEnvelope

    settings = _load_settings(config, {"timeout": timeout})
    try:
        envelope = SoapEnvelope.from_bytes(Path(envelope_file).read_bytes())
        response = SOAPClient(settings).send(envelope, url)
    except XRdBridgeError as exc:
        raise click.ClickException(str(exc)) from exc

    fault = response.fault()
    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(response.to_bytes())
        click.echo(f"Response saved to {output_path}")
    else:
        click.echo(response.to_string(pretty=True))
    if fault is not None:
        raise click.ClickException(f"SOAP fault {fault[0]}: {fault[1]}")
