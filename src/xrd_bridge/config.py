"""Client configuration for xrd-bridge.

Settings are a Pydantic model so they can be stored as JSON next to a
deployment and overridden from the command line.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CONTENT_TYPE = "application/xml"


class ClientSettings(BaseModel):
    """Transport settings shared by the REST and SOAP clients.

    Args:
        timeout: Per-request timeout in seconds passed to httpx.
        use_system_proxy: Resolve REST proxies from the environment.
        default_content_type: Content-Type for POST/PUT bodies when the
            caller does not set one.
        verify_tls: Verify server certificates.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout: float = Field(default=30.0, gt=0)
    use_system_proxy: bool = False
    default_content_type: str = DEFAULT_CONTENT_TYPE
    verify_tls: bool = True

    @classmethod
    def load(cls, path: Path) -> ClientSettings:
        """Load settings from a JSON file.

        Args:
            path: File path to read.

        Returns:
            Validated settings.
        """
        return cls.model_validate_json(path.read_text(encoding="utf-8"))

    def save(self, path: Path) -> None:
        """Write settings to a JSON file, creating parent directories."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
