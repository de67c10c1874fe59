"""Error taxonomy for bus clients.

``ConnectError`` is fatal for the operation at hand, ``DecodeError`` fails
only the read or signal being decoded, and ``InvokeError`` carries enough
detail for the caller to decide between retry and report. Cancellation is
not an error and has no class here.
"""

from __future__ import annotations

from typing import Any


class AgamaError(Exception):
    """Base class for every error raised by agamactl clients."""

    code = "AGAMA_ERROR"

    def detail(self) -> dict[str, Any]:
        """Structured detail for ``ServiceError.detail``."""
        return {}


class ConnectError(AgamaError):
    """The remote interface could not be reached or introspected."""

    code = "CONNECT_ERROR"

    def __init__(self, message: str, *, interface: str | None = None) -> None:
        super().__init__(message)
        self.interface = interface

    def detail(self) -> dict[str, Any]:
        return {"interface": self.interface} if self.interface else {}


class DecodeError(AgamaError):
    """A tagged value had an unknown tag or an unexpected structure."""

    code = "DECODE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        unknown_tag: str | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(message)
        self.unknown_tag = unknown_tag
        self.path = path

    def detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {}
        if self.unknown_tag is not None:
            detail["unknown_tag"] = self.unknown_tag
        if self.path is not None:
            detail["path"] = self.path
        return detail


class PropertyNotFoundError(DecodeError):
    """A property is absent from a proxy handle's property bag."""

    def __init__(self, name: str, *, interface: str | None = None) -> None:
        super().__init__(f"Property {name!r} not found", path=name)
        self.name = name
        self.interface = interface

    def detail(self) -> dict[str, Any]:
        detail = super().detail()
        if self.interface:
            detail["interface"] = self.interface
        return detail


class InvokeError(AgamaError):
    """A remote method call or property write failed."""

    code = "INVOKE_ERROR"

    def __init__(
        self,
        method: str,
        message: str,
        *,
        name: str | None = None,
        interface: str | None = None,
    ) -> None:
        super().__init__(f"{method}: {message}")
        self.method = method
        self.name = name
        self.interface = interface
        self.reason = message

    def detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {"method": self.method, "reason": self.reason}
        if self.name:
            detail["error_name"] = self.name
        if self.interface:
            detail["interface"] = self.interface
        return detail


class ConfigurationError(AgamaError):
    """Bindings or proxies are misconfigured (e.g. a proxy without readiness)."""

    code = "CONFIG_ERROR"
