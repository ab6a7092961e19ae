"""libvirt connection wrapper used to start and stop domains."""

from __future__ import annotations

from typing import Any, Optional

from bigiron.constants import LIBVIRT_URI
from bigiron.exceptions import DomainNotFoundError, HypervisorError
from bigiron.utils import log


def load_bindings() -> Any:
    """Import the libvirt python bindings."""
    try:
        import libvirt  # type: ignore
    except ImportError as exc:
        raise HypervisorError(f"libvirt python bindings not available: {exc}") from exc
    return libvirt


def _error_message(exc: Exception) -> str:
    return exc.get_error_message() if hasattr(exc, "get_error_message") else str(exc)


class LibvirtHypervisor:
    """Starts and stops domains over one libvirt connection.

    ``bindings`` is the libvirt module; it is imported on construction
    when not given.
    """

    def __init__(self, uri: str = LIBVIRT_URI, bindings: Any = None) -> None:
        self.uri = uri
        self.libvirt = bindings if bindings is not None else load_bindings()
        self.conn: Optional[Any] = None

    def connect(self) -> None:
        try:
            self.conn = self.libvirt.open(self.uri)
        except self.libvirt.libvirtError as exc:
            raise HypervisorError(f"Failed to open libvirt connection to {self.uri}: {_error_message(exc)}") from exc
        if self.conn is None:
            raise HypervisorError(f"Failed to open libvirt connection to {self.uri}")
        log("DEBUG", f"Connected to {self.uri}")

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> "LibvirtHypervisor":
        self.connect()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _require_conn(self) -> Any:
        if self.conn is None:
            raise HypervisorError("libvirt connection not established")
        return self.conn

    def create_domain(self, xml: str) -> None:
        """Create and start a transient domain from its XML description."""
        conn = self._require_conn()
        try:
            domain = conn.createXML(xml, 0)
        except self.libvirt.libvirtError as exc:
            raise HypervisorError(f"Failed to start domain: {_error_message(exc)}") from exc
        if domain is None:
            raise HypervisorError("Failed to start domain")

    def destroy_domain(self, name: str) -> None:
        conn = self._require_conn()
        try:
            domain = conn.lookupByName(name)
        except self.libvirt.libvirtError as exc:
            if exc.get_error_code() == self.libvirt.VIR_ERR_NO_DOMAIN:
                raise DomainNotFoundError(f"Domain {name} not found") from exc
            raise HypervisorError(f"Failed to look up domain {name}: {_error_message(exc)}") from exc
        try:
            domain.destroy()
        except self.libvirt.libvirtError as exc:
            raise HypervisorError(f"Failed to destroy domain {name}: {_error_message(exc)}") from exc
