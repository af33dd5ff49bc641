"""Filesystem-backed hidden service descriptors.

The daemon writes ``hostname`` and ``private_key`` into the service
directory; HiddenService reads them back and renders the SETCONF
arguments needed to (re)register the service.
"""

import ipaddress
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from onionctl.control.commands import quote
from onionctl.control.replies import Reply

logger = logging.getLogger(__name__)

HIDDEN_SERVICE_OPTIONS = "HiddenServiceOptions"
HIDDEN_SERVICE_DIR = "HiddenServiceDir"
HIDDEN_SERVICE_PORT = "HiddenServicePort"


class HiddenService:
    """
    A hidden service living in ``folder``.

    Attributes:
        host: Contents of the hostname file, once loaded
        private_key: Contents of the private_key file, once loaded
        virtual_port: Port advertised on the onion address (0 if unset)
        address: Target address traffic is forwarded to
        port: Target port traffic is forwarded to (0 if unset)
    """

    def __init__(
        self,
        folder: Union[str, Path],
        virtual_port: int = 0,
        address: Optional[str] = None,
        port: int = 0,
    ):
        self.folder = str(folder)
        self.virtual_port = virtual_port
        self.address = ipaddress.ip_address(address) if address else None
        self.port = port
        self.host: Optional[str] = None
        self.private_key: Optional[str] = None
        self.is_loaded = False

        self.reload()

    def reload(self) -> bool:
        """
        Reload the hostname and private key from the service directory.

        Returns:
            True if both files were read
        """
        folder = Path(self.folder)
        key_file = folder / "private_key"
        host_file = folder / "hostname"

        try:
            if key_file.exists() and host_file.exists():
                self.private_key = key_file.read_text()
                self.host = host_file.read_text().strip()
                self.is_loaded = True
        except OSError as e:
            logger.debug(f"Unable to read hidden service in {self.folder}: {e}")
            self.is_loaded = False

        return self.is_loaded

    def to_config(self) -> str:
        """Return the SETCONF arguments describing this service."""
        conf = f"{HIDDEN_SERVICE_DIR}={self.folder}"
        if self.port:
            target = quote(f"{self.virtual_port} {self.address}:{self.port}")
            conf = f"{conf} {HIDDEN_SERVICE_PORT}={target}"
        return conf

    def __str__(self) -> str:
        return self.to_config()

    def __repr__(self) -> str:
        return (
            f"HiddenService(folder={self.folder!r}, host={self.host!r}, "
            f"virtual_port={self.virtual_port}, address={self.address}, port={self.port})"
        )


def _apply_port(service: HiddenService, value: str) -> None:
    # value looks like "80 127.0.0.1:8080"
    try:
        virtual_port, target = value.split(" ", 1)
        address, port = target.rsplit(":", 1)
        service.virtual_port = int(virtual_port)
        service.address = ipaddress.ip_address(address)
        service.port = int(port)
    except ValueError as e:
        logger.debug(f"Unable to parse hidden service port {value!r}: {e}")
        service.virtual_port = 0
        service.address = None
        service.port = 0


def parse_hidden_services(replies: Sequence[Reply]) -> List[HiddenService]:
    """
    Build HiddenService objects from a ``GETCONF HiddenServiceOptions`` reply.

    Lines are processed in order: each HiddenServiceDir starts a new service
    and following HiddenServicePort lines apply to it.
    """
    if not replies:
        return []

    first = replies[0]
    # Daemon answers with the bare option name when nothing is configured
    if first.is_ok and first.arguments == HIDDEN_SERVICE_OPTIONS:
        return []

    services: List[HiddenService] = []
    current: Optional[HiddenService] = None

    for reply in replies:
        if "=" not in reply.arguments:
            continue

        key, value = reply.arguments.split("=", 1)
        if key == HIDDEN_SERVICE_DIR:
            current = HiddenService(value)
            services.append(current)
        elif key == HIDDEN_SERVICE_PORT and current is not None:
            _apply_port(current, value)

    return services
