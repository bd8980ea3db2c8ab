"""Exceptions raised by the dnsmasq config engine.

Read paths degrade instead of raising; these exceptions belong to the
write path and to cancellation of a snapshot rebuild.
"""


class MasqConfigError(Exception):
    """Base exception for config engine errors."""


class ManagedFileError(MasqConfigError):
    """Raised when the managed config file cannot be located or written."""


class MacConflictError(ManagedFileError, ValueError):
    """Raised when a dhcp-host MAC is already defined in a non-managed file.

    Attributes:
        mac: The conflicting MAC address as given by the caller.
        source_path: The non-managed file that already defines it.
    """

    def __init__(self, mac: str, source_path: str) -> None:
        self.mac = mac
        self.source_path = source_path
        super().__init__(
            f"MAC {mac} is already defined in {source_path}. "
            "Remove it from that file or use a different MAC."
        )


class OperationCancelledError(MasqConfigError):
    """Raised when a snapshot rebuild is cancelled through its cancel event."""
