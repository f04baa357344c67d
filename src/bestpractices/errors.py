from __future__ import annotations


class DiscoveryError(RuntimeError):
    """Raised when the project root is missing or cannot be listed."""


class InvalidStandardError(ValueError):
    """Raised when `validate` is called with no standards or an unknown one."""


class ScanFailure(RuntimeError):
    """
    A failure contained to a single standard run.

    `kind` becomes the `kind` of the synthetic critical issue reported in
    place of the standard's normal results.
    """

    def __init__(self, message: str, *, kind: str = "scan-error") -> None:
        super().__init__(message)
        self.kind = kind


class FileReadSkipped(OSError):
    """Raised when a file cannot be read or decoded as UTF-8 text."""
