"""Custom exceptions for unidep."""

from __future__ import annotations


class UnidepError(Exception):
    """Base exception for all unidep errors."""


class ParseFailure(UnidepError):
    """Raised when a build file cannot be fully parsed.

    Scanners never let this escape: it is recorded as a ``ScanWarning`` on the
    file result and the records matched before the failure point are kept.
    """

    def __init__(self, file_path: str, reason: str) -> None:
        self.file_path = file_path
        self.reason = reason
        super().__init__(f"{file_path}: {reason}")


class EditRejected(UnidepError):
    """Raised when a mutator refuses to compute a new file body."""


class StaleRangeError(EditRejected):
    """Raised when a record's source range no longer matches the file text."""


class AmbiguousDeclarationError(EditRejected):
    """Raised when an edit target matches more than one declaration."""

    def __init__(self, coordinate: str, count: int) -> None:
        self.coordinate = coordinate
        self.count = count
        super().__init__(
            f"'{coordinate}' matches {count} declarations; refusing to guess which one to edit"
        )


class UnsupportedEditError(EditRejected):
    """Raised when the declaration cannot be edited in place (managed or catalog versions)."""


class UpstreamUnavailableError(UnidepError):
    """Raised when a remote registry cannot be reached or returns garbage."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}")
