"""Exception taxonomy shared by the store, the resolver and the CLI.

Every class carries the exit code the front-end maps it to. Storage failures
are plain OSError and propagate untouched (exit code 1).
"""

from __future__ import annotations


class ZtlnError(Exception):
    """Base class for all ztln errors."""

    exit_code = 1


class LocationSyntaxError(ZtlnError):
    """A location string (or entity name) does not match the grammar."""

    exit_code = 2


class InvalidNameError(LocationSyntaxError):
    """A topic, path or tag name is not a valid token."""


class NotFoundError(ZtlnError):
    """A well-formed address or name matched nothing."""

    exit_code = 3


class AlreadyExistsError(ZtlnError):
    """Name collision on create. Nothing was written."""

    exit_code = 4


class AmbiguousError(ZtlnError):
    """An identifier prefix matched more than one note."""

    exit_code = 5

    def __init__(self, prefix: str, candidates: list[str]) -> None:
        self.prefix = prefix
        self.candidates = candidates
        shown = ", ".join(candidates[:5])
        more = f" (+{len(candidates) - 5} more)" if len(candidates) > 5 else ""
        super().__init__(f"Ambiguous prefix {prefix!r} matches {len(candidates)} notes: {shown}{more}")


class LockedError(ZtlnError):
    """The store lock is held by another process."""

    exit_code = 6
