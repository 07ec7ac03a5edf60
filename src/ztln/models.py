"""Data models for the note graph."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from ztln.errors import InvalidNameError

MAIN_PATH = "main"
HEAD_TOKEN = "HEAD"

# Topic, path and tag names. Word characters, dots and dashes; no leading dot or dash.
NAME_PATTERN = r"\w[\w.-]*"
_NAME_RE = re.compile(NAME_PATTERN)


def new_note_id() -> str:
    """Generate a note identifier: canonical lowercase hyphenated UUID4."""
    return str(uuid.uuid4())


def validate_name(name: str, kind: str = "name") -> str:
    """Return name unchanged if it is a valid token, else raise InvalidNameError."""
    if not name or not _NAME_RE.fullmatch(name):
        msg = f"Invalid {kind}: {name!r}"
        raise InvalidNameError(msg)
    return name


@dataclass(frozen=True)
class NoteMetadata:
    """Metadata stored in meta/<id>.

    ``parent`` and ``created_at`` are fixed at creation. ``references`` and
    ``tags`` only grow, through :meth:`with_reference` and :meth:`with_tag`.
    """

    created_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    parent: str | None = None
    references: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()

    def with_reference(self, note_id: str) -> NoteMetadata:
        if note_id in self.references:
            return self
        return replace(self, references=(*self.references, note_id))

    def with_tag(self, tag: str) -> NoteMetadata:
        if tag in self.tags:
            return self
        return replace(self, tags=(*self.tags, tag))

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> NoteMetadata:
        return cls(
            created_at=d.get("created_at", ""),
            parent=d.get("parent"),
            references=tuple(d.get("references", [])),
            tags=tuple(d.get("tags", [])),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "created_at": self.created_at,
            "parent": self.parent,
            "references": list(self.references),
            "tags": list(self.tags),
        }


@dataclass
class Note:
    """A note loaded for display: content plus metadata."""

    id: str
    content: bytes
    metadata: NoteMetadata

    @property
    def parent(self) -> str | None:
        return self.metadata.parent

    def text(self, errors: str = "replace") -> str:
        return self.content.decode("utf-8", errors=errors)


@dataclass
class NotePath:
    """A named pointer inside a topic."""

    topic: str
    name: str
    head: str | None = None


@dataclass
class Topic:
    """A topic directory under topics/<name>/."""

    name: str
    default_path: str | None = None
    description: str | None = None
    paths: list[str] = field(default_factory=list)


@dataclass
class OrganizationInfo:
    """Summary returned by Organization.info()."""

    base_dir: str
    default_topic: str | None
    default_path: str | None
    topics: int = 0
    notes: int = 0
    tags: int = 0
