"""Location resolution: human-relative addresses to note identifiers.

Accepted forms:
    3f2a9c1e-...-...            full identifier
    3f2a                        unambiguous identifier prefix
    main                        path in the default topic
    ideas/main                  path in an explicit topic
    ideas/HEAD                  the topic's default path
    ideas/main:-2               second ancestor of the head of ideas/main

resolve() never raises for "nothing matched" or "bad syntax": it returns
Resolved, Unresolved or Malformed. Only a prefix matching several notes
raises (AmbiguousError). require() converts the result into an identifier or
the matching ZtlnError for callers that want exceptions.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ztln.errors import AmbiguousError, LocationSyntaxError, NotFoundError
from ztln.models import HEAD_TOKEN, NAME_PATTERN
from ztln.notes import NOTE_ID_RE

if TYPE_CHECKING:
    from ztln.notes import NoteStore
    from ztln.topics import TopicStore

logger = logging.getLogger("ztln.location")

_LOCATION_RE = re.compile(
    rf"(?:(?P<topic>{NAME_PATTERN})/)?(?P<path>{NAME_PATTERN})(?::-(?P<ancestor>[0-9]+))?"
)
_PREFIX_RE = re.compile(r"[0-9a-f][0-9a-f-]*")


@dataclass(frozen=True)
class Resolved:
    note_id: str


@dataclass(frozen=True)
class Unresolved:
    reason: str


@dataclass(frozen=True)
class Malformed:
    reason: str


Resolution = Resolved | Unresolved | Malformed


@dataclass(frozen=True)
class Location:
    """A parsed ``[topic/]path[:-N]`` address."""

    path: str
    topic: str | None = None
    ancestor: int = 0


def parse_location(text: str) -> Location | Malformed:
    """Parse the structural form. Identifiers are not recognised here."""
    m = _LOCATION_RE.fullmatch(text)
    if m is None:
        return Malformed(f"Invalid location: {text!r} (expected [topic/]path[:-N])")
    return Location(
        path=m.group("path"),
        topic=m.group("topic"),
        ancestor=int(m.group("ancestor") or 0),
    )


class LocationResolver:
    def __init__(self, notes: NoteStore, topics: TopicStore, *, min_prefix_length: int = 4) -> None:
        self.notes = notes
        self.topics = topics
        self.min_prefix_length = min_prefix_length

    def resolve(self, location: str, default_topic: str | None = None) -> Resolution:
        """Resolve location. default_topic applies when no topic is spelled out."""
        text = location
        if not text:
            return Malformed("Empty location")

        lowered = text.lower()
        if NOTE_ID_RE.fullmatch(lowered):
            if self.notes.exists(lowered):
                return Resolved(lowered)
            return Unresolved(f"No note with id {lowered}")

        # Prefixes are lowercase only; "Cafe" is a path name, never an id.
        if len(text) >= self.min_prefix_length and _PREFIX_RE.fullmatch(text):
            matches = self.notes.match_prefix(text)
            if len(matches) > 1:
                raise AmbiguousError(text, matches)
            if matches:
                return Resolved(matches[0])
            logger.debug("no id matches prefix %r, trying it as a path", text)

        parsed = parse_location(text)
        if isinstance(parsed, Malformed):
            return parsed
        return self._walk(parsed, default_topic)

    def _walk(self, loc: Location, default_topic: str | None) -> Resolution:
        topic = loc.topic or default_topic
        if topic is None:
            return Unresolved("No topic given and no default topic set")
        if not self.topics.topic_exists(topic):
            return Unresolved(f"Topic not found: {topic}")

        path = loc.path
        if path == HEAD_TOKEN:
            default_path = self.topics.default_path(topic)
            if default_path is None:
                return Unresolved(f"Topic {topic} has no default path")
            path = default_path
        if not self.topics.path_exists(topic, path):
            return Unresolved(f"Path not found: {topic}/{path}")

        note_id = self.topics.head(topic, path)
        if note_id is None:
            return Unresolved(f"Path {topic}/{path} has no notes yet")

        for step in range(loc.ancestor):
            parent = self.notes.parent(note_id)
            if parent is None:
                return Unresolved(f"{topic}/{path} has only {step} ancestor(s), asked for {loc.ancestor}")
            note_id = parent
        return Resolved(note_id)

    def require(self, location: str, default_topic: str | None = None) -> str:
        """Like resolve() but returns the identifier or raises."""
        result = self.resolve(location, default_topic)
        if isinstance(result, Malformed):
            raise LocationSyntaxError(result.reason)
        if isinstance(result, Unresolved):
            msg = f"Nothing found at {location!r}: {result.reason}"
            raise NotFoundError(msg)
        return result.note_id

    def history(self, note_id: str, limit: int | None = None) -> list[str]:
        """note_id followed by its ancestors, newest first."""
        chain: list[str] = []
        current: str | None = note_id
        while current is not None and (limit is None or len(chain) < limit):
            chain.append(current)
            current = self.notes.parent(current)
        return chain
