"""Organization: the session facade over notes, topics, paths and tags.

    org = Organization.init("/path/to/org")
    org.create_topic("ideas")               # becomes the default topic
    first = org.add_note(b"hello")          # ideas/main
    second = org.add_note(b"world")         # parent = first
    org.show_note("main:-1").id == first
    org.create_path("side", origin="main:-1")

Every mutating operation runs under the store lock (ztln.fsutil.store_lock).
Reads take no lock and rely on atomic replacement of each record.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from ztln.config import LockConfig, ResolverConfig, ZtlnConfig
from ztln.errors import AlreadyExistsError, NotFoundError
from ztln.fsutil import atomic_write, read_line, store_lock
from ztln.location import LocationResolver, Resolution
from ztln.models import HEAD_TOKEN, Note, NoteMetadata, NotePath, OrganizationInfo, Topic
from ztln.notes import NoteStore
from ztln.tags import TagIndex
from ztln.topics import TopicStore

if TYPE_CHECKING:
    from contextlib import AbstractContextManager

logger = logging.getLogger("ztln.organization")

_CURRENT_FILE = "_CURRENT"
_INDEX_FILE = "index"
_LAYOUT_DIRS = ("notes", "meta", "topics")


class Organization:
    """An attached organization directory plus its session defaults."""

    def __init__(
        self,
        base_dir: Path | str,
        *,
        lock: LockConfig | None = None,
        resolver: ResolverConfig | None = None,
    ) -> None:
        self.base_dir = Path(base_dir)
        if not is_organization(self.base_dir):
            msg = f"No organization at {self.base_dir} (run `ztln init` first)"
            raise NotFoundError(msg)
        self.lock_config = lock or LockConfig()
        resolver_config = resolver or ResolverConfig()

        self.notes = NoteStore(self.base_dir)
        self.topics = TopicStore(self.base_dir, self.notes)
        self.tags = TagIndex(self.base_dir, self.notes)
        self.resolver = LocationResolver(
            self.notes, self.topics, min_prefix_length=resolver_config.min_prefix_length
        )

    @classmethod
    def from_config(cls, cfg: ZtlnConfig) -> Organization:
        return cls(cfg.base_dir, lock=cfg.lock, resolver=cfg.resolver)

    @classmethod
    def init(
        cls,
        base_dir: Path | str,
        *,
        lock: LockConfig | None = None,
        resolver: ResolverConfig | None = None,
    ) -> Organization:
        """Create the on-disk layout at base_dir and attach to it."""
        path = Path(base_dir)
        if is_organization(path):
            msg = f"An organization already exists at {path}"
            raise AlreadyExistsError(msg)
        if path.exists() and (not path.is_dir() or any(path.iterdir())):
            msg = f"{path} exists and is not an empty directory"
            raise AlreadyExistsError(msg)

        path.mkdir(parents=True, exist_ok=True)
        with store_lock(path, retries=0):
            for name in _LAYOUT_DIRS:
                (path / name).mkdir(exist_ok=True)
            atomic_write(path / _INDEX_FILE, "")
        logger.info("organization initialised at %s", path)
        return cls(path, lock=lock, resolver=resolver)

    def _locked(self) -> AbstractContextManager[None]:
        return store_lock(
            self.base_dir,
            retries=self.lock_config.retries,
            retry_delay=self.lock_config.retry_delay,
        )

    # ------------------------------------------------------------------
    # Session defaults
    # ------------------------------------------------------------------

    def default_topic(self) -> str | None:
        """The persisted default topic, if it still exists."""
        topic = read_line(self.base_dir / _CURRENT_FILE)
        if topic is None or not self.topics.topic_exists(topic):
            return None
        return topic

    def set_default_topic(self, topic: str) -> None:
        with self._locked():
            self._require_topic(topic)
            atomic_write(self.base_dir / _CURRENT_FILE, topic + "\n")
        logger.info("default topic: %s", topic)

    def _require_topic(self, topic: str) -> None:
        if not self.topics.topic_exists(topic):
            msg = f"Topic not found: {topic}"
            raise NotFoundError(msg)

    def _effective_topic(self, topic: str | None) -> str:
        name = topic or self.default_topic()
        if name is None:
            msg = "No topic given and no default topic set (use `ztln topic default`)"
            raise NotFoundError(msg)
        self._require_topic(name)
        return name

    def _effective_path(self, topic: str, path: str | None) -> str:
        name = path
        if name is None or name == HEAD_TOKEN:
            name = self.topics.default_path(topic)
            if name is None:
                msg = f"No path given and topic {topic} has no default path"
                raise NotFoundError(msg)
        if not self.topics.path_exists(topic, name):
            msg = f"Path not found: {topic}/{name}"
            raise NotFoundError(msg)
        return name

    # ------------------------------------------------------------------
    # Topics
    # ------------------------------------------------------------------

    def create_topic(self, name: str, description: str | None = None) -> Topic:
        """Create a topic. The first topic becomes the default one."""
        with self._locked():
            topic = self.topics.create_topic(name, description)
            if self.default_topic() is None:
                atomic_write(self.base_dir / _CURRENT_FILE, name + "\n")
                logger.info("default topic: %s", name)
        return topic

    def list_topics(self) -> list[str]:
        return self.topics.list_topics()

    def get_topic(self, name: str | None = None) -> Topic:
        return self.topics.get_topic(self._effective_topic(name))

    def set_description(self, description: str, topic: str | None = None) -> None:
        with self._locked():
            self.topics.set_description(self._effective_topic(topic), description)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def create_path(self, name: str, origin: str | None = None, topic: str | None = None) -> NotePath:
        """Branch a new path at origin (default: head of the default path).

        A bare origin such as ``main:-2`` is read relative to the topic being
        branched, not the session default topic.
        """
        with self._locked():
            topic_name = self._effective_topic(topic)
            if self.topics.path_exists(topic_name, name):
                msg = f"Path already exists: {topic_name}/{name}"
                raise AlreadyExistsError(msg)
            head = self.resolver.require(origin or HEAD_TOKEN, default_topic=topic_name)
            return self.topics.create_path(topic_name, name, head)

    def list_paths(self, topic: str | None = None) -> list[NotePath]:
        topic_name = self._effective_topic(topic)
        return [self.topics.get_path(topic_name, p) for p in self.topics.list_paths(topic_name)]

    def default_path(self, topic: str | None = None) -> str | None:
        return self.topics.default_path(self._effective_topic(topic))

    def set_default_path(self, name: str, topic: str | None = None) -> None:
        with self._locked():
            self.topics.set_default_path(self._effective_topic(topic), name)

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def add_note(self, content: bytes, topic: str | None = None, path: str | None = None) -> str:
        """Append a note to topic/path and advance the path's head to it."""
        with self._locked():
            topic_name = self._effective_topic(topic)
            path_name = self._effective_path(topic_name, path)
            parent = self.topics.head(topic_name, path_name)
            note_id = self.notes.create(content, NoteMetadata(parent=parent))
            self.topics.advance_head(topic_name, path_name, note_id)
        return note_id

    def resolve(self, location: str, topic: str | None = None) -> Resolution:
        return self.resolver.resolve(location, topic or self.default_topic())

    def locate(self, location: str, topic: str | None = None) -> str:
        """Resolve location to an identifier or raise NotFound / syntax errors."""
        return self.resolver.require(location, topic or self.default_topic())

    def show_note(self, location: str) -> Note:
        note_id = self.locate(location)
        return Note(id=note_id, content=self.notes.read(note_id), metadata=self.notes.metadata(note_id))

    def reference(self, from_location: str, to_location: str) -> bool:
        """Record that the note at from_location references to_location.

        Returns False when the reference was already recorded.
        """
        with self._locked():
            source = self.locate(from_location)
            target = self.locate(to_location)
            if target in self.notes.metadata(source).references:
                return False
            self.notes.update_metadata(source, lambda m: m.with_reference(target))
        logger.info("reference added: %s -> %s", source, target)
        return True

    def log(self, location: str = HEAD_TOKEN, limit: int | None = None) -> list[str]:
        """Identifiers from location back to the root of its chain."""
        return self.resolver.history(self.locate(location), limit=limit)

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def add_tag(self, keyword: str, location: str | None = None) -> bool:
        """Tag the note at location (default: head of the default path)."""
        with self._locked():
            note_id = self.locate(location or HEAD_TOKEN)
            return self.tags.add_tag(keyword, note_id)

    def search_tag(self, keyword: str) -> list[str]:
        return self.tags.search(keyword)

    def list_tags(self) -> list[str]:
        return self.tags.list()

    # ------------------------------------------------------------------
    # Info
    # ------------------------------------------------------------------

    def info(self) -> OrganizationInfo:
        topic = self.default_topic()
        return OrganizationInfo(
            base_dir=str(self.base_dir),
            default_topic=topic,
            default_path=self.topics.default_path(topic) if topic else None,
            topics=len(self.topics.list_topics()),
            notes=self.notes.count(),
            tags=len(self.tags.list()),
        )


def is_organization(path: Path) -> bool:
    """True when path holds the ztln layout."""
    return (
        path.is_dir()
        and (path / _INDEX_FILE).is_file()
        and all((path / name).is_dir() for name in _LAYOUT_DIRS)
    )
