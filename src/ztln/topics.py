"""Topics and their paths.

Layout under the organization root:
    topics/<name>/_HEAD          # default path name (absent if none)
    topics/<name>/description    # free text (optional)
    topics/<name>/paths/<path>   # head identifier (empty while unset)

A new topic is assembled in a hidden sibling directory and renamed into
place, so readers never see a topic without its ``main`` path. Writers must
hold the store lock.
"""

from __future__ import annotations

import contextlib
import logging
import secrets
import shutil
from pathlib import Path

from ztln.errors import AlreadyExistsError, InvalidNameError, NotFoundError
from ztln.fsutil import atomic_write, fsync_dir, list_visible, read_line
from ztln.models import HEAD_TOKEN, MAIN_PATH, NotePath, Topic, validate_name
from ztln.notes import NoteStore

logger = logging.getLogger("ztln.topics")

_DEFAULT_PATH_FILE = "_HEAD"
_DESCRIPTION_FILE = "description"


class TopicStore:
    def __init__(self, base_dir: Path | str, notes: NoteStore) -> None:
        self.topics_dir = Path(base_dir) / "topics"
        self.notes = notes

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def _topic_dir(self, topic: str) -> Path:
        return self.topics_dir / topic

    def _path_file(self, topic: str, path: str) -> Path:
        return self._topic_dir(topic) / "paths" / path

    def _require_topic(self, topic: str) -> None:
        if not self.topic_exists(topic):
            msg = f"Topic not found: {topic}"
            raise NotFoundError(msg)

    def _require_path(self, topic: str, path: str) -> None:
        self._require_topic(topic)
        if not self.path_exists(topic, path):
            msg = f"Path not found: {topic}/{path}"
            raise NotFoundError(msg)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def topic_exists(self, topic: str) -> bool:
        try:
            validate_name(topic, "topic")
        except InvalidNameError:
            return False
        return self._topic_dir(topic).is_dir()

    def path_exists(self, topic: str, path: str) -> bool:
        try:
            validate_name(path, "path")
        except InvalidNameError:
            return False
        return self._path_file(topic, path).is_file()

    def list_topics(self) -> list[str]:
        return [name for name in list_visible(self.topics_dir) if self._topic_dir(name).is_dir()]

    def list_paths(self, topic: str) -> list[str]:
        self._require_topic(topic)
        return list_visible(self._topic_dir(topic) / "paths")

    def get_topic(self, topic: str) -> Topic:
        self._require_topic(topic)
        return Topic(
            name=topic,
            default_path=self.default_path(topic),
            description=self.description(topic),
            paths=self.list_paths(topic),
        )

    def get_path(self, topic: str, path: str) -> NotePath:
        return NotePath(topic=topic, name=path, head=self.head(topic, path))

    def head(self, topic: str, path: str) -> str | None:
        """Current head of topic/path, or None while the path is empty."""
        self._require_path(topic, path)
        return read_line(self._path_file(topic, path))

    def default_path(self, topic: str) -> str | None:
        self._require_topic(topic)
        return read_line(self._topic_dir(topic) / _DEFAULT_PATH_FILE)

    def description(self, topic: str) -> str | None:
        self._require_topic(topic)
        try:
            return (self._topic_dir(topic) / _DESCRIPTION_FILE).read_text(encoding="utf-8") or None
        except FileNotFoundError:
            return None

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def create_topic(self, topic: str, description: str | None = None) -> Topic:
        """Create topics/<topic>/ with an empty ``main`` path as its default."""
        validate_name(topic, "topic")
        target = self._topic_dir(topic)
        if target.exists():
            msg = f"Topic already exists: {topic}"
            raise AlreadyExistsError(msg)

        self.topics_dir.mkdir(parents=True, exist_ok=True)
        staging = self.topics_dir / f".{topic}.{secrets.token_hex(4)}.tmp"
        try:
            (staging / "paths").mkdir(parents=True)
            atomic_write(staging / "paths" / MAIN_PATH, "")
            atomic_write(staging / _DEFAULT_PATH_FILE, MAIN_PATH + "\n")
            if description:
                atomic_write(staging / _DESCRIPTION_FILE, description)
            staging.rename(target)
        except BaseException:
            with contextlib.suppress(OSError):
                shutil.rmtree(staging)
            raise
        fsync_dir(self.topics_dir)
        logger.info("topic created: %s", topic)
        return Topic(name=topic, default_path=MAIN_PATH, description=description, paths=[MAIN_PATH])

    def create_path(self, topic: str, path: str, head: str | None) -> NotePath:
        """Create topic/path pointing at head. Only the pointer is copied."""
        validate_name(path, "path")
        if path == HEAD_TOKEN:
            msg = f"{HEAD_TOKEN!r} is reserved and cannot name a path"
            raise InvalidNameError(msg)
        self._require_topic(topic)
        if self.path_exists(topic, path):
            msg = f"Path already exists: {topic}/{path}"
            raise AlreadyExistsError(msg)
        if head is not None and not self.notes.exists(head):
            msg = f"Note not found: {head}"
            raise NotFoundError(msg)

        path_file = self._path_file(topic, path)
        path_file.parent.mkdir(parents=True, exist_ok=True)
        atomic_write(path_file, f"{head}\n" if head else "")
        logger.info("path created: %s/%s at %s", topic, path, head)
        return NotePath(topic=topic, name=path, head=head)

    def set_default_path(self, topic: str, path: str) -> None:
        self._require_path(topic, path)
        atomic_write(self._topic_dir(topic) / _DEFAULT_PATH_FILE, path + "\n")
        logger.info("default path for %s: %s", topic, path)

    def set_description(self, topic: str, description: str) -> None:
        self._require_topic(topic)
        atomic_write(self._topic_dir(topic) / _DESCRIPTION_FILE, description)

    def advance_head(self, topic: str, path: str, note_id: str) -> None:
        """Point topic/path at note_id, which must already be persisted."""
        self._require_path(topic, path)
        if not self.notes.exists(note_id):
            msg = f"Note not found: {note_id}"
            raise NotFoundError(msg)
        atomic_write(self._path_file(topic, path), note_id + "\n")
        logger.info("head advanced: %s/%s -> %s", topic, path, note_id)
