"""Tag index: the ``index`` file at the organization root.

One line per tag, in first-use order:
    idea:0b6c...-...,5f1e...-...
    todo:5f1e...-...

Identifiers under a tag keep insertion order and never repeat. The whole file
is rewritten atomically on every change; the caller holds the store lock.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ztln.fsutil import atomic_write
from ztln.models import validate_name
from ztln.notes import NoteStore

logger = logging.getLogger("ztln.tags")


class TagIndex:
    def __init__(self, base_dir: Path | str, notes: NoteStore) -> None:
        self.path = Path(base_dir) / "index"
        self.notes = notes

    def _load(self) -> dict[str, list[str]]:
        entries: dict[str, list[str]] = {}
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return entries
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            tag, _, ids = line.partition(":")
            bucket = entries.setdefault(tag, [])
            for note_id in ids.split(","):
                note_id = note_id.strip()
                if note_id and note_id not in bucket:
                    bucket.append(note_id)
        return entries

    def _save(self, entries: dict[str, list[str]]) -> None:
        lines = [f"{tag}:{','.join(ids)}\n" for tag, ids in entries.items()]
        atomic_write(self.path, "".join(lines))

    def add_tag(self, tag: str, note_id: str) -> bool:
        """Associate tag with note_id. Returns False if it was already there."""
        validate_name(tag, "tag")
        self.notes.update_metadata(note_id, lambda m: m.with_tag(tag))

        entries = self._load()
        bucket = entries.setdefault(tag, [])
        if note_id in bucket:
            return False
        bucket.append(note_id)
        self._save(entries)
        logger.info("tag added: %s -> %s", tag, note_id)
        return True

    def search(self, tag: str) -> list[str]:
        """Identifiers tagged with tag, oldest first. Unknown tags yield []."""
        return list(self._load().get(tag, []))

    def list(self) -> list[str]:
        return list(self._load())
