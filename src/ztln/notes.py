"""Read and write note content and metadata.

NoteStore is the public API:
    store = NoteStore("/path/to/org")
    note_id = store.create(b"some thought", NoteMetadata(parent=None))
    store.read(note_id)                    # -> b"some thought"
    store.update_metadata(note_id, lambda m: m.with_tag("idea"))

Layout:
    notes/<id>    # raw content bytes
    meta/<id>     # JSON metadata record

Content is installed before metadata; a note exists once meta/<id> exists.
Both records are written with tmp + fsync + rename (see ztln.fsutil).
"""

from __future__ import annotations

import bisect
import json
import logging
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING

from ztln.errors import NotFoundError, ZtlnError
from ztln.fsutil import atomic_write, list_visible
from ztln.models import NoteMetadata, new_note_id

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger("ztln.notes")

NOTE_ID_RE = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}")


class IdIndex:
    """Sorted identifier list for unambiguous-prefix lookup."""

    def __init__(self, ids: list[str] | None = None) -> None:
        self._ids: list[str] = sorted(ids or [])

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, note_id: object) -> bool:
        i = bisect.bisect_left(self._ids, note_id)  # type: ignore[arg-type]
        return i < len(self._ids) and self._ids[i] == note_id

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def add(self, note_id: str) -> None:
        if note_id not in self:
            bisect.insort(self._ids, note_id)

    def match_prefix(self, prefix: str) -> list[str]:
        """All identifiers starting with prefix, in sorted order."""
        start = bisect.bisect_left(self._ids, prefix)
        matches = []
        for note_id in self._ids[start:]:
            if not note_id.startswith(prefix):
                break
            matches.append(note_id)
        return matches


class NoteStore:
    """File-backed note store."""

    def __init__(self, base_dir: Path | str) -> None:
        self.base_dir = Path(base_dir)
        self.notes_dir = self.base_dir / "notes"
        self.meta_dir = self.base_dir / "meta"
        self._index: IdIndex | None = None
        self._index_mtime: int | None = None

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def _content_path(self, note_id: str) -> Path:
        return self.notes_dir / note_id

    def _meta_path(self, note_id: str) -> Path:
        return self.meta_dir / note_id

    def _meta_mtime(self) -> int | None:
        try:
            return os.stat(self.meta_dir).st_mtime_ns
        except FileNotFoundError:
            return None

    @property
    def index(self) -> IdIndex:
        """Identifier index, reloaded from meta/ whenever the directory changed."""
        mtime = self._meta_mtime()
        if self._index is None or mtime != self._index_mtime:
            self._index = IdIndex([n for n in list_visible(self.meta_dir) if NOTE_ID_RE.fullmatch(n)])
            self._index_mtime = mtime
        return self._index

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def exists(self, note_id: str) -> bool:
        return bool(NOTE_ID_RE.fullmatch(note_id)) and self._meta_path(note_id).is_file()

    def read(self, note_id: str) -> bytes:
        """Return the raw content of a note."""
        if not self.exists(note_id):
            msg = f"Note not found: {note_id}"
            raise NotFoundError(msg)
        return self._content_path(note_id).read_bytes()

    def metadata(self, note_id: str) -> NoteMetadata:
        """Load meta/<id>."""
        if not self.exists(note_id):
            msg = f"Note not found: {note_id}"
            raise NotFoundError(msg)
        with self._meta_path(note_id).open(encoding="utf-8") as f:
            return NoteMetadata.from_dict(json.load(f))

    def parent(self, note_id: str) -> str | None:
        return self.metadata(note_id).parent

    def match_prefix(self, prefix: str) -> list[str]:
        return self.index.match_prefix(prefix.lower())

    def list_ids(self) -> list[str]:
        return list(self.index)

    def count(self) -> int:
        return len(self.index)

    # ------------------------------------------------------------------
    # Write (caller holds the store lock)
    # ------------------------------------------------------------------

    def create(self, content: bytes, metadata: NoteMetadata) -> str:
        """Persist content then metadata. Returns the new identifier."""
        if metadata.parent is not None and not self.exists(metadata.parent):
            msg = f"Parent note not found: {metadata.parent}"
            raise NotFoundError(msg)
        for ref in metadata.references:
            if not self.exists(ref):
                msg = f"Referenced note not found: {ref}"
                raise NotFoundError(msg)

        self.notes_dir.mkdir(parents=True, exist_ok=True)
        self.meta_dir.mkdir(parents=True, exist_ok=True)

        note_id = new_note_id()
        while self._meta_path(note_id).exists():
            note_id = new_note_id()

        atomic_write(self._content_path(note_id), content)
        self._write_meta(note_id, metadata)
        self.index.add(note_id)
        self._index_mtime = self._meta_mtime()
        logger.info("note created: %s (parent=%s, %d bytes)", note_id, metadata.parent, len(content))
        return note_id

    def update_metadata(self, note_id: str, mutator: Callable[[NoteMetadata], NoteMetadata]) -> NoteMetadata:
        """Read-modify-write meta/<id>. Only references and tags may change."""
        current = self.metadata(note_id)
        updated = mutator(current)
        if updated.parent != current.parent or updated.created_at != current.created_at:
            msg = f"Note parent and creation time are immutable: {note_id}"
            raise ZtlnError(msg)
        if not set(current.references) <= set(updated.references) or not set(current.tags) <= set(updated.tags):
            msg = f"References and tags are append-only: {note_id}"
            raise ZtlnError(msg)
        if updated != current:
            self._write_meta(note_id, updated)
            logger.debug("metadata updated: %s", note_id)
        return updated

    def _write_meta(self, note_id: str, metadata: NoteMetadata) -> None:
        atomic_write(self._meta_path(note_id), json.dumps(metadata.to_dict(), indent=2) + "\n")
