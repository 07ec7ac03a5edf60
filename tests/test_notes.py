"""
Tests for NoteStore — content and metadata persistence

These tests validate:
- Content round-trips byte for byte
- parent and created_at never change after creation
- references and tags only grow
- Interrupted writes leave the previous record intact
"""

import dataclasses
import json
import os

import pytest

from ztln.errors import NotFoundError, ZtlnError
from ztln.fsutil import atomic_write
from ztln.models import NoteMetadata
from ztln.notes import IdIndex, NoteStore


@pytest.fixture
def store(tmp_path):
    return NoteStore(tmp_path)


class TestRoundTrip:
    @pytest.mark.parametrize("content", [b"", b"plain text", "ünïcødé\n".encode(), bytes(range(256))])
    def test_store_returns_exact_bytes(self, store, content):
        note_id = store.create(content, NoteMetadata())
        assert store.read(note_id) == content

    def test_add_then_show(self, org):
        content = b"\x00binary\xffpayload\n"
        note_id = org.add_note(content)
        shown = org.show_note(note_id)
        assert shown.content == content
        assert shown.id == note_id

    def test_metadata_file_is_json(self, store):
        parent = store.create(b"p", NoteMetadata())
        child = store.create(b"c", NoteMetadata(parent=parent))
        raw = json.loads((store.meta_dir / child).read_text())
        assert raw["parent"] == parent
        assert raw["references"] == []
        assert raw["tags"] == []
        assert raw["created_at"]

    def test_identifier_is_canonical_uuid(self, store):
        note_id = store.create(b"x", NoteMetadata())
        assert len(note_id) == 36
        assert note_id == note_id.lower()
        assert note_id.count("-") == 4


class TestMissingNotes:
    def test_read_unknown_raises(self, store):
        with pytest.raises(NotFoundError):
            store.read("00000000-0000-4000-8000-000000000000")

    def test_update_unknown_raises(self, store):
        with pytest.raises(NotFoundError):
            store.update_metadata("00000000-0000-4000-8000-000000000000", lambda m: m)

    def test_unknown_parent_rejected(self, store):
        with pytest.raises(NotFoundError):
            store.create(b"x", NoteMetadata(parent="00000000-0000-4000-8000-000000000000"))
        assert store.count() == 0


class TestImmutability:
    def test_parent_cannot_change(self, store):
        parent = store.create(b"p", NoteMetadata())
        child = store.create(b"c", NoteMetadata(parent=parent))
        with pytest.raises(ZtlnError):
            store.update_metadata(child, lambda m: dataclasses.replace(m, parent=None))
        assert store.parent(child) == parent

    def test_metadata_is_frozen(self):
        meta = NoteMetadata()
        with pytest.raises(dataclasses.FrozenInstanceError):
            meta.parent = "x"  # type: ignore[misc]

    def test_tags_only_grow(self, store):
        note_id = store.create(b"x", NoteMetadata())
        store.update_metadata(note_id, lambda m: m.with_tag("a"))
        with pytest.raises(ZtlnError):
            store.update_metadata(note_id, lambda m: dataclasses.replace(m, tags=()))
        assert store.metadata(note_id).tags == ("a",)

    def test_with_reference_is_idempotent(self):
        meta = NoteMetadata().with_reference("r").with_reference("r")
        assert meta.references == ("r",)


class TestDurability:
    def test_failed_write_keeps_old_record(self, tmp_path, monkeypatch):
        target = tmp_path / "record"
        atomic_write(target, "old\n")

        def broken_fsync(fd):
            raise OSError("disk full")

        monkeypatch.setattr("ztln.fsutil.os.fsync", broken_fsync)
        with pytest.raises(OSError):
            atomic_write(target, "new\n")
        assert target.read_text() == "old\n"
        assert os.listdir(tmp_path) == ["record"]

    def test_orphaned_temporaries_are_ignored(self, store):
        note_id = store.create(b"x", NoteMetadata())
        (store.meta_dir / f".{note_id}.deadbeef.tmp").write_text("{")
        (store.notes_dir / ".junk.tmp").write_bytes(b"partial")
        assert store.list_ids() == [note_id]
        assert store.match_prefix(note_id[:4]) == [note_id]


class TestIdIndex:
    def test_prefix_range(self):
        index = IdIndex(["abc1", "abd2", "abc3", "b000"])
        assert index.match_prefix("abc") == ["abc1", "abc3"]
        assert index.match_prefix("ab") == ["abc1", "abc3", "abd2"]
        assert index.match_prefix("c") == []

    def test_add_keeps_order_and_uniqueness(self):
        index = IdIndex(["b"])
        index.add("a")
        index.add("b")
        assert list(index) == ["a", "b"]
        assert "a" in index

    def test_store_sees_notes_written_elsewhere(self, tmp_path):
        first = NoteStore(tmp_path)
        second = NoteStore(tmp_path)
        assert first.count() == 0
        note_id = second.create(b"x", NoteMetadata())
        assert first.match_prefix(note_id[:6]) == [note_id]
