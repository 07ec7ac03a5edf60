"""
Tests for the tag index

These tests validate:
- Tagging is idempotent
- Search keeps insertion order; unknown tags are empty, not errors
- The note's own metadata records its tags
"""

import pytest

from ztln.errors import InvalidNameError, LocationSyntaxError, NotFoundError


class TestAddTag:
    def test_tag_twice_is_one_entry(self, org, chain):
        assert org.add_tag("x", "main:-1") is True
        assert org.add_tag("x", "main:-1") is False
        assert org.search_tag("x") == [chain["C"]]
        assert org.notes.metadata(chain["C"]).tags == ("x",)

    def test_default_location_is_head(self, org, chain):
        org.add_tag("latest")
        assert org.search_tag("latest") == [chain["D"]]

    def test_unresolved_location(self, org, chain):
        with pytest.raises(NotFoundError):
            org.add_tag("x", "wrongpath")
        assert org.list_tags() == []

    def test_malformed_location(self, org, chain):
        with pytest.raises(LocationSyntaxError):
            org.add_tag("x", "wrong/address/format#")

    def test_invalid_tag(self, org, chain):
        with pytest.raises(InvalidNameError):
            org.add_tag("a,b")

    def test_no_notes_yet(self, org):
        with pytest.raises(NotFoundError):
            org.add_tag("x")


class TestSearch:
    def test_insertion_order(self, org, chain):
        for letter in "DAC":
            org.add_tag("pick", chain[letter])
        assert org.search_tag("pick") == [chain["D"], chain["A"], chain["C"]]

    def test_unknown_tag_is_empty(self, org, chain):
        assert org.search_tag("never-used") == []

    def test_list_in_first_use_order(self, org, chain):
        org.add_tag("b", chain["A"])
        org.add_tag("a", chain["B"])
        org.add_tag("b", chain["C"])
        assert org.list_tags() == ["b", "a"]


class TestIndexFile:
    def test_line_format(self, org, chain):
        org.add_tag("x", chain["A"])
        org.add_tag("x", chain["B"])
        org.add_tag("y", chain["A"])
        lines = (org.base_dir / "index").read_text().splitlines()
        assert lines == [f"x:{chain['A']},{chain['B']}", f"y:{chain['A']}"]

    def test_index_survives_reattach(self, org, chain):
        from ztln.organization import Organization

        org.add_tag("x", chain["A"])
        again = Organization(org.base_dir)
        assert again.search_tag("x") == [chain["A"]]
