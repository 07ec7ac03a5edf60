"""
Tests for topics and paths

These tests validate:
- A new topic has an empty "main" path
- Names are unique and validated
- Branching copies only the head pointer
- Defaults must name existing entities
"""

import pytest

from ztln.errors import AlreadyExistsError, InvalidNameError, LocationSyntaxError, NotFoundError


class TestTopicCreation:
    def test_new_topic_has_empty_main(self, org):
        org.create_topic("reading")
        paths = org.list_paths("reading")
        assert [(p.name, p.head) for p in paths] == [("main", None)]
        assert "reading" in org.list_topics()

    def test_main_is_default_path(self, org):
        org.create_topic("reading")
        assert org.default_path("reading") == "main"

    def test_on_disk_layout(self, org):
        org.create_topic("reading", description="books")
        topic_dir = org.base_dir / "topics" / "reading"
        assert (topic_dir / "paths" / "main").read_text() == ""
        assert (topic_dir / "_HEAD").read_text() == "main\n"
        assert (topic_dir / "description").read_text() == "books"

    def test_duplicate_topic_rejected(self, org):
        with pytest.raises(AlreadyExistsError):
            org.create_topic("ideas")
        assert org.list_topics() == ["ideas"]

    @pytest.mark.parametrize("name", ["", "a/b", "a:b", ".hidden", "-dash", "has space"])
    def test_invalid_names_rejected(self, org, name):
        with pytest.raises(InvalidNameError):
            org.create_topic(name)

    def test_invalid_name_is_a_syntax_error(self):
        assert issubclass(InvalidNameError, LocationSyntaxError)

    def test_staging_directories_are_not_topics(self, org):
        (org.base_dir / "topics" / ".half.1234abcd.tmp" / "paths").mkdir(parents=True)
        assert org.list_topics() == ["ideas"]

    def test_description_roundtrip(self, org):
        org.set_description("loose thoughts")
        assert org.get_topic().description == "loose thoughts"


class TestDefaultTopic:
    def test_first_topic_becomes_default(self, org):
        assert org.default_topic() == "ideas"
        assert (org.base_dir / "_CURRENT").read_text() == "ideas\n"

    def test_later_topics_do_not_steal_default(self, org):
        org.create_topic("reading")
        assert org.default_topic() == "ideas"

    def test_set_default_topic(self, org):
        org.create_topic("reading")
        org.set_default_topic("reading")
        assert org.default_topic() == "reading"

    def test_set_unknown_default_topic(self, org):
        with pytest.raises(NotFoundError):
            org.set_default_topic("nope")
        assert org.default_topic() == "ideas"


class TestPaths:
    def test_branch_points_at_origin(self, org, chain):
        created = org.create_path("path1", origin="main:-2")
        assert created.head == chain["B"]
        assert org.topics.head("ideas", "path1") == chain["B"]

    def test_branch_isolation(self, org, chain):
        org.create_path("path1", origin="main:-2")
        new_id = org.add_note(b"E", path="path1")
        assert org.topics.head("ideas", "main") == chain["D"]
        assert org.topics.head("ideas", "path1") == new_id
        assert org.notes.parent(new_id) == chain["B"]

    def test_branch_defaults_to_head(self, org, chain):
        assert org.create_path("copy").head == chain["D"]

    def test_bare_origin_is_relative_to_branched_topic(self, org, chain):
        org.create_topic("reading")
        other = org.add_note(b"R", topic="reading")
        created = org.create_path("fork", origin="main", topic="reading")
        assert created.head == other
        assert created.topic == "reading"

    def test_duplicate_path_rejected(self, org, chain):
        with pytest.raises(AlreadyExistsError):
            org.create_path("main")

    def test_unresolvable_origin(self, org, chain):
        with pytest.raises(NotFoundError):
            org.create_path("p", origin="main:-9")
        assert not org.topics.path_exists("ideas", "p")

    def test_malformed_origin(self, org, chain):
        with pytest.raises(LocationSyntaxError):
            org.create_path("p", origin="main:-x")

    def test_branch_from_empty_path_fails(self, org):
        with pytest.raises(NotFoundError):
            org.create_path("p")

    def test_head_is_reserved(self, org, chain):
        with pytest.raises(InvalidNameError):
            org.create_path("HEAD")

    def test_set_default_path(self, org, chain):
        org.create_path("side")
        org.set_default_path("side")
        assert org.default_path() == "side"
        assert org.add_note(b"E") == org.topics.head("ideas", "side")

    def test_set_unknown_default_path(self, org):
        with pytest.raises(NotFoundError):
            org.set_default_path("nope")

    def test_path_file_holds_head(self, org, chain):
        assert (org.base_dir / "topics" / "ideas" / "paths" / "main").read_text() == chain["D"] + "\n"


class TestAddNote:
    def test_parent_is_previous_head(self, org):
        first = org.add_note(b"1")
        second = org.add_note(b"2")
        assert org.notes.parent(first) is None
        assert org.notes.parent(second) == first

    def test_unknown_path(self, org):
        with pytest.raises(NotFoundError):
            org.add_note(b"x", path="nope")

    def test_unknown_topic(self, org):
        with pytest.raises(NotFoundError):
            org.add_note(b"x", topic="nope")
        assert org.notes.count() == 0

    def test_no_default_topic(self, tmp_path):
        from ztln.organization import Organization

        empty = Organization.init(tmp_path / "empty")
        with pytest.raises(NotFoundError):
            empty.add_note(b"x")
