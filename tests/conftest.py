"""
Shared pytest fixtures for the ztln test suite.

Every fixture works on a real organization under tmp_path; nothing is mocked
except identifier generation where a test needs predictable prefixes.

Usage in tests:
    def test_something(org):
        note_id = org.add_note(b"hello")          # ideas/main

    def test_walk(org, chain):
        # chain maps "A".."D" to ids; A <- B <- C <- D on ideas/main
        assert org.locate("main:-3") == chain["A"]
"""

import pytest

from ztln.config import LockConfig
from ztln.organization import Organization


@pytest.fixture(autouse=True)
def _no_env_base_dir(monkeypatch):
    """Keep a developer's ZTLN_BASE_DIR from leaking into tests."""
    monkeypatch.delenv("ZTLN_BASE_DIR", raising=False)


@pytest.fixture
def base_dir(tmp_path):
    return tmp_path / "org"


@pytest.fixture
def org(base_dir):
    """
    Organization with one topic, "ideas", which is the default topic.

    Lock retries are kept short so contention tests fail fast.
    """
    organization = Organization.init(base_dir, lock=LockConfig(retries=2, retry_delay=0.01))
    organization.create_topic("ideas")
    return organization


@pytest.fixture
def chain(org):
    """
    Four notes A <- B <- C <- D on ideas/main (head D).

    Returns a dict mapping each letter to its note id.
    """
    return {letter: org.add_note(letter.encode()) for letter in "ABCD"}


@pytest.fixture
def fixed_ids(monkeypatch):
    """
    Make note creation hand out the given identifiers in order.

    Example:
        def test_prefix(org, fixed_ids):
            fixed_ids("aaaa0000-0000-4000-8000-000000000001")
            org.add_note(b"x")
    """

    def install(*ids):
        pending = iter(ids)
        monkeypatch.setattr("ztln.notes.new_note_id", lambda: next(pending))

    return install
