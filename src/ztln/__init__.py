"""File-backed note graph: topics hold paths, paths point at chains of notes.

Layout:
    <base_dir>/
        index                       # tag -> comma-separated note ids, one tag per line
        _CURRENT                    # default topic name (absent if none)
        notes/<id>                  # raw content bytes
        meta/<id>                   # JSON: created_at, parent, references, tags
        topics/<name>/_HEAD         # default path name
        topics/<name>/description   # free text (optional)
        topics/<name>/paths/<path>  # head note id (empty while unset)

Notes are immutable; each records the head of its path at creation time as its
parent, so the graph is a forest. Locations such as ``ideas/main:-2`` resolve
to note ids through ztln.location.

Concurrent writes: every record is replaced atomically (tmp + fsync + rename)
and every mutation holds flock(LOCK_EX) on <base_dir>/.lock.
"""

from ztln.config import ZtlnConfig, load_config
from ztln.errors import (
    AlreadyExistsError,
    AmbiguousError,
    InvalidNameError,
    LocationSyntaxError,
    LockedError,
    NotFoundError,
    ZtlnError,
)
from ztln.location import Malformed, Resolved, Unresolved
from ztln.models import Note, NoteMetadata, NotePath, Topic
from ztln.organization import Organization

__all__ = [
    "AlreadyExistsError",
    "AmbiguousError",
    "InvalidNameError",
    "LocationSyntaxError",
    "LockedError",
    "Malformed",
    "Note",
    "NoteMetadata",
    "NotePath",
    "NotFoundError",
    "Organization",
    "Resolved",
    "Topic",
    "Unresolved",
    "ZtlnConfig",
    "ZtlnError",
    "load_config",
]
