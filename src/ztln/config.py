"""ZtlnConfig: where the organization lives and how the store behaves.

Lookup order for the organization directory:
    1. --base-dir on the command line (passed in as ``base_dir``)
    2. ZTLN_BASE_DIR in the environment
    3. base_dir in the nearest ztln.toml (searched upward from cwd),
       relative paths resolved against the directory holding ztln.toml
    4. ./ztln next to ztln.toml, or under cwd when there is none

ztln.toml example:

    [ztln]
    base_dir = "notes"

    [lock]
    retries = 20          # extra attempts before giving up with "locked"
    retry_delay = 0.05    # seconds between attempts

    [resolver]
    min_prefix_length = 4 # shorter hex tokens are treated as path names
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

_CONFIG_FILENAME = "ztln.toml"
_ENV_BASE_DIR = "ZTLN_BASE_DIR"
_DEFAULT_BASE_DIR = "ztln"


@dataclass
class LockConfig:
    retries: int = 20
    retry_delay: float = 0.05


@dataclass
class ResolverConfig:
    min_prefix_length: int = 4


@dataclass
class ZtlnConfig:
    """Resolved configuration for one organization."""

    base_dir: Path
    root: Path | None = None        # directory that contains ztln.toml, if any
    lock: LockConfig = field(default_factory=LockConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)

    @property
    def config_path(self) -> Path | None:
        return self.root / _CONFIG_FILENAME if self.root else None


def load_config(base_dir: Path | str | None = None, start: Path | str | None = None) -> ZtlnConfig:
    """Load ztln.toml (searching upward from start or cwd) and apply overrides."""
    start_path = Path(start) if start else Path.cwd()
    root = _find_root(start_path)

    raw: dict[str, Any] = {}
    if root is not None:
        with (root / _CONFIG_FILENAME).open("rb") as f:
            raw = tomllib.load(f)

    ztln_section = raw.get("ztln", {})
    lock_section = raw.get("lock", {})
    resolver_section = raw.get("resolver", {})

    anchor = root or start_path
    if base_dir:
        resolved = Path(base_dir)
    elif os.environ.get(_ENV_BASE_DIR):
        resolved = Path(os.environ[_ENV_BASE_DIR])
    else:
        resolved = anchor / ztln_section.get("base_dir", _DEFAULT_BASE_DIR)

    retries = int(lock_section.get("retries", 20))
    if retries < 0:
        msg = f"lock.retries must be >= 0, got {retries}"
        raise ValueError(msg)

    min_prefix_length = int(resolver_section.get("min_prefix_length", 4))
    if min_prefix_length < 1:
        msg = f"resolver.min_prefix_length must be >= 1, got {min_prefix_length}"
        raise ValueError(msg)

    return ZtlnConfig(
        base_dir=resolved.expanduser().resolve(),
        root=root,
        lock=LockConfig(
            retries=retries,
            retry_delay=float(lock_section.get("retry_delay", 0.05)),
        ),
        resolver=ResolverConfig(
            min_prefix_length=min_prefix_length,
        ),
    )


def _find_root(start: Path) -> Path | None:
    """Walk upward from start looking for ztln.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).is_file():
            return directory
    return None


def init_config(root: Path, base_dir: str = _DEFAULT_BASE_DIR) -> Path:
    """Write a default ztln.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"ztln.toml already exists at {config_path}"
        raise FileExistsError(msg)

    content = f"""\
[ztln]
base_dir = "{base_dir}"

# [lock]
# retries = 20          # extra attempts before failing with "locked"
# retry_delay = 0.05    # seconds between attempts

# [resolver]
# min_prefix_length = 4 # shorter hex tokens are treated as path names
"""
    config_path.write_text(content)
    return config_path
