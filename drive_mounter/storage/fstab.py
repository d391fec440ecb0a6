"""Append-only writer for the persistent mount table.

Existing lines are never rewritten. Each new entry is written with one
open/append/close cycle, and only after its mount directory exists so a
later ``mount -a`` cannot fail on a missing target.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from drive_mounter.domain.models import MountEntry
from drive_mounter.logging import LoggerFactory
from drive_mounter.storage.exceptions import DuplicateEntryError
from drive_mounter.storage.labels import is_canonical

log = LoggerFactory.for_fstab()


def read_lines(path: Path) -> list[str]:
    try:
        # comments may hold bytes from any legacy encoding
        return path.read_text(encoding="utf-8", errors="surrogateescape").splitlines()
    except FileNotFoundError:
        return []


def contains_uuid(path: Path, uuid: str) -> bool:
    """True if ``uuid`` appears on any line of the table."""
    if not uuid:
        return False
    return any(uuid in line for line in read_lines(path))


def _uuid_of_spec(spec: str) -> Optional[str]:
    if spec.startswith("UUID="):
        return spec[len("UUID="):].strip("\"'") or None
    return None


def canonical_mountpoints(path: Path, mount_root: Path) -> dict[str, Optional[str]]:
    """Map ``Disk<N>`` labels mounted directly under ``mount_root`` to their UUID.

    Entries referenced by something other than ``UUID=`` map to None.
    """
    found: dict[str, Optional[str]] = {}
    root = os.path.normpath(str(mount_root))
    for line in read_lines(path):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        parts = stripped.split()
        if len(parts) < 2:
            continue
        target = os.path.normpath(parts[1])
        if os.path.dirname(target) != root:
            continue
        label = os.path.basename(target)
        if is_canonical(label) and label not in found:
            found[label] = _uuid_of_spec(parts[0])
    return found


def _needs_leading_newline(path: Path) -> bool:
    try:
        with open(path, "rb") as table:
            table.seek(0, os.SEEK_END)
            if table.tell() == 0:
                return False
            table.seek(-1, os.SEEK_END)
            return table.read(1) != b"\n"
    except FileNotFoundError:
        return False


def append_entry(path: Path, entry: MountEntry) -> None:
    """Create the entry's mount directory and append it to the table.

    Raises:
        DuplicateEntryError: the UUID is already present
    """
    if contains_uuid(path, entry.uuid):
        raise DuplicateEntryError(entry.uuid, str(path))

    Path(entry.mountpoint).mkdir(parents=True, exist_ok=True)

    line = entry.as_line() + "\n"
    if _needs_leading_newline(path):
        line = "\n" + line

    with open(path, "a", encoding="utf-8") as table:
        table.write(line)
        table.flush()
        os.fsync(table.fileno())

    log.info(f"Added to {path}: {entry.as_line()}")
