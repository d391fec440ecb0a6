"""Domain model for partition provisioning.

Typed records replace the raw lsblk/blkid dicts so decisions are made on one
snapshot per run instead of re-querying live state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


# ==============================================================================
# Filesystem Domain
# ==============================================================================


class FsType(Enum):
    """Filesystem kinds the provisioner knows about."""

    EXT4 = "ext4"
    XFS = "xfs"
    BTRFS = "btrfs"
    NTFS = "ntfs"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: str | None) -> FsType:
        """Parse a blkid TYPE value, mapping anything unrecognised to UNKNOWN."""
        if not value:
            return cls.UNKNOWN
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return cls.UNKNOWN


# ==============================================================================
# Partition Domain
# ==============================================================================


@dataclass(frozen=True)
class BlockPartition:
    """A partition as seen by one enumeration pass."""

    path: str  # e.g., "/dev/sdb1"
    name: str  # e.g., "sdb1"
    kind: str  # "part" or "disk"
    fstype: FsType
    uuid: str  # empty when unset
    label: str = ""  # on-disk label, possibly empty or non-canonical
    mountpoint: str = ""

    @classmethod
    def from_probe(cls, device: dict[str, Any], probe: dict[str, str]) -> BlockPartition:
        """Build a partition from an lsblk node and its blkid export values.

        Args:
            device: lsblk JSON node with keys name, path, type, mountpoint
            probe: parsed ``blkid -o export`` values (TYPE, UUID, LABEL)
        """
        name = device["name"]
        path = device.get("path") or f"/dev/{name}"
        return cls(
            path=path,
            name=name,
            kind=device.get("type") or "",
            fstype=FsType.from_string(probe.get("TYPE")),
            uuid=(probe.get("UUID") or "").strip(),
            label=(probe.get("LABEL") or "").strip(),
            mountpoint=device.get("mountpoint") or "",
        )


# ==============================================================================
# Mount Table Domain
# ==============================================================================


@dataclass(frozen=True)
class MountEntry:
    """One line of the mount table, keyed by filesystem UUID."""

    uuid: str
    mountpoint: str
    fstype: str
    options: str
    dump: int = 0
    passno: int = 2

    @property
    def spec(self) -> str:
        return f"UUID={self.uuid}"

    def as_line(self) -> str:
        return " ".join(
            (
                self.spec,
                self.mountpoint,
                self.fstype,
                self.options,
                str(self.dump),
                str(self.passno),
            )
        )


@dataclass(frozen=True)
class FstabBackup:
    """A copy of the mount table taken before the first append."""

    source: Path
    path: Path
    created_at: datetime
