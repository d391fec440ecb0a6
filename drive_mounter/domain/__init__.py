"""Domain models for partition provisioning."""

from __future__ import annotations

from .models import (
    BlockPartition,
    FsType,
    FstabBackup,
    MountEntry,
)


__all__ = [
    "BlockPartition",
    "FsType",
    "FstabBackup",
    "MountEntry",
]
