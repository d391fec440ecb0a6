"""Mount-option policy: option string plus any on-device prerequisites."""

from __future__ import annotations

from pathlib import Path

from drive_mounter.domain.models import BlockPartition
from drive_mounter.storage.btrfs import ensure_subvolume
from drive_mounter.storage.filesystems import get_profile, mount_options


def mount_options_for(partition: BlockPartition, label: str, mount_root: Path) -> str:
    """Return the option string for ``partition`` once it is safe to use.

    For filesystems mounted through a subvolume the subvolume is bootstrapped
    first; ``SubvolumeBootstrapError`` propagates and no options are returned.
    """
    if get_profile(partition.fstype).needs_subvolume:
        ensure_subvolume(partition, label, mount_root)
    return mount_options(partition.fstype, label)
