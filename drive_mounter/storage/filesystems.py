"""Per-filesystem behaviour: mount options and native relabel commands.

Supported Filesystems:
    ext4:   ordered journal, 60s commit, remount read-only on errors
    xfs:    64-bit inodes, 1 MiB preallocation, 8 log buffers
    btrfs:  zstd compression, autodefrag, v2 space cache, mounted via a
            per-label subvolume ``@<label>``
    ntfs:   optional variant, only offered when enabled in settings

Every kind mounts with ``nofail`` and ``noatime`` so a missing data disk never
blocks boot.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from drive_mounter.domain.models import BlockPartition, FsType


@dataclass(frozen=True)
class FilesystemProfile:
    fstype: FsType
    options: str
    relabel_tool: str
    relabel_argv: Callable[[str, str], list[str]]
    needs_subvolume: bool = False


FILESYSTEMS: dict[FsType, FilesystemProfile] = {
    FsType.EXT4: FilesystemProfile(
        fstype=FsType.EXT4,
        options="defaults,nofail,noatime,data=ordered,commit=60,errors=remount-ro",
        relabel_tool="e2label",
        relabel_argv=lambda device, label: ["e2label", device, label],
    ),
    FsType.XFS: FilesystemProfile(
        fstype=FsType.XFS,
        options="defaults,nofail,noatime,attr2,inode64,allocsize=1m,logbufs=8",
        relabel_tool="xfs_admin",
        relabel_argv=lambda device, label: ["xfs_admin", "-L", label, device],
    ),
    FsType.BTRFS: FilesystemProfile(
        fstype=FsType.BTRFS,
        options="nofail,noatime,compress=zstd,autodefrag,space_cache=v2",
        relabel_tool="btrfs",
        relabel_argv=lambda device, label: ["btrfs", "filesystem", "label", device, label],
        needs_subvolume=True,
    ),
    FsType.NTFS: FilesystemProfile(
        fstype=FsType.NTFS,
        options="defaults,nofail,noatime,windows_names,uid=0,gid=0,umask=022",
        relabel_tool="ntfslabel",
        relabel_argv=lambda device, label: ["ntfslabel", device, label],
    ),
}

DEFAULT_SUPPORTED = frozenset({FsType.EXT4, FsType.XFS, FsType.BTRFS})


def supported_filesystems(ntfs_enabled: bool = False) -> frozenset[FsType]:
    if ntfs_enabled:
        return DEFAULT_SUPPORTED | {FsType.NTFS}
    return DEFAULT_SUPPORTED


def get_profile(fstype: FsType) -> FilesystemProfile:
    try:
        return FILESYSTEMS[fstype]
    except KeyError:
        raise ValueError(f"Unsupported filesystem: {fstype.value}") from None


def subvolume_name(label: str) -> str:
    return f"@{label}"


def mount_options(fstype: FsType, label: str) -> str:
    """Return the option string for ``fstype``; pure, no side effects.

    For btrfs the result references ``@<label>``, which is only valid once
    the subvolume exists (see ``drive_mounter.storage.btrfs``).
    """
    profile = get_profile(fstype)
    if profile.needs_subvolume:
        return f"{profile.options},subvol={subvolume_name(label)}"
    return profile.options


def relabel_command(partition: BlockPartition, label: str) -> list[str]:
    return get_profile(partition.fstype).relabel_argv(partition.path, label)
