"""Btrfs subvolume bootstrap.

A btrfs entry mounts ``subvol=@<label>``, so the subvolume has to exist on the
device before the entry is written:

1. mount the raw device at ``<mount_root>/.btrfs-<label>-tmp``
2. create ``@<label>`` unless it already exists
3. unmount and remove the temporary directory, also when step 2 failed

Any failure surfaces as ``SubvolumeBootstrapError`` after teardown.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

from drive_mounter.domain.models import BlockPartition
from drive_mounter.logging import LoggerFactory
from drive_mounter.storage.devices import run_command
from drive_mounter.storage.exceptions import MountError, SubvolumeBootstrapError
from drive_mounter.storage.filesystems import subvolume_name
from drive_mounter.storage.mount import is_mountpoint_active, temporary_mount


log = LoggerFactory.for_btrfs()


def temporary_mountpoint(mount_root: Path, label: str) -> Path:
    return mount_root / f".btrfs-{label}-tmp"


def ensure_subvolume(partition: BlockPartition, label: str, mount_root: Path) -> bool:
    """Make sure ``@<label>`` exists on ``partition``.

    Returns:
        True if the subvolume was created, False if it already existed

    Raises:
        SubvolumeBootstrapError: mount, creation or teardown failed
    """
    subvol = subvolume_name(label)
    temp_mount = temporary_mountpoint(mount_root, label)

    if is_mountpoint_active(str(temp_mount)):
        raise SubvolumeBootstrapError(
            partition.path, subvol, f"{temp_mount} is already a mountpoint"
        )

    try:
        with temporary_mount(partition.path, temp_mount) as root:
            target = root / subvol
            if target.is_dir():
                log.info(f"Subvolume {subvol} already exists on {partition.path}")
                return False
            log.info(f"Creating subvolume {subvol} on {partition.path}")
            run_command(["btrfs", "subvolume", "create", str(target)])
            return True
    except subprocess.CalledProcessError as error:
        reason = (error.stderr or "").strip() or f"exit status {error.returncode}"
        raise SubvolumeBootstrapError(partition.path, subvol, reason) from error
    except (MountError, OSError) as error:
        raise SubvolumeBootstrapError(partition.path, subvol, str(error)) from error
