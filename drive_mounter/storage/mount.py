"""Mount helpers used by the btrfs bootstrap and activation steps.

Functions:
    - is_mountpoint_active(): Check /proc/mounts for a mount target
    - mount_device(): Mount a device node on an existing directory
    - unmount_path(): Unmount a mount target
    - temporary_mount(): Context manager that mounts a device on a private
      directory and always unmounts and removes it on exit
"""

from __future__ import annotations

import contextlib
import os
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from drive_mounter.logging import LoggerFactory
from drive_mounter.storage.devices import PROC_MOUNTS, run_command
from drive_mounter.storage.exceptions import MountFailedError, UnmountFailedError


log = LoggerFactory.for_btrfs()


def _validate_device_path(device_path: str, mountpoint: str) -> None:
    if not isinstance(device_path, str) or not device_path.startswith("/dev/"):
        raise MountFailedError(str(device_path), mountpoint, "Invalid device path")


def is_mountpoint_active(mountpoint: str) -> bool:
    try:
        with open(PROC_MOUNTS, "r", encoding="utf-8") as mounts_file:
            for line in mounts_file:
                parts = line.split()
                if len(parts) > 1 and parts[1] == mountpoint:
                    return True
    except FileNotFoundError:
        return os.path.ismount(mountpoint)
    return False


def mount_device(device_path: str, mountpoint: str) -> None:
    """Mount ``device_path`` on ``mountpoint``.

    Raises:
        MountFailedError: If the device path is not under /dev/ or mount
            exits non-zero
    """
    _validate_device_path(device_path, mountpoint)
    try:
        run_command(["mount", device_path, mountpoint])
    except subprocess.CalledProcessError as e:
        raise MountFailedError(device_path, mountpoint, (e.stderr or "").strip()) from e


def unmount_path(mountpoint: str) -> None:
    """Unmount ``mountpoint``.

    Raises:
        UnmountFailedError: If umount exits non-zero
    """
    try:
        run_command(["umount", mountpoint])
    except subprocess.CalledProcessError as e:
        raise UnmountFailedError(mountpoint, (e.stderr or "").strip()) from e


@contextmanager
def temporary_mount(device_path: str, mountpoint: Path) -> Iterator[Path]:
    """Mount ``device_path`` on ``mountpoint`` for the duration of the block.

    The directory is created if needed. On exit the device is unmounted and
    the directory removed, whether or not the block raised. A teardown
    failure is raised only when the block itself succeeded, so the original
    error is never masked.
    """
    mountpoint.mkdir(parents=True, exist_ok=True)
    log.debug(f"Mounting {device_path} temporarily at {mountpoint}")
    try:
        mount_device(device_path, str(mountpoint))
    except MountFailedError:
        with contextlib.suppress(OSError):
            mountpoint.rmdir()
        raise

    try:
        yield mountpoint
    except BaseException:
        try:
            _teardown(mountpoint)
        except (UnmountFailedError, OSError) as error:
            log.error(f"Temporary mount teardown failed for {mountpoint}: {error}")
        raise
    else:
        _teardown(mountpoint)


def _teardown(mountpoint: Path) -> None:
    log.debug(f"Unmounting temporary mount {mountpoint}")
    unmount_path(str(mountpoint))
    mountpoint.rmdir()
