"""Partition discovery using lsblk and blkid.

This module enumerates the block device tree and turns every unmounted data
partition into a typed ``BlockPartition`` snapshot.

Device Detection:
    lsblk with JSON output gives the device tree (disks and their partitions)
    together with the current mountpoint. Each remaining partition is then
    probed out of process with ``blkid -o export`` for:
    - Filesystem type (TYPE)
    - Filesystem UUID (UUID)
    - On-disk label (LABEL)

Filtering Logic:
    1. Must be a true partition (type "part"), so whole disks are skipped
    2. Must NOT belong to a loop device
    3. Must NOT be mounted (lsblk mountpoint or a source in /proc/mounts)
    4. Must have both a filesystem type and a UUID, otherwise it is not
       actionable and is skipped with an informational log line
    5. Callers restrict the result to the filesystem kinds they support

Nothing is cached: every call re-reads live kernel state.

Example:
    >>> from drive_mounter.storage.devices import list_candidates
    >>> for partition in list_candidates({FsType.EXT4}):
    ...     print(partition.path, partition.uuid)
    /dev/sdb1 1111-AAAA
"""

from __future__ import annotations

import json
import os
import shutil
import subprocess
from typing import Any, Collection, Iterable, Iterator

from drive_mounter.domain.models import BlockPartition, FsType
from drive_mounter.logging import LoggerFactory
from drive_mounter.storage.exceptions import (
    DeviceEnumerationError,
    ProbeIncompleteError,
    ToolMissingError,
)

PROC_MOUNTS = "/proc/mounts"
LSBLK_COLUMNS = "NAME,PATH,TYPE,MOUNTPOINT"

BASE_REQUIRED_TOOLS = (
    "blkid",
    "lsblk",
    "findmnt",
    "mount",
    "umount",
    "e2label",
    "xfs_admin",
    "btrfs",
)

log = LoggerFactory.for_devices()
command_log = LoggerFactory.for_command()


def run_command(command, check=True, log_output=True, log_command=True):
    if log_command:
        command_log.debug(f"Running command: {' '.join(command)}")
    try:
        result = subprocess.run(command, check=check, text=True, capture_output=True)
    except subprocess.CalledProcessError as error:
        command_log.debug(f"Command failed: {' '.join(command)}")
        if error.stdout:
            command_log.debug(f"stdout: {error.stdout.strip()}")
        if error.stderr:
            command_log.debug(f"stderr: {error.stderr.strip()}")
        raise
    if result.stdout and (log_output or result.returncode != 0):
        command_log.trace(f"stdout: {result.stdout.strip()}")
    if result.stderr and (log_output or result.returncode != 0):
        command_log.trace(f"stderr: {result.stderr.strip()}")
    if log_command:
        command_log.debug(f"Command completed with return code {result.returncode}")
    return result


def require_tools(tools: Iterable[str]) -> None:
    """Raise ToolMissingError listing every tool not found on PATH."""
    missing = [tool for tool in tools if shutil.which(tool) is None]
    if missing:
        raise ToolMissingError(missing)


def get_block_devices() -> list[dict[str, Any]]:
    """Return the lsblk device tree.

    Raises DeviceEnumerationError when lsblk fails or its output is not
    valid JSON; an empty device list is never a stand-in for a failed query.
    """
    try:
        result = run_command(
            ["lsblk", "-J", "-o", LSBLK_COLUMNS],
            log_output=False,
            log_command=False,
        )
        data = json.loads(result.stdout)
    except subprocess.CalledProcessError as error:
        raise DeviceEnumerationError((error.stderr or "").strip() or str(error)) from error
    except json.JSONDecodeError as error:
        raise DeviceEnumerationError(f"unparseable lsblk output: {error}") from error
    return data.get("blockdevices", []) or []


def get_children(device):
    return device.get("children", []) or []


def _walk(devices: Iterable[dict[str, Any]]) -> Iterator[dict[str, Any]]:
    for device in devices:
        yield device
        yield from _walk(get_children(device))


def _device_mountpoint(device: dict[str, Any]) -> str:
    # lsblk >= 2.37 may report a "mountpoints" list instead of "mountpoint"
    mountpoint = device.get("mountpoint")
    if mountpoint:
        return mountpoint
    for candidate in device.get("mountpoints") or []:
        if candidate:
            return candidate
    return ""


def get_active_mount_sources() -> set[str]:
    """Return resolved device paths currently mounted according to /proc/mounts."""
    sources: set[str] = set()
    try:
        with open(PROC_MOUNTS, "r", encoding="utf-8") as mounts_file:
            for line in mounts_file:
                parts = line.split()
                if parts and parts[0].startswith("/dev/"):
                    sources.add(parts[0])
                    sources.add(os.path.realpath(parts[0]))
    except FileNotFoundError:
        return sources
    return sources


def parse_blkid_export(text: str) -> dict[str, str]:
    """Parse ``blkid -o export <device>`` output for a single device."""
    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key] = value
    return values


def probe_partition(device_path: str) -> dict[str, str]:
    """Return TYPE/UUID/LABEL for a device; empty values mean unknown or unset."""
    result = run_command(
        ["blkid", "-o", "export", device_path],
        check=False,
        log_output=False,
    )
    # blkid exits 2 when no signature is found; that is "unknown", not an error
    if result.returncode != 0:
        return {}
    values = parse_blkid_export(result.stdout)
    return {key: values.get(key, "") for key in ("TYPE", "UUID", "LABEL")}


def _is_candidate_node(device: dict[str, Any], mounted_sources: set[str]) -> bool:
    if device.get("type") != "part":
        return False
    name = device.get("name") or ""
    if not name or name.startswith("loop"):
        return False
    if _device_mountpoint(device):
        return False
    path = device.get("path") or f"/dev/{name}"
    return path not in mounted_sources


def build_partition(device: dict[str, Any]) -> BlockPartition:
    """Probe one lsblk node; raise ProbeIncompleteError if TYPE or UUID is unset."""
    path = device.get("path") or f"/dev/{device['name']}"
    probe = probe_partition(path)
    missing = [key for key in ("TYPE", "UUID") if not probe.get(key)]
    if missing:
        raise ProbeIncompleteError(path, missing)
    return BlockPartition.from_probe(device, probe)


def iter_partitions() -> Iterator[BlockPartition]:
    """Yield every unmounted, fully probed partition on the system.

    Each call starts a fresh lsblk/proc scan, so the generator can be
    re-created to observe current state.
    """
    devices = get_block_devices()
    mounted_sources = get_active_mount_sources()
    for device in _walk(devices):
        if not _is_candidate_node(device, mounted_sources):
            continue
        try:
            yield build_partition(device)
        except ProbeIncompleteError as error:
            log.info(f"Skipping partition: {error}")


def list_candidates(supported: Collection[FsType]) -> list[BlockPartition]:
    """Snapshot the partitions whose filesystem kind is in ``supported``."""
    candidates = []
    for partition in iter_partitions():
        if partition.fstype not in supported:
            log.debug(
                f"Skipping {partition.path}: unsupported filesystem "
                f"{partition.fstype.value}"
            )
            continue
        candidates.append(partition)
    log.info(f"Found {len(candidates)} candidate partition(s)")
    return candidates
