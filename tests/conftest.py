"""
Pytest configuration and shared fixtures for drive-mounter tests.

This module provides common fixtures and utilities used across all test modules.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

from drive_mounter.domain.models import BlockPartition, FsType


# ==============================================================================
# Device Mock Fixtures
# ==============================================================================


@pytest.fixture
def mock_system_disk() -> Dict[str, Any]:
    """Disk holding the running system; every partition is mounted."""
    return {
        "name": "sda",
        "path": "/dev/sda",
        "type": "disk",
        "mountpoint": None,
        "children": [
            {
                "name": "sda1",
                "path": "/dev/sda1",
                "type": "part",
                "mountpoint": "/boot/efi",
            },
            {
                "name": "sda2",
                "path": "/dev/sda2",
                "type": "part",
                "mountpoint": "/",
            },
        ],
    }


@pytest.fixture
def mock_data_disk() -> Dict[str, Any]:
    """Data disk with two unmounted partitions."""
    return {
        "name": "sdb",
        "path": "/dev/sdb",
        "type": "disk",
        "mountpoint": None,
        "children": [
            {
                "name": "sdb1",
                "path": "/dev/sdb1",
                "type": "part",
                "mountpoint": None,
            },
            {
                "name": "sdb2",
                "path": "/dev/sdb2",
                "type": "part",
                "mountpoint": None,
            },
        ],
    }


@pytest.fixture
def mock_loop_device() -> Dict[str, Any]:
    return {
        "name": "loop0",
        "path": "/dev/loop0",
        "type": "loop",
        "mountpoint": None,
        "children": [
            {
                "name": "loop0p1",
                "path": "/dev/loop0p1",
                "type": "part",
                "mountpoint": None,
            }
        ],
    }


@pytest.fixture
def mock_block_devices(mock_system_disk, mock_data_disk, mock_loop_device):
    return [mock_system_disk, mock_data_disk, mock_loop_device]


@pytest.fixture
def mock_lsblk_output(mock_block_devices) -> str:
    """Mock ``lsblk -J`` output for the system, data and loop devices."""
    return json.dumps({"blockdevices": mock_block_devices})


@pytest.fixture
def mock_probes() -> Dict[str, Dict[str, str]]:
    """blkid results keyed by device path."""
    return {
        "/dev/sdb1": {"TYPE": "ext4", "UUID": "1111-AAAA", "LABEL": ""},
        "/dev/sdb2": {"TYPE": "btrfs", "UUID": "2222-BBBB", "LABEL": "Disk3"},
        "/dev/loop0p1": {"TYPE": "ext4", "UUID": "9999-LOOP", "LABEL": ""},
    }


# ==============================================================================
# Domain Fixtures
# ==============================================================================


@pytest.fixture
def make_partition() -> Callable[..., BlockPartition]:
    """Factory for BlockPartition snapshots."""

    def _make(
        name: str = "sdb1",
        fstype: FsType = FsType.EXT4,
        uuid: str = "1111-AAAA",
        label: str = "",
    ) -> BlockPartition:
        return BlockPartition(
            path=f"/dev/{name}",
            name=name,
            kind="part",
            fstype=fstype,
            uuid=uuid,
            label=label,
        )

    return _make


# ==============================================================================
# Mount Table Fixtures
# ==============================================================================

BASE_FSTAB = (
    "# /etc/fstab: static file system information.\n"
    "UUID=aaaa-root / ext4 defaults 0 1\n"
    "UUID=bbbb-efi /boot/efi vfat umask=0077 0 1\n"
)


@pytest.fixture
def fstab_file(tmp_path) -> Path:
    path = tmp_path / "etc" / "fstab"
    path.parent.mkdir(parents=True)
    path.write_text(BASE_FSTAB, encoding="utf-8")
    return path


@pytest.fixture
def mount_root(tmp_path) -> Path:
    return tmp_path / "mnt"
