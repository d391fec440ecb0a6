"""Tests for storage/mount.py - mount helpers and the temporary mount context.

This test suite covers:
- mount_device() / unmount_path() command construction and failures
- Device path validation
- /proc/mounts lookups
- temporary_mount() teardown on success and on failure
"""

import subprocess
from unittest.mock import Mock, patch

import pytest

from drive_mounter.storage import mount
from drive_mounter.storage.exceptions import MountFailedError, UnmountFailedError


class TestMountDevice:
    @patch("drive_mounter.storage.mount.run_command")
    def test_mount_success(self, mock_run):
        mock_run.return_value = Mock(returncode=0, stderr="")

        mount.mount_device("/dev/sdb1", "/mnt/.btrfs-Disk0-tmp")

        mock_run.assert_called_once_with(["mount", "/dev/sdb1", "/mnt/.btrfs-Disk0-tmp"])

    @patch("drive_mounter.storage.mount.run_command")
    def test_mount_failure(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(
            32, ["mount"], stderr="mount: wrong fs type\n"
        )

        with pytest.raises(MountFailedError, match="wrong fs type"):
            mount.mount_device("/dev/sdb1", "/mnt/x")

    @pytest.mark.parametrize("device", ["sdb1", "/tmp/sdb1", None])
    @patch("drive_mounter.storage.mount.run_command")
    def test_rejects_non_dev_paths(self, mock_run, device):
        with pytest.raises(MountFailedError, match="Invalid device path"):
            mount.mount_device(device, "/mnt/x")

        mock_run.assert_not_called()


class TestUnmountPath:
    @patch("drive_mounter.storage.mount.run_command")
    def test_unmount_success(self, mock_run):
        mount.unmount_path("/mnt/x")

        mock_run.assert_called_once_with(["umount", "/mnt/x"])

    @patch("drive_mounter.storage.mount.run_command")
    def test_unmount_failure(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(
            32, ["umount"], stderr="target is busy"
        )

        with pytest.raises(UnmountFailedError, match="target is busy"):
            mount.unmount_path("/mnt/x")


class TestIsMountpointActive:
    def test_active(self, tmp_path, monkeypatch):
        mounts = tmp_path / "mounts"
        mounts.write_text("/dev/sdb1 /mnt/Disk0 ext4 rw 0 0\n")
        monkeypatch.setattr(mount, "PROC_MOUNTS", str(mounts))

        assert mount.is_mountpoint_active("/mnt/Disk0") is True
        assert mount.is_mountpoint_active("/mnt/Disk1") is False

    @patch("os.path.ismount", return_value=True)
    def test_falls_back_to_ismount(self, mock_ismount, tmp_path, monkeypatch):
        monkeypatch.setattr(mount, "PROC_MOUNTS", str(tmp_path / "absent"))

        assert mount.is_mountpoint_active("/mnt/Disk0") is True


class TestTemporaryMount:
    @patch("drive_mounter.storage.mount.unmount_path")
    @patch("drive_mounter.storage.mount.mount_device")
    def test_mounts_and_tears_down(self, mock_mount, mock_unmount, tmp_path):
        target = tmp_path / ".btrfs-Disk0-tmp"

        with mount.temporary_mount("/dev/sdb1", target) as root:
            assert root == target
            assert target.is_dir()

        mock_mount.assert_called_once_with("/dev/sdb1", str(target))
        mock_unmount.assert_called_once_with(str(target))
        assert not target.exists()

    @patch("drive_mounter.storage.mount.unmount_path")
    @patch("drive_mounter.storage.mount.mount_device")
    def test_tears_down_when_body_raises(self, mock_mount, mock_unmount, tmp_path):
        target = tmp_path / ".btrfs-Disk0-tmp"

        with pytest.raises(RuntimeError, match="boom"):
            with mount.temporary_mount("/dev/sdb1", target):
                raise RuntimeError("boom")

        mock_unmount.assert_called_once_with(str(target))
        assert not target.exists()

    @patch("drive_mounter.storage.mount.unmount_path")
    @patch("drive_mounter.storage.mount.mount_device")
    def test_teardown_error_does_not_mask_body_error(
        self, mock_mount, mock_unmount, tmp_path
    ):
        mock_unmount.side_effect = UnmountFailedError("/mnt/x", "busy")

        with pytest.raises(RuntimeError, match="boom"):
            with mount.temporary_mount("/dev/sdb1", tmp_path / "tmpmount"):
                raise RuntimeError("boom")

    @patch("drive_mounter.storage.mount.unmount_path")
    @patch("drive_mounter.storage.mount.mount_device")
    def test_teardown_error_raised_after_success(self, mock_mount, mock_unmount, tmp_path):
        mock_unmount.side_effect = UnmountFailedError("/mnt/x", "busy")

        with pytest.raises(UnmountFailedError):
            with mount.temporary_mount("/dev/sdb1", tmp_path / "tmpmount"):
                pass

    @patch("drive_mounter.storage.mount.unmount_path")
    @patch("drive_mounter.storage.mount.mount_device")
    def test_mount_failure_removes_directory(self, mock_mount, mock_unmount, tmp_path):
        mock_mount.side_effect = MountFailedError("/dev/sdb1", "x", "bad superblock")
        target = tmp_path / "tmpmount"

        with pytest.raises(MountFailedError):
            with mount.temporary_mount("/dev/sdb1", target):
                pytest.fail("body must not run")

        mock_unmount.assert_not_called()
        assert not target.exists()
