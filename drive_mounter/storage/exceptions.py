"""Custom exceptions for partition provisioning.

This module defines a hierarchy of exceptions so the provisioning run can tell
partition-scoped failures (skip the partition, keep going) apart from failures
touching shared state (abort the run).

Exception Hierarchy:
    StorageError (base)
        ├── ToolMissingError              fatal
        ├── BackupFailureError            fatal
        ├── DeviceError
        │   ├── DeviceEnumerationError    fatal
        │   └── ProbeIncompleteError      skip
        ├── LabelError
        │   ├── LabelDeclinedError        skip
        │   ├── LabelLimitExceededError   fatal
        │   └── RelabelError              partition failure
        ├── MountError
        │   ├── MountFailedError
        │   ├── UnmountFailedError
        │   └── SubvolumeBootstrapError   partition failure
        └── FstabError
            ├── DuplicateEntryError       skip
            ├── ValidationFailureError    reported
            └── MountActivationError      reported

Usage:
    from drive_mounter.storage.exceptions import DuplicateEntryError

    if contains_uuid(fstab_path, partition.uuid):
        raise DuplicateEntryError(partition.uuid, str(fstab_path))
"""

from __future__ import annotations


class StorageError(Exception):
    """Base exception for all provisioning operations."""



class ToolMissingError(StorageError):
    """A required external tool is not installed."""

    def __init__(self, tools: list[str]):
        self.tools = tools
        super().__init__(
            f"Required tool(s) not found: {', '.join(tools)}. "
            f"Install them and try again."
        )


class BackupFailureError(StorageError):
    """The mount table could not be copied before mutation."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to back up {path}: {reason}")


class DeviceError(StorageError):
    """Base exception for device-related errors."""



class DeviceEnumerationError(DeviceError):
    """The block device tree could not be read."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to list block devices: {reason}")


class ProbeIncompleteError(DeviceError):
    """Filesystem type or UUID of a partition could not be determined."""

    def __init__(self, device_path: str, missing: list[str]):
        self.device_path = device_path
        self.missing = missing
        super().__init__(
            f"Probe of {device_path} incomplete: missing {', '.join(missing)}"
        )


class LabelError(StorageError):
    """Base exception for label resolution errors."""



class LabelDeclinedError(LabelError):
    """The operator declined the generated label."""

    def __init__(self, device_path: str, label: str):
        self.device_path = device_path
        self.label = label
        super().__init__(f"Label {label} declined for {device_path}")


class LabelLimitExceededError(LabelError):
    """No canonical label left within the allowed range."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Too many disks labeled: all {limit} canonical labels in use")


class RelabelError(LabelError):
    """The native relabel command failed."""

    def __init__(self, device_path: str, label: str, reason: str = ""):
        self.device_path = device_path
        self.label = label
        self.reason = reason
        msg = f"Failed to relabel {device_path} to {label}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class MountError(StorageError):
    """Base exception for mount-related errors."""



class MountFailedError(MountError):
    """Mounting a device failed."""

    def __init__(self, device_path: str, mountpoint: str, reason: str = ""):
        self.device_path = device_path
        self.mountpoint = mountpoint
        self.reason = reason
        msg = f"Failed to mount {device_path} at {mountpoint}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class UnmountFailedError(MountError):
    """Unmounting a mountpoint failed."""

    def __init__(self, mountpoint: str, reason: str = ""):
        self.mountpoint = mountpoint
        self.reason = reason
        msg = f"Failed to unmount {mountpoint}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class SubvolumeBootstrapError(MountError):
    """Temporary mount, subvolume creation or teardown failed."""

    def __init__(self, device_path: str, subvolume: str, reason: str):
        self.device_path = device_path
        self.subvolume = subvolume
        self.reason = reason
        super().__init__(
            f"Subvolume {subvolume} bootstrap failed on {device_path}: {reason}"
        )


class FstabError(StorageError):
    """Base exception for mount table errors."""



class DuplicateEntryError(FstabError):
    """The UUID already has an entry in the mount table."""

    def __init__(self, uuid: str, fstab_path: str):
        self.uuid = uuid
        self.fstab_path = fstab_path
        super().__init__(f"UUID={uuid} already present in {fstab_path}")


class ValidationFailureError(FstabError):
    """Structural verification of the mount table failed."""

    def __init__(self, fstab_path: str, reason: str = ""):
        self.fstab_path = fstab_path
        self.reason = reason
        msg = f"Validation of {fstab_path} failed"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class MountActivationError(FstabError):
    """Mounting the new entries failed."""

    def __init__(self, fstab_path: str, reason: str = ""):
        self.fstab_path = fstab_path
        self.reason = reason
        msg = f"Failed to mount entries from {fstab_path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
