"""Provisioning run: discover partitions and give each a persistent mount.

Run sequence:
    1. require every external tool (abort before any mutation)
    2. snapshot candidate partitions
    3. back up the mount table (abort if that fails)
    4. seed the label registry from the table and on-disk labels
    5. per partition: duplicate check, label, mount options, append
    6. validate the table if anything was written, then optionally mount

``ToolMissingError``, ``BackupFailureError`` and ``LabelLimitExceededError``
abort the run; every other failure is scoped to one partition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Collection, Optional

from drive_mounter.domain.models import BlockPartition, FsType, FstabBackup, MountEntry
from drive_mounter.logging import LoggerFactory
from drive_mounter.storage import backup, devices, fstab, policy, validation
from drive_mounter.storage.exceptions import (
    DuplicateEntryError,
    LabelDeclinedError,
    MountActivationError,
    RelabelError,
    SubvolumeBootstrapError,
    ValidationFailureError,
)
from drive_mounter.storage.filesystems import get_profile
from drive_mounter.storage.labels import LabelRegistry, LabelResolver, is_canonical
from drive_mounter.ui.prompts import Prompter

log = LoggerFactory.for_system()


@dataclass
class ProvisionReport:
    added: list[MountEntry] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)
    backup: Optional[FstabBackup] = None
    validation_passed: Optional[bool] = None
    activated: Optional[bool] = None

    @property
    def changed(self) -> bool:
        return bool(self.added)

    @property
    def healthy(self) -> bool:
        return self.validation_passed is not False and self.activated is not False


class Provisioner:
    def __init__(
        self,
        prompter: Prompter,
        *,
        fstab_path: Path,
        mount_root: Path,
        supported: Collection[FsType],
        activate: Optional[bool] = None,
        list_partitions: Optional[Callable[[Collection[FsType]], list[BlockPartition]]] = None,
    ):
        self.prompter = prompter
        self.fstab_path = Path(fstab_path)
        self.mount_root = Path(mount_root)
        self.supported = frozenset(supported)
        # None means ask, True/False skip the prompt
        self.activate = activate
        self.list_partitions = list_partitions or devices.list_candidates
        self.registry = LabelRegistry()
        self.resolver = LabelResolver(self.registry, prompter)
        self.report = ProvisionReport()

    def required_tools(self) -> list[str]:
        tools = list(devices.BASE_REQUIRED_TOOLS)
        for fstype in sorted(self.supported, key=lambda kind: kind.value):
            tool = get_profile(fstype).relabel_tool
            if tool not in tools:
                tools.append(tool)
        return tools

    def run(self) -> ProvisionReport:
        devices.require_tools(self.required_tools())

        partitions = self.list_partitions(self.supported)
        self.report.backup = backup.create_backup(self.fstab_path)
        self._seed_registry(partitions)

        for partition in partitions:
            self._process(partition)

        self._finish()
        return self.report

    def _seed_registry(self, partitions: list[BlockPartition]) -> None:
        for label, uuid in fstab.canonical_mountpoints(self.fstab_path, self.mount_root).items():
            self.registry.claim(label, uuid)
        for partition in partitions:
            if is_canonical(partition.label):
                self.registry.claim(partition.label, partition.uuid)
        log.info(f"{len(self.registry)} canonical label(s) already in use")

    def _skip(self, partition: BlockPartition, reason: str) -> None:
        log.info(f"Skipping {partition.path}: {reason}")
        self.report.skipped.append((partition.path, reason))

    def _fail(self, partition: BlockPartition, error: Exception) -> None:
        log.error(f"{partition.path}: {error}")
        self.report.failed.append((partition.path, str(error)))

    def _process(self, partition: BlockPartition) -> None:
        if fstab.contains_uuid(self.fstab_path, partition.uuid):
            self._skip(partition, "no change, UUID already in mount table")
            return

        try:
            label = self.resolver.resolve(partition)
        except LabelDeclinedError:
            self._skip(partition, "label declined")
            return
        except RelabelError as error:
            self._fail(partition, error)
            return

        log.info(f"Processing {partition.path} ({partition.fstype.value}) with label '{label}'")
        mountpoint = self.mount_root / label

        try:
            options = policy.mount_options_for(partition, label, self.mount_root)
        except SubvolumeBootstrapError as error:
            self._fail(partition, error)
            return

        entry = MountEntry(
            uuid=partition.uuid,
            mountpoint=str(mountpoint),
            fstype=partition.fstype.value,
            options=options,
        )
        try:
            fstab.append_entry(self.fstab_path, entry)
        except DuplicateEntryError:
            self._skip(partition, "no change, UUID already in mount table")
            return
        except OSError as error:
            self._fail(partition, error)
            return
        self.report.added.append(entry)

    def _finish(self) -> None:
        if not self.report.changed:
            log.info("No new entries added")
            return

        log.success(f"{len(self.report.added)} new entries added to {self.fstab_path}")
        try:
            validation.validate_fstab(self.fstab_path)
            self.report.validation_passed = True
        except ValidationFailureError as error:
            log.error(str(error))
            self.report.validation_passed = False

        activate = self.activate
        if activate is None:
            activate = self.prompter.confirm("Run 'mount -a' now to mount new partitions?")
        if not activate:
            return
        try:
            validation.activate_mounts(self.fstab_path)
            self.report.activated = True
        except MountActivationError as error:
            log.error(str(error))
            self.report.activated = False
