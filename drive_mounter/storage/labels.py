"""Canonical ``Disk<N>`` labels for provisioned partitions.

A partition keeps an on-disk label of the form ``Disk<N>``. Anything else is
replaced by the next free canonical label, after the operator confirms it,
using the filesystem's native relabel command. The ``LabelRegistry`` tracks
which UUID owns which label for the duration of a run.
"""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass, field
from typing import Optional

from drive_mounter.domain.models import BlockPartition
from drive_mounter.logging import LoggerFactory
from drive_mounter.storage.devices import run_command
from drive_mounter.storage.exceptions import (
    LabelDeclinedError,
    LabelLimitExceededError,
    RelabelError,
)
from drive_mounter.storage.filesystems import relabel_command
from drive_mounter.ui.prompts import Prompter

LABEL_PREFIX = "Disk"
MAX_LABELS = 100

_CANONICAL_RE = re.compile(rf"^{LABEL_PREFIX}[0-9]+$")
_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_-]")

log = LoggerFactory.for_labels()


def is_canonical(label: Optional[str]) -> bool:
    return bool(label) and _CANONICAL_RE.match(label) is not None


def sanitize_label(label: Optional[str]) -> str:
    """Strip characters outside ``[A-Za-z0-9_-]``; for display only."""
    return _UNSAFE_CHARS_RE.sub("", label or "")


@dataclass
class LabelRegistry:
    """Labels assigned in this run, mapped to the UUID that owns them."""

    owners: dict[str, Optional[str]] = field(default_factory=dict)
    limit: int = MAX_LABELS

    def __contains__(self, label: str) -> bool:
        return label in self.owners

    def __len__(self) -> int:
        return len(self.owners)

    def owner(self, label: str) -> Optional[str]:
        return self.owners.get(label)

    def can_claim(self, label: str, uuid: Optional[str]) -> bool:
        if label not in self.owners:
            return True
        current = self.owners[label]
        return current is not None and current == uuid

    def claim(self, label: str, uuid: Optional[str]) -> bool:
        """Register ``label`` for ``uuid``; False if another UUID owns it."""
        if not self.can_claim(label, uuid):
            return False
        self.owners[label] = uuid
        return True

    def next_free(self) -> str:
        """Return the lowest unused canonical label.

        Raises:
            LabelLimitExceededError: ``Disk0`` .. ``Disk<limit-1>`` are all taken
        """
        for index in range(self.limit):
            candidate = f"{LABEL_PREFIX}{index}"
            if candidate not in self:
                return candidate
        raise LabelLimitExceededError(self.limit)


def relabel(partition: BlockPartition, label: str) -> None:
    """Write ``label`` to the filesystem on ``partition``."""
    try:
        run_command(relabel_command(partition, label))
    except (subprocess.CalledProcessError, OSError) as error:
        reason = getattr(error, "stderr", None) or str(error)
        raise RelabelError(partition.path, label, reason.strip()) from error


class LabelResolver:
    """Decide the working label of each partition in a run."""

    def __init__(self, registry: LabelRegistry, prompter: Prompter):
        self.registry = registry
        self.prompter = prompter

    def resolve(self, partition: BlockPartition) -> str:
        """Return the label ``partition`` will be mounted under.

        Raises:
            LabelDeclinedError: the generated label was not confirmed
            LabelLimitExceededError: no canonical label is left
            RelabelError: the relabel command failed
        """
        current = partition.label
        if is_canonical(current) and self.registry.claim(current, partition.uuid):
            log.debug(f"Keeping label {current} on {partition.path}")
            return current

        shown = sanitize_label(current) or "<none>"
        if is_canonical(current):
            log.warning(
                f"Label {current} on {partition.path} is already used by "
                f"UUID={self.registry.owner(current)}"
            )
        else:
            log.info(f"Partition {partition.path} has non-standard label '{shown}'")

        label = self.registry.next_free()
        log.info(f"Suggested label: {label}")
        if not self.prompter.confirm(f"Rename {partition.path} ('{shown}') to '{label}'?"):
            raise LabelDeclinedError(partition.path, label)

        relabel(partition, label)
        self.registry.claim(label, partition.uuid)
        log.info(f"Relabeled {partition.path} to {label}")
        return label
