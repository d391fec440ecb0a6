"""Mount table backups taken before the first mutation of a run."""

from __future__ import annotations

import shutil
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from drive_mounter.domain.models import FstabBackup
from drive_mounter.logging import LoggerFactory
from drive_mounter.storage.exceptions import BackupFailureError

log = LoggerFactory.for_fstab()


def backup_path_for(path: Path, today: Optional[date] = None) -> Path:
    """Return the first unused backup name for ``path``.

    ``<path>.bak_<YYYY-MM-DD>`` is tried first, then ``_0``, ``_1``, ... are
    appended until a free name is found.
    """
    stamp = (today or date.today()).isoformat()
    base = path.with_name(f"{path.name}.bak_{stamp}")
    if not base.exists():
        return base
    seq = 0
    while True:
        candidate = path.with_name(f"{base.name}_{seq}")
        if not candidate.exists():
            return candidate
        seq += 1


def create_backup(path: Path, today: Optional[date] = None) -> FstabBackup:
    """Copy ``path`` to a fresh backup file.

    Raises:
        BackupFailureError: the table is missing or the copy could not be written
    """
    if not path.is_file():
        raise BackupFailureError(str(path), "mount table does not exist")

    target = backup_path_for(path, today)
    try:
        # "xb" refuses to replace a backup that appeared since the name was chosen
        with open(target, "xb") as destination:
            try:
                with open(path, "rb") as source:
                    shutil.copyfileobj(source, destination)
            except OSError:
                destination.close()
                target.unlink()
                raise
        shutil.copystat(path, target)
    except OSError as error:
        raise BackupFailureError(str(path), str(error)) from error

    log.info(f"Backup saved to {target}")
    return FstabBackup(source=path, path=target, created_at=datetime.now())
