"""Post-write verification and activation of the mount table.

Both functions raise specific exceptions from the exceptions module rather
than returning booleans. Neither is fatal to a run: entries and the backup are
already on disk by the time they are called.

Example:
    from drive_mounter.storage.validation import validate_fstab

    try:
        validate_fstab(Path("/etc/fstab"))
    except ValidationFailureError as error:
        log.error(str(error))
"""

from __future__ import annotations

import contextlib
import shutil
import subprocess
from pathlib import Path

from drive_mounter.config.settings import DEFAULT_FSTAB_PATH
from drive_mounter.logging import LoggerFactory
from drive_mounter.storage.devices import run_command
from drive_mounter.storage.exceptions import (
    MountActivationError,
    ValidationFailureError,
)

log = LoggerFactory.for_fstab()


def _command_reason(result) -> str:
    stderr = (result.stderr or "").strip()
    stdout = (result.stdout or "").strip()
    return stderr or stdout or f"exit status {result.returncode}"


def validate_fstab(path: Path) -> None:
    """Run ``findmnt --verify`` against ``path``.

    Raises:
        ValidationFailureError: findmnt reported errors
    """
    log.info(f"Validating {path} with findmnt")
    result = run_command(
        ["findmnt", "--verify", "--tab-file", str(path)],
        check=False,
    )
    if result.returncode != 0:
        raise ValidationFailureError(str(path), _command_reason(result))
    log.success(f"{path} validation passed")


def activate_mounts(path: Path) -> None:
    """Mount every pending entry of ``path``.

    systemd regenerates mount units from fstab, so it is reloaded first when
    present.

    Raises:
        MountActivationError: mount -a failed
    """
    if shutil.which("systemctl"):
        with contextlib.suppress(subprocess.CalledProcessError, OSError):
            run_command(["systemctl", "daemon-reload"], log_output=False)

    command = ["mount", "-a"]
    if str(path) != DEFAULT_FSTAB_PATH:
        command += ["--fstab", str(path)]
    result = run_command(command, check=False)
    if result.returncode != 0:
        raise MountActivationError(str(path), _command_reason(result))
    log.success("All partitions mounted")
