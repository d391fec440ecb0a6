import argparse
import os
from pathlib import Path

from drive_mounter.config import settings
from drive_mounter.logging import LoggerFactory, operation_context, setup_logging
from drive_mounter.services.provisioning import Provisioner
from drive_mounter.storage.exceptions import StorageError
from drive_mounter.storage.filesystems import supported_filesystems
from drive_mounter.ui.prompts import AutoPrompter, ConsolePrompter

EXIT_OK = 0
EXIT_ABORTED = 1
EXIT_DEGRADED = 2


def build_parser():
    parser = argparse.ArgumentParser(
        description="Label unmounted ext4/xfs/btrfs partitions and add them to fstab"
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable verbose debug output")
    parser.add_argument("--trace", action="store_true", help="Log every command and its output")
    parser.add_argument("--fstab", help="Mount table to update (default: setting fstab_path)")
    parser.add_argument("--mount-root", help="Directory holding the mount points (default: /mnt)")
    parser.add_argument("--ntfs", action="store_true", help="Also provision NTFS partitions")
    parser.add_argument(
        "-y", "--yes", action="store_true", help="Accept generated labels without asking"
    )
    parser.add_argument(
        "--mount", action="store_true", help="Run 'mount -a' after writing without asking"
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="Remember --fstab, --mount-root, --ntfs and --mount as the new defaults",
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug, trace=args.trace)
    log = LoggerFactory.for_system()

    if os.geteuid() != 0:
        log.error("Must be run as root")
        return EXIT_ABORTED

    fstab_path = Path(args.fstab or settings.get_setting("fstab_path", settings.DEFAULT_FSTAB_PATH))
    mount_root = Path(
        args.mount_root or settings.get_setting("mount_root", settings.DEFAULT_MOUNT_ROOT)
    )
    ntfs_enabled = args.ntfs or settings.get_bool("ntfs_enabled")
    if not ntfs_enabled:
        log.info("NTFS support disabled; only ext4, xfs and btrfs will be mounted")

    # --yes runs unattended, so it never stops at the mount prompt either
    if args.mount or settings.get_bool("auto_activate"):
        activate = True
    elif args.yes:
        activate = False
    else:
        activate = None

    if args.save:
        settings.set_setting("fstab_path", str(fstab_path))
        settings.set_setting("mount_root", str(mount_root))
        settings.set_bool("ntfs_enabled", ntfs_enabled)
        settings.set_bool("auto_activate", activate is True)
        log.info(f"Settings saved to {settings.SETTINGS_PATH}")

    prompter = AutoPrompter(True) if args.yes else ConsolePrompter()
    provisioner = Provisioner(
        prompter,
        fstab_path=fstab_path,
        mount_root=mount_root,
        supported=supported_filesystems(ntfs_enabled),
        activate=activate,
    )

    try:
        with operation_context("provision", fstab=str(fstab_path)):
            report = provisioner.run()
    except StorageError as error:
        log.error(f"Aborted: {error}")
        added = len(provisioner.report.added)
        if added:
            log.warning(f"{added} entries written before the abort remain in {fstab_path}")
        return EXIT_ABORTED

    for device, reason in report.failed:
        log.warning(f"Not provisioned: {device} ({reason})")
    if not report.healthy:
        return EXIT_DEGRADED
    log.success("All done!")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
