"""Host checks: privileges, distribution and root filesystem storage type."""

import logging
import os
from pathlib import Path

from gentup.core.paths import OS_RELEASE_PATH

logger = logging.getLogger(__name__)

PROC_MOUNTS_PATH = Path("/proc/mounts")
SYS_DEV_BLOCK_PATH = Path("/sys/dev/block")


def is_root() -> bool:
    """Check if the process runs with root privileges."""
    return os.geteuid() == 0


def read_distro_id(os_release: Path = OS_RELEASE_PATH) -> str | None:
    """Return the ID field from os-release, or None if unavailable."""
    try:
        lines = os_release.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        logger.warning("Cannot read %s: %s", os_release, e)
        return None

    for line in lines:
        key, _, value = line.partition("=")
        if key.strip() == "ID":
            return value.strip().strip('"').strip("'")
    return None


def is_gentoo(os_release: Path = OS_RELEASE_PATH) -> bool:
    """Check if the host runs Gentoo Linux."""
    return read_distro_id(os_release) == "gentoo"


def root_device(proc_mounts: Path = PROC_MOUNTS_PATH) -> str | None:
    """Return the device node mounted on /, or None if not a block device."""
    try:
        lines = proc_mounts.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        logger.warning("Cannot read %s: %s", proc_mounts, e)
        return None

    for line in lines:
        fields = line.split()
        if len(fields) >= 2 and fields[1] == "/" and fields[0].startswith("/dev/"):
            return fields[0]
    return None


def device_rotational(devno: int, sys_dev_block: Path = SYS_DEV_BLOCK_PATH) -> bool:
    """Check whether the block device numbered ``devno`` is spinning storage.

    /sys/dev/block/MAJOR:MINOR links to the device's sysfs node. Partitions
    carry no queue directory, so a node with a ``partition`` file is
    replaced by its parent disk before reading ``queue/rotational``.

    Devices without a readable flag count as rotational, so trim is never
    attempted on storage whose type cannot be established.
    """
    node = (sys_dev_block / f"{os.major(devno)}:{os.minor(devno)}").resolve()
    if (node / "partition").exists():
        node = node.parent

    flag = node / "queue" / "rotational"
    try:
        return flag.read_text(encoding="utf-8").strip() != "0"
    except OSError as e:
        logger.debug("Cannot read %s: %s", flag, e)
        return True


def is_rotational(device: str, sys_dev_block: Path = SYS_DEV_BLOCK_PATH) -> bool:
    """Check whether the device node ``device`` sits on spinning storage."""
    try:
        rdev = os.stat(device).st_rdev
    except OSError as e:
        logger.warning("Cannot stat %s: %s", device, e)
        return True
    return device_rotational(rdev, sys_dev_block)


def root_is_rotational(sys_dev_block: Path = SYS_DEV_BLOCK_PATH) -> bool:
    """Check whether the root filesystem is on rotational storage.

    Falls back to the device number of the mounted root when the node
    named in /proc/mounts does not exist (e.g. ``/dev/root``).
    """
    device = root_device()
    if device is not None:
        try:
            return device_rotational(os.stat(device).st_rdev, sys_dev_block)
        except OSError as e:
            logger.debug("Cannot stat %s: %s", device, e)

    try:
        return device_rotational(os.stat("/").st_dev, sys_dev_block)
    except OSError as e:
        logger.warning("Cannot stat /: %s", e)
        return True
