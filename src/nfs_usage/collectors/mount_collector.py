from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

import psutil

from nfs_usage.models.usage import MountEntry, is_snapshot_mount

logger = logging.getLogger(__name__)

NFS_FSTYPES = ("nfs", "nfs4")

_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")


def unescape_mount_field(field: str) -> str:
    """Decode the kernel's \\NNN escapes (space, tab, newline, backslash)."""
    return _OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), field)


def parse_mount_line(line: str) -> MountEntry | None:
    """Parse one ``device mountpoint fstype opts ...`` row of a mount table."""
    fields = line.split()
    if len(fields) < 3:
        return None
    return MountEntry(
        device=unescape_mount_field(fields[0]),
        mountpoint=unescape_mount_field(fields[1]),
        fstype=fields[2],
        opts=fields[3] if len(fields) > 3 else "",
    )


def select_nfs_mounts(entries: Iterable[MountEntry]) -> list[str]:
    out: list[str] = []
    for e in entries:
        if e.fstype not in NFS_FSTYPES:
            continue
        if is_snapshot_mount(e.mountpoint):
            logger.debug("skipping snapshot mount %s", e.mountpoint)
            continue
        out.append(e.mountpoint)
    return out


class MountCollector:
    """Lists live NFS mount points.

    Without ``mount_table`` the system table is read through psutil
    (``/proc/self/mounts`` on Linux); with it, the given file is parsed
    line by line in the same format.
    """

    def __init__(self, mount_table: str | None = None) -> None:
        self.mount_table = mount_table

    def entries(self) -> list[MountEntry]:
        if self.mount_table:
            return self._read_table(Path(self.mount_table))

        rows: list[MountEntry] = []
        for p in psutil.disk_partitions(all=True):
            rows.append(
                MountEntry(
                    device=str(p.device),
                    mountpoint=str(p.mountpoint),
                    fstype=str(p.fstype),
                    opts=str(p.opts),
                )
            )
        return rows

    def collect(self) -> list[str]:
        mounts = select_nfs_mounts(self.entries())
        logger.debug("found %d NFS mount(s): %s", len(mounts), mounts)
        return mounts

    def _read_table(self, path: Path) -> list[MountEntry]:
        rows: list[MountEntry] = []
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                entry = parse_mount_line(line)
                if entry is not None:
                    rows.append(entry)
        return rows
