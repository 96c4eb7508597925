from __future__ import annotations

import logging
import os
import subprocess
from datetime import datetime
from typing import Iterable, Protocol

from nfs_usage.errors import UsageExecError, UsageParseError, UsageQueryError
from nfs_usage.models.common import CollectorResult
from nfs_usage.models.usage import Sample

logger = logging.getLogger(__name__)


class ByteUsageQuerier(Protocol):
    def used_bytes(self, mountpoint: str) -> int: ...


def parse_df_output(output: str, mountpoint: str = "") -> int:
    """Return the "Used" column of ``df -B1`` output.

    Long device names make df wrap the data row, so every line after the
    header is joined before splitting into fields.
    """
    lines = output.split("\n")
    if len(lines) < 2:
        raise UsageParseError(mountpoint, "unexpected df output")

    fields = " ".join(lines[1:]).split()
    if len(fields) < 3:
        raise UsageParseError(mountpoint, "unexpected df output format")

    used = fields[2]
    if not (used.isascii() and used.isdigit()):
        raise UsageParseError(mountpoint, f"error parsing used bytes: {used!r}")
    return int(used)


class DfQuerier:
    def __init__(self, command: str = "df") -> None:
        self.command = command

    def used_bytes(self, mountpoint: str) -> int:
        cmd = [self.command, "-B1", mountpoint]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                check=False,
                env={**os.environ, "LANG": "C", "LC_ALL": "C"},
            )
        except OSError as e:
            raise UsageExecError(mountpoint, f"cannot run {self.command}: {e}") from e

        if result.returncode != 0:
            err = result.stderr.strip() or f"exit status {result.returncode}"
            raise UsageExecError(mountpoint, err)
        return parse_df_output(result.stdout, mountpoint)


class UsageCollector:
    def __init__(self, querier: ByteUsageQuerier | None = None) -> None:
        self.querier = querier or DfQuerier()

    def collect(self, mounts: Iterable[str]) -> CollectorResult[Sample]:
        ts = datetime.now()
        warnings: list[str] = []
        used: dict[str, int] = {}
        skipped: list[str] = []

        for m in mounts:
            try:
                used[m] = self.querier.used_bytes(m)
            except UsageQueryError as e:
                msg = f"Error getting df for {m}: {e}"
                logger.warning(msg)
                warnings.append(msg)
                skipped.append(m)

        sample = Sample.build(int(ts.timestamp()), used)
        status = "OK" if not warnings else "WARN"
        return CollectorResult(
            ts=ts,
            status=status,
            warning_count=len(warnings),
            warnings=warnings,
            data=sample,
            skipped=skipped,
        )
