from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from nfs_usage.errors import HistoryError

SNAPSHOT_MARKER = ".snapshot"


def is_snapshot_mount(mountpoint: str) -> bool:
    return SNAPSHOT_MARKER in mountpoint


@dataclass(frozen=True)
class MountEntry:
    device: str
    mountpoint: str
    fstype: str
    opts: str = ""


@dataclass(frozen=True)
class Sample:
    """One timestamped reading of used bytes per NFS mount.

    ``total`` is stored alongside ``mounts`` and is only recomputed by
    :meth:`build` and :meth:`without_snapshots`; a loaded sample keeps
    whatever total was persisted.
    """

    timestamp: int
    mounts: dict[str, int] = field(default_factory=dict)
    total: int = 0

    @classmethod
    def build(cls, timestamp: int, mounts: Mapping[str, int]) -> "Sample":
        m = {str(k): int(v) for k, v in mounts.items()}
        return cls(timestamp=int(timestamp), mounts=m, total=sum(m.values()))

    def without_snapshots(self) -> "Sample":
        kept = {k: v for k, v in self.mounts.items() if not is_snapshot_mount(k)}
        return Sample.build(self.timestamp, kept)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "mounts": {k: self.mounts[k] for k in sorted(self.mounts)},
            "total": self.total,
        }

    @classmethod
    def from_dict(cls, obj: Any) -> "Sample":
        if not isinstance(obj, dict):
            raise HistoryError(f"sample must be an object, got {type(obj).__name__}")

        ts = obj.get("timestamp")
        mounts = obj.get("mounts")
        total = obj.get("total")

        if ts is None:
            ts = 0
        if not _is_int(ts):
            raise HistoryError(f"invalid timestamp: {ts!r}")
        if mounts is None:
            mounts = {}
        if not isinstance(mounts, dict):
            raise HistoryError(f"invalid mounts: {mounts!r}")
        for k, v in mounts.items():
            if not _is_int(v):
                raise HistoryError(f"invalid byte count for {k}: {v!r}")
        if total is None:
            total = 0
        if not _is_int(total):
            raise HistoryError(f"invalid total: {total!r}")

        return cls(timestamp=ts, mounts=dict(mounts), total=total)


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)
