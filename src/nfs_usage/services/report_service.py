from __future__ import annotations

from dataclasses import dataclass

from nfs_usage.models.usage import Sample

GIB = 1024 * 1024 * 1024
TIB = 1024 * GIB

TOTAL_LABEL = "total"
REMOVED_MARKER = "(removed)"
HEADERS = ("Mountpoint", "Oldest", "Current", "Difference")


def format_bytes(n: int) -> str:
    if n >= TIB:
        return f"{n / TIB:.2f} TiB"
    return f"{n / GIB:.2f} GiB"


def format_diff(diff: int) -> str:
    if diff >= 0:
        return "+" + format_bytes(diff)
    return "-" + format_bytes(-diff)


@dataclass(frozen=True)
class ComparisonRow:
    mountpoint: str
    oldest: str
    current: str
    difference: str

    def cells(self) -> tuple[str, str, str, str]:
        return (self.mountpoint, self.oldest, self.current, self.difference)


class ReportService:
    def render(self, history: list[Sample], current: Sample, compare: bool) -> str:
        # Fewer than two samples means this run wrote the first one.
        if compare and len(history) > 1:
            return self.render_comparison(history[0].without_snapshots(), current)
        return self.render_current(current)

    def render_current(self, sample: Sample) -> str:
        width = max([len(TOTAL_LABEL)] + [len(m) for m in sample.mounts])
        lines = [f"{m:<{width}}  {format_bytes(sample.mounts[m])}" for m in sorted(sample.mounts)]
        lines.append(f"{TOTAL_LABEL:<{width}}  {format_bytes(sample.total)}")
        return "\n".join(lines) + "\n"

    def comparison_rows(self, oldest: Sample, current: Sample) -> list[ComparisonRow]:
        rows: list[ComparisonRow] = []
        for m in sorted(current.mounts):
            cur = current.mounts[m]
            old = oldest.mounts.get(m, 0)
            rows.append(ComparisonRow(m, format_bytes(old), format_bytes(cur), format_diff(cur - old)))

        for m in sorted(set(oldest.mounts) - set(current.mounts)):
            old = oldest.mounts[m]
            rows.append(ComparisonRow(m, format_bytes(old), REMOVED_MARKER, format_diff(-old)))

        rows.append(
            ComparisonRow(
                TOTAL_LABEL,
                format_bytes(oldest.total),
                format_bytes(current.total),
                format_diff(current.total - oldest.total),
            )
        )
        return rows

    def render_comparison(self, oldest: Sample, current: Sample) -> str:
        rows = self.comparison_rows(oldest, current)
        widths = [len(h) for h in HEADERS]
        for r in rows:
            for i, cell in enumerate(r.cells()):
                widths[i] = max(widths[i], len(cell))

        lines = [
            self._format_line(HEADERS, widths),
            self._format_line(tuple("-" * w for w in widths), widths),
        ]
        lines.extend(self._format_line(r.cells(), widths) for r in rows)
        return "\n".join(lines) + "\n"

    def _format_line(self, cells: tuple[str, ...], widths: list[int]) -> str:
        first, *rest = cells
        parts = [f"{first:<{widths[0]}}"]
        parts.extend(f"{c:>{w}}" for c, w in zip(rest, widths[1:]))
        return "  ".join(parts)
