from __future__ import annotations

import subprocess
from types import SimpleNamespace

import pytest

from nfs_usage.collectors import usage_collector
from nfs_usage.collectors.usage_collector import DfQuerier, UsageCollector, parse_df_output
from nfs_usage.errors import UsageExecError, UsageParseError

DF_OUTPUT = """\
Filesystem        1B-blocks        Used    Available Use% Mounted on
srv:/export    107374182400 21474836480 85899345920  20% /mnt/a
"""

DF_WRAPPED = """\
Filesystem                                     1B-blocks        Used   Available Use% Mounted on
very-long-server-name.example.com:/exports/projects/shared
                                            107374182400  5368709120 102005473280   5% /mnt/shared
"""


class FakeQuerier:
    def __init__(self, values: dict[str, int], failing: set[str] | None = None) -> None:
        self.values = values
        self.failing = failing or set()
        self.calls: list[str] = []

    def used_bytes(self, mountpoint: str) -> int:
        self.calls.append(mountpoint)
        if mountpoint in self.failing:
            raise UsageExecError(mountpoint, "Stale file handle")
        return self.values[mountpoint]


def test_parse_df_output() -> None:
    assert parse_df_output(DF_OUTPUT) == 21474836480


def test_parse_df_output_wrapped_device_name() -> None:
    assert parse_df_output(DF_WRAPPED) == 5368709120


@pytest.mark.parametrize(
    "output",
    [
        "Filesystem 1B-blocks Used",
        "Filesystem 1B-blocks Used\nsrv:/x 100\n",
        "Filesystem 1B-blocks Used\nsrv:/x 100 lots 5 1% /mnt\n",
        "Filesystem 1B-blocks Used\nsrv:/x 100 -5 5 1% /mnt\n",
    ],
)
def test_parse_df_output_rejects_bad_output(output: str) -> None:
    with pytest.raises(UsageParseError):
        parse_df_output(output, "/mnt/x")


def test_df_querier_runs_byte_exact_df(monkeypatch) -> None:
    seen = {}

    def fake_run(cmd, **kwargs):
        seen["cmd"] = cmd
        seen["env"] = kwargs["env"]
        return SimpleNamespace(returncode=0, stdout=DF_OUTPUT, stderr="")

    monkeypatch.setattr(usage_collector.subprocess, "run", fake_run)

    assert DfQuerier().used_bytes("/mnt/a") == 21474836480
    assert seen["cmd"] == ["df", "-B1", "/mnt/a"]
    assert seen["env"]["LC_ALL"] == "C"


def test_df_querier_nonzero_exit(monkeypatch) -> None:
    monkeypatch.setattr(
        usage_collector.subprocess,
        "run",
        lambda cmd, **kw: SimpleNamespace(returncode=1, stdout="", stderr="df: /mnt/a: Stale file handle\n"),
    )

    with pytest.raises(UsageExecError) as exc:
        DfQuerier().used_bytes("/mnt/a")
    assert exc.value.mountpoint == "/mnt/a"
    assert "Stale file handle" in str(exc.value)


def test_df_querier_missing_command() -> None:
    with pytest.raises(UsageExecError):
        DfQuerier("/nonexistent/df-binary").used_bytes("/mnt/a")


def test_df_querier_subprocess_type_is_completed_process(monkeypatch) -> None:
    monkeypatch.setattr(
        usage_collector.subprocess,
        "run",
        lambda cmd, **kw: subprocess.CompletedProcess(cmd, 0, stdout=DF_WRAPPED, stderr=""),
    )
    assert DfQuerier("gdf").used_bytes("/mnt/shared") == 5368709120


def test_collect_builds_sample_with_total() -> None:
    q = FakeQuerier({"/mnt/a": 100, "/mnt/b": 250})
    result = UsageCollector(q).collect(["/mnt/a", "/mnt/b"])

    assert result.ok
    assert result.data.mounts == {"/mnt/a": 100, "/mnt/b": 250}
    assert result.data.total == 350
    assert result.data.timestamp == int(result.ts.timestamp())


def test_collect_skips_failing_mounts(caplog) -> None:
    q = FakeQuerier({"/mnt/a": 100, "/mnt/c": 5}, failing={"/mnt/b"})

    with caplog.at_level("WARNING"):
        result = UsageCollector(q).collect(["/mnt/a", "/mnt/b", "/mnt/c"])

    assert q.calls == ["/mnt/a", "/mnt/b", "/mnt/c"]
    assert result.status == "WARN"
    assert result.warning_count == 1
    assert result.skipped == ["/mnt/b"]
    assert result.data.mounts == {"/mnt/a": 100, "/mnt/c": 5}
    assert result.data.total == 105
    assert "Error getting df for /mnt/b" in caplog.text


def _write_df_script(tmp_path, body: str):
    script = tmp_path / "fake-df"
    script.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    script.chmod(0o755)
    return script


def test_df_querier_tolerates_non_utf8_output(tmp_path) -> None:
    script = _write_df_script(
        tmp_path,
        "printf 'Filesystem 1B-blocks Used Available Use%% Mounted on\\n'\n"
        "printf 'srv:/caf\\351 100 42 58 42%% /mnt/caf\\351\\n'\n",
    )

    assert DfQuerier(str(script)).used_bytes("/mnt/cafe") == 42


def test_df_querier_non_utf8_stderr_is_exec_error(tmp_path) -> None:
    script = _write_df_script(tmp_path, "printf 'df: /mnt/caf\\351: Stale file handle\\n' >&2\nexit 1\n")

    with pytest.raises(UsageExecError) as exc:
        DfQuerier(str(script)).used_bytes("/mnt/cafe")
    assert "Stale file handle" in str(exc.value)
