from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from nfs_usage.services.history_service import HistoryService

logger = logging.getLogger(__name__)

CONFIG_ENV = "NFS_USAGE_CONFIG"


@dataclass(frozen=True)
class ConfigPaths:
    path: Path


@dataclass(frozen=True)
class RunConfig:
    history_file: Path
    compare: bool = False
    mount_table: str | None = None
    df_command: str = "df"


class ConfigService:
    def __init__(self, paths: ConfigPaths | None = None) -> None:
        self.paths = paths or ConfigPaths(path=self.default_path())

    @staticmethod
    def default_path() -> Path:
        env = os.environ.get(CONFIG_ENV)
        if env:
            return Path(env)
        xdg = os.environ.get("XDG_CONFIG_HOME")
        if xdg:
            base = Path(xdg)
        else:
            base = Path.home() / ".config"
        return base / "nfs_usage" / "config.json"

    def load(self) -> dict[str, Any]:
        p = self.paths.path
        if not p.exists():
            return {}
        try:
            with open(p, "r", encoding="utf-8") as f:
                obj = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("ignoring unreadable config %s: %s", p, e)
            return {}
        if not isinstance(obj, dict):
            logger.warning("ignoring config %s: expected a JSON object", p)
            return {}
        return obj

    def resolve(
        self,
        *,
        history_file: str | None = None,
        compare: bool | None = None,
        mount_table: str | None = None,
        df_command: str | None = None,
    ) -> RunConfig:
        """Merge CLI values over the config file over built-in defaults.

        Raises OSError when no history file is configured and the working
        directory cannot be determined.
        """
        cfg = self.load()

        path = history_file or _str_or_none(cfg.get("history_file"))
        if path:
            history_path = Path(path).expanduser()
        else:
            history_path = HistoryService.default_path()

        if compare is None:
            compare = cfg.get("compare") is True

        return RunConfig(
            history_file=history_path,
            compare=bool(compare),
            mount_table=mount_table or _str_or_none(cfg.get("mount_table")),
            df_command=df_command or _str_or_none(cfg.get("df_command")) or "df",
        )


def _str_or_none(v: Any) -> str | None:
    return v if isinstance(v, str) and v else None
