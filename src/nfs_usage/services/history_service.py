from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from nfs_usage.errors import HistoryError
from nfs_usage.models.usage import Sample

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "nfsusage.json"


class HistoryService:
    """Append-only JSON history of usage samples, oldest first."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    @staticmethod
    def default_path() -> Path:
        return Path(os.getcwd()) / DEFAULT_FILENAME

    def load(self) -> list[Sample]:
        p = self.path
        try:
            with open(p, "r", encoding="utf-8") as f:
                text = f.read()
        except FileNotFoundError:
            logger.debug("no history at %s yet", p)
            return []
        except UnicodeDecodeError as e:
            raise HistoryError(f"{p}: not valid UTF-8: {e}") from e

        try:
            obj = json.loads(text)
        except json.JSONDecodeError as e:
            raise HistoryError(f"{p}: {e}") from e
        if not isinstance(obj, list):
            raise HistoryError(f"{p}: expected a JSON array, got {type(obj).__name__}")

        samples: list[Sample] = []
        for i, raw in enumerate(obj):
            try:
                samples.append(Sample.from_dict(raw))
            except HistoryError as e:
                raise HistoryError(f"{p}: entry {i}: {e}") from e
        return samples

    def save(self, samples: list[Sample]) -> None:
        p = self.path
        p.parent.mkdir(parents=True, exist_ok=True)
        # written in place so symlinks, mode and owner of the target are kept
        with open(p, "w", encoding="utf-8") as f:
            json.dump([s.to_dict() for s in samples], f, ensure_ascii=False, indent=2)
            f.write("\n")
        logger.debug("wrote %d sample(s) to %s", len(samples), p)
