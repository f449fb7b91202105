# src/taskboard/storage/state_storage.py

from __future__ import annotations

import contextlib
import copy
import json
import logging
import os
from pathlib import Path

from ..core.ports import StateRecord

logger = logging.getLogger(__name__)


class JsonFileStorage:
    """
    JSON file holding named state records.

    The file maps record names to records, so several stores may share it.
    Every save rewrites the whole file (tmp file + os.replace).
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("JsonFileStorage ready path=%s exists=%s", self._path, self._path.exists())

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, StateRecord]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except Exception:
            logger.exception("Failed to read state file %s", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def load(self, key: str) -> StateRecord | None:
        record = self._read_all().get(key)
        return record if isinstance(record, dict) else None

    def save(self, key: str, record: StateRecord) -> None:
        data = self._read_all()
        data[key] = record

        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, self._path)
        with contextlib.suppress(Exception):
            # The record carries the user session, keep the file private on disk.
            os.chmod(self._path, 0o600)
        logger.debug("Saved state record %s to %s", key, self._path)


class MemoryStorage:
    """Dict-backed storage (tests, or persistence disabled)."""

    def __init__(self, records: dict[str, StateRecord] | None = None) -> None:
        self.records: dict[str, StateRecord] = dict(records or {})

    def load(self, key: str) -> StateRecord | None:
        record = self.records.get(key)
        return copy.deepcopy(record) if record is not None else None

    def save(self, key: str, record: StateRecord) -> None:
        self.records[key] = copy.deepcopy(record)
