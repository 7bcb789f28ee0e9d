"""File-backed persistence for weave snapshots.

One ``{id}.weave.json`` file per weave under a single directory. The store is
local-first and dependency-free; a lock serializes writes from concurrent
request handlers within one process.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, ValidationError

from weaver.core.models import Weave
from weaver.core.serialization import deserialize_weave, serialize_weave
from weaver.errors import WeaveNotFound, WeaveStructuralError

logger = logging.getLogger(__name__)

WEAVE_SUFFIX = ".weave.json"

_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")


class WeaveSummary(BaseModel):
    id: str
    name: str
    filename: str
    modified: datetime


@dataclass
class WeaveStore:
    path: Path

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        self._lock = threading.Lock()

    def _file_for(self, weave_id: str) -> Path:
        # Ids become filenames; refuse anything that could escape the directory.
        if not _SAFE_ID.match(weave_id) or weave_id in {".", ".."}:
            raise WeaveStructuralError(f"Invalid weave id {weave_id!r}", operation="store")
        return self.path / f"{weave_id}{WEAVE_SUFFIX}"

    def save(self, weave: Weave) -> Path:
        target = self._file_for(weave.id)
        with self._lock:
            self.path.mkdir(parents=True, exist_ok=True)
            tmp = target.with_suffix(".tmp")
            tmp.write_text(serialize_weave(weave), encoding="utf-8")
            tmp.replace(target)
        logger.debug("Weave saved", extra={"weave_id": weave.id, "path": str(target)})
        return target

    def load(self, weave_id: str) -> Weave:
        target = self._file_for(weave_id)
        with self._lock:
            if not target.exists():
                raise WeaveNotFound(weave_id)
            text = target.read_text(encoding="utf-8")
        return deserialize_weave(text)

    def exists(self, weave_id: str) -> bool:
        return self._file_for(weave_id).exists()

    def delete(self, weave_id: str) -> None:
        target = self._file_for(weave_id)
        with self._lock:
            if not target.exists():
                raise WeaveNotFound(weave_id)
            target.unlink()
        logger.info("Weave deleted", extra={"weave_id": weave_id})

    def list(self) -> list[WeaveSummary]:
        """Summaries of every readable snapshot, most recently modified first."""

        if not self.path.exists():
            return []

        summaries: list[WeaveSummary] = []
        with self._lock:
            files = sorted(self.path.glob(f"*{WEAVE_SUFFIX}"))
            for f in files:
                try:
                    weave = deserialize_weave(f.read_text(encoding="utf-8"))
                except (OSError, json.JSONDecodeError, ValidationError):
                    logger.warning("Skipping unreadable weave file", extra={"path": str(f)})
                    continue
                summaries.append(
                    WeaveSummary(
                        id=weave.id,
                        name=weave.name,
                        filename=f.name,
                        modified=datetime.fromtimestamp(f.stat().st_mtime, tz=UTC),
                    )
                )

        summaries.sort(key=lambda s: s.modified, reverse=True)
        return summaries
