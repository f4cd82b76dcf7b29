"""Saved sessions — one JSON document per session on local disk.

A session is a named snapshot of a workspace (tree, positions, cards, style)
plus listing metadata. There is no user separation: every caller sees every
session.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from collections.abc import Callable
from pathlib import Path

from pydantic import ValidationError

from breakitdown.errors import SessionNotFound
from breakitdown.models.decomposition import IdentificationResult
from breakitdown.models.session import SessionRecord, SessionSnapshot, SessionSummary

logger = logging.getLogger(__name__)

_DEFAULT_DATA_DIR = Path(__file__).parent / "data"
_SESSION_ID = re.compile(r"^[0-9a-f]{32}$")


class SessionStore:
    def __init__(self, data_dir: Path | None = None, clock: Callable[[], float] = time.time) -> None:
        self.data_dir = data_dir or _DEFAULT_DATA_DIR
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._clock = clock

    def _path(self, session_id: str) -> Path:
        if not _SESSION_ID.match(session_id):
            raise SessionNotFound(session_id)
        return self.data_dir / f"{session_id}.json"

    def _write(self, record: SessionRecord) -> None:
        path = self._path(record.id)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(record.model_dump_json(indent=2, by_alias=True), encoding="utf-8")
        tmp.replace(path)

    def _read(self, session_id: str) -> SessionRecord:
        path = self._path(session_id)
        if not path.exists():
            raise SessionNotFound(session_id)
        return SessionRecord.model_validate_json(path.read_text(encoding="utf-8"))

    def create(
        self,
        title: str,
        snapshot: SessionSnapshot,
        identification: IdentificationResult | None = None,
    ) -> SessionRecord:
        now = self._clock()
        root = snapshot.tree
        record = SessionRecord(
            id=uuid.uuid4().hex,
            title=title,
            root_name=root.name,
            root_icon=root.icon,
            root_image=root.image_url,
            created_at=now,
            updated_at=now,
            last_accessed_at=now,
            snapshot=snapshot,
            identification=identification,
        )
        self._write(record)
        logger.info("Saved session %s (%r)", record.id, title)
        return record

    def get(self, session_id: str) -> SessionRecord:
        record = self._read(session_id)
        record.last_accessed_at = self._clock()
        self._write(record)
        return record

    def list(self) -> list[SessionSummary]:
        """All sessions, most recently updated first. Unreadable files are skipped."""
        summaries: list[SessionSummary] = []
        for path in self.data_dir.glob("*.json"):
            try:
                record = SessionRecord.model_validate_json(path.read_text(encoding="utf-8"))
            except (OSError, ValidationError) as e:
                logger.warning("Skipping unreadable session file %s: %s", path.name, e)
                continue
            summaries.append(SessionSummary.model_validate(record.model_dump(exclude={"snapshot", "identification"})))
        summaries.sort(key=lambda s: s.updated_at, reverse=True)
        return summaries

    def update(
        self,
        session_id: str,
        *,
        title: str | None = None,
        snapshot: SessionSnapshot | None = None,
        identification: IdentificationResult | None = None,
    ) -> SessionRecord:
        record = self._read(session_id)
        if title:
            record.title = title
        if snapshot is not None:
            record.snapshot = snapshot
            record.root_name = snapshot.tree.name
            record.root_icon = snapshot.tree.icon
            record.root_image = snapshot.tree.image_url
        if identification is not None:
            record.identification = identification
        record.updated_at = self._clock()
        self._write(record)
        logger.info("Updated session %s", session_id)
        return record

    def delete(self, session_id: str) -> None:
        path = self._path(session_id)
        if not path.exists():
            raise SessionNotFound(session_id)
        path.unlink()
        logger.info("Deleted session %s", session_id)
