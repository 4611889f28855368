"""Append-only jsonlines stores for archived catalog records."""

import json
import logging
import os
import threading
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_locks: dict[Path, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    """Get the process-wide writer lock for a file."""
    key = path.resolve()
    with _locks_guard:
        if key not in _locks:
            _locks[key] = threading.Lock()
        return _locks[key]


def _append_lines(path: Path, lines: list[str]) -> None:
    """Append complete lines to a file under its writer lock."""
    if not lines:
        return

    path.parent.mkdir(parents=True, exist_ok=True)
    with _lock_for(path):
        with open(path, "a", encoding="utf-8") as f:
            f.write("".join(line + "\n" for line in lines))
            f.flush()
            os.fsync(f.fileno())


def _read_lines(path: Path) -> Iterator[dict]:
    """Yield every complete, parseable JSON line of a file."""
    if not path.exists():
        return

    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            # A line without its newline is still being written
            if not line.endswith("\n"):
                break
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping malformed line {line_number} in {path}: {e}")


class ArchiveStore(Generic[T]):
    """Record store for one entity kind, keyed by the record ``id``.

    Records are appended, never rewritten. The last record for an id wins
    when loading.
    """

    def __init__(self, base_path: str | Path, file_name: str, model: type[T]):
        self.path = Path(base_path) / file_name
        self.model = model

    def append(self, record: T) -> None:
        """Append one record, durable once this returns."""
        self.append_many([record])

    def append_many(self, records: Iterable[T]) -> None:
        _append_lines(
            self.path,
            [
                json.dumps(record.model_dump(mode="json"), ensure_ascii=False)
                for record in records
            ],
        )

    def load_all(self) -> list[T]:
        """Load the most recent record per id, in first-seen id order."""
        latest: dict[int, T] = {}
        for data in _read_lines(self.path):
            try:
                record = self.model.model_validate(data)
            except ValidationError as e:
                logger.warning(f"Skipping invalid record in {self.path}: {e}")
                continue
            latest[record.id] = record
        return list(latest.values())

    def get(self, record_id: int) -> T | None:
        """Get the most recent record for an id."""
        found = None
        for data in _read_lines(self.path):
            if data.get("id") != record_id:
                continue
            try:
                found = self.model.model_validate(data)
            except ValidationError as e:
                logger.warning(f"Skipping invalid record in {self.path}: {e}")
        return found


class RelationRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    subject_id: int
    related_id: int
    relation: str = ""


class RelationStore:
    """Relation file between a subject and related ids.

    A related id can appear once per relation kind, e.g. a person credited
    both as director and as writer.

    The index keyed by subject id is built on first lookup and kept in sync
    with links made through this instance.
    """

    def __init__(self, base_path: str | Path, file_name: str):
        self.path = Path(base_path) / file_name
        self._index: dict[int, dict[tuple[int, str], RelationRecord]] | None = None

    def _load_index(self) -> dict[int, dict[tuple[int, str], RelationRecord]]:
        if self._index is None:
            index: dict[int, dict[tuple[int, str], RelationRecord]] = {}
            for data in _read_lines(self.path):
                try:
                    record = RelationRecord.model_validate(data)
                except ValidationError as e:
                    logger.warning(f"Skipping invalid relation in {self.path}: {e}")
                    continue
                index.setdefault(record.subject_id, {})[
                    (record.related_id, record.relation)
                ] = record
            self._index = index
        return self._index

    def link(self, subject_id: int, related_id: int, relation: str = "") -> None:
        self.link_many(subject_id, [(related_id, relation)])

    def link_many(self, subject_id: int, related: Iterable[tuple[int, str]]) -> None:
        """Link a subject to several ids at once."""
        records = [
            RelationRecord(
                subject_id=subject_id, related_id=related_id, relation=relation
            )
            for related_id, relation in related
        ]
        _append_lines(
            self.path,
            [json.dumps(r.model_dump(), ensure_ascii=False) for r in records],
        )
        if self._index is not None:
            for record in records:
                self._index.setdefault(subject_id, {})[
                    (record.related_id, record.relation)
                ] = record

    def relations(self, subject_id: int) -> list[RelationRecord]:
        return list(self._load_index().get(subject_id, {}).values())

    def related_ids(self, subject_id: int, relation: str | None = None) -> set[int]:
        """Get the ids related to a subject, optionally of one relation kind."""
        return {
            record.related_id
            for record in self.relations(subject_id)
            if relation is None or record.relation == relation
        }
