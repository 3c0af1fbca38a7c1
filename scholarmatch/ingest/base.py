from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Callable, Iterable, Optional, Sequence

from scholarmatch.normalize.canonical_id import generate_scholarship_id
from scholarmatch.normalize.schema import Match, Scholarship


class ChunkWriteError(Exception):
    """Raised by a repository when a chunk write is rolled back.

    `offset` is the position of the offending record inside the chunk.
    """

    def __init__(self, offset: int, reason: str) -> None:
        super().__init__(reason)
        self.offset = offset
        self.reason = reason


class ScholarshipRepository(ABC):
    @abstractmethod
    def load_catalog(self) -> list[Scholarship]:
        """Return a consistent snapshot of the existing catalog."""

    @abstractmethod
    def insert_chunk(self, records: Sequence[Scholarship]) -> list[str]:
        """Insert all records atomically and return their ids, or raise ChunkWriteError."""

    @abstractmethod
    def update(self, record: Scholarship) -> None:
        """Replace an existing record keyed by its id."""


class MatchRepository(ABC):
    @abstractmethod
    def upsert_matches(self, matches: Sequence[Match]) -> int:
        """Upsert matches keyed by (student_id, scholarship_id) and return the number written."""


def resolve_scholarship_id(record: Scholarship) -> str:
    if record.id:
        return record.id
    return generate_scholarship_id(
        name=record.name,
        provider=record.provider,
        deadline=record.deadline,
        website=record.website,
    )


class InMemoryScholarshipRepository(ScholarshipRepository):
    def __init__(
        self,
        records: Iterable[Scholarship] = (),
        *,
        reject: Optional[Callable[[Scholarship], Optional[str]]] = None,
    ) -> None:
        self._records: dict[str, Scholarship] = {}
        for record in records:
            record_id = resolve_scholarship_id(record)
            self._records[record_id] = replace(record, id=record_id)
        self._reject = reject

    def load_catalog(self) -> list[Scholarship]:
        return list(self._records.values())

    def get(self, record_id: str) -> Optional[Scholarship]:
        return self._records.get(record_id)

    def __len__(self) -> int:
        return len(self._records)

    def insert_chunk(self, records: Sequence[Scholarship]) -> list[str]:
        staged = dict(self._records)
        inserted_ids: list[str] = []
        for offset, record in enumerate(records):
            reason = self._reject(record) if self._reject is not None else None
            if reason:
                raise ChunkWriteError(offset, reason)
            record_id = resolve_scholarship_id(record)
            if record_id in staged:
                raise ChunkWriteError(offset, f"Scholarship id '{record_id}' already exists.")
            staged[record_id] = replace(record, id=record_id)
            inserted_ids.append(record_id)
        self._records = staged
        return inserted_ids

    def update(self, record: Scholarship) -> None:
        if not record.id or record.id not in self._records:
            raise KeyError(f"Unknown scholarship id '{record.id}'.")
        self._records[record.id] = record


class InMemoryMatchRepository(MatchRepository):
    def __init__(self) -> None:
        self._rows: dict[tuple[Optional[str], Optional[str]], Match] = {}

    @property
    def rows(self) -> list[Match]:
        return list(self._rows.values())

    def get(self, student_id: str, scholarship_id: str) -> Optional[Match]:
        return self._rows.get((student_id, scholarship_id))

    def upsert_matches(self, matches: Sequence[Match]) -> int:
        for match in matches:
            self._rows[match.key] = match
        return len(matches)
