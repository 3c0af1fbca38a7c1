from __future__ import annotations

from .base import (
    ChunkWriteError,
    InMemoryMatchRepository,
    InMemoryScholarshipRepository,
    MatchRepository,
    ScholarshipRepository,
)
from .dedup import DedupOptions, DuplicateMatch, check_duplicate, find_duplicates
from .importer import ImportOptions, ImportReport, drop_expired, import_scholarships, write_import_report
from .merge import merge_duplicates

__all__ = [
    "ChunkWriteError",
    "DedupOptions",
    "DuplicateMatch",
    "ImportOptions",
    "ImportReport",
    "InMemoryMatchRepository",
    "InMemoryScholarshipRepository",
    "MatchRepository",
    "ScholarshipRepository",
    "check_duplicate",
    "drop_expired",
    "find_duplicates",
    "import_scholarships",
    "merge_duplicates",
    "write_import_report",
]
