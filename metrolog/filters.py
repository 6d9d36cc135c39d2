"""
フィルタビルダー
Composable filter expressions for record queries.

Listing, export and the aggregate views all draw their WHERE and ORDER BY
clauses from here, so "failed", the date range and the pagination math have
exactly one definition each.
"""
import math
from dataclasses import dataclass, fields
from typing import Iterable, Mapping, Optional, Sequence

from sqlalchemy import and_, func, or_, true

from metrolog.models import MeasurementRecord

FAILED_PREFIX = "Failed"

STATUS_CHOICES = ("all", "failed", "succeeded")
SORT_COLUMNS = ("date", "time")
SORT_ORDERS = ("asc", "desc")


# ── 述語コンビネータ ──

def equals(column, value):
    if value is None or value == "":
        return None
    return column == value


def between(column, low=None, high=None):
    """Inclusive range; either bound may be omitted."""
    clauses = []
    if low:
        clauses.append(column >= low)
    if high:
        clauses.append(column <= high)
    return conjunction(*clauses) if clauses else None


def contains(column, term):
    # instr() is case-sensitive in SQLite, LIKE is not
    if not term:
        return None
    return func.instr(column, term) > 0


def starts_with(column, prefix):
    return func.substr(column, 1, len(prefix)) == prefix


def not_starts_with(column, prefix):
    return or_(column.is_(None), func.substr(column, 1, len(prefix)) != prefix)


def one_of(column, values: Optional[Iterable[str]]):
    """Allow-list; None or empty means no constraint."""
    if not values:
        return None
    return column.in_(list(values))


def conjunction(*clauses):
    present = [c for c in clauses if c is not None]
    if not present:
        return true()
    if len(present) == 1:
        return present[0]
    return and_(*present)


# ── ステータス ──

def failed_clause():
    return starts_with(MeasurementRecord.status, FAILED_PREFIX)


def succeeded_clause():
    return not_starts_with(MeasurementRecord.status, FAILED_PREFIX)


def status_clause(status: str):
    if status == "failed":
        return failed_clause()
    if status == "succeeded":
        return succeeded_clause()
    return None


def file_scope(file_sources: Optional[Sequence[str]]):
    return conjunction(one_of(MeasurementRecord.file_source, file_sources))


# ── フィルタ仕様 ──

@dataclass
class LogFilters:
    status: str = "all"
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    error_search: Optional[str] = None
    measurement_group: Optional[str] = None
    measurement_style: Optional[str] = None
    file_source: Optional[str] = None
    folder_id: Optional[int] = None
    sort_by: str = "date"
    sort_order: str = "desc"

    def __post_init__(self):
        self.status = self.status or "all"
        self.sort_by = self.sort_by or "date"
        self.sort_order = self.sort_order or "desc"
        if self.status not in STATUS_CHOICES:
            raise ValueError(f"Unknown status filter: {self.status!r}")
        if self.sort_by not in SORT_COLUMNS:
            raise ValueError(f"Unknown sort column: {self.sort_by!r}")
        if self.sort_order not in SORT_ORDERS:
            raise ValueError(f"Unknown sort order: {self.sort_order!r}")

    @classmethod
    def from_dict(cls, data: Optional[Mapping]) -> "LogFilters":
        if not data:
            return cls()
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


def build_predicate(filters: Optional[LogFilters]):
    """One conjunctive WHERE clause for every constraint in filters."""
    filters = filters or LogFilters()
    r = MeasurementRecord
    return conjunction(
        status_clause(filters.status),
        between(r.date, filters.date_from, filters.date_to),
        contains(r.error_desc, filters.error_search),
        equals(r.measurement_group, filters.measurement_group),
        equals(r.measurement_style, filters.measurement_style),
        equals(r.file_source, filters.file_source),
        equals(r.folder_id, filters.folder_id),
    )


def build_ordering(filters: Optional[LogFilters]) -> list:
    """Sort column, its fixed secondary column, then id; one direction."""
    filters = filters or LogFilters()
    r = MeasurementRecord
    if filters.sort_by == "time":
        columns = [r.time, r.date, r.id]
    else:
        columns = [r.date, r.time, r.id]
    if filters.sort_order == "asc":
        return [c.asc() for c in columns]
    return [c.desc() for c in columns]


# ── ページング ──

def page_count(total: int, page_size: int) -> int:
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    return math.ceil(total / page_size) if total > 0 else 0


def page_offset(page: int, page_size: int) -> int:
    if page < 1:
        raise ValueError("page must be at least 1")
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    return (page - 1) * page_size
