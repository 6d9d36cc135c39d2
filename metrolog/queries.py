"""
クエリサービス
Filtered listings and dashboard aggregates over measurement records.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from sqlalchemy import Integer, case, func, literal, select

import config
from metrolog.db import Store
from metrolog.filters import (
    LogFilters, build_ordering, build_predicate, conjunction, failed_clause,
    file_scope, page_count, page_offset,
)
from metrolog.models import MeasurementRecord

DISTRIBUTION_FIELDS = {
    "measurement_group": MeasurementRecord.measurement_group,
    "measurement_style": MeasurementRecord.measurement_style,
    "color_model": MeasurementRecord.color_model,
    "status": MeasurementRecord.status,
    "features_ok": MeasurementRecord.features_ok,
}

GRANULARITIES = ("day", "hour")


def _non_empty(column):
    return conjunction(column.is_not(None), column != "")


def _percent(part, total) -> float:
    """part/total as a percentage, one decimal, ties rounded up (1/16 -> 6.3)"""
    if not total:
        return 0.0
    rate = Decimal(str(part * 100 / total))
    return float(rate.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _hour_of(column):
    # text before the first ':' padded to two digits, so '9:15:00' -> '09'
    colon = func.instr(column, ":", type_=Integer)
    hour = case((colon > 0, func.substr(column, 1, colon - 1)), else_=column)
    return func.substr(literal("0").concat(hour), -2)


class QueryService:
    def __init__(self, store: Store):
        self.store = store

    def list_records(
        self,
        page: int = 1,
        page_size: int = config.DEFAULT_PAGE_SIZE,
        filters: Optional[LogFilters] = None,
    ) -> dict:
        offset = page_offset(page, page_size)
        predicate = build_predicate(filters)

        with self.store.session() as session:
            total = session.scalar(
                select(func.count(MeasurementRecord.id)).where(predicate)
            )
            records = session.scalars(
                select(MeasurementRecord)
                .where(predicate)
                .order_by(*build_ordering(filters))
                .offset(offset)
                .limit(page_size)
            ).all()

        return {
            "records": [r.to_dict() for r in records],
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": page_count(total, page_size),
        }

    def export_records(self, filters: Optional[LogFilters] = None) -> list[dict]:
        """Every matching record, in listing order, without pagination."""
        with self.store.session() as session:
            records = session.scalars(
                select(MeasurementRecord)
                .where(build_predicate(filters))
                .order_by(*build_ordering(filters))
            ).all()
        return [r.to_dict() for r in records]

    def dashboard_stats(self, file_sources: Optional[Sequence[str]] = None) -> dict:
        failed = func.sum(case((failed_clause(), 1), else_=0))
        with self.store.session() as session:
            total, failed_count, avg_time, avg_uncertainty = session.execute(
                select(
                    func.count(MeasurementRecord.id),
                    failed,
                    func.avg(MeasurementRecord.measurement_time),
                    func.avg(MeasurementRecord.uncertainty),
                ).where(file_scope(file_sources))
            ).one()

        return {
            "total": total,
            "failed_rate": _percent(failed_count, total),
            "avg_measurement_time": float(avg_time or 0),
            "avg_uncertainty": float(avg_uncertainty or 0),
        }

    def trend(
        self,
        file_sources: Optional[Sequence[str]] = None,
        granularity: str = "day",
    ) -> list[dict]:
        """Success/failure counts per day or per hour, oldest bucket first."""
        if granularity not in GRANULARITIES:
            raise ValueError(f"Unknown granularity: {granularity!r}")

        r = MeasurementRecord
        if granularity == "hour":
            bucket = r.date.concat(" ").concat(_hour_of(r.time)).concat(":00")
        else:
            bucket = r.date
        bucket = bucket.label("bucket")
        failed = func.sum(case((failed_clause(), 1), else_=0))

        stmt = (
            select(bucket, func.count(r.id), failed)
            .where(conjunction(file_scope(file_sources), _non_empty(r.date)))
            .group_by(bucket)
            .order_by(bucket.asc())
        )
        with self.store.session() as session:
            rows = session.execute(stmt).all()

        return [
            {"bucket": b, "success": count - (n_failed or 0), "failed": n_failed or 0}
            for b, count, n_failed in rows
        ]

    def top_errors(
        self,
        file_sources: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        r = MeasurementRecord
        count = func.count(r.id).label("count")
        stmt = (
            select(r.error_desc, count)
            .where(conjunction(file_scope(file_sources), _non_empty(r.error_desc)))
            .group_by(r.error_desc)
            .order_by(count.desc(), r.error_desc.asc())
        )
        if limit:
            stmt = stmt.limit(limit)
        with self.store.session() as session:
            rows = session.execute(stmt).all()
        return [{"description": desc, "count": n} for desc, n in rows]

    def distribution(
        self,
        field: str,
        file_sources: Optional[Sequence[str]] = None,
    ) -> list[dict]:
        column = DISTRIBUTION_FIELDS.get(field)
        if column is None:
            raise ValueError(f"Unknown distribution field: {field!r}")

        count = func.count(MeasurementRecord.id).label("count")
        stmt = (
            select(column, count)
            .where(conjunction(file_scope(file_sources), _non_empty(column)))
            .group_by(column)
            .order_by(count.desc(), column.asc())
        )
        with self.store.session() as session:
            rows = session.execute(stmt).all()
        return [{"category": category, "count": n} for category, n in rows]

    def filter_options(self) -> dict:
        """Picker values over the whole table, ignoring any active filter."""
        r = MeasurementRecord

        def distinct(session, column):
            return list(session.scalars(
                select(column).where(_non_empty(column)).distinct().order_by(column.asc())
            ))

        with self.store.session() as session:
            return {
                "measurement_groups": distinct(session, r.measurement_group),
                "measurement_styles": distinct(session, r.measurement_style),
                "file_sources": distinct(session, r.file_source),
            }
