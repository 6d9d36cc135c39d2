"""
CSV エクスポート
Renders the filtered record set exactly as the listing orders it.
"""
import csv
import io
from typing import Optional

from metrolog.filters import LogFilters
from metrolog.models import MeasurementRecord
from metrolog.queries import QueryService

EXPORT_COLUMNS = tuple(c for c in MeasurementRecord.COLUMNS if c != "id")


def export_csv_content(queries: QueryService, filters: Optional[LogFilters] = None) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_COLUMNS)

    for record in queries.export_records(filters):
        writer.writerow([record[c] for c in EXPORT_COLUMNS])

    return output.getvalue()
