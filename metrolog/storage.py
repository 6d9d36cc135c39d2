"""
ログ取り込みモジュール
Bulk ingestion of parsed log entries using SQLAlchemy.
"""
import logging
import os
from dataclasses import asdict
from typing import Sequence

from metrolog.db import Store, StorageError
from metrolog.models import MeasurementRecord, utcnow
from metrolog.parser import LogEntry, data_lines, parse_log_content

logger = logging.getLogger(__name__)


class IngestionService:
    def __init__(self, store: Store):
        self.store = store

    def ingest(self, entries: Sequence[LogEntry], file_source: str) -> int:
        """
        Write every entry under file_source in one transaction.

        Either all rows commit or none do. Importing the same file_source
        twice appends a second copy of the rows; delete the file first for
        a clean re-import.

        Raises:
            StorageError: the write failed and was rolled back
        """
        if not file_source:
            raise ValueError("file_source is required")

        imported_at = utcnow()
        records = [
            MeasurementRecord(
                **asdict(entry),
                file_source=file_source,
                imported_at=imported_at,
            )
            for entry in entries
        ]

        with self.store.transaction() as session:
            session.bulk_save_objects(records)

        logger.info("Imported %d records from %s", len(records), file_source)
        return len(records)

    def import_content(self, content: str, file_source: str) -> dict:
        entries = parse_log_content(content)
        skipped = len(data_lines(content)) - len(entries)
        if skipped:
            logger.warning("Skipped %d malformed lines in %s", skipped, file_source)
        count = self.ingest(entries, file_source)
        return {
            "success": True,
            "count": count,
            "skipped": skipped,
            "file_source": file_source,
        }

    def import_file(self, path: str) -> dict:
        """ファイルを読み込み、取り込み結果を返す (never raises for I/O or storage)"""
        file_source = os.path.basename(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
            return self.import_content(content, file_source)
        except (OSError, UnicodeDecodeError, StorageError) as e:
            logger.error("Import error for %s: %s", path, e)
            return {"success": False, "error": str(e)}
