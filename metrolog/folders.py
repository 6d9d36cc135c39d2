"""
フォルダ管理モジュール
Folder taxonomy over imported files.

A "file" is never stored on its own; it is the group of records sharing a
file_source and is summarised by aggregation in list_imported_files().
"""
import logging
from typing import Optional

from sqlalchemy import delete, func, select, update

from metrolog.db import Store
from metrolog.models import Folder, MeasurementRecord

logger = logging.getLogger(__name__)


class FolderService:
    def __init__(self, store: Store):
        self.store = store

    def list_folders(self) -> list[dict]:
        with self.store.session() as session:
            folders = session.scalars(
                select(Folder).order_by(Folder.name.asc(), Folder.id.asc())
            ).all()
        return [f.to_dict() for f in folders]

    def create_folder(self, name: str) -> dict:
        with self.store.transaction() as session:
            folder = Folder(name=name)
            session.add(folder)
            session.flush()
            result = folder.to_dict()
        logger.info("Created folder %s (%r)", result["id"], name)
        return result

    def rename_folder(self, folder_id: int, name: str) -> bool:
        with self.store.transaction() as session:
            result = session.execute(
                update(Folder).where(Folder.id == folder_id).values(name=name)
            )
            changed = result.rowcount > 0
        return changed

    def delete_folder(self, folder_id: int) -> bool:
        """Detach member records, then drop the folder; one transaction."""
        with self.store.transaction() as session:
            detached = session.execute(
                update(MeasurementRecord)
                .where(MeasurementRecord.folder_id == folder_id)
                .values(folder_id=None)
            ).rowcount
            deleted = session.execute(
                delete(Folder).where(Folder.id == folder_id)
            ).rowcount

        if deleted:
            logger.info("Deleted folder %s, detached %d records", folder_id, detached)
        return deleted > 0

    def assign_file_to_folder(self, file_source: str, folder_id: Optional[int]) -> bool:
        """Move every record of file_source into folder_id (None clears)."""
        with self.store.transaction() as session:
            if folder_id is not None and session.get(Folder, folder_id) is None:
                logger.warning("Folder %s does not exist", folder_id)
                return False
            changed = session.execute(
                update(MeasurementRecord)
                .where(MeasurementRecord.file_source == file_source)
                .values(folder_id=folder_id)
            ).rowcount
        return changed > 0

    def delete_file(self, file_source: str) -> bool:
        with self.store.transaction() as session:
            deleted = session.execute(
                delete(MeasurementRecord).where(MeasurementRecord.file_source == file_source)
            ).rowcount
        if deleted:
            logger.info("Deleted %d records of %s", deleted, file_source)
        return deleted > 0

    def list_imported_files(self) -> list[dict]:
        r = MeasurementRecord
        first_imported = func.min(r.imported_at).label("first_imported_at")
        stmt = (
            select(r.file_source, first_imported, func.count(r.id), func.max(r.folder_id))
            .group_by(r.file_source)
            .order_by(first_imported.desc(), r.file_source.asc())
        )
        with self.store.session() as session:
            rows = session.execute(stmt).all()

        return [
            {
                "file_source": file_source,
                "first_imported_at": _iso(first),
                "record_count": count,
                "folder_id": folder_id,
            }
            for file_source, first, count, folder_id in rows
        ]


def _iso(value):
    if value is None or isinstance(value, str):
        return value
    return value.isoformat()
