from __future__ import annotations

import logging

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from keyshare.core.errors import MetadataFault
from keyshare.models import Upload, User

logger = logging.getLogger(__name__)


class MetadataStore:
    """Users and uploads, read and written through one request-scoped session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fail(self, action: str, error: SQLAlchemyError):
        logger.error("Metadata %s failed: %s", action, error)
        try:
            await self.db.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback after failed %s also failed", action)
        raise MetadataFault(f"Metadata {action} failed") from error

    async def find_user_by_key(self, key: str) -> User | None:
        try:
            res = await self.db.execute(select(User).where(User.key == key))
        except SQLAlchemyError as e:
            await self._fail("lookup", e)
        return res.scalars().first()

    async def find_owned_uploads(self, key: str, file_path: str) -> list[Upload]:
        stmt = (
            select(Upload)
            .join(User, Upload.uploader == User.id)
            .where(Upload.file_path == file_path, User.key == key)
        )
        try:
            res = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            await self._fail("ownership lookup", e)
        return list(res.scalars().all())

    async def get_upload(self, file_path: str) -> Upload | None:
        try:
            res = await self.db.execute(select(Upload).where(Upload.file_path == file_path))
        except SQLAlchemyError as e:
            await self._fail("lookup", e)
        return res.scalars().first()

    async def all_paths(self) -> list[str]:
        try:
            res = await self.db.execute(select(Upload.file_path))
        except SQLAlchemyError as e:
            await self._fail("scan", e)
        return list(res.scalars().all())

    async def insert_upload(self, file_path: str, uploader_id: int) -> Upload:
        upload = Upload(file_path=file_path, uploader=uploader_id)
        try:
            self.db.add(upload)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._fail("insert", e)
        return upload

    async def update_path(self, old_path: str, new_path: str) -> int:
        stmt = update(Upload).where(Upload.file_path == old_path).values(file_path=new_path)
        try:
            res = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._fail("update", e)
        return res.rowcount

    async def delete_upload(self, file_path: str) -> int:
        try:
            res = await self.db.execute(delete(Upload).where(Upload.file_path == file_path))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._fail("delete", e)
        return res.rowcount
