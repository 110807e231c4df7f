"""Create, overwrite, move and delete uploads across disk and database.

There is no transaction spanning the upload table and the upload directory,
so every operation follows a fixed ordering and compensates on failure:

* upload: insert row, create file, stream body. A failure after the insert
  removes the row and the namespace directory again.
* overwrite: truncate-write the file. Metadata is untouched.
* delete: remove the row first, then the directory. A directory that cannot
  be removed is reported as a storage fault and left as an orphan; the row
  is never restored, so the half-deleted object stays unreachable.
* move: update the row, then rename the file. A failed rename restores the
  row's old path.

Concurrent requests on the same path are not serialized; the last writer wins.
"""
from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import AsyncIterable

from keyshare.core.config import Settings
from keyshare.core.errors import InvalidPath, KeyshareError, MetadataFault, NotFound, StorageFault
from keyshare.monitoring.setup import report_operation, report_rollback
from keyshare.services.gates import Principal
from keyshare.services.metadata_store import MetadataStore
from keyshare.services.object_store import ObjectStore
from keyshare.services.purger import CachePurger
from keyshare.utils.paths import join_object_path, parse_filename_from_uri, split_object_path
from keyshare.utils.urls import build_public_url

logger = logging.getLogger(__name__)


@contextmanager
def _track(operation: str):
    try:
        yield
    except KeyshareError as e:
        report_operation(operation, type(e).__name__)
        raise
    except BaseException:
        report_operation(operation, "aborted")
        raise
    else:
        report_operation(operation, "ok")


class FileLifecycleManager:
    def __init__(
        self,
        settings: Settings,
        metadata: MetadataStore,
        objects: ObjectStore,
        purger: CachePurger,
    ):
        self.settings = settings
        self.metadata = metadata
        self.objects = objects
        self.purger = purger

    def public_url(self, path: str) -> str:
        return build_public_url(self.settings.BASE_URL, path)

    async def upload(self, principal: Principal, body: AsyncIterable[bytes]) -> str:
        filename = parse_filename_from_uri(principal.target_path)
        if filename is None:
            raise InvalidPath("No valid path given")
        namespace = str(uuid.uuid4())
        path = join_object_path(namespace, filename)

        with _track("upload"):
            await self.metadata.insert_upload(path, principal.user_id)
            try:
                handle = await self.objects.create(namespace, filename)
            except BaseException:
                await self._discard_upload(namespace, path)
                raise

            try:
                try:
                    size = await self.objects.write_stream(handle, body)
                finally:
                    await self.objects.close(handle)
            except BaseException:
                await self._discard_upload(namespace, path)
                raise

        logger.info("Stored %s (%d bytes) for user %s", path, size, principal.user_id)
        return self.public_url(path)

    async def _discard_upload(self, namespace: str, path: str) -> None:
        report_rollback("upload")
        logger.warning("Rolling back upload of %s", path)
        try:
            await self.metadata.delete_upload(path)
        except MetadataFault:
            logger.error("Could not remove metadata row for failed upload %s", path)
        try:
            await self.objects.delete_namespace(namespace)
        except NotFound:
            pass
        except StorageFault as e:
            logger.error("Could not remove namespace %s of failed upload: %s", namespace, e)

    async def overwrite(self, principal: Principal, body: AsyncIterable[bytes]) -> str:
        path = principal.target_path
        namespace, filename = split_object_path(path)
        with _track("overwrite"):
            size = await self.objects.overwrite(namespace, filename, body)
        url = self.public_url(path)
        self.purger.schedule(url)
        logger.info("Overwrote %s (%d bytes)", path, size)
        return url

    async def delete(self, principal: Principal) -> None:
        path = principal.target_path
        namespace, _ = split_object_path(path)
        url = self.public_url(path)
        with _track("delete"):
            if not await self.metadata.delete_upload(path):
                raise NotFound(path)
            try:
                await self.objects.delete_namespace(namespace)
            except NotFound:
                logger.warning("Namespace %s was already gone from disk", namespace)
            except StorageFault:
                logger.error("Deleted metadata for %s but its directory is orphaned on disk", path)
                self.purger.schedule(url)
                raise
        self.purger.schedule(url)
        logger.info("Deleted %s", path)

    async def move(self, principal: Principal, rename_to: str) -> str:
        path = principal.target_path
        namespace, old_filename = split_object_path(path)
        new_filename = parse_filename_from_uri(rename_to)
        if new_filename is None:
            raise InvalidPath("No valid path given")
        new_path = join_object_path(namespace, new_filename)
        if new_path == path:
            return self.public_url(path)

        with _track("move"):
            if not await self.metadata.update_path(path, new_path):
                raise NotFound(path)
            try:
                await self.objects.rename(namespace, old_filename, new_filename)
            except BaseException:
                await self._restore_path(new_path, path)
                raise

        self.purger.schedule(self.public_url(path))
        logger.info("Moved %s to %s", path, new_path)
        return self.public_url(new_path)

    async def _restore_path(self, current: str, original: str) -> None:
        report_rollback("move")
        logger.warning("Rename on disk failed, restoring metadata path %s", original)
        try:
            await self.metadata.update_path(current, original)
        except MetadataFault:
            logger.error("Could not restore metadata path %s; row still points at %s", original, current)
