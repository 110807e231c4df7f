"""Filesystem storage for uploaded objects.

Objects live at ``<root>/<namespace>/<filename>``. Every blocking call is
pushed to the threadpool so request handlers never stall the event loop.
"""
from __future__ import annotations

import errno
import logging
import os
import shutil
from typing import AsyncIterable, BinaryIO

from starlette.concurrency import run_in_threadpool

from keyshare.core.errors import InvalidPath, NotFound, StorageFault
from keyshare.utils.paths import is_safe_component

logger = logging.getLogger(__name__)


class ObjectStore:
    def __init__(self, root: str):
        self.root = os.path.realpath(root)

    def ensure_root(self) -> None:
        os.makedirs(self.root, exist_ok=True)

    def _namespace_dir(self, namespace: str) -> str:
        if not is_safe_component(namespace):
            raise InvalidPath("No valid path given")
        directory = os.path.join(self.root, namespace)
        if os.path.dirname(os.path.realpath(directory)) != self.root:
            raise InvalidPath("No valid path given")
        return directory

    def path_for(self, namespace: str, filename: str) -> str:
        if not is_safe_component(filename):
            raise InvalidPath("No valid path given")
        return os.path.join(self._namespace_dir(namespace), filename)

    async def create(self, namespace: str, filename: str) -> BinaryIO:
        target = self.path_for(namespace, filename)

        def _create():
            os.makedirs(os.path.dirname(target), exist_ok=True)
            return open(target, "wb")

        try:
            return await run_in_threadpool(_create)
        except OSError as e:
            logger.error("Could not create %s/%s: %s", namespace, filename, e)
            raise StorageFault(f"Error creating file: {e.strerror or e}") from e

    async def write_stream(self, handle: BinaryIO, chunks: AsyncIterable[bytes]) -> int:
        written = 0
        async for chunk in chunks:
            if not chunk:
                continue
            try:
                await run_in_threadpool(handle.write, chunk)
            except OSError as e:
                raise StorageFault(f"Error writing to file: {e.strerror or e}") from e
            written += len(chunk)
        return written

    async def close(self, handle: BinaryIO) -> None:
        try:
            await run_in_threadpool(handle.close)
        except OSError as e:
            raise StorageFault(f"Error closing file: {e.strerror or e}") from e

    async def overwrite(self, namespace: str, filename: str, chunks: AsyncIterable[bytes]) -> int:
        target = self.path_for(namespace, filename)

        def _open():
            # r+b refuses to create a missing file, then truncate in place
            handle = open(target, "r+b")
            handle.truncate(0)
            return handle

        try:
            handle = await run_in_threadpool(_open)
        except FileNotFoundError as e:
            raise NotFound(f"{namespace}/{filename}") from e
        except OSError as e:
            raise StorageFault(f"Error opening file: {e.strerror or e}") from e
        try:
            return await self.write_stream(handle, chunks)
        finally:
            await self.close(handle)

    async def rename(self, namespace: str, old_filename: str, new_filename: str) -> None:
        source = self.path_for(namespace, old_filename)
        target = self.path_for(namespace, new_filename)
        try:
            await run_in_threadpool(os.rename, source, target)
        except FileNotFoundError as e:
            raise NotFound(f"{namespace}/{old_filename}") from e
        except OSError as e:
            raise StorageFault(f"Error renaming file: {e.strerror or e}") from e

    async def delete_namespace(self, namespace: str) -> None:
        directory = self._namespace_dir(namespace)
        try:
            await run_in_threadpool(shutil.rmtree, directory)
        except FileNotFoundError as e:
            raise NotFound(namespace) from e
        except OSError as e:
            raise StorageFault(f"Failed to remove directory: {e.strerror or e}") from e

    async def exists(self, namespace: str, filename: str) -> bool:
        return await run_in_threadpool(os.path.isfile, self.path_for(namespace, filename))

    async def list_namespaces(self) -> dict[str, float]:
        """Namespace directories under the root mapped to their mtime."""

        def _scan():
            found = {}
            try:
                entries = os.scandir(self.root)
            except OSError as e:
                if e.errno == errno.ENOENT:
                    return found
                raise
            with entries:
                for entry in entries:
                    if entry.is_dir(follow_symlinks=False):
                        found[entry.name] = entry.stat(follow_symlinks=False).st_mtime
            return found

        try:
            return await run_in_threadpool(_scan)
        except OSError as e:
            raise StorageFault(f"Error listing upload directory: {e.strerror or e}") from e
