"""Request gates admitting a capability key before any handler I/O.

Both gates share one shape: an authorization predicate receives the
metadata store, the presented key and the addressed path and returns the
admitted principal or None. ``Gate`` turns a predicate into a FastAPI
dependency that raises ``Unauthorized`` on rejection.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from keyshare.core.database import get_db
from keyshare.core.errors import Unauthorized
from keyshare.services.metadata_store import MetadataStore

logger = logging.getLogger(__name__)

KEY_HEADER = "Authorization"


@dataclass(frozen=True)
class Principal:
    user_id: int
    key: str
    target_path: str


AuthorizationPredicate = Callable[[MetadataStore, str, str], Awaitable[Optional[int]]]


async def key_exists(store: MetadataStore, key: str, target_path: str) -> int | None:
    user = await store.find_user_by_key(key)
    return user.id if user else None


async def key_owns_path(store: MetadataStore, key: str, target_path: str) -> int | None:
    if not target_path:
        return None
    rows = await store.find_owned_uploads(key, target_path)
    if len(rows) != 1:
        return None
    return rows[0].uploader


def is_valid_key(key: str) -> bool:
    """Visible ASCII, space and tab; keys are compared byte for byte."""
    return bool(key) and all(ch == "\t" or 0x20 <= ord(ch) < 0x7F for ch in key)


def extract_key(request: Request) -> str | None:
    key = request.headers.get(KEY_HEADER)
    if key is None or not is_valid_key(key):
        return None
    return key


def target_path(request: Request) -> str:
    return request.scope["path"].lstrip("/")


class Gate:
    def __init__(self, predicate: AuthorizationPredicate, name: str):
        self.predicate = predicate
        self.name = name

    async def check(self, store: MetadataStore, key: str | None, path: str) -> Principal:
        if key is None:
            raise Unauthorized(self.name)
        user_id = await self.predicate(store, key, path)
        if user_id is None:
            raise Unauthorized(self.name)
        return Principal(user_id=user_id, key=key, target_path=path)

    async def __call__(self, request: Request, db: AsyncSession = Depends(get_db)) -> Principal:
        path = target_path(request)
        try:
            return await self.check(MetadataStore(db), extract_key(request), path)
        except Unauthorized:
            logger.info("%s rejected %s /%s", self.name, request.method, path)
            raise


require_key = Gate(key_exists, "auth")
require_ownership = Gate(key_owns_path, "ownership")
