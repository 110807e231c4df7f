from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from keyshare.core.database import get_db
from keyshare.services.lifecycle import FileLifecycleManager
from keyshare.services.metadata_store import MetadataStore


def get_metadata_store(db: AsyncSession = Depends(get_db)) -> MetadataStore:
    return MetadataStore(db)


def get_lifecycle(
    request: Request,
    metadata: MetadataStore = Depends(get_metadata_store),
) -> FileLifecycleManager:
    state = request.app.state
    return FileLifecycleManager(state.settings, metadata, state.object_store, state.purger)
