import os
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from sqlalchemy import text
from starlette.concurrency import run_in_threadpool

from keyshare.schemas.health import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    state = request.app.state
    try:
        async with state.session_factory() as session:
            await session.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {e}"

    root = state.object_store.root
    writable = await run_in_threadpool(os.access, root, os.W_OK)
    storage_status = "ok" if writable else f"error: {root} is not writable"

    return HealthResponse(
        status="running",
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        storage=storage_status,
        cdn_purge=state.settings.cdn_enabled,
    )
