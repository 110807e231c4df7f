from __future__ import annotations

import urllib.parse

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse

from keyshare.core.errors import NotFound
from keyshare.routes.dependencies import get_metadata_store
from keyshare.services.metadata_store import MetadataStore
from keyshare.utils.paths import join_object_path

router = APIRouter(tags=["Download"])


def _content_disposition(filename: str) -> str:
    quoted = urllib.parse.quote(filename, safe="")
    fallback = filename.encode("ascii", "ignore").decode("ascii").replace('"', "")
    return f'inline; filename="{fallback}"; filename*=UTF-8\'\'{quoted}'


@router.get("/{namespace}/{filename}")
async def download_file(
    namespace: str,
    filename: str,
    request: Request,
    metadata: MetadataStore = Depends(get_metadata_store),
):
    path = join_object_path(namespace, filename)
    if await metadata.get_upload(path) is None:
        raise NotFound(path)

    objects = request.app.state.object_store
    if not await objects.exists(namespace, filename):
        raise NotFound(path)

    return FileResponse(
        objects.path_for(namespace, filename),
        headers={"Content-Disposition": _content_disposition(filename)},
    )
