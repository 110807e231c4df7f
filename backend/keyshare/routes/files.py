from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import PlainTextResponse

from keyshare.core.errors import InvalidPath
from keyshare.routes.dependencies import get_lifecycle
from keyshare.services.gates import Principal, require_key, require_ownership
from keyshare.services.lifecycle import FileLifecycleManager

router = APIRouter(tags=["Files"], default_response_class=PlainTextResponse)


@router.post("/{target_path:path}")
async def upload_file(
    request: Request,
    principal: Principal = Depends(require_key),
    lifecycle: FileLifecycleManager = Depends(get_lifecycle),
):
    return await lifecycle.upload(principal, request.stream())


@router.put("/{target_path:path}")
async def overwrite_file(
    request: Request,
    principal: Principal = Depends(require_ownership),
    lifecycle: FileLifecycleManager = Depends(get_lifecycle),
):
    return await lifecycle.overwrite(principal, request.stream())


@router.delete("/{target_path:path}")
async def delete_file(
    principal: Principal = Depends(require_ownership),
    lifecycle: FileLifecycleManager = Depends(get_lifecycle),
):
    await lifecycle.delete(principal)
    return "OK"


@router.patch("/{target_path:path}")
async def move_file(
    principal: Principal = Depends(require_ownership),
    lifecycle: FileLifecycleManager = Depends(get_lifecycle),
    rename_to: str | None = Header(None, alias="X-Rename-To"),
):
    if rename_to is None:
        raise InvalidPath("X-Rename-To not set")
    return await lifecycle.move(principal, rename_to)
