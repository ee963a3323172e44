"""Download endpoint for stored attachment files."""

import mimetypes

from fastapi import APIRouter, Response

from tripboard.api.deps import AppContextDep

router = APIRouter(tags=["files"])


@router.get("/files/{path:path}")
async def download_file(path: str, ctx: AppContextDep) -> Response:
    """Serve a stored file; URLs returned at upload time point here."""
    data = await ctx.storage.download(path)
    media_type, _ = mimetypes.guess_type(path)
    return Response(content=data, media_type=media_type or "application/octet-stream")
