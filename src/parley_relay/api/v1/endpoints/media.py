"""Upload and download of avatars and message attachments."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response, status

from parley_relay.schemas.common import MediaResponse

from ..dependencies import AdapterDep, ContextDep

router = APIRouter(prefix="/media", tags=["media"])


@router.post("", response_model=MediaResponse, status_code=status.HTTP_201_CREATED)
async def upload_media(request: Request, adapter: AdapterDep) -> MediaResponse:
    """Store the raw request body and return its URL."""
    content_type = request.headers.get("content-type", "application/octet-stream")
    data = await request.body()
    url = adapter.upload_attachment(data, content_type)
    return MediaResponse(url=url, content_type=content_type, size=len(data))


@router.get("/{key}")
async def download_media(key: str, adapter: AdapterDep, context: ContextDep) -> Response:
    data = adapter.fetch_attachment(key)
    return Response(content=data, media_type=context.object_store.content_type(key))


@router.delete("/{key}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_media(key: str, adapter: AdapterDep) -> Response:
    """Delete an object uploaded by the caller."""
    adapter.delete_attachment(key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
