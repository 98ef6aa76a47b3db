"""Serves stored objects behind short-lived signed download tokens."""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from intake_portal.services.storage import ObjectStore, StorageError, decode_download_token, get_object_store

router = APIRouter(prefix="/api/storage", tags=["storage"])


@router.get("/download")
def download(token: str, store: ObjectStore = Depends(get_object_store)):
    payload = decode_download_token(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired download link")
    try:
        data = store.get(payload["key"])
    except StorageError:
        raise HTTPException(status_code=404, detail="File not found")
    filename = (payload.get("filename") or payload["key"].rsplit("/", 1)[-1]).replace('"', "")
    return Response(
        content=data,
        media_type=payload.get("content_type") or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
