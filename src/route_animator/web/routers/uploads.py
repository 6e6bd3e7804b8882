from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import FileResponse

from route_animator.config import Settings
from route_animator.web.constants import CHUNK_SIZE
from route_animator.web.dependencies import get_app_settings
from route_animator.web.utils.files import (
    allocate_upload_path,
    list_uploaded_files,
    resolve_uploaded_file,
    sanitize_extension,
)

router = APIRouter(
    prefix="/uploads",
    tags=["uploads"],
)

AppSettings = Annotated[Settings, Depends(get_app_settings)]


@router.post("/", status_code=status.HTTP_201_CREATED)
async def upload_background(
    file: Annotated[UploadFile, File()],
    settings: AppSettings,
) -> dict:
    """Persist an uploaded background image under a generated name."""
    if file is None or not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded",
        )

    ext = sanitize_extension(Path(file.filename).suffix)
    dest = allocate_upload_path(settings.upload_folder, ext)

    with dest.open("wb") as buffer:
        while True:
            chunk = await file.read(CHUNK_SIZE)
            if not chunk:
                break
            buffer.write(chunk)
    await file.close()
    return {"filename": dest.name}


@router.get("/")
async def list_uploads(settings: AppSettings) -> dict:
    return {"uploads": list_uploaded_files(settings.upload_folder)}


@router.get("/{filename:path}")
async def get_uploaded_asset(filename: str, settings: AppSettings) -> FileResponse:
    """Serve an uploaded background image."""
    path = resolve_uploaded_file(settings.upload_folder, filename)
    return FileResponse(path)


__all__ = ["router"]
