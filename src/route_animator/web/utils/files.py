from pathlib import Path

from fastapi import HTTPException, status

from route_animator.web.constants import ALLOWED_EXTENSIONS


def _resolve_inside(folder: Path, filename: str) -> Path:
    clean_name = Path(filename).name
    base = folder.resolve()
    target = (base / clean_name).resolve()
    try:
        target.relative_to(base)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found",
        ) from exc
    if not clean_name or not target.is_file():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found",
        )
    return target


def resolve_uploaded_file(upload_folder: Path, filename: str) -> Path:
    """Ensure the requested filename lives inside the uploads folder."""
    return _resolve_inside(upload_folder, filename)


def resolve_export_file(export_folder: Path, path: Path) -> Path:
    """Ensure a job artifact still exists inside the exports folder."""
    return _resolve_inside(export_folder, path.name)


def allocate_upload_path(upload_folder: Path, extension: str) -> Path:
    """Pick the next sequential background<N> filename."""
    max_index = 0
    for existing in upload_folder.iterdir():
        if existing.is_file() and existing.stem.startswith("background"):
            suffix = existing.stem[len("background") :]
            if suffix.isdigit():
                max_index = max(max_index, int(suffix))
    return upload_folder / f"background{max_index + 1}{extension}"


def sanitize_extension(extension: str | None) -> str:
    """Normalize and validate the user-provided extension."""
    if not extension:
        return ".png"
    extension = extension.lower()
    if extension not in ALLOWED_EXTENSIONS:
        return ".png"
    return extension


def list_uploaded_files(upload_folder: Path) -> list[str]:
    """Return the filenames that currently exist in the upload directory."""
    return sorted([f.name for f in upload_folder.iterdir() if f.is_file()])
