"""Bulk record import from CSV or Excel uploads."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from lien_recovery.core.config import settings
from lien_recovery.core.deps import get_db, require_roles
from lien_recovery.db.enums import Role
from lien_recovery.schemas.auth import Actor
from lien_recovery.schemas.imports import ImportResult
from lien_recovery.services import import_service

router = APIRouter()

UPLOAD_FORMATS = ("csv", "xlsx")


@router.post("/upload", response_model=ImportResult)
async def upload_records(
    file: UploadFile = File(..., description="CSV or .xlsx file to import"),
    collector_id: UUID | None = Form(None),
    actor: Actor = Depends(require_roles([Role.ADMIN, Role.SUPER_ADMIN])),
    db: Session = Depends(get_db),
):
    """
    Import records from the collections spreadsheet (.xlsx) or a CSV export of it.

    Rows failing validation are reported individually; the rest are created.
    """
    filename = (file.filename or "").lower()
    file_format = next((ext for ext in UPLOAD_FORMATS if filename.endswith(f".{ext}")), None)
    if file_format is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File must be a .csv or .xlsx",
        )

    content = await file.read()
    if len(content) > settings.IMPORT_MAX_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size: {settings.IMPORT_MAX_BYTES // 1_000_000}MB",
        )

    try:
        return import_service.import_records(
            db, content, actor, collector_id=collector_id, file_format=file_format
        )
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File must be UTF-8 encoded",
        )
