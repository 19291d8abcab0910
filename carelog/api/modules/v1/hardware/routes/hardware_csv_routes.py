"""
Hardware CSV Routes
Bulk device upload and the matching CSV template.
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from carelog.api.core.config import settings
from carelog.api.core.dependencies.auth import get_current_user, require_platform_staff
from carelog.api.core.exceptions import CsvImportError
from carelog.api.db.database import get_db
from carelog.api.modules.v1.hardware.service.csv_import_service import (
    HardwareImportService,
    build_csv_template,
)
from carelog.api.modules.v1.users.models.users_model import Profile
from carelog.api.modules.v1.users.schemas.actor_schema import Actor
from carelog.api.utils.response_payloads import error_response, success_response

router = APIRouter(prefix="/hardware", tags=["Hardware"])
logger = logging.getLogger("app")


@router.post("/csv-upload", status_code=status.HTTP_200_OK)
async def upload_hardware_csv(
    file: UploadFile = File(...),
    actor: Actor = Depends(require_platform_staff),
    db: AsyncSession = Depends(get_db),
):
    """
    Bulk-register devices from a CSV file.

    Every row is validated; valid rows are inserted and the response lists the
    errors of the rejected rows (numbered from 1, header excluded).

    Raises:
        400 Bad Request: not a .csv file, too large, missing columns, too many rows.
        403 Forbidden: caller is not platform staff.
    """
    if not file.filename or not file.filename.lower().endswith(".csv"):
        return error_response(
            status_code=status.HTTP_400_BAD_REQUEST,
            message="File must be a .csv file",
            error="INVALID_FILE",
        )

    content = await file.read()
    if len(content) > settings.HARDWARE_CSV_MAX_BYTES:
        max_mb = settings.HARDWARE_CSV_MAX_BYTES // (1024 * 1024)
        return error_response(
            status_code=status.HTTP_400_BAD_REQUEST,
            message=f"File too large (max {max_mb}MB)",
            error="FILE_TOO_LARGE",
        )

    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return error_response(
            status_code=status.HTTP_400_BAD_REQUEST,
            message="File must be UTF-8 encoded",
            error="INVALID_FILE",
        )

    logger.info(f"Hardware CSV upload '{file.filename}' by {actor.id}")

    try:
        result = await HardwareImportService(db).import_csv(text)
    except CsvImportError as e:
        return error_response(
            status_code=status.HTTP_400_BAD_REQUEST,
            message=e.message,
            error="CSV_IMPORT_ERROR",
        )

    message = (
        "All devices imported successfully"
        if result.success
        else f"{result.inserted_count} devices imported, {result.error_count} rows rejected"
    )
    return success_response(status.HTTP_200_OK, message, result.model_dump())


@router.get("/csv-template", status_code=status.HTTP_200_OK)
async def download_hardware_csv_template(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Download a CSV template with a header row and two example devices."""
    organization_name, location_name = await HardwareImportService(db).sample_names()
    content = build_csv_template(organization_name, location_name)

    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="device-upload-template.csv"'},
    )
