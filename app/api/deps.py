from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException, status

from app.services.export_service import ExportError, ExportService, ExportValidationError
from app.services.record_service import (
    MissingIdentifierError,
    NotFoundError,
    RecordError,
    RecordService,
    StoreFailureError,
)


def get_record_service() -> RecordService:
    return RecordService()


def get_export_service() -> ExportService:
    return ExportService()


def handle_record_error(exc: RecordError | ExportError) -> NoReturn:
    if isinstance(exc, MissingIdentifierError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, ExportValidationError):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    if isinstance(exc, StoreFailureError):
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    raise exc
