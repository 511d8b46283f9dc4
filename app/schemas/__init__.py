"""Pydantic schemas for API request/response validation."""

from app.schemas.auth import Token, UserInfo, UserLogin
from app.schemas.image import ImageRecordCreate, ImageRecordDTO, UploadsDiagnostic
from app.schemas.reconciliation import (
    DiagnoseResponse,
    FindingDTO,
    RepairRequest,
    RepairResponse,
    RepairStepDTO,
)

__all__ = [
    # Auth
    "Token",
    "UserInfo",
    "UserLogin",
    # Image
    "ImageRecordCreate",
    "ImageRecordDTO",
    "UploadsDiagnostic",
    # Reconciliation
    "DiagnoseResponse",
    "FindingDTO",
    "RepairRequest",
    "RepairResponse",
    "RepairStepDTO",
]
