"""Image schemas for API request/response."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.imagestore.paths import is_transient_reference


class ImageRecordCreate(BaseModel):
    """Registers a file that was already written to the owner's directory."""

    filename: str = Field(..., min_length=1)
    thumbnail_filename: str | None = Field(None, alias="thumbnailFilename")
    display_order: int | None = Field(None, alias="displayOrder")
    make_primary: bool = Field(False, alias="makePrimary")

    model_config = {"populate_by_name": True}

    @field_validator("filename", "thumbnail_filename")
    @classmethod
    def reject_blob_references(cls, v: str | None) -> str | None:
        if v is not None and is_transient_reference(v):
            raise ValueError("blob: and data: references cannot be stored")
        return v


class ImageRecordDTO(BaseModel):
    """Image record response schema."""

    id: int
    filename: str | None = None
    thumbnail_filename: str | None = Field(None, alias="thumbnailFilename")
    image_url: str | None = Field(None, alias="imageUrl")
    thumbnail_url: str | None = Field(None, alias="thumbnailUrl")
    is_primary: bool = Field(False, alias="isPrimary")
    display_order: int = Field(0, alias="displayOrder")
    created_at: datetime | None = Field(None, alias="createdAt")

    model_config = {"populate_by_name": True, "from_attributes": True}


class UploadsDiagnostic(BaseModel):
    """Uploads tree summary."""

    uploads_root: str = Field(..., alias="uploadsRoot")
    exists: bool
    directories: int = 0
    files: int = 0
    store_directories: int = Field(0, alias="storeDirectories")
    product_directories: int = Field(0, alias="productDirectories")
    missing_files: list[str] = Field(default_factory=list, alias="missingFiles")

    model_config = {"populate_by_name": True}
