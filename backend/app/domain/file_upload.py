"""
File Upload Domain Model

Represents an uploaded PDF or image stored in the blob storage bucket,
together with the results of processing it.

Author: TM3
Date: 2025-10-17
"""
import re
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum


UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE
)


def is_valid_uuid(value: Any) -> bool:
    """Check that value is a canonical UUID string"""
    return isinstance(value, str) and bool(UUID_PATTERN.match(value))


class FileType(str, Enum):
    """Kinds of files the marketplace accepts"""
    PDF = "pdf"
    IMAGE = "image"


class ProcessingStatus(str, Enum):
    """Processing lifecycle stored in file_uploads.processing_status"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class FileUpload(BaseModel):
    """
    File upload domain model - one row of file_uploads

    Fields:
        id: UUID of the upload
        product_id: Product the file was uploaded for (optional)
        file_name: Original file name
        file_size: Size in bytes
        file_type: pdf or image
        content_type: Detected MIME type
        storage_path: Key of the object in the storage bucket
        checksum: sha256 hex digest of the content
        is_primary: Whether this is the primary file of its product

        # Processing
        processing_status: pending, processing, completed or failed
        processing_metadata: Extracted metadata, or {"error": ...} on failure
        page_count: Number of pages (PDF only)
        dimensions: Page or image dimensions
        preview_urls: {size: storage_path} for first-page previews
        thumbnail_urls: {"pages": [{"page": n, "url": storage_path}]}
    """

    id: str = Field(..., description="File upload UUID")
    product_id: Optional[str] = Field(None, description="Owning product")
    file_name: str = Field(..., description="Original file name")
    file_size: int = Field(..., description="Size in bytes", ge=0)
    file_type: FileType = Field(..., description="pdf or image")
    content_type: Optional[str] = Field(None, description="MIME type")
    storage_path: str = Field(..., description="Storage bucket key")
    checksum: Optional[str] = Field(None, description="sha256 hex digest")
    is_primary: bool = Field(False, description="Primary file of its product")

    processing_status: ProcessingStatus = Field(ProcessingStatus.PENDING, description="Processing status")
    processing_metadata: Optional[Dict[str, Any]] = Field(None, description="Processing metadata")
    page_count: Optional[int] = Field(None, description="Number of pages", ge=0)
    dimensions: Optional[Dict[str, Any]] = Field(None, description="Dimensions")
    preview_urls: Optional[Dict[str, Any]] = Field(None, description="Preview storage paths by size")
    thumbnail_urls: Optional[Dict[str, Any]] = Field(None, description="Thumbnail storage paths by page")

    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_completed(self) -> bool:
        return self.processing_status == ProcessingStatus.COMPLETED

    @property
    def is_processing(self) -> bool:
        return self.processing_status == ProcessingStatus.PROCESSING

    @property
    def thumbnail_pages(self) -> list:
        """Thumbnail entries ordered by page number"""
        pages = (self.thumbnail_urls or {}).get('pages') or []
        return sorted(pages, key=lambda entry: entry.get('page', 0))

    def to_dict(self) -> dict:
        """JSON-ready dict"""
        return self.model_dump(mode="json")


class FileUploadCreate(BaseModel):
    """Schema for inserting a new file_uploads row"""
    product_id: Optional[str] = None
    file_name: str
    file_size: int = Field(..., gt=0)
    file_type: FileType
    content_type: str
    storage_path: str
    checksum: Optional[str] = None
    is_primary: bool = False
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    page_count: Optional[int] = None
    dimensions: Optional[Dict[str, Any]] = None
    processing_metadata: Optional[Dict[str, Any]] = None


class FileStatusUpdate(BaseModel):
    """Request body for manually setting a file's processing status"""
    processing_status: Optional[ProcessingStatus] = None
    processing_metadata: Optional[Dict[str, Any]] = None
