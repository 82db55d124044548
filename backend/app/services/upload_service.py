"""
Upload Service - validation and ingestion of uploaded PDFs and images

Validates the bytes a client sent, stores them in the bucket under a
generated path and records a file_uploads row. A stored object whose row
could not be created is removed again.

Author: TM3
Date: 2025-10-17
"""
import hashlib
import io
import logging
import secrets
import time
from typing import Dict, Any, Optional, Callable

from PIL import Image, UnidentifiedImageError

from app.core.config import settings
from app.connectors.storage_connector import StorageConnector
from app.domain.file_upload import FileUpload, FileUploadCreate, FileType, ProcessingStatus
from app.repositories.file_upload_repository import FileUploadRepository
from app.services.pdf_service import open_pdf, parse_pdf_date

logger = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF"
PDF_CONTENT_TYPE = "application/pdf"

# Pillow format -> MIME type
IMAGE_FORMATS = {
    'JPEG': 'image/jpeg',
    'PNG': 'image/png',
    'WEBP': 'image/webp',
    'GIF': 'image/gif',
}
MIN_IMAGE_DIMENSION = 10
MAX_IMAGE_DIMENSION = 8192

UPLOAD_ATTEMPTS = 3


class UploadValidationError(ValueError):
    """Uploaded content was rejected; maps to HTTP 400"""

    def __init__(self, error: str, details: str = None):
        super().__init__(f"{error}: {details}" if details else error)
        self.error = error
        self.details = details


class UploadFailedError(RuntimeError):
    """Storage or database failure while ingesting an upload"""

    def __init__(self, error: str, details: str = None):
        super().__init__(f"{error}: {details}" if details else error)
        self.error = error
        self.details = details


def compute_checksum(data: bytes) -> str:
    """sha256 hex digest"""
    return hashlib.sha256(data).hexdigest()


def generate_storage_path(folder: str, file_name: Optional[str], default_extension: str) -> str:
    """{folder}/{epoch_ms}_{16 hex}.{ext}"""
    extension = default_extension
    if file_name and '.' in file_name:
        extension = file_name.rsplit('.', 1)[-1].lower() or default_extension

    timestamp = int(time.time() * 1000)
    return f"{folder}/{timestamp}_{secrets.token_hex(8)}.{extension}"


def validate_pdf(data: bytes, max_size: int) -> Dict[str, Any]:
    """
    Check size, signature and structure of a PDF

    Returns:
        Dict with page_count and metadata (document info)

    Raises:
        UploadValidationError
    """
    if not data:
        raise UploadValidationError("No PDF file provided", "The uploaded file is empty")

    if len(data) > max_size:
        raise UploadValidationError("File too large", f"Maximum file size is {max_size // (1024 * 1024)}MB")

    if not data.startswith(PDF_SIGNATURE):
        raise UploadValidationError("Invalid file type", "Only PDF files are allowed")

    try:
        with open_pdf(data) as doc:
            page_count = doc.page_count
            info = doc.metadata or {}
    except Exception as e:
        raise UploadValidationError("Invalid PDF file", str(e)) from e

    if page_count <= 0:
        raise UploadValidationError("Invalid PDF file", "PDF contains no valid pages")

    return {
        'page_count': page_count,
        'metadata': {
            'title': info.get('title') or None,
            'author': info.get('author') or None,
            'creator': info.get('creator') or None,
            'producer': info.get('producer') or None,
            'creation_date': parse_pdf_date(info.get('creationDate')),
            'modification_date': parse_pdf_date(info.get('modDate')),
        },
    }


def validate_image(data: bytes, max_size: int) -> Dict[str, Any]:
    """
    Detect the image type from its content and check its dimensions

    Returns:
        Dict with content_type, extension, width and height

    Raises:
        UploadValidationError
    """
    if not data:
        raise UploadValidationError("No image file provided", "The uploaded file is empty")

    if len(data) > max_size:
        raise UploadValidationError("File too large", f"Maximum file size is {max_size // (1024 * 1024)}MB")

    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
            width, height = image.size
    except (UnidentifiedImageError, OSError) as e:
        raise UploadValidationError(
            "Invalid file type", "Only JPEG, PNG, WebP and GIF images are allowed"
        ) from e

    content_type = IMAGE_FORMATS.get(image_format)
    if not content_type:
        raise UploadValidationError(
            "Invalid file type", "Only JPEG, PNG, WebP and GIF images are allowed"
        )

    if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
        raise UploadValidationError(
            "Invalid image file",
            f"Image dimensions too large. Maximum {MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION} pixels allowed"
        )

    if width < MIN_IMAGE_DIMENSION or height < MIN_IMAGE_DIMENSION:
        raise UploadValidationError(
            "Invalid image file",
            f"Image dimensions too small. Minimum {MIN_IMAGE_DIMENSION}x{MIN_IMAGE_DIMENSION} pixels required"
        )

    return {
        'content_type': content_type,
        'extension': 'jpg' if image_format == 'JPEG' else image_format.lower(),
        'width': width,
        'height': height,
    }


class UploadService:
    """
    Service for ingesting uploads

    Usage:
        service = UploadService()
        result = service.upload_pdf(data, "catalog.pdf")
    """

    def __init__(
        self,
        files: FileUploadRepository = None,
        storage: StorageConnector = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.files = files or FileUploadRepository()
        self.storage = storage or StorageConnector()
        self.sleep = sleep

    def _store_with_retry(self, path: str, data: bytes, content_type: str) -> None:
        """Upload with up to 3 attempts, waiting 2s then 4s between them"""
        for attempt in range(1, UPLOAD_ATTEMPTS + 1):
            try:
                self.storage.upload(path, data, content_type, upsert=False)
                logger.info(f"Stored {path} ({len(data)} bytes, attempt {attempt})")
                return
            except Exception as e:
                logger.error(f"Storage upload failed for {path} (attempt {attempt}/{UPLOAD_ATTEMPTS}): {e}")
                if attempt >= UPLOAD_ATTEMPTS:
                    raise UploadFailedError(
                        "Storage upload failed",
                        f"Unable to save file to storage after multiple attempts. "
                        f"MIME type detected: {content_type}. Error: {e}"
                    ) from e
                self.sleep(2 ** attempt)

    def _create_record(self, data: FileUploadCreate) -> FileUpload:
        """Insert the row; remove the stored object if that fails"""
        try:
            return self.files.create(data)
        except Exception as e:
            logger.error(f"Database record creation failed for {data.storage_path}: {e}")
            try:
                self.storage.remove([data.storage_path])
                logger.info(f"Cleaned up storage file after database failure: {data.storage_path}")
            except Exception as cleanup_error:
                logger.error(f"Failed to cleanup storage file {data.storage_path}: {cleanup_error}")
            raise UploadFailedError(
                "Database error", "Unable to create file record. Please try again."
            ) from e

    def upload_pdf(self, data: bytes, file_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Validate and store a PDF; the row starts as pending

        Returns:
            Dict describing the new file
        """
        started = time.monotonic()
        validation = validate_pdf(data, settings.max_pdf_size_bytes)
        checksum = compute_checksum(data)
        storage_path = generate_storage_path("pdfs", file_name, "pdf")

        self._store_with_retry(storage_path, data, PDF_CONTENT_TYPE)

        file_upload = self._create_record(FileUploadCreate(
            file_name=file_name or "untitled.pdf",
            file_size=len(data),
            file_type=FileType.PDF,
            content_type=PDF_CONTENT_TYPE,
            storage_path=storage_path,
            checksum=checksum,
            is_primary=True,
            processing_status=ProcessingStatus.PENDING,
            page_count=validation['page_count'],
        ))

        logger.info(f"PDF upload completed: {file_upload.id} ({validation['page_count']} pages)")

        return {
            'id': file_upload.id,
            'file_name': file_upload.file_name,
            'file_size': file_upload.file_size,
            'page_count': validation['page_count'],
            'checksum': checksum,
            'storage_path': storage_path,
            'processing_status': ProcessingStatus.PENDING.value,
            'uploaded_at': file_upload.created_at.isoformat() if file_upload.created_at else None,
            'metadata': validation['metadata'],
            'processing_time_ms': int((time.monotonic() - started) * 1000),
        }

    def upload_image(self, data: bytes, file_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Validate and store an image; images need no processing so the row
        is created completed with its dimensions

        Returns:
            Dict describing the new file, including its public URL
        """
        started = time.monotonic()
        validation = validate_image(data, settings.max_image_size_bytes)
        checksum = compute_checksum(data)
        storage_path = generate_storage_path("images", file_name, validation['extension'])
        dimensions = {
            'width': validation['width'],
            'height': validation['height'],
            'aspect_ratio': validation['width'] / validation['height'],
        }

        self._store_with_retry(storage_path, data, validation['content_type'])

        file_upload = self._create_record(FileUploadCreate(
            file_name=file_name or f"untitled.{validation['extension']}",
            file_size=len(data),
            file_type=FileType.IMAGE,
            content_type=validation['content_type'],
            storage_path=storage_path,
            checksum=checksum,
            is_primary=True,
            processing_status=ProcessingStatus.COMPLETED,
            dimensions=dimensions,
        ))

        logger.info(f"Image upload completed: {file_upload.id} ({validation['width']}x{validation['height']})")

        return {
            'id': file_upload.id,
            'file_name': file_upload.file_name,
            'file_size': file_upload.file_size,
            'content_type': validation['content_type'],
            'width': validation['width'],
            'height': validation['height'],
            'checksum': checksum,
            'storage_path': storage_path,
            'public_url': self.storage.public_url(storage_path),
            'processing_status': ProcessingStatus.COMPLETED.value,
            'uploaded_at': file_upload.created_at.isoformat() if file_upload.created_at else None,
            'processing_time_ms': int((time.monotonic() - started) * 1000),
        }
