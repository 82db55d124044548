"""
Preview Service - preview and thumbnail images for uploaded PDFs

Previews are three sizes of the first page; thumbnails are small renders of
the first few pages. Every image is uploaded to storage at a deterministic
path so reprocessing overwrites it. A failure on one size or page is logged
and skipped so the rest still get produced.

Author: TM3
Date: 2025-10-17
"""
import io
import logging
from typing import Dict, List, Any, Tuple

from PIL import Image

from app.connectors.storage_connector import StorageConnector
from app.services.pdf_service import render_pdf_page

logger = logging.getLogger(__name__)

PREVIEW_SIZES: Dict[str, Tuple[int, int]] = {
    'small': (200, 283),
    'medium': (400, 566),
    'large': (800, 1131),
}
PREVIEW_SCALE = 3.0
PREVIEW_QUALITY = 85

THUMBNAIL_SIZE = (150, 200)
THUMBNAIL_SCALE = 1.5
THUMBNAIL_QUALITY = 80
MAX_THUMBNAILS = 5


def preview_path(file_id: str, size: str) -> str:
    return f"previews/{file_id}/page-1-{size}.jpg"


def thumbnail_path(file_id: str, page_number: int) -> str:
    return f"thumbnails/{file_id}/page-{page_number}.jpg"


def resize_to_jpeg(image: Image.Image, box: Tuple[int, int], quality: int) -> bytes:
    """Fit the image inside box (never enlarging) and encode it as JPEG"""
    resized = image.copy()
    resized.thumbnail(box, Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    resized.convert("RGB").save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


class PreviewService:
    """Generates and uploads preview and thumbnail images"""

    def __init__(self, storage: StorageConnector = None):
        self.storage = storage or StorageConnector()

    def generate_previews(self, pdf_bytes: bytes, file_id: str) -> Dict[str, str]:
        """
        Render page 1 once and upload it in every preview size

        Returns:
            Dict of size -> storage path for the sizes that succeeded

        Raises:
            RuntimeError: "Preview generation failed: ..." when page 1
                          cannot be rendered
        """
        try:
            source = render_pdf_page(pdf_bytes, 1, PREVIEW_SCALE)
        except Exception as e:
            raise RuntimeError(f"Preview generation failed: {e}") from e

        preview_urls = {}
        for size, box in PREVIEW_SIZES.items():
            try:
                data = resize_to_jpeg(source, box, PREVIEW_QUALITY)
                path = preview_path(file_id, size)
                self.storage.upload(path, data, "image/jpeg", upsert=True)
                preview_urls[size] = path
            except Exception as e:
                logger.error(f"Failed to create {size} preview for {file_id}: {e}")

        return preview_urls

    def generate_thumbnails(self, pdf_bytes: bytes, file_id: str, page_count: int) -> Dict[str, List[Dict[str, Any]]]:
        """
        Thumbnails for pages 1..min(page_count, 5)

        Returns:
            {"pages": [{"page": n, "url": storage_path}, ...]} in page order
        """
        thumbnail_urls = {'pages': []}

        for page_number in range(1, min(page_count or 0, MAX_THUMBNAILS) + 1):
            try:
                image = render_pdf_page(pdf_bytes, page_number, THUMBNAIL_SCALE)
                data = resize_to_jpeg(image, THUMBNAIL_SIZE, THUMBNAIL_QUALITY)
                path = thumbnail_path(file_id, page_number)
                self.storage.upload(path, data, "image/jpeg", upsert=True)
                thumbnail_urls['pages'].append({'page': page_number, 'url': path})
            except Exception as e:
                logger.error(f"Failed to create thumbnail for page {page_number} of {file_id}: {e}")

        return thumbnail_urls
