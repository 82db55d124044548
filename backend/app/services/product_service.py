"""
Product Service - catalog rules on top of the product repository

Handles:
- Attaching uploaded files to products (existence, type and readiness checks)
- Cleaning up storage when a product is deleted
- Preview information and single preview pages for the storefront viewer
- Choosing the image a product is displayed with

Author: TM3
Date: 2025-10-17
"""
import logging
from typing import Dict, Any, List, Optional, Tuple

from app.connectors.storage_connector import StorageConnector
from app.domain.file_upload import FileType, ProcessingStatus
from app.domain.product import Product, ProductPayload, FileSummary, DEFAULT_PREVIEW_PAGES
from app.repositories.file_upload_repository import FileUploadRepository
from app.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)


class ProductNotFound(LookupError):
    """No product with the given id"""


class FileReferenceNotFound(LookupError):
    """A product references a file upload that does not exist"""


class FileReferenceNotReady(RuntimeError):
    """A referenced file upload has the wrong type or is not processed yet"""


class PreviewUnavailable(LookupError):
    """The product has no previewable PDF"""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message)
        self.details = details or {}


class PreviewProcessing(Exception):
    """The product's PDF is still being processed"""

    def __init__(self, processing_status: str):
        super().__init__("PDF is still being processed")
        self.processing_status = processing_status


class PreviewPageNotAllowed(PermissionError):
    """The page is past the preview limit or the end of the document"""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message)
        self.details = details or {}


def resolve_product_image(product: Product, public_url) -> Optional[Dict[str, Any]]:
    """
    Pick the image a product is displayed with

    Uploaded image first, then the first thumbnail (or medium preview) of a
    processed PDF, then the external image URL.

    Args:
        product: Product with joined file summaries
        public_url: Callable turning a storage path into a public URL
    """
    if product.image_file and product.image_file.storage_path:
        return {
            'url': public_url(product.image_file.storage_path),
            'source': 'uploaded_image',
            'dimensions': product.image_file.dimensions,
        }

    pdf_file = product.pdf_file
    if pdf_file and pdf_file.is_completed:
        pages = (pdf_file.thumbnail_urls or {}).get('pages') or []
        if pages:
            first = min(pages, key=lambda entry: entry.get('page', 0))
            return {
                'url': public_url(first['url']),
                'source': 'pdf_thumbnail',
                'dimensions': pdf_file.dimensions,
            }

        previews = pdf_file.preview_urls or {}
        preview = previews.get('medium') or next(iter(previews.values()), None)
        if preview:
            return {
                'url': public_url(preview),
                'source': 'pdf_preview',
                'dimensions': pdf_file.dimensions,
            }

    if product.image:
        return {'url': product.image, 'source': 'external_url'}

    return None


class ProductService:
    """
    Service for catalog operations

    Usage:
        service = ProductService()
        product = service.create_product(payload)
    """

    def __init__(
        self,
        products: ProductRepository = None,
        files: FileUploadRepository = None,
        storage: StorageConnector = None
    ):
        self.products = products or ProductRepository()
        self.files = files or FileUploadRepository()
        self.storage = storage or StorageConnector()

    def to_dict(self, product: Product) -> Dict[str, Any]:
        """Product as JSON with the resolved display image"""
        data = product.to_dict()
        data['display_image'] = resolve_product_image(product, self.storage.public_url)
        return data

    def list_products(
        self,
        search: Optional[str] = None,
        file_type: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Tuple[List[Product], int]:
        return self.products.find_all(search=search, file_type=file_type, limit=limit, offset=offset)

    def get_product(self, product_id: str) -> Product:
        product = self.products.find_by_id(product_id)
        if not product:
            raise ProductNotFound(f"Product {product_id} not found")
        return product

    def _check_file(self, file_id: str, file_type: FileType):
        """
        Make sure a referenced upload exists, has the expected type and is
        completed

        Returns:
            The FileUpload
        """
        label = "PDF" if file_type == FileType.PDF else "Image"

        file_upload = self.files.find_by_id(file_id)
        if not file_upload:
            raise FileReferenceNotFound(
                f"{label} file not found: {file_id}. Please ensure the file was uploaded successfully."
            )

        if file_upload.file_type != file_type:
            raise FileReferenceNotReady(
                f"File type mismatch: expected {file_type.value}, got {file_upload.file_type.value}"
            )

        if file_upload.processing_status != ProcessingStatus.COMPLETED:
            raise FileReferenceNotReady(
                f"{label} file is not ready: status is '{file_upload.processing_status.value}'. "
                f"Please wait for processing to complete."
            )

        return file_upload

    def _attach_files(self, values: Dict[str, Any], current: Optional[Product] = None) -> Dict[str, Any]:
        """
        Validate file references in values

        With both ids the files are attached as given. With exactly one id
        that file must be usable; an image upload also becomes the product
        image URL. Ids unchanged from the current product are not checked
        again.
        """
        pdf_file_id = values.get('pdf_file_id')
        image_file_id = values.get('image_file_id')

        if pdf_file_id and image_file_id:
            return values

        if pdf_file_id and not (current and current.pdf_file_id == pdf_file_id):
            file_upload = self._check_file(pdf_file_id, FileType.PDF)
            if file_upload.page_count and 'page_count' not in values:
                values['page_count'] = file_upload.page_count

        if image_file_id and not (current and current.image_file_id == image_file_id):
            file_upload = self._check_file(image_file_id, FileType.IMAGE)
            values['image'] = self.storage.public_url(file_upload.storage_path)

        return values

    def create_product(self, payload: ProductPayload) -> Product:
        """
        Create a product

        Raises:
            ValueError: invalid payload
            FileReferenceNotFound: referenced file missing
            FileReferenceNotReady: referenced file unusable
        """
        values = self._attach_files(payload.to_values())
        product = self.products.create(values)
        logger.info(f"Created product {product.id} ({product.title})")
        return product

    def update_product(self, product_id: str, payload: ProductPayload) -> Product:
        """Update a product; same validation as create"""
        values = payload.to_values()

        current = self.get_product(product_id)
        values = self._attach_files(values, current)

        product = self.products.update(product_id, values)
        if not product:
            raise ProductNotFound(f"Product {product_id} not found")
        return product

    def delete_product(self, product_id: str) -> Product:
        """
        Delete a product and, best effort, the files it references from storage

        Raises:
            ProductNotFound
            ProductInUseError: referenced by orders
        """
        product = self.products.delete(product_id)
        if not product:
            raise ProductNotFound(f"Product {product_id} not found")

        paths = product.storage_paths
        if paths:
            try:
                self.storage.remove(paths)
            except Exception as e:
                logger.warning(f"Could not remove files of deleted product {product_id}: {e}")

        logger.info(f"Deleted product {product_id}")
        return product

    def _previewable_pdf(self, product: Product) -> FileSummary:
        pdf_file = product.pdf_file
        if not product.pdf_file_id or not pdf_file:
            raise PreviewUnavailable(
                "No PDF file associated with this product",
                {'product_type': 'image'}
            )

        if not pdf_file.is_completed:
            raise PreviewProcessing(pdf_file.processing_status.value if pdf_file.processing_status else None)

        return pdf_file

    def get_preview_info(self, product_id: str) -> Dict[str, Any]:
        """
        Preview pages a customer may see for a product

        Raises:
            ProductNotFound
            PreviewUnavailable: no PDF or no preview images
            PreviewProcessing: PDF not processed yet
        """
        product = self.get_product(product_id)
        pdf_file = self._previewable_pdf(product)

        pages = sorted(
            (pdf_file.thumbnail_urls or {}).get('pages') or [],
            key=lambda entry: entry.get('page', 0)
        )
        if not pages:
            raise PreviewUnavailable(
                "No preview images available for this PDF",
                {
                    'processing_status': pdf_file.processing_status.value,
                    'details': 'Preview URLs exist but are invalid' if pdf_file.thumbnail_urls else 'No preview URLs found',
                }
            )

        total_pages = product.page_count or pdf_file.page_count or 0
        preview_pages = min(product.preview_pages or DEFAULT_PREVIEW_PAGES, total_pages, len(pages))
        if preview_pages <= 0:
            raise PreviewUnavailable(
                "No preview pages available",
                {'details': f"Calculated preview pages: {preview_pages}"}
            )

        if preview_pages < total_pages:
            message = f"Showing preview of {preview_pages} pages out of {total_pages} total pages"
        else:
            message = f"Showing all {preview_pages} pages"

        return {
            'product_id': product.id,
            'title': product.title,
            'total_pages': total_pages,
            'preview_pages': preview_pages,
            'preview_urls': [self.storage.public_url(entry['url']) for entry in pages[:preview_pages]],
            'large_previews': {
                size: self.storage.public_url(path)
                for size, path in (pdf_file.preview_urls or {}).items()
            },
            'processing_status': pdf_file.processing_status.value,
            'message': message,
        }

    def get_preview_page(self, product_id: str, page: Any) -> Dict[str, Any]:
        """
        One preview page of a product

        Pages past the product's preview limit (default 3) or past the end
        of the document are refused.

        Raises:
            ValueError: page is not a positive integer
            ProductNotFound
            PreviewUnavailable: no PDF, or no image for this page
            PreviewProcessing: PDF not processed yet
            PreviewPageNotAllowed: page outside the preview
        """
        try:
            page_number = int(page)
        except (TypeError, ValueError):
            raise ValueError("Invalid page number")
        if page_number < 1:
            raise ValueError("Invalid page number")

        product = self.get_product(product_id)
        pdf_file = self._previewable_pdf(product)

        max_preview = product.preview_pages or DEFAULT_PREVIEW_PAGES
        total_pages = product.page_count or pdf_file.page_count or 0

        if page_number > max_preview:
            raise PreviewPageNotAllowed(
                f"Preview limited to {max_preview} pages",
                {'max_preview': max_preview, 'total_pages': total_pages}
            )
        if page_number > total_pages:
            raise PreviewPageNotAllowed(
                f"Page {page_number} does not exist",
                {'total_pages': total_pages}
            )

        pages = (pdf_file.thumbnail_urls or {}).get('pages') or []
        entry = next((entry for entry in pages if entry.get('page') == page_number and entry.get('url')), None)
        if not entry:
            raise PreviewUnavailable(
                f"Preview for page {page_number} not available",
                {'available_pages': len(pages), 'requested_page': page_number}
            )

        previews = pdf_file.preview_urls or {}
        thumbnail_path = previews.get('medium') or previews.get('small')

        return {
            'product_id': product.id,
            'title': product.title,
            'page_number': page_number,
            'total_pages': total_pages,
            'max_preview_pages': max_preview,
            'preview_url': self.storage.public_url(entry['url']),
            'thumbnail_url': self.storage.public_url(thumbnail_path) if thumbnail_path else None,
            'processing_status': pdf_file.processing_status.value,
            'is_preview_limited': page_number >= max_preview,
            'message': f"Page {page_number} of {total_pages}",
        }
