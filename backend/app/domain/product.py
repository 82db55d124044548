"""
Product Domain Model

Represents a digital product (printable PDF or image) in the catalog.
This is the single source of truth for product data structure.

Author: TM3
Date: 2025-10-17
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Dict, Any
from datetime import datetime
from decimal import Decimal, InvalidOperation

from app.domain.file_upload import ProcessingStatus, is_valid_uuid


# Pages shown in a product preview when the product does not say otherwise
DEFAULT_PREVIEW_PAGES = 3


class FileSummary(BaseModel):
    """Subset of a file_uploads row joined onto products and downloads"""
    id: str
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    file_type: Optional[str] = None
    content_type: Optional[str] = None
    storage_path: Optional[str] = None
    processing_status: Optional[ProcessingStatus] = None
    page_count: Optional[int] = None
    dimensions: Optional[Dict[str, Any]] = None
    preview_urls: Optional[Dict[str, Any]] = None
    thumbnail_urls: Optional[Dict[str, Any]] = None

    @property
    def is_completed(self) -> bool:
        return self.processing_status == ProcessingStatus.COMPLETED


class Product(BaseModel):
    """
    Product domain model - represents a product in our catalog

    Fields:
        id: Product UUID
        title: Display title
        description: Long description
        price: Sale price (USD)
        image: External or public image URL shown in the storefront
        pdf_file_id: Uploaded PDF sold by this product (optional)
        image_file_id: Uploaded image for this product (optional)
        page_count: Pages in the PDF, when known
        preview_pages: How many pages customers may preview

        # Joined file summaries
        pdf_file: Summary of the PDF upload
        image_file: Summary of the image upload
    """

    id: str = Field(..., description="Product UUID")
    title: str = Field(..., description="Product title")
    description: Optional[str] = Field(None, description="Product description")
    price: Decimal = Field(..., description="Sale price", ge=0)
    image: Optional[str] = Field(None, description="Image URL")

    pdf_file_id: Optional[str] = Field(None, description="PDF file upload id")
    image_file_id: Optional[str] = Field(None, description="Image file upload id")
    page_count: Optional[int] = Field(None, description="PDF page count")
    preview_pages: Optional[int] = Field(None, description="Pages available for preview")

    pdf_file: Optional[FileSummary] = Field(None, description="Joined PDF file summary")
    image_file: Optional[FileSummary] = Field(None, description="Joined image file summary")

    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)

    @property
    def has_pdf(self) -> bool:
        return self.pdf_file_id is not None and self.pdf_file is not None

    @property
    def storage_paths(self) -> list:
        """Storage keys of the files this product owns"""
        paths = []
        for summary in (self.pdf_file, self.image_file):
            if summary and summary.storage_path:
                paths.append(summary.storage_path)
        return paths

    def to_dict(self) -> dict:
        """
        Convert to dictionary for JSON responses

        Price is returned as a float for JSON compatibility.
        """
        data = self.model_dump(mode="json")
        data['price'] = float(self.price)
        return data


class ProductPayload(BaseModel):
    """
    Request body for creating or updating a product

    Every field is optional here so that missing values produce a 400 with
    a readable message instead of a schema error.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Any] = None
    image: Optional[str] = None
    pdf_file_id: Optional[str] = Field(None, alias="pdfFileId")
    image_file_id: Optional[str] = Field(None, alias="imageFileId")
    preview_pages: Optional[int] = Field(None, alias="previewPages", ge=1)

    model_config = ConfigDict(populate_by_name=True)

    def to_values(self) -> Dict[str, Any]:
        """
        Validate and normalize the payload

        Returns:
            Dict of column values ready for the repository

        Raises:
            ValueError: with a client-facing message
        """
        if self.pdf_file_id and not is_valid_uuid(self.pdf_file_id):
            raise ValueError("Invalid PDF file ID: the PDF file ID must be a valid UUID format")

        if self.image_file_id and not is_valid_uuid(self.image_file_id):
            raise ValueError("Invalid image file ID: the image file ID must be a valid UUID format")

        missing = [
            name for name in ('title', 'description', 'price', 'image')
            if getattr(self, name) in (None, '')
        ]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

        price = parse_price(self.price)
        if price is None:
            raise ValueError("Price must be a positive number")

        values = {
            'title': self.title.strip(),
            'description': self.description.strip(),
            'price': price,
            'image': self.image.strip(),
            'pdf_file_id': self.pdf_file_id or None,
            'image_file_id': self.image_file_id or None,
        }
        if self.preview_pages is not None:
            values['preview_pages'] = self.preview_pages
        return values


def parse_price(value: Any) -> Optional[Decimal]:
    """Parse a price from a number or numeric string; None unless positive"""
    if isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price
