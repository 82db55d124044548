"""
Download Domain Model

A time-limited, count-limited link that lets a buyer fetch the file of a
purchased product.

Author: TM3
Date: 2025-10-17
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, timezone

from app.domain.product import FileSummary


class Download(BaseModel):
    """
    Download domain model - one row of downloads

    Fields:
        id: Download id
        order_item_id: Purchased line item
        customer_email: Buyer email the link is bound to
        product_id: Purchased product
        download_url: Public link sent to the buyer
        expires_at: Link expiry
        download_count: Times the file has been fetched
        last_downloaded_at: Last fetch

        # Joined product info
        product_title: Product title
        pdf_file: Product PDF file summary
        image_file: Product image file summary
    """
    id: str = Field(..., description="Download id")
    order_item_id: str = Field(..., description="Order item id")
    customer_email: str = Field(..., description="Buyer email")
    product_id: Optional[str] = Field(None, description="Product id")
    download_url: Optional[str] = Field(None, description="Download link")
    expires_at: datetime = Field(..., description="Expiry timestamp")
    download_count: int = Field(0, description="Downloads so far", ge=0)
    last_downloaded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    product_title: Optional[str] = None
    pdf_file: Optional[FileSummary] = None
    image_file: Optional[FileSummary] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now > expires_at

    def is_exhausted(self, max_downloads: int) -> bool:
        return self.download_count >= max_downloads

    @property
    def downloadable_file(self) -> Optional[FileSummary]:
        """The file handed to the buyer: the PDF when present, else the image"""
        if self.pdf_file and self.pdf_file.storage_path:
            return self.pdf_file
        if self.image_file and self.image_file.storage_path:
            return self.image_file
        return None

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
