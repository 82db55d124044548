"""
Domain Layer - Business Entities

This layer contains Pydantic models representing business entities.
These models enforce type safety and validation across the application.

Author: TM3
Date: 2025-10-17
"""
from app.domain.file_upload import FileUpload, FileType, ProcessingStatus
from app.domain.product import Product, FileSummary
from app.domain.order import Order, OrderItem, Customer
from app.domain.download import Download

__all__ = [
    'FileUpload',
    'FileType',
    'ProcessingStatus',
    'Product',
    'FileSummary',
    'Order',
    'OrderItem',
    'Customer',
    'Download'
]
