"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL details from business logic.

Author: TM3
Date: 2025-10-17
"""
from app.repositories.product_repository import ProductRepository, ProductInUseError
from app.repositories.file_upload_repository import FileUploadRepository
from app.repositories.order_repository import OrderRepository
from app.repositories.download_repository import DownloadRepository

__all__ = [
    'ProductRepository',
    'ProductInUseError',
    'FileUploadRepository',
    'OrderRepository',
    'DownloadRepository'
]
