"""
Pytest fixtures and configuration for MJK Prints Backend tests

This file provides shared fixtures that can be used across all test modules.
Database and storage are always mocked; PDFs and images are generated in
memory.

Author: TM3
Date: 2025-10-17
"""
import io
from datetime import datetime, timezone

import fitz
import pytest
from PIL import Image

from app.core.rate_limit import rate_limiter


PDF_FILE_ID = "11111111-1111-4111-8111-111111111111"
IMAGE_FILE_ID = "22222222-2222-4222-8222-222222222222"
PRODUCT_ID = "33333333-3333-4333-8333-333333333333"
ORDER_ID = "44444444-4444-4444-8444-444444444444"
ORDER_ITEM_ID = "55555555-5555-4555-8555-555555555555"
DOWNLOAD_ID = "66666666-6666-4666-8666-666666666666"


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Every test starts with an empty rate limiter"""
    rate_limiter.reset()
    yield
    rate_limiter.reset()


def build_pdf(pages: int = 3, title: str = "Botanical Prints", text: str = "Page") -> bytes:
    """Build a real PDF with the given number of A4 pages"""
    doc = fitz.open()
    for number in range(1, pages + 1):
        page = doc.new_page(width=595, height=842)
        page.insert_text((72, 72), f"{text} {number}", fontsize=24)
    doc.set_metadata({
        "title": title,
        "author": "MJK Prints",
        "subject": "Wall art",
        "keywords": "botanical, print",
        "creator": "pytest",
        "producer": "PyMuPDF",
    })
    data = doc.tobytes()
    doc.close()
    return data


def build_image(size=(300, 200), image_format: str = "PNG", color="#336699") -> bytes:
    """Build a real image in the given format"""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def make_pdf():
    """Factory for in-memory PDFs"""
    return build_pdf


@pytest.fixture
def sample_pdf_bytes():
    """A 3-page PDF"""
    return build_pdf(pages=3)


@pytest.fixture
def sample_png_bytes():
    """A 300x200 PNG"""
    return build_image()


@pytest.fixture
def file_upload_row():
    """Factory for file_uploads rows as returned by a RealDictCursor"""
    def _row(**overrides):
        row = {
            'id': PDF_FILE_ID,
            'product_id': None,
            'file_name': 'botanical.pdf',
            'file_size': 2048,
            'file_type': 'pdf',
            'content_type': 'application/pdf',
            'storage_path': 'pdfs/1700000000000_abcdef0123456789.pdf',
            'checksum': 'a' * 64,
            'is_primary': True,
            'processing_status': 'pending',
            'processing_metadata': None,
            'page_count': 3,
            'dimensions': None,
            'preview_urls': None,
            'thumbnail_urls': None,
            'created_at': datetime(2025, 10, 17, 12, 0, tzinfo=timezone.utc),
            'updated_at': None,
        }
        row.update(overrides)
        return row
    return _row


@pytest.fixture
def product_row():
    """Factory for product rows (with joined file summaries)"""
    def _row(**overrides):
        row = {
            'id': PRODUCT_ID,
            'title': 'Botanical Print Set',
            'description': 'Twelve vintage botanical illustrations',
            'price': '12.50',
            'image': 'https://example.com/botanical.jpg',
            'pdf_file_id': None,
            'image_file_id': None,
            'page_count': None,
            'preview_pages': None,
            'pdf_file': None,
            'image_file': None,
            'created_at': datetime(2025, 10, 17, 12, 0, tzinfo=timezone.utc),
            'updated_at': None,
        }
        row.update(overrides)
        return row
    return _row


@pytest.fixture
def completed_pdf_summary():
    """Joined summary of a processed 8-page PDF"""
    return {
        'id': PDF_FILE_ID,
        'file_name': 'botanical.pdf',
        'file_size': 2048,
        'file_type': 'pdf',
        'content_type': 'application/pdf',
        'storage_path': 'pdfs/1700000000000_abcdef0123456789.pdf',
        'processing_status': 'completed',
        'page_count': 8,
        'dimensions': {'width': 595.0, 'height': 842.0, 'unit': 'pt', 'orientation': 'portrait'},
        'preview_urls': {
            'small': f'previews/{PDF_FILE_ID}/page-1-small.jpg',
            'medium': f'previews/{PDF_FILE_ID}/page-1-medium.jpg',
            'large': f'previews/{PDF_FILE_ID}/page-1-large.jpg',
        },
        'thumbnail_urls': {'pages': [
            {'page': n, 'url': f'thumbnails/{PDF_FILE_ID}/page-{n}.jpg'} for n in range(1, 6)
        ]},
    }

