"""
PDF Service - metadata extraction and page rendering

Wraps PyMuPDF for reading PDFs and Pillow for the images produced from them.
Rendering never leaves callers without an image: when a page cannot be
rasterized a placeholder page is returned instead.

Author: TM3
Date: 2025-10-17
"""
import logging
import re
from datetime import datetime, timezone, timedelta
from typing import Dict, Any, Optional

import fitz
from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

TEXT_CONTENT_LIMIT = 1000

# A4 at 150 dpi
PLACEHOLDER_SIZE = (1240, 1754)

PDF_DATE_PATTERN = re.compile(
    r"^D:(\d{4})(\d{2})?(\d{2})?(\d{2})?(\d{2})?(\d{2})?([Zz+\-])?(\d{2})?'?(\d{2})?'?$"
)


def open_pdf(pdf_bytes: bytes) -> fitz.Document:
    """Open a PDF from memory"""
    return fitz.open(stream=pdf_bytes, filetype="pdf")


def parse_pdf_date(value: Optional[str]) -> Optional[str]:
    """
    Convert a PDF date string (D:YYYYMMDDHHmmSS+HH'mm') to ISO-8601

    Returns the original string when it does not follow the PDF format,
    None for empty values.
    """
    if not value:
        return None

    match = PDF_DATE_PATTERN.match(value.strip())
    if not match:
        return value

    year, month, day, hour, minute, second, sign, tz_hour, tz_minute = match.groups()
    tz = timezone.utc
    if sign in ('+', '-'):
        offset = timedelta(hours=int(tz_hour or 0), minutes=int(tz_minute or 0))
        tz = timezone(offset if sign == '+' else -offset)

    try:
        parsed = datetime(
            int(year), int(month or 1), int(day or 1),
            int(hour or 0), int(minute or 0), int(second or 0),
            tzinfo=tz
        )
    except ValueError:
        return value

    return parsed.isoformat()


def page_dimensions(page: fitz.Page) -> Dict[str, Any]:
    """Page size in points with its orientation"""
    width = round(page.rect.width, 2)
    height = round(page.rect.height, 2)
    return {
        'width': width,
        'height': height,
        'unit': 'pt',
        'orientation': 'landscape' if width > height else 'portrait',
    }


def extract_pdf_metadata(pdf_bytes: bytes) -> Dict[str, Any]:
    """
    Extract document info, text sample and first page size from a PDF

    Returns:
        Dict with page_count, title, author, subject, keywords, creator,
        producer, creation_date, modification_date, text_content (first
        1000 characters) and dimensions

    Raises:
        RuntimeError: "PDF metadata extraction failed: ..."
    """
    try:
        with open_pdf(pdf_bytes) as doc:
            info = doc.metadata or {}

            text = ""
            for page in doc:
                text += page.get_text()
                if len(text) >= TEXT_CONTENT_LIMIT:
                    break

            return {
                'page_count': doc.page_count,
                'title': info.get('title') or None,
                'author': info.get('author') or None,
                'subject': info.get('subject') or None,
                'keywords': info.get('keywords') or None,
                'creator': info.get('creator') or None,
                'producer': info.get('producer') or None,
                'creation_date': parse_pdf_date(info.get('creationDate')),
                'modification_date': parse_pdf_date(info.get('modDate')),
                'text_content': text[:TEXT_CONTENT_LIMIT] if text else None,
                'dimensions': page_dimensions(doc[0]) if doc.page_count else None,
            }

    except Exception as e:
        raise RuntimeError(f"PDF metadata extraction failed: {e}") from e


def _render_with_pymupdf(pdf_bytes: bytes, page_number: int, scale: float) -> Image.Image:
    with open_pdf(pdf_bytes) as doc:
        if page_number < 1 or page_number > doc.page_count:
            raise ValueError(
                f"Requested page {page_number} exceeds total pages {doc.page_count}"
            )

        page = doc[page_number - 1]
        pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)


def create_placeholder_image(width: int = PLACEHOLDER_SIZE[0], height: int = PLACEHOLDER_SIZE[1]) -> Image.Image:
    """White page with a grey border and a 'Preview not available' caption"""
    image = Image.new("RGB", (width, height), "#ffffff")
    draw = ImageDraw.Draw(image)
    draw.rectangle([20, 20, width - 21, height - 21], outline="#cccccc", width=2)

    title_font = ImageFont.load_default(size=48)
    caption_font = ImageFont.load_default(size=24)
    draw.text((width / 2, height / 2 - 30), "PDF Document", fill="#666666", font=title_font, anchor="mm")
    draw.text((width / 2, height / 2 + 30), "Preview not available", fill="#666666", font=caption_font, anchor="mm")

    return image


def render_pdf_page(pdf_bytes: bytes, page_number: int, scale: float) -> Image.Image:
    """
    Rasterize a 1-based page at the given zoom

    Falls back to a placeholder image when rendering fails.

    Raises:
        ValueError: for empty input
        RuntimeError: when the placeholder cannot be produced either
    """
    if not pdf_bytes:
        raise ValueError("Invalid PDF buffer provided for rendering.")

    try:
        return _render_with_pymupdf(pdf_bytes, page_number, scale)
    except Exception as e:
        logger.warning(f"Rendering page {page_number} failed, using placeholder: {e}")
        try:
            return create_placeholder_image()
        except Exception as placeholder_error:
            logger.error(f"Placeholder generation also failed: {placeholder_error}")
            raise RuntimeError("All PDF rendering and fallback strategies failed.") from placeholder_error
