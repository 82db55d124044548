"""
Tests for PDF metadata extraction and page rendering

Uses real PDFs generated in memory with PyMuPDF.

Author: TM3
Date: 2025-10-17
"""
import pytest
from unittest.mock import patch

from PIL import Image

from app.services import pdf_service
from app.services.pdf_service import (
    extract_pdf_metadata,
    render_pdf_page,
    create_placeholder_image,
    parse_pdf_date,
    PLACEHOLDER_SIZE,
)


class TestExtractPdfMetadata:

    def test_reads_document_info_and_dimensions(self, make_pdf):
        metadata = extract_pdf_metadata(make_pdf(pages=4, title="Vintage Maps"))

        assert metadata['page_count'] == 4
        assert metadata['title'] == "Vintage Maps"
        assert metadata['author'] == "MJK Prints"
        assert metadata['keywords'] == "botanical, print"
        assert metadata['dimensions'] == {
            'width': 595.0,
            'height': 842.0,
            'unit': 'pt',
            'orientation': 'portrait',
        }
        assert "Page 1" in metadata['text_content']

    def test_text_content_is_capped(self, make_pdf):
        long_text = "x" * 20
        metadata = extract_pdf_metadata(make_pdf(pages=80, text=long_text))

        assert len(metadata['text_content']) == 1000

    def test_invalid_bytes_raise_prefixed_error(self):
        with pytest.raises(RuntimeError, match="PDF metadata extraction failed"):
            extract_pdf_metadata(b"definitely not a pdf")


class TestParsePdfDate:

    def test_converts_pdf_date_with_offset(self):
        assert parse_pdf_date("D:20240102030405+02'00'") == "2024-01-02T03:04:05+02:00"

    def test_converts_utc_date(self):
        assert parse_pdf_date("D:20240102030405Z") == "2024-01-02T03:04:05+00:00"

    def test_keeps_unknown_formats(self):
        assert parse_pdf_date("January 2024") == "January 2024"
        assert parse_pdf_date("") is None


class TestRenderPdfPage:

    def test_renders_page_at_scale(self, sample_pdf_bytes):
        image = render_pdf_page(sample_pdf_bytes, 1, 1.0)

        assert isinstance(image, Image.Image)
        assert image.size == (595, 842)

    def test_scale_changes_resolution(self, sample_pdf_bytes):
        image = render_pdf_page(sample_pdf_bytes, 2, 2.0)

        assert image.size == (1190, 1684)

    def test_page_out_of_range_falls_back_to_placeholder(self, sample_pdf_bytes):
        image = render_pdf_page(sample_pdf_bytes, 9, 1.0)

        assert image.size == PLACEHOLDER_SIZE

    def test_empty_input_rejected(self):
        with pytest.raises(ValueError, match="Invalid PDF buffer"):
            render_pdf_page(b"", 1, 1.0)

    def test_placeholder_failure_raises(self, sample_pdf_bytes):
        with patch.object(pdf_service, '_render_with_pymupdf', side_effect=RuntimeError("broken")), \
                patch.object(pdf_service, 'create_placeholder_image', side_effect=OSError("no fonts")):
            with pytest.raises(RuntimeError, match="All PDF rendering and fallback strategies failed."):
                render_pdf_page(sample_pdf_bytes, 1, 1.0)


def test_placeholder_is_white_page():
    image = create_placeholder_image()

    assert image.size == (1240, 1754)
    assert image.getpixel((5, 5)) == (255, 255, 255)
