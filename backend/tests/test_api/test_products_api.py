"""
API tests for /api/v1/products

The service layer is mocked; these tests cover routing, status codes and
response shape.

Author: TM3
Date: 2025-10-17
"""
import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient

from app.main import app
from app.domain.product import Product
from app.repositories.product_repository import ProductInUseError
from app.services.product_service import (
    ProductNotFound,
    FileReferenceNotFound,
    FileReferenceNotReady,
    PreviewUnavailable,
    PreviewProcessing,
    PreviewPageNotAllowed,
)

from conftest import PRODUCT_ID, PDF_FILE_ID

client = TestClient(app)

VALID_BODY = {
    'title': 'Botanical Print Set',
    'description': 'Twelve prints',
    'price': 12.5,
    'image': 'https://example.com/a.jpg',
}


@pytest.fixture
def service():
    with patch('app.api.products.ProductService') as MockService:
        instance = MockService.return_value
        instance.to_dict.side_effect = lambda product: product.to_dict()
        yield instance


class TestProductsAPI:

    def test_list_products(self, service, product_row):
        service.list_products.return_value = ([Product.model_validate(product_row())], 1)

        response = client.get("/api/v1/products/?search=botanical&limit=10")

        assert response.status_code == 200
        body = response.json()
        assert body['status'] == 'success'
        assert body['total'] == 1
        assert body['data'][0]['price'] == 12.5
        service.list_products.assert_called_once_with(
            search='botanical', file_type=None, limit=10, offset=0
        )

    def test_list_rejects_bad_limit(self, service):
        assert client.get("/api/v1/products/?limit=0").status_code == 422

    def test_get_product(self, service, product_row):
        service.get_product.return_value = Product.model_validate(product_row())

        response = client.get(f"/api/v1/products/{PRODUCT_ID}")

        assert response.status_code == 200
        assert response.json()['data']['id'] == PRODUCT_ID

    def test_get_unknown_product(self, service):
        service.get_product.side_effect = ProductNotFound(PRODUCT_ID)

        response = client.get(f"/api/v1/products/{PRODUCT_ID}")

        assert response.status_code == 404

    def test_create_product(self, service, product_row):
        service.create_product.return_value = Product.model_validate(product_row())

        response = client.post("/api/v1/products/", json=dict(VALID_BODY, pdfFileId=PDF_FILE_ID))

        assert response.status_code == 201
        payload = service.create_product.call_args.args[0]
        assert payload.pdf_file_id == PDF_FILE_ID

    @pytest.mark.parametrize("error, status_code", [
        (ValueError("Missing required fields: title"), 400),
        (FileReferenceNotFound("PDF file not found"), 404),
        (FileReferenceNotReady("PDF file is not ready"), 409),
        (RuntimeError("database down"), 500),
    ])
    def test_create_product_errors(self, service, error, status_code):
        service.create_product.side_effect = error

        response = client.post("/api/v1/products/", json=VALID_BODY)

        assert response.status_code == status_code

    def test_update_product(self, service, product_row):
        service.update_product.return_value = Product.model_validate(product_row(title='Renamed'))

        response = client.put(f"/api/v1/products/{PRODUCT_ID}", json=dict(VALID_BODY, title='Renamed'))

        assert response.status_code == 200
        assert response.json()['data']['title'] == 'Renamed'

    def test_update_unknown_product(self, service):
        service.update_product.side_effect = ProductNotFound(PRODUCT_ID)

        assert client.put(f"/api/v1/products/{PRODUCT_ID}", json=VALID_BODY).status_code == 404

    def test_delete_product(self, service, product_row):
        service.delete_product.return_value = Product.model_validate(product_row())

        response = client.delete(f"/api/v1/products/{PRODUCT_ID}")

        assert response.status_code == 200
        assert response.json()['data'] == {'id': PRODUCT_ID}

    def test_delete_product_in_use(self, service):
        service.delete_product.side_effect = ProductInUseError(
            "Cannot delete product: It is referenced by existing orders or downloads."
        )

        response = client.delete(f"/api/v1/products/{PRODUCT_ID}")

        assert response.status_code == 409
        assert "referenced by existing orders" in response.json()['detail']


class TestProductPreviewAPI:

    def test_preview_info(self, service):
        service.get_preview_info.return_value = {
            'product_id': PRODUCT_ID,
            'total_pages': 8,
            'preview_pages': 3,
            'preview_urls': ['a', 'b', 'c'],
        }

        response = client.get(f"/api/v1/products/{PRODUCT_ID}/preview")

        assert response.status_code == 200
        assert response.json()['data']['preview_pages'] == 3

    def test_preview_without_pdf(self, service):
        service.get_preview_info.side_effect = PreviewUnavailable(
            "No PDF file associated with this product", {'product_type': 'image'}
        )

        response = client.get(f"/api/v1/products/{PRODUCT_ID}/preview")

        assert response.status_code == 404
        assert response.json() == {
            'detail': 'No PDF file associated with this product',
            'product_type': 'image',
        }

    def test_preview_while_processing(self, service):
        service.get_preview_info.side_effect = PreviewProcessing('processing')

        response = client.get(f"/api/v1/products/{PRODUCT_ID}/preview")

        assert response.status_code == 202
        assert response.json()['status'] == 'processing'
        assert response.json()['processing_status'] == 'processing'


class TestProductPreviewPageAPI:

    PAGE = {
        'product_id': PRODUCT_ID,
        'page_number': 2,
        'preview_url': 'https://cdn.test/thumbnails/x/page-2.jpg',
        'is_preview_limited': False,
    }

    def test_preview_page(self, service):
        service.get_preview_page.return_value = self.PAGE

        response = client.get(f"/api/v1/products/{PRODUCT_ID}/preview/2")

        assert response.status_code == 200
        assert response.json()['data']['preview_url'] == 'https://cdn.test/thumbnails/x/page-2.jpg'
        service.get_preview_page.assert_called_once_with(PRODUCT_ID, '2')

    def test_direct_redirects_to_image(self, service):
        service.get_preview_page.return_value = self.PAGE

        response = client.get(
            f"/api/v1/products/{PRODUCT_ID}/preview/2?direct=true",
            follow_redirects=False
        )

        assert response.status_code == 307
        assert response.headers['location'] == 'https://cdn.test/thumbnails/x/page-2.jpg'

    def test_invalid_page_is_400(self, service):
        service.get_preview_page.side_effect = ValueError("Invalid page number")

        response = client.get(f"/api/v1/products/{PRODUCT_ID}/preview/abc")

        assert response.status_code == 400
        assert response.json()['detail'] == "Invalid page number"

    def test_page_past_limit_is_403(self, service):
        service.get_preview_page.side_effect = PreviewPageNotAllowed(
            "Preview limited to 3 pages", {'max_preview': 3, 'total_pages': 8}
        )

        response = client.get(f"/api/v1/products/{PRODUCT_ID}/preview/4")

        assert response.status_code == 403
        assert response.json() == {
            'detail': 'Preview limited to 3 pages',
            'max_preview': 3,
            'total_pages': 8,
        }

    @pytest.mark.parametrize("error, status_code", [
        (ProductNotFound(PRODUCT_ID), 404),
        (PreviewUnavailable("Preview for page 2 not available", {'requested_page': 2}), 404),
        (PreviewProcessing('processing'), 202),
        (RuntimeError("database down"), 500),
    ])
    def test_preview_page_errors(self, service, error, status_code):
        service.get_preview_page.side_effect = error

        response = client.get(f"/api/v1/products/{PRODUCT_ID}/preview/2")

        assert response.status_code == status_code
