"""
Products API Endpoints
Handles product catalog management and storefront preview info

Author: TM3
Date: 2025-10-17
"""
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse, RedirectResponse
from typing import Optional

from app.domain.product import ProductPayload
from app.repositories.product_repository import ProductInUseError
from app.services.product_service import (
    ProductService,
    ProductNotFound,
    FileReferenceNotFound,
    FileReferenceNotReady,
    PreviewUnavailable,
    PreviewProcessing,
    PreviewPageNotAllowed,
)

router = APIRouter()


@router.get("/")
async def get_products(
    search: Optional[str] = Query(None, description="Search by title or description"),
    file_type: Optional[str] = Query(None, description="Only products with a pdf or image upload"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0)
):
    """
    Get all products, newest first, with their file summaries
    """
    try:
        service = ProductService()
        products, total = service.list_products(
            search=search,
            file_type=file_type,
            limit=limit,
            offset=offset
        )

        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(products),
            "data": [service.to_dict(product) for product in products]
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching products: {str(e)}")


@router.post("/", status_code=201)
async def create_product(payload: ProductPayload):
    """
    Create a product

    Body: title, description, price, image (required), pdfFileId,
    imageFileId, previewPages (optional)
    """
    try:
        service = ProductService()
        product = service.create_product(payload)

        return {
            "status": "success",
            "data": service.to_dict(product)
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FileReferenceNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except FileReferenceNotReady as e:
        raise HTTPException(status_code=409, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating product: {str(e)}")


@router.get("/{product_id}")
async def get_product(product_id: str):
    """Get a single product by id"""
    try:
        service = ProductService()
        product = service.get_product(product_id)

        return {
            "status": "success",
            "data": service.to_dict(product)
        }

    except ProductNotFound:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching product: {str(e)}")


@router.put("/{product_id}")
async def update_product(product_id: str, payload: ProductPayload):
    """Update a product (same body and validation as create)"""
    try:
        service = ProductService()
        product = service.update_product(product_id, payload)

        return {
            "status": "success",
            "data": service.to_dict(product)
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProductNotFound:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    except FileReferenceNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except FileReferenceNotReady as e:
        raise HTTPException(status_code=409, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating product: {str(e)}")


@router.delete("/{product_id}")
async def delete_product(product_id: str):
    """Delete a product and its stored files"""
    try:
        service = ProductService()
        product = service.delete_product(product_id)

        return {
            "status": "success",
            "message": "Product deleted successfully",
            "data": {"id": product.id}
        }

    except ProductNotFound:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    except ProductInUseError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting product: {str(e)}")


@router.get("/{product_id}/preview")
async def get_product_preview(product_id: str):
    """
    Preview pages a customer may see before buying

    Returns 202 while the PDF is still being processed.
    """
    try:
        service = ProductService()
        preview = service.get_preview_info(product_id)

        return {
            "status": "success",
            "data": preview
        }

    except ProductNotFound:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    except PreviewUnavailable as e:
        return JSONResponse(status_code=404, content={"detail": str(e), **e.details})
    except PreviewProcessing as e:
        return JSONResponse(status_code=202, content={
            "status": "processing",
            "detail": str(e),
            "processing_status": e.processing_status,
            "message": "Preview images are not yet available. Please try again in a few moments."
        })
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching product preview: {str(e)}")


@router.get("/{product_id}/preview/{page}")
async def get_product_preview_page(
    product_id: str,
    page: str,
    direct: bool = Query(False, description="Redirect to the page image instead of returning JSON")
):
    """
    One preview page of a product

    Status codes:
    - 400: page is not a positive integer
    - 403: page is past the preview limit or the end of the document
    - 404: product, PDF or page image missing
    - 202: PDF still being processed
    - 307: with direct=true, redirect to the page image
    """
    try:
        service = ProductService()
        preview = service.get_preview_page(product_id, page)

        if direct:
            return RedirectResponse(url=preview['preview_url'], status_code=307)

        return {
            "status": "success",
            "data": preview
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProductNotFound:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    except PreviewPageNotAllowed as e:
        return JSONResponse(status_code=403, content={"detail": str(e), **e.details})
    except PreviewUnavailable as e:
        return JSONResponse(status_code=404, content={"detail": str(e), **e.details})
    except PreviewProcessing as e:
        return JSONResponse(status_code=202, content={
            "status": "processing",
            "detail": str(e),
            "processing_status": e.processing_status,
            "message": "Preview images are not yet available. Please try again in a few moments."
        })
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching preview page: {str(e)}")
