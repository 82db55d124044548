"""
Upload API Endpoints
Receives PDF and image uploads (multipart form data)

Endpoints:
- POST /api/v1/uploads/pdf    - Upload a PDF (field "pdf" or "file")
- POST /api/v1/uploads/image  - Upload an image (field "image" or "file")

Both endpoints are rate limited per client IP.

Author: TM3
Date: 2025-10-17
"""
import logging
from fastapi import APIRouter, HTTPException, Depends, File, UploadFile
from typing import Optional

from app.core.config import settings
from app.core.rate_limit import endpoint_rate_limit
from app.services.upload_service import UploadService, UploadValidationError, UploadFailedError

logger = logging.getLogger(__name__)

router = APIRouter()

upload_rate_limit = endpoint_rate_limit(settings.UPLOAD_RATE_LIMIT)


def _read_upload(upload: Optional[UploadFile]) -> bytes:
    return upload.file.read() if upload else b""


@router.post("/pdf", dependencies=[Depends(upload_rate_limit)])
def upload_pdf(
    pdf: Optional[UploadFile] = File(None),
    file: Optional[UploadFile] = File(None)
):
    """
    Upload a PDF

    The file is validated, stored and recorded as pending; processing is
    started separately with POST /api/v1/process/pdf.
    """
    upload = pdf or file
    if not upload:
        raise HTTPException(
            status_code=400,
            detail='No PDF file provided. Please upload a PDF file using the "pdf" or "file" field'
        )

    try:
        data = _read_upload(upload)
        result = UploadService().upload_pdf(data, upload.filename)

        return {
            "status": "success",
            "message": "PDF uploaded successfully",
            "data": result
        }

    except UploadValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UploadFailedError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"PDF upload failed: {e}")
        raise HTTPException(status_code=500, detail=f"Error uploading PDF: {str(e)}")


@router.post("/image", dependencies=[Depends(upload_rate_limit)])
def upload_image(
    image: Optional[UploadFile] = File(None),
    file: Optional[UploadFile] = File(None)
):
    """Upload a product image (JPEG, PNG, WebP or GIF)"""
    upload = image or file
    if not upload:
        raise HTTPException(
            status_code=400,
            detail='No image file provided. Please upload an image using the "image" or "file" field'
        )

    try:
        data = _read_upload(upload)
        result = UploadService().upload_image(data, upload.filename)

        return {
            "status": "success",
            "message": "Image uploaded successfully",
            "data": result
        }

    except UploadValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UploadFailedError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Image upload failed: {e}")
        raise HTTPException(status_code=500, detail=f"Error uploading image: {str(e)}")
