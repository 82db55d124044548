"""
Processing API Endpoints
Runs the PDF processing job for an uploaded file

Endpoints:
- POST /api/v1/process/pdf  - Generate previews and thumbnails for a PDF

Author: TM3
Date: 2025-10-17
"""
from fastapi import APIRouter, HTTPException
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from app.services.pdf_processing_service import (
    PdfProcessingService,
    FileNotFoundForProcessing,
    FileAlreadyProcessing,
)

router = APIRouter()


class ProcessRequest(BaseModel):
    file_id: Optional[str] = Field(None, alias="fileId")

    model_config = ConfigDict(populate_by_name=True)


@router.post("/pdf")
def process_pdf(request: ProcessRequest):
    """
    Process an uploaded PDF

    Body: {"fileId": "<file upload id>"}

    Returns the updated file. A file that is already completed is returned
    unchanged.
    """
    if not request.file_id:
        raise HTTPException(status_code=400, detail="File ID is required for processing.")

    try:
        file_upload = PdfProcessingService().process(request.file_id)

        return {
            "status": "success",
            "message": "PDF processed successfully",
            "data": file_upload.to_dict()
        }

    except FileNotFoundForProcessing as e:
        raise HTTPException(status_code=404, detail=str(e))
    except FileAlreadyProcessing as e:
        raise HTTPException(status_code=409, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error processing PDF: {str(e)}")
