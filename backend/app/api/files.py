"""
Files API Endpoints
Lists and manages uploaded PDFs and images

Author: TM3
Date: 2025-10-17
"""
import logging
from fastapi import APIRouter, HTTPException, Query
from typing import Optional

from app.connectors.storage_connector import StorageConnector
from app.domain.file_upload import FileStatusUpdate, FileType, ProcessingStatus
from app.repositories.file_upload_repository import FileUploadRepository

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def get_files(
    file_type: Optional[FileType] = Query(None, description="Filter by pdf or image"),
    status: Optional[ProcessingStatus] = Query(None, description="Filter by processing status"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0)
):
    """Get uploaded files, newest first"""
    try:
        repo = FileUploadRepository()
        files, total = repo.find_all(
            file_type=file_type.value if file_type else None,
            status=status.value if status else None,
            limit=limit,
            offset=offset
        )

        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(files),
            "data": [file_upload.to_dict() for file_upload in files]
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching files: {str(e)}")


@router.get("/{file_id}")
async def get_file(file_id: str):
    """Get a single file upload"""
    try:
        repo = FileUploadRepository()
        file_upload = repo.find_by_id(file_id)

        if not file_upload:
            raise HTTPException(status_code=404, detail=f"File {file_id} not found")

        return {
            "status": "success",
            "data": file_upload.to_dict()
        }

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching file: {str(e)}")


@router.put("/{file_id}")
async def update_file_status(file_id: str, update: FileStatusUpdate):
    """
    Set the processing status of a file

    Body: processing_status (required), processing_metadata (optional)
    """
    try:
        if not update.processing_status:
            raise HTTPException(status_code=400, detail="processing_status is required")

        repo = FileUploadRepository()
        if not repo.find_by_id(file_id):
            raise HTTPException(status_code=404, detail=f"File {file_id} not found")

        file_upload = repo.update_status(file_id, update.processing_status, update.processing_metadata)
        if not file_upload:
            raise HTTPException(status_code=404, detail=f"File {file_id} not found")

        return {
            "status": "success",
            "data": file_upload.to_dict()
        }

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating file: {str(e)}")


@router.delete("/{file_id}")
async def delete_file(file_id: str):
    """
    Delete a file upload

    The stored object and its generated previews are removed first (best
    effort), then the row; products referencing it are detached.
    """
    try:
        repo = FileUploadRepository()
        file_upload = repo.find_by_id(file_id)

        if not file_upload:
            raise HTTPException(status_code=404, detail=f"File {file_id} not found")

        paths = [file_upload.storage_path]
        paths.extend((file_upload.preview_urls or {}).values())
        paths.extend(entry.get('url') for entry in file_upload.thumbnail_pages)

        try:
            StorageConnector().remove(paths)
        except Exception as e:
            logger.warning(f"Could not remove stored objects of file {file_id}: {e}")

        repo.delete(file_id)

        return {
            "status": "success",
            "message": "File deleted successfully",
            "data": {"id": file_id}
        }

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting file: {str(e)}")
