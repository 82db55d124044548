"""
Downloads API Endpoints
Buyer access to purchased files

Endpoints:
- GET /api/v1/downloads?email=                - Active download links of a buyer
- GET /api/v1/download/{order_item_id}?email= - Download a purchased file

Author: TM3
Date: 2025-10-17
"""
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response
from typing import Optional

from app.core.config import settings
from app.services.download_service import (
    DownloadService,
    InvalidDownloadEmail,
    DownloadNotFound,
    DownloadExpired,
    DownloadLimitReached,
)

router = APIRouter()


@router.get("/downloads")
async def get_downloads(email: Optional[str] = Query(None, description="Buyer email")):
    """Unexpired download links for a buyer, newest first"""
    try:
        downloads = DownloadService().active_downloads(email)

        data = []
        for download in downloads:
            item = download.to_dict()
            item['max_downloads'] = settings.MAX_DOWNLOADS
            data.append(item)

        return {
            "status": "success",
            "count": len(data),
            "data": data
        }

    except InvalidDownloadEmail as e:
        raise HTTPException(status_code=400, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching downloads: {str(e)}")


@router.get("/download/{order_item_id}")
def download_file(order_item_id: str, email: Optional[str] = Query(None, description="Buyer email")):
    """
    Download the file of a purchased product

    Status codes:
    - 400: missing or invalid email
    - 404: no download link, or the file is missing
    - 410: link expired
    - 429: download limit reached
    """
    try:
        service = DownloadService()
        downloaded = service.fetch(order_item_id, email)

        response = Response(
            content=downloaded.content,
            media_type=downloaded.content_type,
            headers={
                "Content-Disposition": downloaded.content_disposition,
                "Cache-Control": "no-cache, no-store, must-revalidate",
                "Pragma": "no-cache",
                "Expires": "0",
            }
        )
        service.record_download(downloaded)
        return response

    except InvalidDownloadEmail as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DownloadNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DownloadExpired as e:
        raise HTTPException(status_code=410, detail=str(e))
    except DownloadLimitReached as e:
        raise HTTPException(status_code=429, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error processing download: {str(e)}")
