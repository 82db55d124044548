"""
Download Service - serves purchased files through their download links

A link is bound to the buyer email, expires after a fixed number of days
and allows a limited number of downloads. A download is counted only after
the route has built its response.

Author: TM3
Date: 2025-10-17
"""
import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import List
from urllib.parse import quote

from app.core.config import settings
from app.connectors.storage_connector import StorageConnector
from app.domain.download import Download
from app.domain.order import is_valid_email
from app.repositories.download_repository import DownloadRepository

logger = logging.getLogger(__name__)


class InvalidDownloadEmail(ValueError):
    """Missing or malformed buyer email"""


class DownloadNotFound(LookupError):
    """No link for this order item and email, or its file is gone"""


class DownloadExpired(Exception):
    """The link is past its expiry"""


class DownloadLimitReached(Exception):
    """The link has been used the maximum number of times"""


def content_disposition(file_name: str) -> str:
    """
    Attachment header value that is always latin-1 encodable

    The plain `filename` is an ASCII fallback with quotes, backslashes and
    control characters replaced. Names that needed changes also get an
    RFC 5987 `filename*` with the UTF-8 name percent-encoded.
    """
    fallback = unicodedata.normalize('NFKD', file_name).encode('ascii', 'ignore').decode('ascii')
    fallback = re.sub(r'[\x00-\x1f\x7f"\\]', '_', fallback)
    fallback = re.sub(r'\s+', ' ', fallback).strip()
    if not fallback or fallback.startswith('.'):
        fallback = f"download{fallback}"

    header = f'attachment; filename="{fallback}"'
    if fallback != file_name:
        header += f"; filename*=UTF-8''{quote(file_name, safe='')}"
    return header


@dataclass
class DownloadedFile:
    """File content handed to the buyer"""
    download_id: str
    file_name: str
    content_type: str
    content: bytes
    download_count: int

    @property
    def content_disposition(self) -> str:
        return content_disposition(self.file_name)


class DownloadService:
    """
    Service for buyer downloads

    Usage:
        service = DownloadService()
        downloaded = service.fetch(order_item_id, email)
        # build the response with downloaded.content_disposition, then
        service.record_download(downloaded)
    """

    def __init__(
        self,
        downloads: DownloadRepository = None,
        storage: StorageConnector = None,
        max_downloads: int = None
    ):
        self.downloads = downloads or DownloadRepository()
        self.storage = storage or StorageConnector()
        self.max_downloads = max_downloads or settings.MAX_DOWNLOADS

    def active_downloads(self, email: str) -> List[Download]:
        """Unexpired links for a buyer, newest first"""
        if not is_valid_email(email):
            raise InvalidDownloadEmail("Valid email address is required")
        return self.downloads.find_active_by_email(email)

    def fetch(self, order_item_id: str, email: str) -> DownloadedFile:
        """
        Check a link and load its file. Nothing is counted here.

        Raises:
            InvalidDownloadEmail: invalid email
            DownloadNotFound: no link, no file or storage failure
            DownloadExpired: link expired
            DownloadLimitReached: download limit reached
        """
        if not is_valid_email(email):
            raise InvalidDownloadEmail("Valid email address is required")

        download = self.downloads.find_by_order_item(order_item_id, email)
        if not download:
            raise DownloadNotFound("Download not found or access denied")

        if download.is_expired():
            raise DownloadExpired("Download link has expired")

        if download.is_exhausted(self.max_downloads):
            raise DownloadLimitReached(
                f"Download limit exceeded ({self.max_downloads} downloads maximum)"
            )

        file_summary = download.downloadable_file
        if not file_summary:
            logger.error(f"No downloadable file found for product: {download.product_title}")
            raise DownloadNotFound("File not found")

        try:
            content = self.storage.download(file_summary.storage_path)
        except Exception as e:
            logger.error(f"File download error for {file_summary.storage_path}: {e}")
            raise DownloadNotFound("File could not be retrieved") from e

        extension = 'pdf' if file_summary.file_type == 'pdf' else (file_summary.content_type or '').split('/')[-1] or 'bin'
        file_name = file_summary.file_name or f"{download.product_title or 'download'}.{extension}"

        return DownloadedFile(
            download_id=download.id,
            file_name=file_name,
            content_type=file_summary.content_type or 'application/octet-stream',
            content=content,
            download_count=download.download_count,
        )

    def record_download(self, downloaded: DownloadedFile) -> int:
        """Count a served download and return the new count"""
        self.downloads.increment_count(downloaded.download_id)
        downloaded.download_count += 1

        logger.info(
            f"File downloaded: {downloaded.file_name} "
            f"({downloaded.download_count}/{self.max_downloads})"
        )
        return downloaded.download_count
