"""
PDF Processing Service - turns an uploaded PDF into a catalog-ready file

Runs the processing job for one file_uploads row:
download -> metadata -> previews -> thumbnails -> persist results.

Status moves pending|failed -> processing -> completed|failed. A completed
file is returned as is, so calling process() twice is safe.

Author: TM3
Date: 2025-10-17
"""
import logging
from datetime import datetime, timezone

from app.connectors.storage_connector import StorageConnector
from app.domain.file_upload import FileUpload, ProcessingStatus
from app.repositories.file_upload_repository import FileUploadRepository
from app.services.pdf_service import extract_pdf_metadata
from app.services.preview_service import PreviewService

logger = logging.getLogger(__name__)


class FileNotFoundForProcessing(LookupError):
    """The file_uploads row does not exist"""


class FileAlreadyProcessing(RuntimeError):
    """Another request is processing the file"""


class PdfProcessingService:
    """
    Service for processing uploaded PDFs

    Usage:
        service = PdfProcessingService()
        file_upload = service.process(file_id)
    """

    def __init__(
        self,
        files: FileUploadRepository = None,
        storage: StorageConnector = None,
        previews: PreviewService = None
    ):
        self.files = files or FileUploadRepository()
        self.storage = storage or StorageConnector()
        self.previews = previews or PreviewService(self.storage)

    def process(self, file_id: str) -> FileUpload:
        """
        Process a PDF upload

        Args:
            file_id: file_uploads id

        Returns:
            The updated FileUpload

        Raises:
            ValueError: file_id missing
            FileNotFoundForProcessing: no such file
            FileAlreadyProcessing: file is being processed
            RuntimeError: any step of the job failed (status is set to failed)
        """
        if not file_id:
            raise ValueError("File ID is required for processing.")

        file_upload = self.files.find_by_id(file_id)
        if not file_upload:
            raise FileNotFoundForProcessing(f"File not found: {file_id}")

        if file_upload.is_completed:
            return file_upload

        if file_upload.is_processing:
            raise FileAlreadyProcessing("File is already being processed.")

        try:
            self.files.update_status(file_id, ProcessingStatus.PROCESSING)
            logger.info(f"Processing PDF {file_id} ({file_upload.storage_path})")

            pdf_bytes = self.storage.download(file_upload.storage_path)
            metadata = extract_pdf_metadata(pdf_bytes)
            page_count = metadata['page_count']

            preview_urls = self.previews.generate_previews(pdf_bytes, file_id)
            thumbnail_urls = self.previews.generate_thumbnails(pdf_bytes, file_id, page_count)

            updated = self.files.update_with_results(file_id, {
                'page_count': page_count,
                'dimensions': metadata['dimensions'],
                'preview_urls': preview_urls,
                'thumbnail_urls': thumbnail_urls,
                'metadata': {
                    **metadata,
                    'processed_at': datetime.now(timezone.utc).isoformat(),
                },
            })

            logger.info(
                f"Processed PDF {file_id}: {page_count} pages, "
                f"{len(preview_urls)} previews, {len(thumbnail_urls['pages'])} thumbnails"
            )
            return updated

        except Exception as e:
            logger.error(f"Failed to process file {file_id}: {e}")
            try:
                self.files.update_status(file_id, ProcessingStatus.FAILED, {'error': str(e)})
            except Exception as update_error:
                logger.error(f"Failed to update status to 'failed' for {file_id}: {update_error}")
            raise
