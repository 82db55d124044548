"""
File Upload Repository - Data Access Layer for file_uploads

Handles all database queries for uploaded files and their processing
results, returning FileUpload domain models.

Author: TM3
Date: 2025-10-17
"""
import logging
from typing import List, Optional, Tuple, Dict, Any

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extras import Json

from app.domain.file_upload import (
    FileUpload, FileUploadCreate, ProcessingStatus, is_valid_uuid
)
from app.core.database import get_db_connection_dict

logger = logging.getLogger(__name__)

FILE_COLUMNS = """
    id, product_id, file_name, file_size, file_type, content_type,
    storage_path, checksum, is_primary, processing_status, processing_metadata,
    page_count, dimensions, preview_urls, thumbnail_urls, created_at, updated_at
"""

# Constraint violations mapped to readable messages on insert
INSERT_ERROR_MESSAGES = (
    (pg_errors.UniqueViolation, 'File with this checksum already exists'),
    (pg_errors.ForeignKeyViolation, 'Referenced product does not exist'),
    (pg_errors.CheckViolation, 'File data violates database constraints'),
)


def _json(value: Optional[Dict[str, Any]]):
    return Json(value) if value is not None else None


class FileUploadRepository:
    """
    Repository for FileUpload data access

    All SQL queries for file_uploads are centralized here.
    """

    @staticmethod
    def _map_row(row: dict) -> FileUpload:
        return FileUpload.model_validate(dict(row))

    def find_by_id(self, file_id: str) -> Optional[FileUpload]:
        """
        Find a file upload by id

        Args:
            file_id: File upload UUID

        Returns:
            FileUpload or None if not found or the id is not a UUID
        """
        if not is_valid_uuid(file_id):
            return None

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {FILE_COLUMNS}
                FROM file_uploads
                WHERE id = %s
            """, (file_id,))

            row = cursor.fetchone()
            if not row:
                return None

            return self._map_row(row)

        finally:
            cursor.close()
            conn.close()

    def find_all(
        self,
        file_type: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Tuple[List[FileUpload], int]:
        """
        Find file uploads with filters, newest first

        Args:
            file_type: Filter by pdf or image
            status: Filter by processing status
            limit: Maximum results to return
            offset: Number of results to skip

        Returns:
            Tuple of (list of file uploads, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = []
            params = []

            if file_type:
                conditions.append("file_type = %s")
                params.append(file_type)

            if status:
                conditions.append("processing_status = %s")
                params.append(status)

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM file_uploads
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {FILE_COLUMNS}
                FROM file_uploads
                WHERE {where_clause}
                ORDER BY created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            rows = cursor.fetchall()
            return [self._map_row(row) for row in rows], total

        finally:
            cursor.close()
            conn.close()

    def create(self, data: FileUploadCreate) -> FileUpload:
        """
        Insert a new file upload row

        Raises:
            RuntimeError: with a readable message for constraint violations
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO file_uploads (
                    product_id, file_name, file_size, file_type, content_type,
                    storage_path, checksum, is_primary, processing_status,
                    page_count, dimensions, processing_metadata, created_at
                ) VALUES (
                    %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, NOW()
                )
                RETURNING {FILE_COLUMNS}
            """, (
                data.product_id,
                data.file_name,
                data.file_size,
                data.file_type.value,
                data.content_type,
                data.storage_path,
                data.checksum,
                data.is_primary,
                data.processing_status.value,
                data.page_count,
                _json(data.dimensions),
                _json(data.processing_metadata),
            ))

            row = cursor.fetchone()
            conn.commit()
            return self._map_row(row)

        except psycopg2.Error as e:
            conn.rollback()
            for error_class, message in INSERT_ERROR_MESSAGES:
                if isinstance(e, error_class):
                    raise RuntimeError(message) from e
            raise RuntimeError(f"Failed to create file upload: {e}") from e

        finally:
            cursor.close()
            conn.close()

    def update_status(
        self,
        file_id: str,
        status: ProcessingStatus,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[FileUpload]:
        """
        Set processing_status, and processing_metadata when given

        Returns:
            Updated FileUpload or None if the row does not exist
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            if metadata is not None:
                cursor.execute(f"""
                    UPDATE file_uploads
                    SET processing_status = %s,
                        processing_metadata = %s,
                        updated_at = NOW()
                    WHERE id = %s
                    RETURNING {FILE_COLUMNS}
                """, (ProcessingStatus(status).value, Json(metadata), file_id))
            else:
                cursor.execute(f"""
                    UPDATE file_uploads
                    SET processing_status = %s,
                        updated_at = NOW()
                    WHERE id = %s
                    RETURNING {FILE_COLUMNS}
                """, (ProcessingStatus(status).value, file_id))

            row = cursor.fetchone()
            conn.commit()
            return self._map_row(row) if row else None

        except psycopg2.Error as e:
            conn.rollback()
            raise RuntimeError(f"Failed to update file status to {ProcessingStatus(status).value}: {e}") from e

        finally:
            cursor.close()
            conn.close()

    def update_with_results(self, file_id: str, results: Dict[str, Any]) -> FileUpload:
        """
        Store processing results and mark the file completed

        Args:
            file_id: File upload UUID
            results: Dict with page_count, dimensions, preview_urls,
                     thumbnail_urls and metadata
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE file_uploads
                SET processing_status = %s,
                    dimensions = %s,
                    preview_urls = %s,
                    thumbnail_urls = %s,
                    page_count = %s,
                    processing_metadata = %s,
                    updated_at = NOW()
                WHERE id = %s
                RETURNING {FILE_COLUMNS}
            """, (
                ProcessingStatus.COMPLETED.value,
                _json(results.get('dimensions')),
                _json(results.get('preview_urls')),
                _json(results.get('thumbnail_urls')),
                results.get('page_count'),
                _json(results.get('metadata')),
                file_id,
            ))

            row = cursor.fetchone()
            if not row:
                raise RuntimeError(f"File not found: {file_id}")

            conn.commit()
            return self._map_row(row)

        except psycopg2.Error as e:
            conn.rollback()
            raise RuntimeError(f"Failed to update file with processing results: {e}") from e

        finally:
            cursor.close()
            conn.close()

    def delete(self, file_id: str) -> Optional[FileUpload]:
        """
        Delete a file upload row and clear product references to it

        Returns:
            The deleted FileUpload or None if it did not exist
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE products
                SET pdf_file_id = NULL, updated_at = NOW()
                WHERE pdf_file_id = %s
            """, (file_id,))
            cursor.execute("""
                UPDATE products
                SET image_file_id = NULL, updated_at = NOW()
                WHERE image_file_id = %s
            """, (file_id,))

            cursor.execute(f"""
                DELETE FROM file_uploads
                WHERE id = %s
                RETURNING {FILE_COLUMNS}
            """, (file_id,))

            row = cursor.fetchone()
            conn.commit()
            return self._map_row(row) if row else None

        except psycopg2.Error as e:
            conn.rollback()
            raise RuntimeError(f"Failed to delete file: {e}") from e

        finally:
            cursor.close()
            conn.close()
