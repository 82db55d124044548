"""
Unit tests for FileUploadRepository

Author: TM3
Date: 2025-10-17
"""
import pytest
from unittest.mock import patch, MagicMock

from psycopg2 import errors as pg_errors
from psycopg2.extras import Json

from app.repositories.file_upload_repository import FileUploadRepository
from app.domain.file_upload import FileUploadCreate, FileType, ProcessingStatus

from conftest import PDF_FILE_ID


def _mock_connection(mock_get_conn):
    mock_conn = MagicMock()
    mock_cursor = MagicMock()
    mock_get_conn.return_value = mock_conn
    mock_conn.cursor.return_value = mock_cursor
    return mock_conn, mock_cursor


def _create_data():
    return FileUploadCreate(
        file_name='botanical.pdf',
        file_size=2048,
        file_type=FileType.PDF,
        content_type='application/pdf',
        storage_path='pdfs/1700000000000_abcdef0123456789.pdf',
        checksum='a' * 64,
        is_primary=True,
        page_count=3,
    )


class TestFileUploadRepository:
    """Test FileUploadRepository methods"""

    @patch('app.repositories.file_upload_repository.get_db_connection_dict')
    def test_find_by_id_returns_file_upload(self, mock_get_conn, file_upload_row):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = file_upload_row()

        repo = FileUploadRepository()
        file_upload = repo.find_by_id(PDF_FILE_ID)

        assert file_upload.id == PDF_FILE_ID
        assert file_upload.file_type == FileType.PDF
        assert file_upload.processing_status == ProcessingStatus.PENDING
        mock_conn.close.assert_called_once()

    @patch('app.repositories.file_upload_repository.get_db_connection_dict')
    def test_find_all_filters_by_type_and_status(self, mock_get_conn, file_upload_row):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {'total': 1}
        mock_cursor.fetchall.return_value = [file_upload_row()]

        repo = FileUploadRepository()
        files, total = repo.find_all(file_type='pdf', status='pending')

        assert total == 1
        assert files[0].file_name == 'botanical.pdf'
        count_sql, params = mock_cursor.execute.call_args_list[0][0]
        assert "file_type = %s AND processing_status = %s" in count_sql
        assert params == ['pdf', 'pending']

    @patch('app.repositories.file_upload_repository.get_db_connection_dict')
    def test_create_returns_new_row(self, mock_get_conn, file_upload_row):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = file_upload_row()

        repo = FileUploadRepository()
        file_upload = repo.create(_create_data())

        assert file_upload.id == PDF_FILE_ID
        params = mock_cursor.execute.call_args[0][1]
        assert params[3] == 'pdf'
        assert params[8] == 'pending'
        mock_conn.commit.assert_called_once()

    @pytest.mark.parametrize("error, message", [
        (pg_errors.UniqueViolation, "File with this checksum already exists"),
        (pg_errors.ForeignKeyViolation, "Referenced product does not exist"),
        (pg_errors.CheckViolation, "File data violates database constraints"),
    ])
    @patch('app.repositories.file_upload_repository.get_db_connection_dict')
    def test_create_translates_constraint_errors(self, mock_get_conn, error, message):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.execute.side_effect = error("constraint failed")

        repo = FileUploadRepository()

        with pytest.raises(RuntimeError, match=message):
            repo.create(_create_data())

        mock_conn.rollback.assert_called_once()

    @patch('app.repositories.file_upload_repository.get_db_connection_dict')
    def test_update_status_with_metadata(self, mock_get_conn, file_upload_row):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = file_upload_row(
            processing_status='failed',
            processing_metadata={'error': 'boom'},
        )

        repo = FileUploadRepository()
        file_upload = repo.update_status(PDF_FILE_ID, ProcessingStatus.FAILED, {'error': 'boom'})

        assert file_upload.processing_status == ProcessingStatus.FAILED
        params = mock_cursor.execute.call_args[0][1]
        assert params[0] == 'failed'
        assert isinstance(params[1], Json)
        assert params[2] == PDF_FILE_ID

    @patch('app.repositories.file_upload_repository.get_db_connection_dict')
    def test_update_status_without_metadata_leaves_it_untouched(self, mock_get_conn, file_upload_row):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = file_upload_row(processing_status='processing')

        repo = FileUploadRepository()
        repo.update_status(PDF_FILE_ID, ProcessingStatus.PROCESSING)

        sql, params = mock_cursor.execute.call_args[0]
        assert "processing_metadata = %s" not in sql
        assert params == ('processing', PDF_FILE_ID)

    @patch('app.repositories.file_upload_repository.get_db_connection_dict')
    def test_update_with_results_marks_completed(self, mock_get_conn, file_upload_row):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = file_upload_row(processing_status='completed')

        repo = FileUploadRepository()
        file_upload = repo.update_with_results(PDF_FILE_ID, {
            'page_count': 3,
            'dimensions': {'width': 595, 'height': 842},
            'preview_urls': {'small': 'previews/x/page-1-small.jpg'},
            'thumbnail_urls': {'pages': []},
            'metadata': {'title': 'Botanical'},
        })

        assert file_upload.is_completed
        params = mock_cursor.execute.call_args[0][1]
        assert params[0] == 'completed'
        assert params[4] == 3
        mock_conn.commit.assert_called_once()

    @patch('app.repositories.file_upload_repository.get_db_connection_dict')
    def test_update_with_results_raises_when_missing(self, mock_get_conn):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        repo = FileUploadRepository()

        with pytest.raises(RuntimeError, match="File not found"):
            repo.update_with_results(PDF_FILE_ID, {})

    @patch('app.repositories.file_upload_repository.get_db_connection_dict')
    def test_delete_detaches_products_first(self, mock_get_conn, file_upload_row):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = file_upload_row()

        repo = FileUploadRepository()
        deleted = repo.delete(PDF_FILE_ID)

        assert deleted.id == PDF_FILE_ID
        statements = [call[0][0] for call in mock_cursor.execute.call_args_list]
        assert "pdf_file_id = NULL" in statements[0]
        assert "image_file_id = NULL" in statements[1]
        assert "DELETE FROM file_uploads" in statements[2]
        mock_conn.commit.assert_called_once()
