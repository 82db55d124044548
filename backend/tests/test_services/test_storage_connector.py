"""
Tests for StorageConnector with a mocked Supabase client

Author: TM3
Date: 2025-10-17
"""
import pytest
from unittest.mock import MagicMock

from app.connectors.storage_connector import StorageConnector, translate_upload_error


@pytest.fixture
def client():
    return MagicMock()


def _bucket(client):
    return client.storage.from_.return_value


class TestStorageConnector:

    def test_upload_sets_file_options(self, client):
        connector = StorageConnector(client=client, bucket='prints')

        path = connector.upload('pdfs/a.pdf', b'data', 'application/pdf', upsert=False)

        assert path == 'pdfs/a.pdf'
        client.storage.from_.assert_called_with('prints')
        args, kwargs = _bucket(client).upload.call_args
        assert args == ('pdfs/a.pdf', b'data')
        assert kwargs['file_options'] == {
            'content-type': 'application/pdf',
            'cache-control': '3600',
            'upsert': 'false',
        }

    def test_upload_translates_known_errors(self, client):
        _bucket(client).upload.side_effect = Exception("The resource already exists")
        connector = StorageConnector(client=client, bucket='prints')

        with pytest.raises(RuntimeError, match="File already exists at path: pdfs/a.pdf"):
            connector.upload('pdfs/a.pdf', b'data', 'application/pdf')

    def test_upload_wraps_unknown_errors(self, client):
        _bucket(client).upload.side_effect = Exception("connection reset")
        connector = StorageConnector(client=client, bucket='prints')

        with pytest.raises(RuntimeError, match="Storage upload failed for pdfs/a.pdf: connection reset"):
            connector.upload('pdfs/a.pdf', b'data', 'application/pdf')

    def test_download_returns_bytes(self, client):
        _bucket(client).download.return_value = b'%PDF'

        assert StorageConnector(client=client, bucket='prints').download('pdfs/a.pdf') == b'%PDF'

    def test_download_without_data_fails(self, client):
        _bucket(client).download.return_value = b''

        with pytest.raises(RuntimeError, match="Storage download failed"):
            StorageConnector(client=client, bucket='prints').download('pdfs/a.pdf')

    def test_remove_skips_empty_paths(self, client):
        connector = StorageConnector(client=client, bucket='prints')

        connector.remove(['pdfs/a.pdf', None, ''])
        _bucket(client).remove.assert_called_once_with(['pdfs/a.pdf'])

        connector.remove([None])
        assert _bucket(client).remove.call_count == 1

    def test_bucket_info(self, client):
        bucket = MagicMock()
        bucket.name = 'prints'
        bucket.public = True
        bucket.file_size_limit = 52428800
        bucket.allowed_mime_types = ['application/pdf']
        client.storage.get_bucket.return_value = bucket

        info = StorageConnector(client=client, bucket='prints').bucket_info()

        assert info == {
            'name': 'prints',
            'public': True,
            'file_size_limit': 52428800,
            'allowed_mime_types': ['application/pdf'],
        }

    def test_requires_bucket(self, client, monkeypatch):
        from app.connectors import storage_connector
        monkeypatch.setattr(storage_connector.settings, 'STORAGE_BUCKET', '')

        with pytest.raises(ValueError, match="Storage bucket not configured"):
            StorageConnector(client=client)


@pytest.mark.parametrize("message, expected", [
    ("Bucket not found", "Storage bucket not found. Please check configuration."),
    ("Payload too large", "File size exceeds storage limits"),
    ("mime type image/bmp is not supported", "File type not allowed by storage policy. Detected MIME type: image/bmp"),
    ("timeout", None),
])
def test_translate_upload_error(message, expected):
    assert translate_upload_error(message, 'images/a.bmp', 'image/bmp') == expected
