"""
Unit tests for ProductRepository

These tests validate repository logic without requiring a database connection.

Author: TM3
Date: 2025-10-17
"""
import pytest
from unittest.mock import patch, MagicMock
from decimal import Decimal

from psycopg2 import errors as pg_errors

from app.repositories.product_repository import ProductRepository, ProductInUseError
from app.domain.product import Product

from conftest import PRODUCT_ID, PDF_FILE_ID


def _mock_connection(mock_get_conn):
    mock_conn = MagicMock()
    mock_cursor = MagicMock()
    mock_get_conn.return_value = mock_conn
    mock_conn.cursor.return_value = mock_cursor
    return mock_conn, mock_cursor


class TestProductRepository:
    """Test ProductRepository methods"""

    @patch('app.repositories.product_repository.get_db_connection_dict')
    def test_find_by_id_returns_product(self, mock_get_conn, product_row, completed_pdf_summary):
        """Test find_by_id returns a Product domain model with file summaries"""
        # Arrange
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = product_row(
            pdf_file_id=PDF_FILE_ID,
            pdf_file=completed_pdf_summary,
            page_count=8,
        )

        # Act
        repo = ProductRepository()
        product = repo.find_by_id(PRODUCT_ID)

        # Assert
        assert isinstance(product, Product)
        assert product.id == PRODUCT_ID
        assert product.price == Decimal('12.50')
        assert product.pdf_file.page_count == 8
        assert product.has_pdf

        mock_cursor.execute.assert_called_once()
        mock_cursor.close.assert_called_once()
        mock_conn.close.assert_called_once()

    @patch('app.repositories.product_repository.get_db_connection_dict')
    def test_find_by_id_returns_none_when_not_found(self, mock_get_conn):
        """Test find_by_id returns None when product doesn't exist"""
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        repo = ProductRepository()

        assert repo.find_by_id(PRODUCT_ID) is None

    @patch('app.repositories.product_repository.get_db_connection_dict')
    def test_find_by_id_skips_query_for_malformed_id(self, mock_get_conn):
        """Non-UUID ids never reach the database"""
        repo = ProductRepository()

        assert repo.find_by_id('abc') is None
        mock_get_conn.assert_not_called()

    @patch('app.repositories.product_repository.get_db_connection_dict')
    def test_find_all_with_search_and_file_type(self, mock_get_conn, product_row):
        """Test find_all builds filters and returns (products, total)"""
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {'total': 1}
        mock_cursor.fetchall.return_value = [product_row()]

        repo = ProductRepository()
        products, total = repo.find_all(search='botanical', file_type='pdf', limit=10, offset=5)

        assert total == 1
        assert len(products) == 1

        count_sql, count_params = mock_cursor.execute.call_args_list[0][0]
        assert "ILIKE" in count_sql
        assert "p.pdf_file_id IS NOT NULL" in count_sql
        assert count_params == ['%botanical%', '%botanical%']

        select_sql, select_params = mock_cursor.execute.call_args_list[1][0]
        assert "ORDER BY p.created_at DESC" in select_sql
        assert select_params[-2:] == [10, 5]

    @patch('app.repositories.product_repository.get_db_connection_dict')
    def test_create_inserts_and_commits(self, mock_get_conn, product_row):
        """Test create inserts only the given columns and re-reads the row"""
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.side_effect = [{'id': PRODUCT_ID}, product_row()]

        repo = ProductRepository()
        product = repo.create({
            'title': 'Botanical Print Set',
            'description': 'Twelve prints',
            'price': Decimal('12.50'),
            'image': 'https://example.com/a.jpg',
        })

        assert product.id == PRODUCT_ID
        insert_sql, insert_params = mock_cursor.execute.call_args_list[0][0]
        assert "INSERT INTO products (title, description, price, image, created_at)" in insert_sql
        assert insert_params[0] == 'Botanical Print Set'
        mock_conn.commit.assert_called_once()

    @patch('app.repositories.product_repository.get_db_connection_dict')
    def test_update_returns_none_when_missing(self, mock_get_conn):
        """Test update rolls back and returns None for unknown products"""
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        repo = ProductRepository()
        result = repo.update(PRODUCT_ID, {'title': 'New title'})

        assert result is None
        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()

    @patch('app.repositories.product_repository.get_db_connection_dict')
    def test_delete_returns_deleted_product(self, mock_get_conn, product_row):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = product_row()

        repo = ProductRepository()
        product = repo.delete(PRODUCT_ID)

        assert product.id == PRODUCT_ID
        delete_sql = mock_cursor.execute.call_args_list[1][0][0]
        assert "DELETE FROM products" in delete_sql
        mock_conn.commit.assert_called_once()

    @patch('app.repositories.product_repository.get_db_connection_dict')
    def test_delete_referenced_product_raises_in_use(self, mock_get_conn, product_row):
        """Foreign key violations become ProductInUseError"""
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = product_row()
        mock_cursor.execute.side_effect = [None, pg_errors.ForeignKeyViolation("order_items_product_id_fkey")]

        repo = ProductRepository()

        with pytest.raises(ProductInUseError, match="referenced by existing orders"):
            repo.delete(PRODUCT_ID)

        mock_conn.rollback.assert_called_once()
        mock_conn.close.assert_called_once()
