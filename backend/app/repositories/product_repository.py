"""
Product Repository - Data Access Layer for Products

Handles all database queries for products and returns Product domain models
with summaries of their PDF and image uploads joined in.

Author: TM3
Date: 2025-10-17
"""
from typing import List, Optional, Tuple, Dict, Any

import psycopg2
from psycopg2 import errors as pg_errors

from app.domain.product import Product
from app.domain.file_upload import is_valid_uuid
from app.core.database import get_db_connection_dict


class ProductInUseError(RuntimeError):
    """Raised when a product cannot be deleted because orders reference it"""


def _file_summary_sql(alias: str) -> str:
    """json object with the file_uploads columns products expose, or NULL"""
    return f"""
        CASE WHEN {alias}.id IS NULL THEN NULL ELSE json_build_object(
            'id', {alias}.id,
            'file_name', {alias}.file_name,
            'file_size', {alias}.file_size,
            'file_type', {alias}.file_type,
            'content_type', {alias}.content_type,
            'storage_path', {alias}.storage_path,
            'processing_status', {alias}.processing_status,
            'page_count', {alias}.page_count,
            'dimensions', {alias}.dimensions,
            'preview_urls', {alias}.preview_urls,
            'thumbnail_urls', {alias}.thumbnail_urls
        ) END
    """


PRODUCT_SELECT = f"""
    SELECT
        p.id, p.title, p.description, p.price, p.image,
        p.pdf_file_id, p.image_file_id,
        COALESCE(p.page_count, pf.page_count) as page_count,
        p.preview_pages, p.created_at, p.updated_at,
        {_file_summary_sql('pf')} as pdf_file,
        {_file_summary_sql('imf')} as image_file
    FROM products p
    LEFT JOIN file_uploads pf ON pf.id = p.pdf_file_id
    LEFT JOIN file_uploads imf ON imf.id = p.image_file_id
"""

# Columns a create/update may set
WRITABLE_COLUMNS = (
    'title', 'description', 'price', 'image',
    'pdf_file_id', 'image_file_id', 'page_count', 'preview_pages'
)


class ProductRepository:
    """
    Repository for Product data access

    All SQL queries for products are centralized here.
    Returns Product domain models, not raw dictionaries.
    """

    @staticmethod
    def _map_row_to_product(row: dict) -> Product:
        return Product.model_validate(dict(row))

    def find_by_id(self, product_id: str) -> Optional[Product]:
        """
        Find product by ID

        Args:
            product_id: Product UUID

        Returns:
            Product or None if not found
        """
        if not is_valid_uuid(product_id):
            return None

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                {PRODUCT_SELECT}
                WHERE p.id = %s
            """, (product_id,))

            row = cursor.fetchone()
            if not row:
                return None

            return self._map_row_to_product(row)

        finally:
            cursor.close()
            conn.close()

    def find_all(
        self,
        search: Optional[str] = None,
        file_type: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Tuple[List[Product], int]:
        """
        Find products with filters, newest first

        Args:
            search: Search in title or description
            file_type: Only products that have a pdf or image upload
            limit: Maximum results to return
            offset: Number of results to skip

        Returns:
            Tuple of (list of products, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = []
            params = []

            if search:
                conditions.append("(p.title ILIKE %s OR p.description ILIKE %s)")
                search_term = f"%{search}%"
                params.extend([search_term, search_term])

            if file_type == 'pdf':
                conditions.append("p.pdf_file_id IS NOT NULL")
            elif file_type == 'image':
                conditions.append("p.image_file_id IS NOT NULL")

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM products p
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                {PRODUCT_SELECT}
                WHERE {where_clause}
                ORDER BY p.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            rows = cursor.fetchall()
            products = [self._map_row_to_product(row) for row in rows]

            return products, total

        finally:
            cursor.close()
            conn.close()

    def create(self, values: Dict[str, Any]) -> Product:
        """
        Insert a product and return it with file summaries joined

        Args:
            values: Column values (see WRITABLE_COLUMNS)
        """
        columns = [column for column in WRITABLE_COLUMNS if column in values]

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO products ({', '.join(columns)}, created_at)
                VALUES ({', '.join(['%s'] * len(columns))}, NOW())
                RETURNING id
            """, [values[column] for column in columns])

            product_id = str(cursor.fetchone()['id'])

            cursor.execute(f"""
                {PRODUCT_SELECT}
                WHERE p.id = %s
            """, (product_id,))
            row = cursor.fetchone()

            conn.commit()
            return self._map_row_to_product(row)

        except psycopg2.Error as e:
            conn.rollback()
            raise RuntimeError(f"Failed to create product: {e}") from e

        finally:
            cursor.close()
            conn.close()

    def update(self, product_id: str, values: Dict[str, Any]) -> Optional[Product]:
        """
        Update a product

        Returns:
            Updated product or None if it does not exist
        """
        if not is_valid_uuid(product_id):
            return None

        columns = [column for column in WRITABLE_COLUMNS if column in values]
        assignments = ", ".join(f"{column} = %s" for column in columns)

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE products
                SET {assignments}, updated_at = NOW()
                WHERE id = %s
                RETURNING id
            """, [values[column] for column in columns] + [product_id])

            if not cursor.fetchone():
                conn.rollback()
                return None

            cursor.execute(f"""
                {PRODUCT_SELECT}
                WHERE p.id = %s
            """, (product_id,))
            row = cursor.fetchone()

            conn.commit()
            return self._map_row_to_product(row)

        except psycopg2.Error as e:
            conn.rollback()
            raise RuntimeError(f"Failed to update product: {e}") from e

        finally:
            cursor.close()
            conn.close()

    def delete(self, product_id: str) -> Optional[Product]:
        """
        Delete a product

        Returns:
            The deleted product (with its file summaries, so callers can clean
            up storage) or None if it did not exist

        Raises:
            ProductInUseError: if orders or downloads still reference it
        """
        if not is_valid_uuid(product_id):
            return None

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                {PRODUCT_SELECT}
                WHERE p.id = %s
            """, (product_id,))
            row = cursor.fetchone()
            if not row:
                return None

            cursor.execute("DELETE FROM products WHERE id = %s", (product_id,))
            conn.commit()
            return self._map_row_to_product(row)

        except pg_errors.ForeignKeyViolation as e:
            conn.rollback()
            raise ProductInUseError(
                "Cannot delete product: It is referenced by existing orders or downloads."
            ) from e

        except psycopg2.Error as e:
            conn.rollback()
            raise RuntimeError(f"Failed to delete product: {e}") from e

        finally:
            cursor.close()
            conn.close()
