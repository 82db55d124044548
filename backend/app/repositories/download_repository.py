"""
Download Repository - Data Access Layer for download links

Author: TM3
Date: 2025-10-17
"""
from typing import List, Optional

import psycopg2

from app.domain.download import Download
from app.core.database import get_db_connection_dict
from app.repositories.product_repository import _file_summary_sql

DOWNLOAD_SELECT = f"""
    SELECT
        d.id, d.order_item_id, d.customer_email, d.product_id,
        d.download_url, d.expires_at, d.download_count,
        d.last_downloaded_at, d.created_at,
        p.title as product_title,
        {_file_summary_sql('pf')} as pdf_file,
        {_file_summary_sql('imf')} as image_file
    FROM downloads d
    LEFT JOIN order_items oi ON oi.id = d.order_item_id
    LEFT JOIN products p ON p.id = COALESCE(oi.product_id, d.product_id)
    LEFT JOIN file_uploads pf ON pf.id = p.pdf_file_id
    LEFT JOIN file_uploads imf ON imf.id = p.image_file_id
"""


class DownloadRepository:
    """Repository for Download data access"""

    @staticmethod
    def _map_row(row: dict) -> Download:
        return Download.model_validate(dict(row))

    def find_active_by_email(self, email: str) -> List[Download]:
        """
        Unexpired download links for a buyer, newest first

        Args:
            email: Buyer email
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                {DOWNLOAD_SELECT}
                WHERE d.customer_email = %s
                  AND d.expires_at > NOW()
                ORDER BY d.created_at DESC
            """, (email,))

            return [self._map_row(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_by_order_item(self, order_item_id: str, email: str) -> Optional[Download]:
        """
        Download link for an order item, bound to the buyer email

        Returns:
            Download with product title and file summaries, or None
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                {DOWNLOAD_SELECT}
                WHERE d.order_item_id::text = %s
                  AND d.customer_email = %s
                LIMIT 1
            """, (order_item_id, email))

            row = cursor.fetchone()
            return self._map_row(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def increment_count(self, download_id: str) -> None:
        """Count one more download and stamp last_downloaded_at"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE downloads
                SET download_count = download_count + 1,
                    last_downloaded_at = NOW()
                WHERE id = %s
            """, (download_id,))
            conn.commit()

        except psycopg2.Error as e:
            conn.rollback()
            raise RuntimeError(f"Failed to update download count: {e}") from e

        finally:
            cursor.close()
            conn.close()
