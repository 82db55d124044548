"""
Order Repository - Data Access Layer for Orders

Handles all database queries for customers, orders and order items and
returns Order domain models. Placing an order writes the customer, the
order, its items and their download links in one transaction.

Author: TM3
Date: 2025-10-17
"""
from datetime import datetime
from typing import Callable, List, Optional, Tuple, Dict, Any

import psycopg2
from psycopg2.extras import Json

from app.domain.order import Order, OrderItem, Customer
from app.domain.download import Download
from app.domain.file_upload import is_valid_uuid
from app.core.database import get_db_connection_dict

ORDER_FIELDS = (
    "id", "email", "total_amount", "currency", "status",
    "stripe_session_id", "stripe_payment_intent_id",
    "billing_details", "metadata", "created_at", "updated_at"
)
ORDER_COLUMNS = ", ".join(f"o.{field}" for field in ORDER_FIELDS)
ORDER_RETURNING = ", ".join(ORDER_FIELDS)


class OrderRepository:
    """
    Repository for Order data access

    All SQL queries for orders are centralized here.
    Returns Order domain models with their items (and product titles).
    """

    @staticmethod
    def _map_row_to_order(row: dict, items: List[OrderItem]) -> Order:
        data = dict(row)
        data['items'] = items
        return Order.model_validate(data)

    @staticmethod
    def _map_row_to_item(row: dict) -> OrderItem:
        return OrderItem.model_validate(dict(row))

    def _fetch_items(self, cursor, order_ids: List[str]) -> Dict[str, List[OrderItem]]:
        """Items for several orders, grouped by order id"""
        items_by_order: Dict[str, List[OrderItem]] = {order_id: [] for order_id in order_ids}
        if not order_ids:
            return items_by_order

        cursor.execute("""
            SELECT
                oi.id, oi.order_id, oi.product_id, oi.quantity,
                oi.unit_price, oi.total_price, oi.created_at,
                p.title as product_title
            FROM order_items oi
            LEFT JOIN products p ON p.id = oi.product_id
            WHERE oi.order_id = ANY(%s::uuid[])
            ORDER BY oi.created_at, oi.id
        """, (order_ids,))

        for row in cursor.fetchall():
            item = self._map_row_to_item(row)
            items_by_order.setdefault(item.order_id, []).append(item)

        return items_by_order

    def find_by_id(self, order_id: str) -> Optional[Order]:
        """
        Find order by ID with its items

        Args:
            order_id: Order UUID

        Returns:
            Order or None if not found
        """
        if not is_valid_uuid(order_id):
            return None

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                WHERE o.id = %s
            """, (order_id,))

            row = cursor.fetchone()
            if not row:
                return None

            order_id = str(row['id'])
            items = self._fetch_items(cursor, [order_id])
            return self._map_row_to_order(row, items[order_id])

        finally:
            cursor.close()
            conn.close()

    def find_by_email(self, email: str, limit: int = 50) -> List[Order]:
        """
        Orders placed with an email, newest first

        Args:
            email: Buyer email
            limit: Maximum orders to return
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                WHERE o.email = %s
                ORDER BY o.created_at DESC
                LIMIT %s
            """, (email, limit))

            rows = cursor.fetchall()
            order_ids = [str(row['id']) for row in rows]
            items = self._fetch_items(cursor, order_ids)

            return [
                self._map_row_to_order(row, items[str(row['id'])])
                for row in rows
            ]

        finally:
            cursor.close()
            conn.close()

    def find_or_create_customer(
        self,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        conn=None
    ) -> Customer:
        """
        Find a customer by email or create one

        Args:
            email: Customer email (unique)
            first_name: Kept when already stored
            last_name: Kept when already stored
            conn: Database connection (optional, will create if not provided)

        Returns:
            Customer
        """
        should_close = conn is None
        if conn is None:
            conn = get_db_connection_dict()

        cursor = conn.cursor()
        try:
            cursor.execute("""
                INSERT INTO customers (email, first_name, last_name, created_at)
                VALUES (%s, %s, %s, NOW())
                ON CONFLICT (email) DO UPDATE SET
                    first_name = COALESCE(customers.first_name, EXCLUDED.first_name),
                    last_name = COALESCE(customers.last_name, EXCLUDED.last_name),
                    updated_at = NOW()
                RETURNING id, email, first_name, last_name,
                          stripe_customer_id, created_at, updated_at
            """, (email, first_name, last_name))

            row = cursor.fetchone()
            if should_close:
                conn.commit()

            return Customer.model_validate(dict(row))

        finally:
            cursor.close()
            if should_close:
                conn.close()

    def create_with_items(
        self,
        email: str,
        total_amount,
        items: List[Dict[str, Any]],
        status: str,
        billing_details: Optional[Dict[str, Any]],
        metadata: Optional[Dict[str, Any]],
        expires_at: datetime,
        download_url_for: Callable[[str], str]
    ) -> Tuple[Order, List[Download]]:
        """
        Place an order in a single transaction

        Upserts the customer, inserts the order, one order_item per entry in
        items (total_price = unit_price * quantity) and one download link per
        order item.

        Args:
            items: List of {product_id, quantity, unit_price}
            expires_at: Expiry for every download link
            download_url_for: Builds the public download URL from an order item id

        Returns:
            Tuple of (order with items, download links)
        """
        billing = billing_details or {}

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            self.find_or_create_customer(
                email,
                first_name=billing.get('firstName') or billing.get('first_name'),
                last_name=billing.get('lastName') or billing.get('last_name'),
                conn=conn
            )

            cursor.execute(f"""
                INSERT INTO orders (
                    email, total_amount, status, billing_details, metadata, created_at
                ) VALUES (%s, %s, %s, %s, %s, NOW())
                RETURNING {ORDER_RETURNING}
            """, (
                email,
                total_amount,
                status,
                Json(billing_details) if billing_details is not None else None,
                Json(metadata) if metadata is not None else None,
            ))
            order_row = cursor.fetchone()
            order_id = str(order_row['id'])

            order_items = []
            downloads = []
            for item in items:
                total_price = item['unit_price'] * item['quantity']
                cursor.execute("""
                    INSERT INTO order_items (
                        order_id, product_id, quantity, unit_price, total_price, created_at
                    ) VALUES (%s, %s, %s, %s, %s, NOW())
                    RETURNING id, order_id, product_id, quantity,
                              unit_price, total_price, created_at
                """, (
                    order_id,
                    item['product_id'],
                    item['quantity'],
                    item['unit_price'],
                    total_price,
                ))
                order_item = self._map_row_to_item(cursor.fetchone())
                order_items.append(order_item)

                cursor.execute("""
                    INSERT INTO downloads (
                        order_item_id, customer_email, product_id,
                        download_url, expires_at, download_count, created_at
                    ) VALUES (%s, %s, %s, %s, %s, 0, NOW())
                    RETURNING id, order_item_id, customer_email, product_id,
                              download_url, expires_at, download_count,
                              last_downloaded_at, created_at
                """, (
                    order_item.id,
                    email,
                    order_item.product_id,
                    download_url_for(order_item.id),
                    expires_at,
                ))
                downloads.append(Download.model_validate(dict(cursor.fetchone())))

            conn.commit()
            return self._map_row_to_order(order_row, order_items), downloads

        except psycopg2.Error as e:
            conn.rollback()
            raise RuntimeError(f"Failed to create order: {e}") from e

        finally:
            cursor.close()
            conn.close()
