"""
Order Service - places storefront orders and issues their download links

Author: TM3
Date: 2025-10-17
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, List, Optional
from urllib.parse import quote

from app.core.config import settings
from app.domain.order import Order, OrderPayload, OrderStatus
from app.repositories.order_repository import OrderRepository

logger = logging.getLogger(__name__)


class OrderNotFound(LookupError):
    """No order with the given id"""


def build_download_url(order_item_id: str, email: str, site_url: str = None) -> str:
    """Public link a buyer uses to fetch a purchased file"""
    base = (site_url or settings.SITE_URL).rstrip('/')
    return f"{base}/api/v1/download/{order_item_id}?email={quote(email)}"


class OrderService:
    """
    Service for order placement and lookup

    Usage:
        service = OrderService()
        result = service.place_order(payload, user_agent)
    """

    def __init__(self, orders: OrderRepository = None):
        self.orders = orders or OrderRepository()

    def place_order(self, payload: OrderPayload, user_agent: Optional[str] = None) -> Dict[str, Any]:
        """
        Validate and record an order with one download link per item

        Raises:
            ValueError: invalid order (client error)
            RuntimeError: database failure
        """
        order_data = payload.validate_order()
        email = order_data['email']
        expires_at = datetime.now(timezone.utc) + timedelta(days=settings.DOWNLOAD_EXPIRY_DAYS)

        order, downloads = self.orders.create_with_items(
            email=email,
            total_amount=order_data['total'],
            items=order_data['items'],
            status=OrderStatus.COMPLETED,
            billing_details=order_data['billing_details'],
            metadata={'source': 'web', 'user_agent': user_agent},
            expires_at=expires_at,
            download_url_for=lambda order_item_id: build_download_url(order_item_id, email),
        )

        logger.info(f"Order {order.id} placed by {email}: {len(order.items)} items, total {order.total_amount}")

        order_dict = order.to_dict()
        return {
            'success': True,
            'message': 'Order created successfully! Download links are available for your purchase.',
            'order': {
                'id': order.id,
                'email': order.email,
                'total': order_dict['total_amount'],
                'status': order.status,
                'created_at': order_dict['created_at'],
                'items': order_dict['items'],
            },
            'download_links': [
                {
                    'product_id': download.product_id,
                    'download_url': download.download_url,
                    'expires_at': download.expires_at.isoformat(),
                }
                for download in downloads
            ],
        }

    def get_order(self, order_id: str) -> Order:
        order = self.orders.find_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found")
        return order

    def orders_by_email(self, email: str) -> List[Order]:
        return self.orders.find_by_email(email)
