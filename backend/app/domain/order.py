"""
Order Domain Models

Represents orders, their line items and the customers who placed them.

Author: TM3
Date: 2025-10-17
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime
from decimal import Decimal

from app.domain.product import parse_price


class OrderStatus:
    """Order status values used by the storefront"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Customer(BaseModel):
    """Customer domain model - one row of customers, keyed by email"""
    id: str = Field(..., description="Customer id")
    email: str = Field(..., description="Customer email")
    first_name: Optional[str] = Field(None, description="First name")
    last_name: Optional[str] = Field(None, description="Last name")
    stripe_customer_id: Optional[str] = Field(None, description="Payment provider customer id")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class OrderItem(BaseModel):
    """
    Order Item domain model - represents a line item in an order

    Fields:
        id: Order item id
        order_id: Parent order id
        product_id: Purchased product
        quantity: Number of units ordered
        unit_price: Price per unit at time of order
        total_price: unit_price * quantity
        product_title: Current product title (from JOIN)
    """
    id: str = Field(..., description="Order item id")
    order_id: str = Field(..., description="Parent order id")
    product_id: Optional[str] = Field(None, description="Product id")
    quantity: int = Field(..., description="Quantity ordered", ge=1)
    unit_price: Decimal = Field(..., description="Price per unit", ge=0)
    total_price: Decimal = Field(..., description="Line total", ge=0)
    product_title: Optional[str] = Field(None, description="Product title from catalog")
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Order(BaseModel):
    """
    Order domain model - a checkout with its items

    Fields:
        id: Order id
        email: Buyer email
        total_amount: Charged total
        currency: ISO currency code
        status: pending, completed, failed or cancelled
        stripe_session_id: Payment provider session/order id
        stripe_payment_intent_id: Payment provider charge id
        billing_details: Billing info captured at checkout
        metadata: Free-form context (source, user agent)
        items: Line items
    """
    id: str = Field(..., description="Order id")
    email: str = Field(..., description="Buyer email")
    total_amount: Decimal = Field(..., description="Order total", ge=0)
    currency: str = Field("USD", description="Currency code")
    status: str = Field(OrderStatus.PENDING, description="Order status")
    stripe_session_id: Optional[str] = Field(None, description="Payment session id")
    stripe_payment_intent_id: Optional[str] = Field(None, description="Payment intent id")
    billing_details: Optional[Dict[str, Any]] = Field(None, description="Billing details")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Order metadata")
    items: List[OrderItem] = Field(default_factory=list, description="Line items")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def to_dict(self) -> dict:
        """JSON-ready dict with money as floats"""
        data = self.model_dump(mode="json")
        data['total_amount'] = float(self.total_amount)
        data['item_count'] = self.item_count
        for item, raw in zip(data['items'], self.items):
            item['unit_price'] = float(raw.unit_price)
            item['total_price'] = float(raw.total_price)
        return data


class OrderItemPayload(BaseModel):
    """One cart line in an order request"""
    id: Optional[str] = None
    quantity: Optional[int] = 1
    price: Optional[Any] = None


class OrderPayload(BaseModel):
    """Request body for POST /orders"""
    items: Optional[List[OrderItemPayload]] = None
    total: Optional[Any] = None
    email: Optional[str] = None
    billing_details: Optional[Dict[str, Any]] = Field(None, alias="billingDetails")

    model_config = ConfigDict(populate_by_name=True)

    def validate_order(self) -> Dict[str, Any]:
        """
        Validate the order request

        Returns:
            Dict with email, total (Decimal), billing_details and items
            (list of {product_id, quantity, unit_price})

        Raises:
            ValueError: with a client-facing message
        """
        if not self.items:
            raise ValueError("Invalid order: items array is required and cannot be empty")

        if isinstance(self.total, str):
            raise ValueError("Invalid order: total must be a positive number")
        total = parse_price(self.total)
        if total is None:
            raise ValueError("Invalid order: total must be a positive number")

        if not is_valid_email(self.email):
            raise ValueError("Valid email address is required")

        items = []
        for position, item in enumerate(self.items, start=1):
            if not item.id:
                raise ValueError(f"Invalid order: item {position} is missing a product id")
            if not item.quantity or item.quantity < 1:
                raise ValueError(f"Invalid order: item {position} quantity must be at least 1")
            unit_price = parse_price(item.price)
            if unit_price is None:
                raise ValueError(f"Invalid order: item {position} price must be a positive number")
            items.append({
                'product_id': item.id,
                'quantity': item.quantity,
                'unit_price': unit_price,
            })

        return {
            'email': self.email.strip(),
            'total': total,
            'billing_details': self.billing_details,
            'items': items,
        }


def is_valid_email(email: Optional[str]) -> bool:
    """Loose check used across the storefront: non-empty and contains @"""
    return bool(email) and '@' in email
