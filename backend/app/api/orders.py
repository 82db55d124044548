"""
Orders API Endpoints
Places storefront orders and looks them up

Author: TM3
Date: 2025-10-17
"""
from fastapi import APIRouter, HTTPException, Query, Request
from typing import Optional

from app.domain.order import OrderPayload
from app.services.order_service import OrderService, OrderNotFound

router = APIRouter()


@router.get("/")
async def get_orders(
    email: Optional[str] = Query(None, description="Orders placed with this email"),
    order_id: Optional[str] = Query(None, alias="orderId", description="A single order")
):
    """
    Get one order (orderId) or the orders of a buyer (email), newest first
    """
    try:
        service = OrderService()

        if order_id:
            order = service.get_order(order_id)
            return {
                "status": "success",
                "data": order.to_dict()
            }

        if email:
            orders = service.orders_by_email(email)
            return {
                "status": "success",
                "count": len(orders),
                "data": [order.to_dict() for order in orders]
            }

        raise HTTPException(status_code=400, detail="Email or orderId parameter required")

    except OrderNotFound:
        raise HTTPException(status_code=404, detail="Order not found")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching orders: {str(e)}")


@router.get("/{order_id}")
async def get_order(order_id: str):
    """Get a single order with its items"""
    try:
        order = OrderService().get_order(order_id)

        return {
            "status": "success",
            "data": order.to_dict()
        }

    except OrderNotFound:
        raise HTTPException(status_code=404, detail="Order not found")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching order: {str(e)}")


@router.post("/", status_code=201)
async def create_order(payload: OrderPayload, request: Request):
    """
    Place an order

    Body: items [{id, quantity, price}], total, email, billingDetails
    Creates one download link per item.
    """
    try:
        result = OrderService().place_order(payload, request.headers.get("user-agent"))

        return {
            "status": "success",
            **result
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error processing order: {str(e)}")
