"""
Orders API Endpoints
Handles checkout, sales history, receipts and daily figures
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from petpos.api.dependencies import PosContext, get_context, get_order_repository
from petpos.repositories.order_repository import HISTORY_PERIODS, OrderRepository
from petpos.services.checkout_service import CartLine

router = APIRouter()


# Request models
class CheckoutRequest(BaseModel):
    items: List[CartLine] = Field(default_factory=list)


@router.get("/")
def get_orders(
    period: str = Query("today", description=f"History period: {', '.join(HISTORY_PERIODS)}"),
    search: Optional[str] = Query(None, description="Search by order number or item name"),
    from_date: Optional[datetime] = Query(None, description="Orders from this time (ISO format)"),
    to_date: Optional[datetime] = Query(None, description="Orders until this time (ISO format)"),
    repo: OrderRepository = Depends(get_order_repository),
):
    """
    Get orders, newest first, with a summary of the listed orders

    from_date/to_date take precedence over period. Both are inclusive, and a
    missing one leaves that side of the range open.
    """
    if from_date or to_date:
        orders = repo.get_orders_by_date_range(from_date, to_date, end_exclusive=False)
        orders.sort(key=lambda o: o.created_at, reverse=True)
    else:
        if period not in HISTORY_PERIODS:
            raise HTTPException(
                status_code=400,
                detail=f"period must be one of: {', '.join(HISTORY_PERIODS)}",
            )
        orders = repo.get_history(period)

    if search:
        orders = repo.search_orders(search, orders)

    return {
        "status": "success",
        "count": len(orders),
        "summary": repo.summary(orders).to_record(),
        "data": [o.to_dict() for o in orders],
    }


@router.get("/next-number")
def get_next_order_number(repo: OrderRepository = Depends(get_order_repository)):
    """Number the next checkout will most likely get (not reserved)"""
    return {
        "status": "success",
        "data": {"orderNumber": repo.next_order_number()},
    }


@router.get("/stats/today")
def get_today_stats(repo: OrderRepository = Depends(get_order_repository)):
    """Order count, revenue and units sold today (dashboard)"""
    return {
        "status": "success",
        "data": repo.stats_for_today().to_record(),
    }


@router.post("/checkout", status_code=201)
def checkout(request: CheckoutRequest, context: PosContext = Depends(get_context)):
    """
    Record the cart as an order

    Returns the stored order and its printable receipt.
    """
    order = context.checkout.checkout(request.items)
    return {
        "status": "success",
        "message": f"Order {order.order_number} recorded",
        "data": order.to_dict(),
        "receipt": context.receipts.render(order),
    }


@router.get("/{order_id}")
def get_order(order_id: str, repo: OrderRepository = Depends(get_order_repository)):
    order = repo.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")

    return {
        "status": "success",
        "data": order.to_dict(),
    }


@router.get("/{order_id}/receipt", response_class=PlainTextResponse)
def get_order_receipt(order_id: str, context: PosContext = Depends(get_context)):
    """Receipt text for reprinting"""
    order = context.orders.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    return context.receipts.render(order)


@router.delete("/{order_id}")
def delete_order(order_id: str, repo: OrderRepository = Depends(get_order_repository)):
    """Delete an order recorded by mistake. Its number is not reused."""
    order = repo.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")

    repo.delete_order(order_id)
    return {
        "status": "success",
        "message": f"Order {order.order_number} deleted",
    }
