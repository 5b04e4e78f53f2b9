"""
Pharma Field Sales - Routes Orders
Flattened, read-only view over the orders embedded in visit reports.
Status changes go through /visits/{visit_id}/orders.
"""

from fastapi import APIRouter, Depends
from typing import Optional

from services import visit_reports
from services.api_response import ok
from services.permissions import require_any_role

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.get("")
async def list_orders(
    status: Optional[str] = None,
    order_type: Optional[str] = None,
    user: dict = Depends(require_any_role)
):
    orders = await visit_reports.list_orders(user, status=status, order_type=order_type)
    return ok({
        "count": len(orders),
        "total_amount": sum(o.get("total_amount") or 0 for o in orders),
        "orders": orders,
    })
