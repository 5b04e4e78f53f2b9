"""
Pharma Field Sales - Routes Visits
MR submission, Admin review, order status changes and CSV export.
"""

from fastapi import APIRouter, Depends, Response
from typing import Optional

from models.visit import VisitCreate, OrdersReplace, OrderStatusUpdate, VisitReject
from services import visit_reports
from services import order_state_machine
from services.api_response import ok
from services.csv_export import visits_to_csv, generate_csv_filename
from services.permissions import require_admin, require_mr, require_any_role

router = APIRouter(prefix="/visits", tags=["Visits"])


# ==================== SUBMISSION ====================

@router.post("", status_code=201)
async def submit_visit(data: VisitCreate, mr: dict = Depends(require_mr)):
    payload = data.model_dump(mode="json")
    visit = await visit_reports.submit_visit(
        mr_id=mr["id"],
        doctor_id=payload["doctor_id"],
        product_ids=payload["products_discussed"],
        notes=payload["notes"],
        visit_date=payload.get("visit_date"),
        orders=payload.get("orders"),
    )
    return ok(visit, message="Visit report submitted")


# ==================== READS ====================

@router.get("")
async def list_visits(
    mr: Optional[str] = None,
    doctor: Optional[str] = None,
    status: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    user: dict = Depends(require_any_role)
):
    visits = await visit_reports.list_visits(
        user, mr_id=mr, doctor_id=doctor, status=status,
        start_date=start_date, end_date=end_date,
    )
    return ok({"count": len(visits), "visits": visits})


@router.get("/export.csv")
async def export_visits_csv(
    mr: Optional[str] = None,
    doctor: Optional[str] = None,
    status: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    user: dict = Depends(require_any_role)
):
    """Same filters as GET /visits, answered as a CSV file."""
    visits = await visit_reports.list_visits(
        user, mr_id=mr, doctor_id=doctor, status=status,
        start_date=start_date, end_date=end_date,
    )
    return Response(
        content=visits_to_csv(visits).encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{generate_csv_filename()}"'},
    )


@router.get("/{visit_id}")
async def get_visit(visit_id: str, user: dict = Depends(require_any_role)):
    return ok(await visit_reports.get_visit(visit_id, user))


# ==================== ADMIN REVIEW ====================

@router.post("/{visit_id}/approve")
async def approve_visit(visit_id: str, admin: dict = Depends(require_admin)):
    return ok(await visit_reports.approve_visit(visit_id, admin), message="Visit report approved")


@router.post("/{visit_id}/reject")
async def reject_visit(
    visit_id: str,
    data: Optional[VisitReject] = None,
    admin: dict = Depends(require_admin)
):
    reason = data.reason if data else None
    return ok(await visit_reports.reject_visit(visit_id, admin, reason), message="Visit report rejected")


@router.delete("/{visit_id}")
async def delete_visit(visit_id: str, user: dict = Depends(require_any_role)):
    await visit_reports.delete_visit(visit_id, user)
    return ok(message="Visit report deleted")


# ==================== ORDER STATUS ====================

@router.patch("/{visit_id}/orders")
async def replace_orders(visit_id: str, data: OrdersReplace, admin: dict = Depends(require_admin)):
    """
    Whole-array update. Every stored order must be present; only status
    changes are applied, each one checked against the order state machine.
    """
    orders = await order_state_machine.replace_orders(
        visit_id,
        [item.model_dump(mode="json") for item in data.orders],
        updated_by=admin["id"],
    )
    return ok({"visit_id": visit_id, "orders": orders}, message="Orders updated")


@router.patch("/{visit_id}/orders/{order_id}")
async def update_order_status(
    visit_id: str,
    order_id: str,
    data: OrderStatusUpdate,
    admin: dict = Depends(require_admin)
):
    order = await order_state_machine.update_order_status(
        visit_id, data.status.value, order_id=order_id, updated_by=admin["id"]
    )
    return ok(order, message=f"Order moved to {order['status']}")
