"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Pharma Field Sales - Visit Report Pipeline                                  ║
║                                                                              ║
║  MR submits: doctor + products discussed + notes (+ optional orders)         ║
║  -> ONE visit report document, orders embedded, all orders Pending           ║
║                                                                              ║
║  PRICE SNAPSHOT:                                                             ║
║  - unit_price = product mrp at submission time                               ║
║  - total_amount = quantity * unit_price, computed once and stored            ║
║  - neither is recomputed later, whatever happens to the product price        ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
import uuid
from datetime import timedelta
from typing import List, Optional, Dict, Any

from config import db, now_iso, parse_datetime
from models.visit import VisitStatus, OrderStatus, OrderType
from services.api_response import as_list
from services.errors import ValidationError, NotFoundError, InvalidStateError, ForbiddenError
from services.permissions import is_admin, is_mr
from services.sequences import next_code

logger = logging.getLogger("visit_reports")

VALID_ORDER_TYPES = [t.value for t in OrderType]


# ════════════════════════════════════════════════════════════════════════════
# HELPERS
# ════════════════════════════════════════════════════════════════════════════

def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _product_price(product: dict) -> float:
    return (product.get("business_info") or {}).get("mrp") or 0


def _product_name(product: dict) -> str:
    return (product.get("basic_info") or {}).get("name") or "Unknown"


async def _products_by_id(product_ids: List[str]) -> Dict[str, dict]:
    if not product_ids:
        return {}
    products = await db.products.find(
        {"id": {"$in": list(set(product_ids))}}, {"_id": 0}
    ).to_list(len(product_ids) + 1)
    return {p["id"]: p for p in products}


def date_range_query(start_date: Optional[str], end_date: Optional[str], field: str = "visit_date") -> dict:
    """
    Inclusive ISO range filter. A date-only end ("2026-03-31") covers the
    whole day.
    """
    bounds = {}
    try:
        if start_date:
            bounds["$gte"] = parse_datetime(start_date).isoformat()
        if end_date:
            end = parse_datetime(end_date)
            if len(end_date.strip()) == 10:
                bounds["$lt"] = (end + timedelta(days=1)).isoformat()
            else:
                bounds["$lte"] = end.isoformat()
    except ValueError:
        raise ValidationError("Invalid date filter, expected ISO format (YYYY-MM-DD)")
    return {field: bounds} if bounds else {}


# ════════════════════════════════════════════════════════════════════════════
# SUBMISSION
# ════════════════════════════════════════════════════════════════════════════

async def submit_visit(
    mr_id: str,
    doctor_id: str,
    product_ids: List[str],
    notes: str,
    visit_date=None,
    orders: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """
    Creates one visit report with its embedded orders.

    orders: [{"product_id": str, "quantity": int, "order_type"?: str, "notes"?: str}]

    Raises ValidationError on a missing doctor/notes, an unknown product or
    a non-positive quantity; NotFoundError if the doctor does not exist.
    Nothing is written unless every check passes.
    """
    if not doctor_id:
        raise ValidationError("Doctor is required")
    if not notes or not str(notes).strip():
        raise ValidationError("Visit notes are required")

    doctor = await db.doctors.find_one({"id": doctor_id}, {"_id": 0})
    if not doctor:
        raise NotFoundError("Doctor not found")
    if doctor.get("is_active") is False:
        raise ValidationError("Doctor is inactive")
    assigned = doctor.get("assigned_mr_id")
    if assigned and assigned != mr_id:
        raise ValidationError("This doctor belongs to another MR's roster")

    # Ordered, duplicates dropped
    discussed = list(dict.fromkeys(pid for pid in as_list(product_ids) if pid))
    order_lines = as_list(orders)

    referenced = discussed + [line.get("product_id") for line in order_lines if isinstance(line, dict)]
    products = await _products_by_id([pid for pid in referenced if pid])

    missing = [pid for pid in discussed if pid not in products]
    if missing:
        raise ValidationError(f"Unknown product(s): {', '.join(missing)}")

    if visit_date in (None, ""):
        visit_date_iso = now_iso()
    else:
        try:
            visit_date_iso = parse_datetime(visit_date).isoformat()
        except ValueError:
            raise ValidationError(f"Invalid visit date: {visit_date}")

    now = now_iso()
    embedded = []
    for position, line in enumerate(order_lines, start=1):
        if not isinstance(line, dict):
            raise ValidationError(f"Order line {position} is malformed")
        product = products.get(line.get("product_id"))
        if not product:
            raise ValidationError(f"Order line {position}: unknown product {line.get('product_id')}")
        quantity = line.get("quantity")
        if not _is_positive_int(quantity):
            raise ValidationError(f"Order line {position}: quantity must be a positive integer")
        order_type = line.get("order_type") or OrderType.DOCTOR.value
        if hasattr(order_type, "value"):
            order_type = order_type.value
        if order_type not in VALID_ORDER_TYPES:
            raise ValidationError(f"Order line {position}: invalid order type {order_type}")

        unit_price = _product_price(product)
        embedded.append({
            "id": str(uuid.uuid4()),
            "product_id": product["id"],
            "product_name": _product_name(product),
            "quantity": quantity,
            "unit_price": unit_price,
            "total_amount": quantity * unit_price,
            "order_type": order_type,
            "notes": line.get("notes") or "",
            "status": OrderStatus.PENDING.value,
            "status_history": [{"status": OrderStatus.PENDING.value, "at": now, "by": mr_id}],
            "created_at": now,
            "updated_at": now,
        })

    # Numbers drawn only once validation passed, so rejected input burns none
    for order in embedded:
        order["order_number"] = await next_code("order")

    visit = {
        "id": str(uuid.uuid4()),
        "visit_number": await next_code("visit"),
        "mr_id": mr_id,
        "doctor_id": doctor_id,
        "visit_date": visit_date_iso,
        "products_discussed": discussed,
        "notes": str(notes).strip(),
        "status": VisitStatus.SUBMITTED.value,
        "orders": embedded,
        "approved_by": None,
        "approved_at": None,
        "rejection_reason": None,
        "created_at": now,
        "updated_at": now,
    }
    await db.visit_reports.insert_one(visit)
    visit.pop("_id", None)

    logger.info(
        f"[VISIT] {visit['visit_number']} by MR {mr_id} doctor={doctor_id} "
        f"products={len(discussed)} orders={len(embedded)}"
    )
    return visit


# ════════════════════════════════════════════════════════════════════════════
# READS
# ════════════════════════════════════════════════════════════════════════════

async def enrich_visits(visits: List[dict]) -> List[dict]:
    """Adds display names (mr, doctor, products) without touching stored data."""
    mr_ids = {v.get("mr_id") for v in visits}
    doctor_ids = {v.get("doctor_id") for v in visits}
    product_ids = set()
    for v in visits:
        product_ids.update(as_list(v.get("products_discussed")))

    mrs = await db.users.find(
        {"id": {"$in": list(mr_ids)}}, {"_id": 0, "id": 1, "name": 1, "employee_id": 1}
    ).to_list(len(mr_ids) + 1)
    doctors = await db.doctors.find(
        {"id": {"$in": list(doctor_ids)}}, {"_id": 0, "id": 1, "name": 1, "place": 1, "specialization": 1}
    ).to_list(len(doctor_ids) + 1)
    products = await _products_by_id(list(product_ids))

    mr_map = {m["id"]: m for m in mrs}
    doctor_map = {d["id"]: d for d in doctors}

    for v in visits:
        mr = mr_map.get(v.get("mr_id"), {})
        doctor = doctor_map.get(v.get("doctor_id"), {})
        v["mr_name"] = mr.get("name", "Unknown")
        v["mr_employee_id"] = mr.get("employee_id", "")
        v["doctor_name"] = doctor.get("name", "Unknown")
        v["doctor_place"] = doctor.get("place", "")
        v["doctor_specialization"] = doctor.get("specialization", "")
        v["products_discussed_names"] = [
            _product_name(products[pid]) if pid in products else "Unknown"
            for pid in as_list(v.get("products_discussed"))
        ]
    return visits


async def list_visits(
    user: dict,
    mr_id: Optional[str] = None,
    doctor_id: Optional[str] = None,
    status: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> List[dict]:
    query = date_range_query(start_date, end_date)

    # An MR only ever sees their own visits
    if is_mr(user):
        query["mr_id"] = user["id"]
    elif mr_id:
        query["mr_id"] = mr_id
    if doctor_id:
        query["doctor_id"] = doctor_id
    if status:
        query["status"] = status

    visits = await db.visit_reports.find(query, {"_id": 0}).sort("visit_date", -1).to_list(5000)
    return await enrich_visits(visits)


async def get_visit(visit_id: str, user: dict) -> dict:
    visit = await db.visit_reports.find_one({"id": visit_id}, {"_id": 0})
    if not visit:
        raise NotFoundError("Visit report not found")
    if is_mr(user) and visit.get("mr_id") != user["id"]:
        raise ForbiddenError("You can only view your own visit reports")
    return (await enrich_visits([visit]))[0]


async def list_orders(user: dict, status: Optional[str] = None, order_type: Optional[str] = None) -> List[dict]:
    """Flattened view of the orders embedded in visit reports."""
    query = {"mr_id": user["id"]} if is_mr(user) else {}
    visits = await db.visit_reports.find(
        query, {"_id": 0, "id": 1, "mr_id": 1, "doctor_id": 1, "visit_date": 1, "orders": 1}
    ).sort("visit_date", -1).to_list(5000)

    flattened = []
    for visit in visits:
        for order in as_list(visit.get("orders")):
            if not isinstance(order, dict):
                continue
            if status and order.get("status") != status:
                continue
            if order_type and order.get("order_type") != order_type:
                continue
            flattened.append({
                **order,
                "visit_id": visit["id"],
                "mr_id": visit.get("mr_id"),
                "doctor_id": visit.get("doctor_id"),
                "visit_date": visit.get("visit_date"),
            })
    return flattened


# ════════════════════════════════════════════════════════════════════════════
# ADMIN REVIEW
# ════════════════════════════════════════════════════════════════════════════

async def approve_visit(visit_id: str, admin: dict) -> dict:
    visit = await db.visit_reports.find_one({"id": visit_id}, {"_id": 0})
    if not visit:
        raise NotFoundError("Visit report not found")
    if visit.get("status") == VisitStatus.APPROVED.value:
        raise InvalidStateError("Visit report already approved")

    now = now_iso()
    await db.visit_reports.update_one(
        {"id": visit_id},
        {"$set": {
            "status": VisitStatus.APPROVED.value,
            "approved_by": admin.get("id"),
            "approved_at": now,
            "updated_at": now,
        }}
    )
    logger.info(f"[VISIT] {visit_id} approved by {admin.get('email')}")
    return await db.visit_reports.find_one({"id": visit_id}, {"_id": 0})


async def reject_visit(visit_id: str, admin: dict, reason: Optional[str] = None) -> dict:
    visit = await db.visit_reports.find_one({"id": visit_id}, {"_id": 0})
    if not visit:
        raise NotFoundError("Visit report not found")

    await db.visit_reports.update_one(
        {"id": visit_id},
        {"$set": {
            "status": VisitStatus.REJECTED.value,
            "rejection_reason": reason,
            "updated_at": now_iso(),
        }}
    )
    logger.info(f"[VISIT] {visit_id} rejected by {admin.get('email')}")
    return await db.visit_reports.find_one({"id": visit_id}, {"_id": 0})


async def delete_visit(visit_id: str, user: dict):
    """Admins delete any visit; an MR only their own drafts (status Pending)."""
    visit = await db.visit_reports.find_one({"id": visit_id}, {"_id": 0})
    if not visit:
        raise NotFoundError("Visit report not found")

    if not is_admin(user):
        if visit.get("mr_id") != user.get("id"):
            raise ForbiddenError("Access denied")
        if visit.get("status") != VisitStatus.PENDING.value:
            raise InvalidStateError("Only draft (Pending) visit reports can be deleted")

    await db.visit_reports.delete_one({"id": visit_id})
    logger.info(f"[VISIT] {visit_id} deleted by {user.get('email')}")
