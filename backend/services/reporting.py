"""
Dashboard aggregation.

Everything here is computed on read by scanning visit reports in memory,
nothing is maintained incrementally. Array fields go through as_list so a
legacy row with a null / object `orders` or `products_discussed` reads as
empty instead of breaking the dashboard.
"""

import logging
import math
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import List, Dict, Any, Optional

from config import db
from models.auth import Role
from models.mr_request import MRRequestStatus
from models.target import TargetStatus
from models.visit import OrderStatus
from services.api_response import as_list
from services import targets as target_service

logger = logging.getLogger("reporting")

TOP_N = 10
TREND_DAYS = 7


# ==================== PURE AGGREGATES ====================

def performance_score(visits_count: int, orders_count: int) -> int:
    """
    min(100, round((orders / visits) * 50 + 50)), 0 without visits.
    Rounds half up (2.5 -> 3), not to even.
    """
    if not visits_count or visits_count <= 0:
        return 0
    raw = (orders_count / visits_count) * 50 + 50
    return min(100, int(math.floor(raw + 0.5)))


def _orders(visit: dict) -> List[dict]:
    return [o for o in as_list(visit.get("orders")) if isinstance(o, dict)]


def top_discussed_products(visits: List[dict], product_names: Dict[str, str], limit: int = TOP_N) -> List[dict]:
    """Occurrences of each product across products_discussed, grouped by name."""
    counts = Counter()
    for visit in as_list(visits):
        for product_id in as_list(visit.get("products_discussed")):
            counts[product_names.get(product_id, "Unknown")] += 1
    return [{"name": name, "count": count} for name, count in counts.most_common(limit)]


def top_ordered_products(visits: List[dict], limit: int = TOP_N) -> List[dict]:
    """Ordered quantity and value per product name, cancelled orders excluded."""
    quantities = Counter()
    values = Counter()
    for visit in as_list(visits):
        for order in _orders(visit):
            if order.get("status") == OrderStatus.CANCELLED.value:
                continue
            name = order.get("product_name") or "Unknown"
            quantities[name] += order.get("quantity") or 0
            values[name] += order.get("total_amount") or 0
    return [
        {"name": name, "quantity": qty, "value": values[name]}
        for name, qty in quantities.most_common(limit)
    ]


def orders_by_status(visits: List[dict]) -> Dict[str, int]:
    counts = {s.value: 0 for s in OrderStatus}
    for visit in as_list(visits):
        for order in _orders(visit):
            status = order.get("status") or OrderStatus.PENDING.value
            counts[status] = counts.get(status, 0) + 1
    return counts


def visits_trend(visits: List[dict], days: int = TREND_DAYS, today: Optional[datetime] = None) -> List[dict]:
    """Visits per day for the last `days` days, oldest first, zero-filled."""
    today = (today or datetime.now(timezone.utc)).date()
    window = [(today - timedelta(days=offset)).isoformat() for offset in range(days - 1, -1, -1)]
    counts = {day: 0 for day in window}
    for visit in as_list(visits):
        day = (visit.get("visit_date") or "")[:10]
        if day in counts:
            counts[day] += 1
    return [{"date": day, "visits": counts[day]} for day in window]


def mr_performance(mrs: List[dict], visits: List[dict]) -> List[dict]:
    """One row per MR, best score first."""
    per_mr = {}
    for visit in as_list(visits):
        row = per_mr.setdefault(visit.get("mr_id"), {"visits": 0, "orders": 0, "order_value": 0, "doctors": set()})
        row["visits"] += 1
        orders = _orders(visit)
        row["orders"] += len(orders)
        row["order_value"] += sum(o.get("total_amount") or 0 for o in orders)
        if visit.get("doctor_id"):
            row["doctors"].add(visit["doctor_id"])

    rows = []
    for mr in mrs:
        stats = per_mr.get(mr["id"], {"visits": 0, "orders": 0, "order_value": 0, "doctors": set()})
        rows.append({
            "mr_id": mr["id"],
            "name": mr.get("name", ""),
            "employee_id": mr.get("employee_id", ""),
            "territory": mr.get("territory", ""),
            "visits": stats["visits"],
            "orders": stats["orders"],
            "order_value": stats["order_value"],
            "unique_doctors": len(stats["doctors"]),
            "performance_score": performance_score(stats["visits"], stats["orders"]),
        })
    rows.sort(key=lambda r: r["performance_score"], reverse=True)
    return rows


# ==================== DASHBOARDS ====================

async def _product_names() -> Dict[str, str]:
    products = await db.products.find({}, {"_id": 0, "id": 1, "basic_info.name": 1}).to_list(10000)
    return {p["id"]: (p.get("basic_info") or {}).get("name", "Unknown") for p in products}


async def dashboard_stats(visit_query: Optional[dict] = None) -> Dict[str, Any]:
    """Admin dashboard over every visit matching visit_query."""
    visits = await db.visit_reports.find(
        visit_query or {},
        {"_id": 0, "mr_id": 1, "doctor_id": 1, "visit_date": 1, "products_discussed": 1, "orders": 1}
    ).to_list(20000)
    mrs = await db.users.find(
        {"role": Role.MR.value, "is_active": True},
        {"_id": 0, "id": 1, "name": 1, "employee_id": 1, "territory": 1}
    ).to_list(5000)
    product_names = await _product_names()

    all_orders = [o for v in visits for o in _orders(v)]
    totals = {
        "doctors": await db.doctors.count_documents({"is_active": {"$ne": False}}),
        "products": await db.products.count_documents({"is_active": {"$ne": False}}),
        "mrs": len(mrs),
        "visits": len(visits),
        "orders": len(all_orders),
        "order_value": sum(o.get("total_amount") or 0 for o in all_orders),
        "pending_requests": await db.mr_requests.count_documents({"status": MRRequestStatus.PENDING.value}),
    }

    return {
        "totals": totals,
        "orders_by_status": orders_by_status(visits),
        "top_discussed_products": top_discussed_products(visits, product_names),
        "top_ordered_products": top_ordered_products(visits),
        "visits_trend": visits_trend(visits),
        "mr_performance": mr_performance(mrs, visits),
    }


async def mr_dashboard(user: Dict[str, Any]) -> Dict[str, Any]:
    """An MR's own numbers plus the percentages of their active targets."""
    visits = await db.visit_reports.find(
        {"mr_id": user["id"]},
        {"_id": 0, "doctor_id": 1, "visit_date": 1, "products_discussed": 1, "orders": 1, "status": 1}
    ).to_list(10000)
    product_names = await _product_names()
    orders = [o for v in visits for o in _orders(v)]

    active = await db.targets.find(
        {"mr_id": user["id"], "status": TargetStatus.ACTIVE.value}, {"_id": 0}
    ).to_list(100)
    targets = [await target_service.refresh_achievements(t) for t in active]

    return {
        "totals": {
            "visits": len(visits),
            "orders": len(orders),
            "order_value": sum(o.get("total_amount") or 0 for o in orders),
            "doctors_visited": len({v.get("doctor_id") for v in visits if v.get("doctor_id")}),
        },
        "performance_score": performance_score(len(visits), len(orders)),
        "orders_by_status": orders_by_status(visits),
        "top_discussed_products": top_discussed_products(visits, product_names),
        "visits_trend": visits_trend(visits),
        "targets": [
            {
                "target_id": t.get("target_id"),
                "period": t.get("period"),
                "achievements": t.get("achievements"),
                "percentages": t.get("percentages"),
            }
            for t in targets
        ],
    }
