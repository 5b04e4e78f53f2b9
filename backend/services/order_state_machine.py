"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Pharma Field Sales - Order State Machine                                    ║
║                                                                              ║
║  STRICT STATUS TRANSITION RULES (orders embedded in visit reports)           ║
║                                                                              ║
║  Pending   -> Confirmed | Cancelled                                          ║
║  Confirmed -> Shipped   | Cancelled                                          ║
║  Shipped   -> Delivered                                                      ║
║  Delivered, Cancelled : TERMINAL                                             ║
║                                                                              ║
║  ONLY THIS MODULE writes an order status.                                    ║
║  Writes replace the whole `orders` array of the parent visit report          ║
║  (last write wins between two concurrent updates of the same visit).         ║
║  quantity / unit_price / total_amount are never touched here.                ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
from typing import List, Optional, Dict, Any

from config import db, now_iso
from models.visit import OrderStatus
from services.api_response import as_list
from services.errors import ValidationError, NotFoundError, InvalidTransitionError

logger = logging.getLogger("order_state_machine")


# ════════════════════════════════════════════════════════════════════════════
# VALID STATE TRANSITIONS
# ════════════════════════════════════════════════════════════════════════════

VALID_ORDER_TRANSITIONS = {
    OrderStatus.PENDING.value: [OrderStatus.CONFIRMED.value, OrderStatus.CANCELLED.value],
    OrderStatus.CONFIRMED.value: [OrderStatus.SHIPPED.value, OrderStatus.CANCELLED.value],
    OrderStatus.SHIPPED.value: [OrderStatus.DELIVERED.value],
    OrderStatus.DELIVERED.value: [],  # TERMINAL
    OrderStatus.CANCELLED.value: [],  # TERMINAL
}


def allowed_next(status: str) -> List[str]:
    return list(VALID_ORDER_TRANSITIONS.get(status, []))


def is_terminal(status: str) -> bool:
    return not VALID_ORDER_TRANSITIONS.get(status)


def validate_order_transition(order_ref: str, from_status: str, to_status: str) -> bool:
    """Raises InvalidTransitionError unless to_status is a legal successor of from_status."""
    valid_next = allowed_next(from_status)
    if to_status not in valid_next:
        raise InvalidTransitionError(f"order {order_ref}", from_status, to_status, valid_next)
    return True


def apply_transition(order: Dict[str, Any], to_status: str, by: Optional[str] = None) -> Dict[str, Any]:
    """Returns a copy of `order` moved to `to_status`, with the history entry appended."""
    ref = order.get("order_number") or order.get("id") or order.get("product_id")
    validate_order_transition(ref, order.get("status", OrderStatus.PENDING.value), to_status)

    now = now_iso()
    updated = dict(order)
    updated["status"] = to_status
    updated["status_history"] = as_list(order.get("status_history")) + [
        {"status": to_status, "at": now, "by": by}
    ]
    updated["updated_at"] = now
    return updated


# ════════════════════════════════════════════════════════════════════════════
# LOCATING AN EMBEDDED ORDER
# ════════════════════════════════════════════════════════════════════════════

def find_order_index(
    orders: List[Dict[str, Any]],
    order_id: Optional[str] = None,
    product_id: Optional[str] = None,
    quantity: Optional[int] = None,
) -> int:
    """
    Finds an order by its id, or for legacy rows without an id, by
    product + quantity. An ambiguous product + quantity match is refused.
    """
    if order_id:
        for i, order in enumerate(orders):
            if order.get("id") == order_id:
                return i
        raise NotFoundError(f"Order {order_id} not found in this visit")

    if not product_id or quantity is None:
        raise ValidationError("Order id, or product_id and quantity, are required to identify an order")

    matches = [
        i for i, order in enumerate(orders)
        if order.get("product_id") == product_id and order.get("quantity") == quantity
    ]
    if not matches:
        raise NotFoundError("No order matches this product and quantity")
    if len(matches) > 1:
        raise ValidationError(
            "Several orders match this product and quantity, identify the order by its id"
        )
    return matches[0]


async def _load_visit(visit_id: str) -> Dict[str, Any]:
    visit = await db.visit_reports.find_one({"id": visit_id}, {"_id": 0})
    if not visit:
        raise NotFoundError("Visit report not found")
    return visit


async def _write_orders(visit_id: str, orders: List[Dict[str, Any]]):
    await db.visit_reports.update_one(
        {"id": visit_id},
        {"$set": {"orders": orders, "updated_at": now_iso()}}
    )


# ════════════════════════════════════════════════════════════════════════════
# SAFE STATE TRANSITIONS (THE ONLY WAY TO CHANGE AN ORDER STATUS)
# ════════════════════════════════════════════════════════════════════════════

async def update_order_status(
    visit_id: str,
    new_status: str,
    order_id: Optional[str] = None,
    product_id: Optional[str] = None,
    quantity: Optional[int] = None,
    updated_by: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Moves one embedded order to `new_status` and persists the whole array.

    Raises NotFoundError, ValidationError (ambiguous legacy match) or
    InvalidTransitionError; on any error nothing is written.
    """
    visit = await _load_visit(visit_id)
    orders = [dict(o) for o in as_list(visit.get("orders"))]

    index = find_order_index(orders, order_id, product_id, quantity)
    previous = orders[index].get("status")
    orders[index] = apply_transition(orders[index], new_status, by=updated_by)

    await _write_orders(visit_id, orders)

    logger.info(
        f"[ORDER_STATE] visit {visit_id} order {orders[index].get('id') or index}: "
        f"{previous} -> {new_status} by {updated_by}"
    )
    return orders[index]


async def replace_orders(
    visit_id: str,
    incoming: List[Dict[str, Any]],
    updated_by: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Whole-array replacement of a visit's orders.

    The incoming array must describe exactly the stored orders (no
    additions, no removals). Only `status` is taken from it; every changed
    status must be a legal transition. The price snapshot of each stored
    order is kept as is. All-or-nothing: one bad element and nothing is
    written.
    """
    visit = await _load_visit(visit_id)
    stored = [dict(o) for o in as_list(visit.get("orders"))]
    incoming = as_list(incoming)

    if len(incoming) != len(stored):
        raise ValidationError(
            f"Orders array must contain the {len(stored)} existing orders (got {len(incoming)})"
        )

    result = list(stored)
    seen = set()
    changes = []
    for item in incoming:
        index = find_order_index(
            stored,
            order_id=item.get("id"),
            product_id=item.get("product_id"),
            quantity=item.get("quantity"),
        )
        if index in seen:
            raise ValidationError("The same order appears twice in the orders array")
        seen.add(index)

        new_status = item.get("status")
        if new_status == stored[index].get("status"):
            continue
        result[index] = apply_transition(stored[index], new_status, by=updated_by)
        changes.append((index, stored[index].get("status"), new_status))

    if changes:
        await _write_orders(visit_id, result)
        for index, old, new in changes:
            logger.info(
                f"[ORDER_STATE] visit {visit_id} order {result[index].get('id') or index}: "
                f"{old} -> {new} by {updated_by}"
            )
    return result
