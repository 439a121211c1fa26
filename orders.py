"""
Orders: customer checkout, in-store direct sales and status transitions.

Status moves forward only:

    Pending -> Processing | Delivered | Cancelled
    Processing -> Delivered | Cancelled

Delivered and Cancelled are terminal. Customers may only cancel, and only
while the order is still Pending.
"""

import logging
from collections import Counter
from typing import Dict, List, Optional

from database import (
    create_document,
    decrement_stock,
    delete_document,
    get_document,
    restore_stock,
    serialize_doc,
    update_document,
)
from errors import BadRequest, InsufficientStock, InvalidTransition, NotFound, PermissionDenied
from live import plan_role_gated_query, run_plan
from schemas import CheckoutRequest, DirectSaleRequest, Order, OrderItem

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    "Pending": {"Processing", "Delivered", "Cancelled"},
    "Processing": {"Delivered", "Cancelled"},
    "Delivered": set(),
    "Cancelled": set(),
}

DIRECT_SALE_CUSTOMER = "In-Store Customer"


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


def _balance(total: int, amount_paid: Optional[int]) -> Optional[int]:
    if amount_paid is None:
        return None
    return total - amount_paid


def checkout(db, session, payload: CheckoutRequest) -> Dict:
    if not payload.items:
        raise BadRequest("No items in order")

    wanted = Counter()
    for line in payload.items:
        wanted[line.product_id] += line.quantity

    items: List[OrderItem] = []
    total = 0
    for line in payload.items:
        prod = get_document(db, "products", line.product_id)
        if not prod:
            raise NotFound(f"Product not found: {line.product_id}")
        if (prod.get("stock") or 0) < wanted[line.product_id]:
            raise InsufficientStock(f"Not enough stock for {prod.get('name')}. Only {prod.get('stock', 0)} available.")
        price = int(prod.get("price") or 0)
        total += price * line.quantity
        items.append(OrderItem(
            product_id=str(prod["_id"]),
            product_name=prod.get("name", "Product"),
            quantity=line.quantity,
            price=price,
        ))

    order = Order(
        customer_name=payload.customer_name,
        phone=payload.phone,
        address=payload.address,
        items=items,
        total=total,
        amount_paid=payload.amount_paid,
        balance=_balance(total, payload.amount_paid),
        payment_method=payload.payment_method,
        status="Pending",
        user_id=session.identity.uid,
    )
    order_id = create_document(db, "orders", order)
    logger.info("Order %s placed by %s for %s", order_id, session.identity.uid, total)
    return get_order(db, session, order_id)


def direct_sale(db, session, payload: DirectSaleRequest) -> Dict:
    """Record an in-store sale: take the stock, then write one Delivered order."""
    prod = get_document(db, "products", payload.product_id)
    if not prod:
        raise NotFound("Selected product not found.")
    if payload.quantity > (prod.get("stock") or 0):
        raise InsufficientStock(f"Not enough stock. Only {prod.get('stock', 0)} available.")

    if decrement_stock(db, prod["_id"], payload.quantity) is None:
        # another sale took the stock between the check and the update
        raise InsufficientStock("Not enough stock. The product sold out while recording the sale.")

    price = int(prod.get("price") or 0)
    total = price * payload.quantity
    amount_paid = payload.amount_paid if payload.amount_paid is not None else total
    order = Order(
        customer_name=payload.customer_name or DIRECT_SALE_CUSTOMER,
        phone="N/A",
        address="Direct Sale",
        items=[OrderItem(product_id=str(prod["_id"]), product_name=prod.get("name", "Product"), quantity=payload.quantity, price=price)],
        total=total,
        amount_paid=amount_paid,
        balance=_balance(total, amount_paid),
        payment_method=payload.payment_method or "Cash",
        status="Delivered",
        user_id=session.identity.uid,
    )
    try:
        order_id = create_document(db, "orders", order)
    except Exception:
        restore_stock(db, prod["_id"], payload.quantity)
        raise
    logger.info("Direct sale %s: %s x %s by %s", order_id, payload.quantity, prod.get("name"), session.identity.uid)
    return serialize_doc(get_document(db, "orders", order_id))


def list_orders(db, session, status: Optional[str] = None) -> List[Dict]:
    """Admins see every order, customers their own, signed-out callers nothing."""
    extra = {"status": status} if status else None
    plan = plan_role_gated_query(session, "user_id", extra)
    return run_plan(db, "orders", plan)


def _load_visible(db, session, order_id: str) -> Dict:
    doc = get_document(db, "orders", order_id)
    if not doc:
        raise NotFound("Order not found")
    if not session.is_admin and doc.get("user_id") != session.identity.uid:
        raise PermissionDenied("Not your order")
    return doc


def get_order(db, session, order_id: str) -> Dict:
    return serialize_doc(_load_visible(db, session, order_id))


def set_status(db, session, order_id: str, status: str) -> Dict:
    doc = get_document(db, "orders", order_id)
    if not doc:
        raise NotFound("Order not found")
    current = doc.get("status", "Pending")
    if not can_transition(current, status):
        raise InvalidTransition(f"Cannot move order from {current} to {status}")
    updated = update_document(db, "orders", order_id, {"status": status})
    logger.info("Order %s: %s -> %s by %s", order_id, current, status, session.identity.uid)
    return serialize_doc(updated)


def cancel_order(db, session, order_id: str) -> Dict:
    doc = _load_visible(db, session, order_id)
    if doc.get("user_id") != session.identity.uid:
        raise PermissionDenied("Only the customer who placed the order can cancel it")
    if doc.get("status") != "Pending":
        raise InvalidTransition("Only pending orders can be cancelled")
    updated = update_document(db, "orders", order_id, {"status": "Cancelled"})
    logger.info("Order %s cancelled by customer %s", order_id, session.identity.uid)
    return serialize_doc(updated)


def delete_order(db, order_id: str) -> None:
    if not delete_document(db, "orders", order_id):
        raise NotFound("Order not found")
