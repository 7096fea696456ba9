"""
Order workflow: turns a session's cart into a durable order.

createOrder runs as ONE transaction:
  1. lock and read the session's cart lines with their products
  2. reject an empty cart (nothing written)
  3. snapshot unit prices, compute the total
  4. insert the order header (status=pending)
  5. insert one order item per cart line with the snapshotted price
  6. delete the session's cart lines
  7. commit
A failure anywhere before the commit rolls everything back: no order row,
cart untouched. The stored total and unit prices are never recomputed.

Status lifecycle is monotonic:
  pending -> processing -> shipped -> delivered
  pending | processing -> cancelled
"""

from typing import Dict, FrozenSet, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from storefront.cart import delete_session_lines, load_cart_lines
from storefront.config import get_config
from storefront.errors import Conflict, NotFound, StorefrontError, ValidationFailed
from storefront.models import Order, OrderItem
from storefront.operations import parse_id, require_db, storage_errors, track_operation
from storefront.schemas import CreateOrderRequest, OrderStatus

ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

MAX_IDEMPOTENCY_KEY_LENGTH = 128


def parse_status(raw: str) -> OrderStatus:
    try:
        return OrderStatus(str(raw).strip().lower())
    except ValueError:
        raise ValidationFailed(
            "Invalid order status",
            details={"status": raw, "allowed": [s.value for s in OrderStatus]},
        )


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Same-status is allowed (no-op); otherwise the table decides."""
    return current == target or target in ALLOWED_TRANSITIONS[current]


def _normalize_key(idempotency_key: Optional[str]) -> Optional[str]:
    if idempotency_key is None:
        return None
    key = idempotency_key.strip()
    if not key:
        return None
    if len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise ValidationFailed(
            f"Idempotency-Key must be at most {MAX_IDEMPOTENCY_KEY_LENGTH} characters"
        )
    return key


def _order_query(db: Session):
    return db.query(Order).options(selectinload(Order.items))


def _find_by_key(db: Session, session_id: str, key: str) -> Optional[Order]:
    return (
        _order_query(db)
        .filter(Order.session_id == session_id, Order.idempotency_key == key)
        .first()
    )


def create_order(
    db: Optional[Session],
    session_id: str,
    request: CreateOrderRequest,
    idempotency_key: Optional[str] = None,
) -> Tuple[Order, bool]:
    """
    Place an order from the session's cart.

    Returns:
        (order, created). created is False when an order with the same
        idempotency key already exists for this session; nothing is written then.

    Raises:
        ValidationFailed: cart is empty, malformed idempotency key
        Conflict: a cart line points at a product that is no longer active
        UpstreamFailure: storage failed; the transaction was rolled back
    """
    params = {"idempotency_key": idempotency_key, "has_payment_handle": bool(request.payment_handle)}
    with track_operation("create_order", session_id=session_id, params=params):
        key = _normalize_key(idempotency_key)
        db = require_db(db)

        with storage_errors(db, "create_order"):
            if key:
                existing = _find_by_key(db, session_id, key)
                if existing is not None:
                    return existing, False

            try:
                order = _place_order(db, session_id, request, key)
            except IntegrityError:
                # Same key raced in from a concurrent retry; hand back the winner
                db.rollback()
                if key:
                    existing = _find_by_key(db, session_id, key)
                    if existing is not None:
                        return existing, False
                raise
            except Exception:
                db.rollback()
                raise

            return get_order_by_pk(db, order.id), True


def _place_order(
    db: Session,
    session_id: str,
    request: CreateOrderRequest,
    key: Optional[str],
) -> Order:
    lines = load_cart_lines(db, session_id, lock=True)
    if not lines:
        raise ValidationFailed("Cart is empty")

    inactive = [line.product_id for line in lines if not line.product.is_active]
    if inactive:
        raise Conflict(
            "Some items in your cart are no longer available",
            details={"product_ids": inactive},
        )

    # Prices are frozen here; nothing after this point reads the catalog price
    snapshot = [
        (line.product, line.quantity, line.product.price_cents)
        for line in lines
    ]
    total_cents = sum(price * qty for _, qty, price in snapshot)

    order = Order(
        session_id=session_id,
        total_cents=total_cents,
        currency=get_config().currency,
        shipping_address=request.shipping_address,
        billing_address=request.billing_address,
        customer_email=request.customer_email,
        customer_phone=request.customer_phone,
        payment_handle=request.payment_handle,
        idempotency_key=key,
        status=OrderStatus.PENDING.value,
    )
    db.add(order)
    db.flush()

    for product, qty, price in snapshot:
        order.items.append(
            OrderItem(
                product_id=product.id,
                product_name=product.name,
                product_image=product.image_url,
                quantity=qty,
                unit_price_cents=price,
            )
        )
    db.flush()

    delete_session_lines(db, session_id)
    db.commit()
    return order


def get_order_by_pk(db: Session, order_id: int) -> Order:
    order = _order_query(db).filter(Order.id == order_id).first()
    if order is None:
        raise NotFound("Order not found", details={"order_id": order_id})
    return order


def get_order(db: Optional[Session], order_id) -> Order:
    """
    Order header with its items (snapshotted name, image and price).

    Raises:
        ValidationFailed: non-numeric id
        NotFound: no such order
    """
    with track_operation("get_order", params={"order_id": order_id}):
        oid = parse_id(order_id, "order ID")
        db = require_db(db)
        with storage_errors(db, "get_order"):
            return get_order_by_pk(db, oid)


def list_orders_for_session(db: Optional[Session], session_id: str) -> List[Order]:
    """All orders placed by a session, oldest first."""
    with track_operation("list_orders", session_id=session_id):
        db = require_db(db)
        with storage_errors(db, "list_orders"):
            return (
                _order_query(db)
                .filter(Order.session_id == session_id)
                .order_by(Order.created_at, Order.id)
                .all()
            )


def update_order_status(
    db: Optional[Session],
    order_id,
    status: Optional[str] = None,
    payment_handle: Optional[str] = None,
) -> Order:
    """
    Move an order along its lifecycle and/or attach a payment handle.

    Raises:
        ValidationFailed: unknown status, backward/illegal transition, empty update
        NotFound: no such order
    """
    params = {"order_id": order_id, "status": status, "has_payment_handle": bool(payment_handle)}
    with track_operation("update_order_status", params=params):
        oid = parse_id(order_id, "order ID")
        if status is None and not payment_handle:
            raise ValidationFailed("Nothing to update: provide status and/or paymentHandle")
        target = parse_status(status) if status is not None else None
        db = require_db(db)

        with storage_errors(db, "update_order_status"):
            order = (
                db.query(Order)
                .filter(Order.id == oid)
                .with_for_update()
                .first()
            )
            if order is None:
                db.rollback()
                raise NotFound("Order not found", details={"order_id": oid})

            try:
                if target is not None:
                    current = OrderStatus(order.status)
                    if not can_transition(current, target):
                        raise ValidationFailed(
                            f"Cannot change order status from {current.value} to {target.value}",
                            details={
                                "from": current.value,
                                "to": target.value,
                                "allowed": sorted(s.value for s in ALLOWED_TRANSITIONS[current]),
                            },
                        )
                    order.status = target.value
                if payment_handle:
                    order.payment_handle = payment_handle
                db.commit()
            except StorefrontError:
                db.rollback()
                raise

            return get_order_by_pk(db, oid)
