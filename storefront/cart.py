"""
Session-scoped cart store.

Every read and write is filtered by the caller's session id; a line that
belongs to another session is indistinguishable from a missing one.
Prices shown here are live catalog prices for display only. The charged
price is captured by the order workflow at checkout.
"""

from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from storefront.config import get_config
from storefront.errors import NotFound, ValidationFailed
from storefront.models import CartItem, Product
from storefront.money import cents_to_decimal
from storefront.operations import parse_id, require_db, storage_errors, track_operation
from storefront.schemas import MAX_LINE_QUANTITY, CartItemOut, CartMessage, CartOut, CartProductOut


def load_cart_lines(db: Session, session_id: str, lock: bool = False) -> List[CartItem]:
    """
    Cart lines for a session with their products loaded, oldest first.
    lock=True takes row locks (SELECT ... FOR UPDATE) for checkout.
    """
    query = (
        db.query(CartItem)
        .options(selectinload(CartItem.product))
        .filter(CartItem.session_id == session_id)
        .order_by(CartItem.id)
    )
    if lock:
        query = query.with_for_update()
    return query.all()


def build_cart(db: Session, session_id: str) -> CartOut:
    """Render the session's cart with recomputed display totals."""
    items = []
    subtotal_cents = 0
    item_count = 0
    for line in load_cart_lines(db, session_id):
        product = line.product
        line_total_cents = product.price_cents * line.quantity
        items.append(
            CartItemOut(
                id=line.id,
                product_id=line.product_id,
                quantity=line.quantity,
                product=CartProductOut(
                    id=product.id,
                    name=product.name,
                    price=cents_to_decimal(product.price_cents),
                    price_cents=product.price_cents,
                    image_url=product.image_url,
                    is_active=bool(product.is_active),
                ),
                line_total=cents_to_decimal(line_total_cents),
                line_total_cents=line_total_cents,
            )
        )
        subtotal_cents += line_total_cents
        item_count += line.quantity

    return CartOut(
        session_id=session_id,
        items=items,
        item_count=item_count,
        subtotal=cents_to_decimal(subtotal_cents),
        subtotal_cents=subtotal_cents,
        currency=get_config().currency,
    )


def _find_line(db: Session, session_id: str, item_id: int) -> Optional[CartItem]:
    return (
        db.query(CartItem)
        .filter(CartItem.id == item_id, CartItem.session_id == session_id)
        .first()
    )


def get_cart(db: Optional[Session], session_id: str) -> CartOut:
    with track_operation("get_cart", session_id=session_id):
        db = require_db(db)
        with storage_errors(db, "get_cart"):
            return build_cart(db, session_id)


def add_item(db: Optional[Session], session_id: str, product_id, quantity) -> CartOut:
    """
    Add a product to the session's cart, or increment the existing line.

    Raises:
        ValidationFailed: quantity not in 1..MAX_LINE_QUANTITY (merged line included), bad product id
        NotFound: product missing or inactive
    """
    params = {"product_id": product_id, "quantity": quantity}
    with track_operation("add_to_cart", session_id=session_id, params=params):
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationFailed("Quantity must be a positive integer", details={"quantity": quantity})
        _check_quantity_cap(quantity)
        pid = parse_id(product_id, "product ID")
        db = require_db(db)

        with storage_errors(db, "add_to_cart"):
            product = (
                db.query(Product)
                .filter(Product.id == pid, Product.is_active.is_(True))
                .first()
            )
            if product is None:
                raise NotFound("Product not found or inactive", details={"product_id": pid})

            try:
                _upsert_line(db, session_id, pid, quantity)
                db.commit()
            except IntegrityError:
                # Concurrent insert of the same (session, product) line won the
                # unique constraint; fold this quantity into it instead.
                db.rollback()
                _upsert_line(db, session_id, pid, quantity)
                db.commit()

            return build_cart(db, session_id)


def _check_quantity_cap(quantity: int) -> None:
    if quantity > MAX_LINE_QUANTITY:
        raise ValidationFailed(
            f"Quantity must not exceed {MAX_LINE_QUANTITY}",
            details={"quantity": quantity, "max": MAX_LINE_QUANTITY},
        )


def _upsert_line(db: Session, session_id: str, product_id: int, quantity: int) -> None:
    existing = (
        db.query(CartItem)
        .filter(CartItem.session_id == session_id, CartItem.product_id == product_id)
        .first()
    )
    if existing:
        _check_quantity_cap(existing.quantity + quantity)
        existing.quantity += quantity
    else:
        db.add(CartItem(session_id=session_id, product_id=product_id, quantity=quantity))
    db.flush()


def update_quantity(db: Optional[Session], session_id: str, item_id, quantity) -> CartOut:
    """
    Set a line's quantity. Zero or less removes the line.

    Raises:
        ValidationFailed: bad item id, non-integer quantity or quantity above MAX_LINE_QUANTITY
        NotFound: no such line in this session
    """
    params = {"item_id": item_id, "quantity": quantity}
    with track_operation("update_cart_item", session_id=session_id, params=params):
        line_id = parse_id(item_id, "cart item ID")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationFailed("Quantity must be an integer", details={"quantity": quantity})
        _check_quantity_cap(quantity)
        db = require_db(db)

        with storage_errors(db, "update_cart_item"):
            line = _find_line(db, session_id, line_id)
            if line is None:
                raise NotFound("Cart item not found", details={"item_id": line_id})
            if quantity <= 0:
                db.delete(line)
            else:
                line.quantity = quantity
            db.commit()
            return build_cart(db, session_id)


def remove_item(db: Optional[Session], session_id: str, item_id) -> CartMessage:
    """
    Delete one line.

    Raises:
        NotFound: no such line in this session (consistently, also on repeats)
    """
    with track_operation("remove_cart_item", session_id=session_id, params={"item_id": item_id}):
        line_id = parse_id(item_id, "cart item ID")
        db = require_db(db)

        with storage_errors(db, "remove_cart_item"):
            line = _find_line(db, session_id, line_id)
            if line is None:
                raise NotFound("Cart item not found", details={"item_id": line_id})
            db.delete(line)
            db.commit()
            return CartMessage(message="Item removed from cart", removed=1, cart=build_cart(db, session_id))


def delete_session_lines(db: Session, session_id: str) -> int:
    """Delete every line for a session without committing. Returns the row count."""
    return (
        db.query(CartItem)
        .filter(CartItem.session_id == session_id)
        .delete(synchronize_session=False)
    )


def clear_cart(db: Optional[Session], session_id: str) -> CartMessage:
    """Delete every line for the session. Idempotent."""
    with track_operation("clear_cart", session_id=session_id):
        db = require_db(db)
        with storage_errors(db, "clear_cart"):
            removed = delete_session_lines(db, session_id)
            db.commit()
            return CartMessage(message="Cart cleared", removed=removed, cart=build_cart(db, session_id))
