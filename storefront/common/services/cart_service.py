from typing import Any, Dict, List, Sequence, Tuple
from uuid import uuid4
from decimal import Decimal

from sqlalchemy import delete
from sqlalchemy.orm import Session

from ..db.session import get_session
from ..db.upsert import insert_or_increment
from ..errors import InsufficientStockError, NotFoundError
from ..models.base import utcnow
from ..models.cart_item import CartItem
from ..models.product import Product
from ..utils.dto import to_cart_line_dto
from ..utils.validators import ensure_positive_int
from .logging import log_event


def list_lines(session: Session, user_id: str) -> List[Tuple[CartItem, Product]]:
    """Cart lines joined with their live products, in product id order."""
    return (
        session.query(CartItem, Product)
        .join(Product, Product.id == CartItem.product_id)
        .filter(CartItem.user_id == user_id)
        .order_by(CartItem.product_id)
        .all()
    )


def clear_lines(session: Session, user_id: str, line_ids: Sequence[str]) -> int:
    if not line_ids:
        return 0
    result = session.execute(
        delete(CartItem)
        .where(CartItem.user_id == user_id, CartItem.id.in_(list(line_ids)))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


class CartService:
    """Cart operations backed by DB."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def get_cart(self, *, user_id: str) -> Dict:
        with self._session_factory() as session:
            rows = (
                session.query(CartItem, Product)
                .join(Product, Product.id == CartItem.product_id)
                .filter(CartItem.user_id == user_id)
                .order_by(CartItem.created_at.desc())
                .all()
            )
            items = [to_cart_line_dto(line, prod) for line, prod in rows]
            subtotal = sum((Decimal(prod.price) * line.quantity for line, prod in rows), Decimal("0"))
            return {
                "items": items,
                "subtotal": float(subtotal),
                "item_count": sum(line.quantity for line, _ in rows),
            }

    def add_item(self, *, user_id: str, product_id: str, quantity: Any = 1) -> Dict:
        """Add to cart, merging into an existing line for the same product.

        Stock is not checked here; placement and quantity updates check it.
        """
        qnty = ensure_positive_int(quantity)
        with self._session_factory() as session:
            prod = session.get(Product, product_id) if product_id else None
            if not prod:
                raise NotFoundError("product not found", product_id=product_id)

            now = utcnow()
            stmt = insert_or_increment(
                session.get_bind().dialect.name,
                CartItem.__table__,
                {
                    "id": str(uuid4()),
                    "user_id": user_id,
                    "product_id": product_id,
                    "quantity": qnty,
                    "created_at": now,
                    "updated_at": now,
                },
                keys=("user_id", "product_id"),
                column="quantity",
            )
            session.execute(stmt)
            line = (
                session.query(CartItem)
                .filter(CartItem.user_id == user_id, CartItem.product_id == product_id)
                .populate_existing()
                .one()
            )
            log_event("info", "cart.item_added", user_id=user_id, product_id=product_id, quantity=qnty, line_quantity=line.quantity)
            return to_cart_line_dto(line, prod)

    def update_quantity(self, *, user_id: str, line_id: str, quantity: Any) -> Dict:
        qnty = ensure_positive_int(quantity)
        with self._session_factory() as session:
            it = (
                session.query(CartItem)
                .filter(CartItem.id == line_id, CartItem.user_id == user_id)
                .first()
            )
            if not it:
                raise NotFoundError("cart item not found", line_id=line_id)
            prod = session.get(Product, it.product_id)
            if qnty > int(prod.stock):
                raise InsufficientStockError(
                    f"insufficient stock for {prod.name}",
                    line_id=line_id,
                    product_id=prod.id,
                    product_name=prod.name,
                    requested=qnty,
                    available=prod.stock,
                )
            it.quantity = qnty
            session.flush()
            return to_cart_line_dto(it, prod)

    def remove_item(self, *, user_id: str, line_id: str) -> None:
        with self._session_factory() as session:
            clear_lines(session, user_id, [line_id])
        return None
