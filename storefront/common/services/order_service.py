import secrets
import string
import time
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.session import get_session
from ..errors import (
    ConflictError,
    EmptyCartError,
    InsufficientStockError,
    InvalidAddressError,
    InvalidTransitionError,
    NotFoundError,
    OrderNumberConflictError,
    ValidationError,
)
from ..models.address import Address
from ..models.order import Order, OrderItem, OrderStatus, PaymentStatus, can_transition
from ..models.product import Product
from ..utils.dto import to_order_dto
from ..utils.pagination import normalize_paging
from ..utils.validators import ensure_choice
from .cart_service import clear_lines, list_lines
from .catalog_service import decrement_stock
from .logging import log_event


CENT = Decimal("0.01")
ORDER_NUMBER_ATTEMPTS = 2
TOP_PRODUCTS_LIMIT = 5
_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number(prefix: str = "ORD") -> str:
    """Millisecond timestamp plus 9 random characters, e.g. ORD1718000000000K3J9Q2ZXA."""
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(9))
    return f"{prefix}{int(time.time() * 1000)}{suffix}"


def _is_order_number_collision(exc: IntegrityError) -> bool:
    return "order_number" in str(getattr(exc, "orig", exc))


def _owned_address(session: Session, user_id: str, address_id: str, *, lock: bool = False) -> Optional[Address]:
    q = session.query(Address).filter(Address.id == address_id, Address.user_id == user_id)
    if lock:
        # held until commit so the address cannot be deleted under the order
        q = q.with_for_update()
    return q.first()


def _insufficient(line, product, available: Optional[int] = None) -> InsufficientStockError:
    return InsufficientStockError(
        f"insufficient stock for {product.name}",
        line_id=line.id,
        product_id=product.id,
        product_name=product.name,
        requested=line.quantity,
        available=product.stock if available is None else available,
    )


class OrderService:
    """Order placement from the cart, plus customer and admin order queries."""

    def __init__(self, session_factory=get_session, *, order_number_prefix: str = "ORD", number_generator=None):
        self._session_factory = session_factory
        self._prefix = order_number_prefix
        self._generate_number = number_generator or generate_order_number

    # -- placement -------------------------------------------------------

    def place_order(self, *, user_id: str, address_id: Optional[str], payment_method: Optional[str] = None) -> Dict:
        """Turn the user's cart into an order.

        All preconditions are checked before the writing transaction opens.
        Inside it the order, its items, the stock decrements and the cart
        deletion commit together or not at all. Only an order number collision
        is retried.
        """
        if not address_id:
            raise ValidationError("addressId required", field="addressId")
        if payment_method is not None and len(str(payment_method)) > 64:
            raise ValidationError("paymentMethod too long", field="paymentMethod")
        if payment_method is not None:
            payment_method = str(payment_method).strip() or None

        try:
            self._check_preconditions(user_id, address_id)
        except (InvalidAddressError, EmptyCartError, InsufficientStockError) as exc:
            log_event("info", "order.rejected", user_id=user_id, code=exc.code, **exc.details)
            raise

        for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
            order_number = self._generate_number(self._prefix)
            try:
                return self._commit_order(user_id, address_id, payment_method, order_number)
            except IntegrityError as exc:
                if not _is_order_number_collision(exc):
                    raise
                log_event("warning", "order.number_collision", order_number=order_number, attempt=attempt)
            except (InvalidAddressError, EmptyCartError, InsufficientStockError) as exc:
                log_event("info", "order.rejected", user_id=user_id, code=exc.code, **exc.details)
                raise
        raise OrderNumberConflictError()

    def _check_preconditions(self, user_id: str, address_id: str) -> None:
        with self._session_factory() as session:
            if not _owned_address(session, user_id, address_id):
                raise InvalidAddressError(address_id=address_id)
            lines = list_lines(session, user_id)
            if not lines:
                raise EmptyCartError()
            for line, product in lines:
                if int(product.stock) < line.quantity:
                    raise _insufficient(line, product)

    def _commit_order(self, user_id: str, address_id: str, payment_method: Optional[str], order_number: str) -> Dict:
        with self._session_factory() as session:
            address = _owned_address(session, user_id, address_id, lock=True)
            if not address:
                raise InvalidAddressError(address_id=address_id)

            # product id order keeps row locks acquired in the same sequence across requests
            lines = list_lines(session, user_id)
            if not lines:
                raise EmptyCartError()

            total = Decimal("0")
            order_id = str(uuid4())
            order = Order(
                id=order_id,
                order_number=order_number,
                user_id=user_id,
                address_id=address_id,
                status=OrderStatus.PENDING.value,
                payment_status=PaymentStatus.UNPAID.value,
                payment_method=payment_method,
            )
            for line, product in lines:
                unit_price = Decimal(product.price).quantize(CENT)
                total += unit_price * line.quantity
                order.items.append(
                    OrderItem(
                        product_id=product.id,
                        product_name=product.name,
                        quantity=line.quantity,
                        price=unit_price,
                    )
                )
            order.total_amount = total.quantize(CENT)
            session.add(order)
            session.flush()

            for line, product in lines:
                if not decrement_stock(session, product.id, line.quantity):
                    current = session.query(Product.stock).filter(Product.id == product.id).scalar()
                    raise _insufficient(line, product, available=current)

            clear_lines(session, user_id, [line.id for line, _ in lines])

            products = {}
            for _, product in lines:
                session.refresh(product)
                products[product.id] = product
            dto = to_order_dto(order, address=address, products=products)

        log_event(
            "info",
            "order.created",
            order_id=order_id,
            order_number=order_number,
            user_id=user_id,
            items=len(dto["items"]),
            total_amount=dto["total_amount"],
        )
        return dto

    # -- queries ---------------------------------------------------------

    def _render(self, session: Session, orders: Iterable[Order]) -> List[Dict]:
        orders = list(orders)
        address_ids = {o.address_id for o in orders}
        product_ids = {it.product_id for o in orders for it in o.items if it.product_id}
        addresses = {a.id: a for a in session.query(Address).filter(Address.id.in_(address_ids))} if address_ids else {}
        products = {p.id: p for p in session.query(Product).filter(Product.id.in_(product_ids))} if product_ids else {}
        return [to_order_dto(o, address=addresses.get(o.address_id), products=products) for o in orders]

    def list_orders(self, *, user_id: str) -> List[Dict]:
        with self._session_factory() as session:
            orders = (
                session.query(Order)
                .filter(Order.user_id == user_id)
                .order_by(Order.created_at.desc(), Order.order_number.desc())
                .all()
            )
            return self._render(session, orders)

    def get_order(self, *, user_id: str, order_id: str) -> Dict:
        """Orders of other users are reported as missing."""
        with self._session_factory() as session:
            o = session.query(Order).filter(Order.id == order_id, Order.user_id == user_id).first()
            if not o:
                raise NotFoundError("order not found", order_id=order_id)
            return self._render(session, [o])[0]

    def admin_list_orders(
        self,
        *,
        status: Optional[str] = None,
        order_number: Optional[str] = None,
        page: Any = 1,
        page_size: Any = 20,
    ) -> Dict:
        p, ps = normalize_paging(page, page_size)
        with self._session_factory() as session:
            q = session.query(Order)
            if status:
                q = q.filter(Order.status == ensure_choice(status, OrderStatus, "status").value)
            if order_number:
                q = q.filter(Order.order_number.ilike(f"%{order_number.strip()}%"))
            total = q.count()
            rows = (
                q.order_by(Order.created_at.desc(), Order.order_number.desc())
                .offset((p - 1) * ps)
                .limit(ps)
                .all()
            )
            return {"items": self._render(session, rows), "page": p, "page_size": ps, "total": total}

    def admin_get_order(self, order_id: str) -> Dict:
        with self._session_factory() as session:
            o = session.get(Order, order_id)
            if not o:
                raise NotFoundError("order not found", order_id=order_id)
            return self._render(session, [o])[0]

    def admin_stats(self, *, currency: Optional[str] = None) -> Dict:
        """Order count, sales over paid orders and the best sellers by quantity."""
        with self._session_factory() as session:
            order_count = session.query(func.count(Order.id)).scalar() or 0
            total_sales = (
                session.query(func.coalesce(func.sum(Order.total_amount), 0))
                .filter(Order.payment_status == PaymentStatus.PAID.value)
                .scalar()
            )
            sold = func.sum(OrderItem.quantity).label("sold")
            top = (
                session.query(OrderItem.product_id, func.max(OrderItem.product_name), sold)
                .filter(OrderItem.product_id.isnot(None))
                .group_by(OrderItem.product_id)
                .order_by(sold.desc(), OrderItem.product_id)
                .limit(TOP_PRODUCTS_LIMIT)
                .all()
            )
            names = dict(
                session.query(Product.id, Product.name).filter(Product.id.in_([row[0] for row in top]))
            ) if top else {}
            return {
                "order_count": int(order_count),
                "total_sales": float(Decimal(total_sales or 0).quantize(CENT)),
                "currency": currency,
                "top_products": [
                    {"product_id": pid, "product_name": names.get(pid, snapshot), "total_quantity": int(qty or 0)}
                    for pid, snapshot, qty in top
                ],
            }

    # -- admin updates ---------------------------------------------------

    def admin_update_order(self, order_id: str, **fields: Any) -> Dict:
        """Write only the provided fields among status, shipping_info, payment_status."""
        unknown = set(fields) - {"status", "shipping_info", "payment_status"}
        if unknown:
            raise ValidationError("unsupported fields: " + ", ".join(sorted(unknown)), fields=sorted(unknown))
        with self._session_factory() as session:
            o = session.get(Order, order_id)
            if not o:
                raise NotFoundError("order not found", order_id=order_id)

            if fields.get("status") is not None:
                current = OrderStatus(o.status)
                target = ensure_choice(fields["status"], OrderStatus, "status")
                if not can_transition(current, target):
                    raise InvalidTransitionError(
                        f"cannot move order from {current.value} to {target.value}",
                        order_id=order_id,
                        current=current.value,
                        target=target.value,
                    )
                if target != current:
                    result = session.execute(
                        update(Order)
                        .where(Order.id == order_id, Order.status == current.value)
                        .values(status=target.value)
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount != 1:
                        raise ConflictError("order status changed concurrently", order_id=order_id)
                    log_event("info", "order.status_changed", order_id=order_id, old=current.value, new=target.value)

            if fields.get("payment_status") is not None:
                o.payment_status = ensure_choice(fields["payment_status"], PaymentStatus, "payment_status").value
            if "shipping_info" in fields:
                o.shipping_info = fields["shipping_info"] or None
            session.flush()
            session.refresh(o)
            return self._render(session, [o])[0]
