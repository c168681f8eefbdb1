import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from ..db.session import get_session
from ..errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from ..models.category import Category
from ..models.product import Product, ProductStatus
from ..utils.dto import to_category_dto, to_product_dto
from ..utils.pagination import normalize_paging
from ..utils.validators import ensure_choice, ensure_non_negative_int, ensure_positive_int
from .logging import log_event


# Numeric(12, 2) holds at most ten integer digits.
MAX_PRICE = Decimal("9999999999.99")


def decrement_stock(session: Session, product_id: str, quantity: int) -> bool:
    """Conditionally take ``quantity`` units; False when stock would go negative.

    Runs inside the caller's transaction so a failed decrement can roll back
    everything else the caller already wrote.
    """
    result = session.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _parse_price(value: Any) -> Decimal:
    try:
        price = Decimal(str(value))
    except (InvalidOperation, TypeError):
        raise ValidationError("price must be a number", field="price")
    if not price.is_finite() or price < 0 or price > MAX_PRICE:
        raise ValidationError(f"price must be between 0 and {MAX_PRICE}", field="price")
    return price.quantize(Decimal("0.01"))


def _parse_flag(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "1"):
        return True
    if text in ("false", "0"):
        return False
    raise ValidationError(f"{field} must be true or false", field=field)


def _slugify(name: str) -> str:
    return re.sub(r"[^\w]+", "-", name.strip().lower()).strip("-")


def _category_ref(session: Session, value: Optional[str]) -> Optional[str]:
    """Resolve a category id or slug to its id; None clears the category."""
    if value is None or not str(value).strip():
        return None
    value = str(value).strip()
    category = session.query(Category).filter(or_(Category.id == value, Category.slug == value)).first()
    if not category:
        raise NotFoundError("category not found", category=value)
    return category.id


class CatalogService:
    """Catalog reads for the storefront and the admin-side product edits.

    Stock is only ever changed with conditional UPDATE statements, so admin
    edits and order placement cannot overwrite each other's writes.
    """

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def list_products(
        self,
        *,
        status: Optional[str] = ProductStatus.ACTIVE.value,
        category: Optional[str] = None,
        featured: Any = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict:
        """Return dict: { items: [ProductDTO], page, page_size, total }

        ``category`` matches a category id, slug or name; ``featured`` keeps
        only featured products when true.
        """
        p, ps = normalize_paging(page, page_size)
        with self._session_factory() as session:
            q = session.query(Product)
            if status:
                q = q.filter(Product.status == ensure_choice(status, ProductStatus, "status").value)
            if category:
                q = (
                    q.join(Category, Category.id == Product.category_id)
                    .filter(or_(Category.id == category, Category.slug == category, Category.name == category))
                )
            if featured is not None and featured != "" and _parse_flag(featured, "featured"):
                q = q.filter(Product.featured.is_(True))
            total = q.count()
            rows = (
                q.order_by(Product.created_at.desc(), Product.name)
                .offset((p - 1) * ps)
                .limit(ps)
                .all()
            )
            return {"items": [to_product_dto(r) for r in rows], "page": p, "page_size": ps, "total": total}

    def get_product(self, product_id: str) -> Dict:
        with self._session_factory() as session:
            r = session.get(Product, product_id) if product_id else None
            if not r:
                raise NotFoundError("product not found", product_id=product_id)
            return to_product_dto(r)

    def create_product(
        self,
        *,
        name: str,
        price: Any,
        stock: Any = 0,
        description: Optional[str] = None,
        status: str = ProductStatus.ACTIVE.value,
        category: Optional[str] = None,
        featured: Any = False,
    ) -> Dict:
        if not (name or "").strip():
            raise ValidationError("name required", field="name")
        product = Product(
            id=str(uuid4()),
            name=name.strip(),
            description=description or None,
            price=_parse_price(price),
            stock=ensure_non_negative_int(stock, "stock"),
            status=ensure_choice(status or ProductStatus.ACTIVE.value, ProductStatus, "status").value,
            featured=_parse_flag(featured or False, "featured"),
        )
        with self._session_factory() as session:
            product.category_id = _category_ref(session, category)
            session.add(product)
            session.flush()
            return to_product_dto(product)

    def update_product(self, product_id: str, *, expected_stock: Any = None, **fields: Any) -> Dict:
        """Partial update; ``stock`` is an absolute set.

        With ``expected_stock`` the set only applies if nobody changed the stock
        since the admin read it, otherwise ConflictError.
        """
        with self._session_factory() as session:
            product = session.get(Product, product_id)
            if not product:
                raise NotFoundError("product not found", product_id=product_id)
            if "name" in fields:
                if not (fields["name"] or "").strip():
                    raise ValidationError("name required", field="name")
                product.name = fields["name"].strip()
            if "description" in fields:
                product.description = fields["description"] or None
            if "price" in fields:
                product.price = _parse_price(fields["price"])
            if "status" in fields:
                product.status = ensure_choice(fields["status"], ProductStatus, "status").value
            if "category" in fields:
                product.category_id = _category_ref(session, fields["category"])
            if "featured" in fields:
                product.featured = _parse_flag(fields["featured"], "featured")
            session.flush()

            if "stock" in fields:
                new_stock = ensure_non_negative_int(fields["stock"], "stock")
                stmt = update(Product).where(Product.id == product_id)
                if expected_stock is not None:
                    stmt = stmt.where(Product.stock == ensure_non_negative_int(expected_stock, "expected_stock"))
                result = session.execute(
                    stmt.values(stock=new_stock).execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise ConflictError(
                        "stock changed since it was read",
                        product_id=product_id,
                        expected_stock=expected_stock,
                    )
                log_event("info", "product.stock_set", product_id=product_id, stock=new_stock)
                session.refresh(product)
            return to_product_dto(product)

    def delete_product(self, product_id: str) -> None:
        # order items keep their name/price snapshot; the FK is set to NULL
        with self._session_factory() as session:
            product = session.get(Product, product_id)
            if not product:
                raise NotFoundError("product not found", product_id=product_id)
            session.delete(product)
            session.flush()
        return None

    def decrement_stock(self, product_id: str, quantity: Any) -> Dict:
        qnty = ensure_positive_int(quantity)
        with self._session_factory() as session:
            product = session.get(Product, product_id)
            if not product:
                raise NotFoundError("product not found", product_id=product_id)
            if not decrement_stock(session, product_id, qnty):
                session.refresh(product)
                raise InsufficientStockError(
                    f"insufficient stock for {product.name}",
                    product_id=product_id,
                    product_name=product.name,
                    requested=qnty,
                    available=product.stock,
                )
            session.refresh(product)
            return to_product_dto(product)

    # -- categories ------------------------------------------------------

    def list_categories(self) -> List[Dict]:
        with self._session_factory() as session:
            rows = (
                session.query(Category)
                .filter(Category.is_active.is_(True))
                .order_by(Category.sort_order, Category.name)
                .all()
            )
            return [to_category_dto(r) for r in rows]

    def create_category(self, *, name: str, slug: Optional[str] = None, sort_order: Any = 0) -> Dict:
        name = (name or "").strip()
        if not name:
            raise ValidationError("name required", field="name")
        slug = _slugify(slug or name)
        if not slug:
            raise ValidationError("slug required", field="slug")
        with self._session_factory() as session:
            taken = session.query(Category).filter(or_(Category.name == name, Category.slug == slug)).first()
            if taken:
                raise ConflictError("category already exists", name=name, slug=slug)
            category = Category(
                id=str(uuid4()),
                name=name,
                slug=slug,
                sort_order=ensure_non_negative_int(sort_order, "sort_order"),
            )
            session.add(category)
            session.flush()
            return to_category_dto(category)
