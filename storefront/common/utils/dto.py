from typing import Any, Dict, Iterable, Mapping, Optional


def _money(value: Any) -> float:
    return float(value or 0)


def _ts(value: Any) -> Optional[str]:
    return value.isoformat() if value is not None else None


def to_product_dto(row: Any) -> Dict:
    return {
        "id": getattr(row, "id", None),
        "name": getattr(row, "name", None),
        "description": getattr(row, "description", None),
        "price": _money(getattr(row, "price", 0)),
        "stock": getattr(row, "stock", 0) or 0,
        "status": getattr(row, "status", None),
        "category_id": getattr(row, "category_id", None),
        "featured": bool(getattr(row, "featured", False)),
        "created_at": _ts(getattr(row, "created_at", None)),
    }


def to_category_dto(row: Any) -> Dict:
    return {"id": row.id, "name": row.name, "slug": row.slug, "sort_order": row.sort_order}


def to_cart_line_dto(line: Any, product: Any) -> Dict:
    # product fields are read live, the cart never caches a price
    return {
        "id": line.id,
        "product_id": line.product_id,
        "quantity": line.quantity,
        "product": to_product_dto(product) if product is not None else None,
    }


def to_address_dto(row: Any) -> Optional[Dict]:
    if row is None:
        return None
    return {
        "id": row.id,
        "name": row.name,
        "phone": row.phone,
        "province": row.province,
        "city": row.city,
        "district": row.district,
        "detail": row.detail,
        "postal_code": row.postal_code,
        "is_default": bool(row.is_default),
        "created_at": _ts(row.created_at),
    }


def to_order_item_dto(item: Any, product: Any = None) -> Dict:
    return {
        "id": item.id,
        "product_id": item.product_id,
        "product_name": item.product_name,
        "quantity": item.quantity,
        "price": _money(item.price),
        "subtotal": _money(item.price * item.quantity),
        "product": to_product_dto(product) if product is not None else None,
    }


def to_order_dto(
    order: Any,
    *,
    address: Any = None,
    products: Optional[Mapping[str, Any]] = None,
) -> Dict:
    products = products or {}
    items: Iterable[Any] = order.items or []
    return {
        "id": order.id,
        "order_number": order.order_number,
        "user_id": order.user_id,
        "address_id": order.address_id,
        "address": to_address_dto(address),
        "total_amount": _money(order.total_amount),
        "status": order.status,
        "payment_status": order.payment_status,
        "payment_method": order.payment_method,
        "shipping_info": order.shipping_info,
        "notes": order.notes,
        "created_at": _ts(order.created_at),
        "updated_at": _ts(order.updated_at),
        "items": [to_order_item_dto(it, products.get(it.product_id)) for it in items],
    }
