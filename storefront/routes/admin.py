"""管理後台 API 路由：訂單、統計、商品分類與站台設定。"""

from __future__ import annotations

from flask import Blueprint, current_app, request

from ..common.errors import ValidationError
from .auth import require_role
from .responses import components, json_body, ok


admin_bp = Blueprint("storefront_admin", __name__, url_prefix="/api/admin")

ORDER_FIELDS = {
    "status": "status",
    "shippingInfo": "shipping_info",
    "paymentStatus": "payment_status",
}

PRODUCT_FIELDS = {
    "name": "name",
    "description": "description",
    "price": "price",
    "stock": "stock",
    "status": "status",
    "category": "category",
    "featured": "featured",
}


@admin_bp.before_request
def guard_admin_routes():
    require_role("admin")
    return None


# -- orders --------------------------------------------------------------

@admin_bp.get("/orders")
def list_orders():
    result = components()["order_service"].admin_list_orders(
        status=request.args.get("status") or None,
        order_number=request.args.get("orderNumber") or None,
        page=request.args.get("page", 1),
        page_size=request.args.get("pageSize", 20),
    )
    return ok(result)


@admin_bp.get("/orders/<order_id>")
def get_order(order_id: str):
    return ok(components()["order_service"].admin_get_order(order_id))


@admin_bp.get("/stats")
def stats():
    currency = current_app.config["STOREFRONT_CONFIG"].currency
    return ok(components()["order_service"].admin_stats(currency=currency))


@admin_bp.patch("/orders/<order_id>")
def update_order(order_id: str):
    payload = json_body()
    fields = {field: payload[key] for key, field in ORDER_FIELDS.items() if key in payload}
    order = components()["order_service"].admin_update_order(order_id, **fields)
    return ok(order)


# -- products ------------------------------------------------------------

@admin_bp.get("/products")
def list_products():
    result = components()["catalog_service"].list_products(
        status=request.args.get("status") or None,
        category=request.args.get("category") or None,
        featured=request.args.get("featured") or None,
        page=request.args.get("page", 1),
        page_size=request.args.get("pageSize", 20),
    )
    return ok(result)


@admin_bp.post("/products")
def create_product():
    payload = json_body()
    if payload.get("price") is None:
        raise ValidationError("price required", field="price")
    product = components()["catalog_service"].create_product(
        name=str(payload.get("name") or ""),
        price=payload["price"],
        stock=payload.get("stock", 0),
        description=payload.get("description"),
        status=payload.get("status") or "active",
        category=payload.get("category"),
        featured=payload.get("featured", False),
    )
    return ok(product)


@admin_bp.patch("/products/<product_id>")
def update_product(product_id: str):
    payload = json_body()
    fields = {field: payload[key] for key, field in PRODUCT_FIELDS.items() if key in payload}
    product = components()["catalog_service"].update_product(
        product_id,
        expected_stock=payload.get("expectedStock"),
        **fields,
    )
    return ok(product)


@admin_bp.delete("/products/<product_id>")
def delete_product(product_id: str):
    components()["catalog_service"].delete_product(product_id)
    return ok(None, "deleted")


# -- categories ----------------------------------------------------------

@admin_bp.post("/categories")
def create_category():
    payload = json_body()
    category = components()["catalog_service"].create_category(
        name=str(payload.get("name") or ""),
        slug=payload.get("slug"),
        sort_order=payload.get("sortOrder", 0),
    )
    return ok(category)


# -- settings ------------------------------------------------------------

@admin_bp.get("/settings")
def get_settings():
    return ok(components()["settings_service"].snapshot().to_dict())


@admin_bp.put("/settings")
def put_setting():
    payload = json_body()
    setting = components()["settings_service"].put(payload.get("key"), payload.get("value"))
    return ok(setting, "saved")
