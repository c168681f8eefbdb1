"""顧客端 API 路由：商品、購物車、收貨地址與訂單。"""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, g, request

from ..common.errors import ValidationError
from .auth import current_principal, user_required
from .responses import components, json_body, ok


api_bp = Blueprint("storefront_api", __name__, url_prefix="/api")

# request body keys -> service field names
ADDRESS_FIELDS = {
    "name": "name",
    "phone": "phone",
    "province": "province",
    "city": "city",
    "district": "district",
    "detail": "detail",
    "postalCode": "postal_code",
    "isDefault": "is_default",
}


def _user_id() -> str:
    return current_principal().id


def site_settings():
    """Settings snapshot shared by everything that handles this request."""
    if "site_settings" not in g:
        g.site_settings = components()["settings_service"].snapshot()
    return g.site_settings


# -- catalog -------------------------------------------------------------

@api_bp.get("/products")
def list_products():
    result = components()["catalog_service"].list_products(
        category=request.args.get("category") or None,
        featured=request.args.get("featured") or None,
        page=request.args.get("page", 1),
        page_size=request.args.get("pageSize", 20),
    )
    return ok(result)


@api_bp.get("/products/<product_id>")
def get_product(product_id: str):
    return ok(components()["catalog_service"].get_product(product_id))


@api_bp.get("/categories")
def list_categories():
    return ok(components()["catalog_service"].list_categories())


@api_bp.get("/settings")
def public_settings():
    data = site_settings().public()
    data["currency"] = current_app.config["STOREFRONT_CONFIG"].currency
    return ok(data)


# -- cart ----------------------------------------------------------------

@api_bp.get("/cart")
@user_required
def get_cart():
    return ok(components()["cart_service"].get_cart(user_id=_user_id()))


@api_bp.post("/cart")
@user_required
def add_to_cart():
    payload = json_body()
    product_id = str(payload.get("productId") or "").strip()
    if not product_id:
        raise ValidationError("productId required", field="productId")
    line = components()["cart_service"].add_item(
        user_id=_user_id(),
        product_id=product_id,
        quantity=payload.get("quantity", 1),
    )
    return ok(line)


@api_bp.patch("/cart/<line_id>")
@user_required
def update_cart_line(line_id: str):
    payload = json_body()
    line = components()["cart_service"].update_quantity(
        user_id=_user_id(),
        line_id=line_id,
        quantity=payload.get("quantity"),
    )
    return ok(line)


@api_bp.delete("/cart/<line_id>")
@user_required
def remove_cart_line(line_id: str):
    components()["cart_service"].remove_item(user_id=_user_id(), line_id=line_id)
    return ok(None, "removed")


# -- addresses -----------------------------------------------------------

def _address_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {field: payload[key] for key, field in ADDRESS_FIELDS.items() if key in payload}


@api_bp.get("/addresses")
@user_required
def list_addresses():
    return ok(components()["address_service"].list_addresses(user_id=_user_id()))


@api_bp.post("/addresses")
@user_required
def create_address():
    address = components()["address_service"].create_address(
        user_id=_user_id(),
        data=_address_payload(json_body()),
    )
    return ok(address)


@api_bp.patch("/addresses/<address_id>")
@user_required
def update_address(address_id: str):
    address = components()["address_service"].update_address(
        user_id=_user_id(),
        address_id=address_id,
        data=_address_payload(json_body()),
    )
    return ok(address)


@api_bp.delete("/addresses/<address_id>")
@user_required
def delete_address(address_id: str):
    components()["address_service"].delete_address(user_id=_user_id(), address_id=address_id)
    return ok(None, "deleted")


# -- orders --------------------------------------------------------------

@api_bp.post("/orders")
@user_required
def place_order():
    payload = json_body()
    order = components()["order_service"].place_order(
        user_id=_user_id(),
        address_id=payload.get("addressId"),
        payment_method=payload.get("paymentMethod"),
    )
    return ok(order)


@api_bp.get("/orders")
@user_required
def list_orders():
    return ok(components()["order_service"].list_orders(user_id=_user_id()))


@api_bp.get("/orders/<order_id>")
@user_required
def get_order(order_id: str):
    return ok(components()["order_service"].get_order(user_id=_user_id(), order_id=order_id))
