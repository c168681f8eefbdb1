from .base import Base
from .address import Address
from .cart_item import CartItem
from .category import Category
from .order import ORDER_TRANSITIONS, Order, OrderItem, OrderStatus, PaymentStatus, can_transition
from .product import Product, ProductStatus
from .setting import Setting

__all__ = [
    "Base",
    "Address",
    "CartItem",
    "Category",
    "ORDER_TRANSITIONS",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "can_transition",
    "Product",
    "ProductStatus",
    "Setting",
]
