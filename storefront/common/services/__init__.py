"""Storefront 服務層入口。"""

from .address_service import AddressService
from .cart_service import CartService
from .catalog_service import CatalogService
from .order_service import OrderService
from .settings_service import SettingsService, SiteSettings

__all__ = [
    "AddressService",
    "CartService",
    "CatalogService",
    "OrderService",
    "SettingsService",
    "SiteSettings",
]
