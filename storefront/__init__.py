"""Storefront: catalog, cart, checkout and order back-office API."""

__version__ = "0.1.0"
