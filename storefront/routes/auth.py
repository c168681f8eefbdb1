"""Auth gate: turns the request token into a principal for the route handlers."""

from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import current_app, g, request

from ..common.errors import ForbiddenError, UnauthenticatedError
from ..common.services.auth import Principal, decode_token


def _token_from_request() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return request.cookies.get("token")


def current_principal() -> Optional[Principal]:
    if "principal" not in g:
        secret = current_app.config["STOREFRONT_CONFIG"].jwt_secret
        g.principal = decode_token(_token_from_request(), secret)
    return g.principal


def require_role(role: str) -> Principal:
    principal = current_principal()
    if principal is None:
        raise UnauthenticatedError()
    if principal.role != role:
        raise ForbiddenError(f"{role} access required")
    return principal


def user_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        require_role("user")
        return view(*args, **kwargs)

    return wrapper
