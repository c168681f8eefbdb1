"""Response envelope and request body helpers shared by the blueprints."""

from __future__ import annotations

from typing import Any, Dict

from flask import current_app, jsonify, request

from ..common.errors import ValidationError


def components() -> Dict[str, Any]:
    return current_app.extensions["storefront_components"]


def ok(data: Any = None, message: str | None = None):
    body: Dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body)


def json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")
    return payload
