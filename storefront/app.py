"""Storefront Flask 應用：商品、購物車、結帳與訂單後台 API。"""

from __future__ import annotations

import logging
import os
from typing import Optional

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .common.config import AppConfig, load_env
from .common.db.session import init_db, init_engine, make_session_factory
from .common.errors import StoreError
from .common.services import AddressService, CartService, CatalogService, OrderService, SettingsService
from .common.services.logging import configure_logging
from .routes import admin, api


logger = logging.getLogger(__name__)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(StoreError)
    def handle_store_error(exc: StoreError):
        return jsonify(exc.to_dict()), exc.http_status

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        code = (exc.name or "error").upper().replace(" ", "_")
        return jsonify({"success": False, "error": exc.description, "code": code}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        logger.exception("unhandled error")
        return jsonify({"success": False, "error": "internal server error", "code": "INTERNAL_ERROR"}), 500


def create_app(config: Optional[AppConfig] = None) -> Flask:
    config = config or load_env()
    configure_logging(config.log_level)

    engine = init_engine(config.database_url)
    init_db(engine)
    session_factory = make_session_factory(engine)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.secret_key
    app.config["STOREFRONT_CONFIG"] = config

    components = {
        "catalog_service": CatalogService(session_factory),
        "cart_service": CartService(session_factory),
        "address_service": AddressService(session_factory),
        "order_service": OrderService(session_factory, order_number_prefix=config.order_number_prefix),
        "settings_service": SettingsService(session_factory),
    }
    app.extensions["storefront_components"] = components
    app.extensions["storefront_engine"] = engine

    app.register_blueprint(api.api_bp)
    app.register_blueprint(admin.admin_bp)
    _register_error_handlers(app)

    logger.info("storefront app created (db=%s)", engine.url.render_as_string(hide_password=True))
    return app


def main() -> None:
    app = create_app()
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")), debug=False)


if __name__ == "__main__":
    main()
