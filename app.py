"""NAKEN store Flask application: storefront API, admin API and SEO surface."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from common.db.session import init_db, init_engine
from common.services.address_service import AddressService
from common.services.analytics_service import AnalyticsService
from common.services.attribute_service import AttributeService
from common.services.auth_service import AuthService
from common.services.cart_service import CartService, WishlistService
from common.services.catalog_service import CatalogService
from common.services.chat_service import ChatService
from common.services.errors import StoreError
from common.services.logging import configure_logging, log_event
from common.services.order_service import OrderService
from common.services.payment_service import PaymentService
from common.services.pixel_service import PixelService
from common.services.product_admin_service import ProductAdminService
from common.services.review_service import ReviewService
from common.services.seo_service import SeoService
from common.services.site_settings_service import SiteSettingsService
from common.services.user_service import UserService
from common.utils.security import SECURITY_HEADERS, RateLimiter, get_client_ip, log_suspicious_activity
from config import StoreConfig
from routes import account, admin, auth, cart, catalog, chat, orders, payments, seo
from services import (
    EmailSender,
    GoogleOAuthClient,
    ImageStorage,
    SmscSender,
    TBankClient,
    TelegramNotifier,
    YooKassaClient,
)


logger = logging.getLogger(__name__)


def build_components(config: StoreConfig, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Wire integration clients and domain services for one app instance.

    Entries in ``overrides`` replace the component of the same name; client
    overrides (``notifier``, ``mailer``, ``tbank`` ...) are injected into the
    services that depend on them.
    """

    overrides = dict(overrides or {})
    cfg = config.app
    clients = {
        "notifier": TelegramNotifier(cfg.telegram_bot_token, cfg.telegram_chat_id),
        "mailer": EmailSender(cfg.smtp_host, cfg.smtp_port, cfg.smtp_user, cfg.smtp_password),
        "sms": SmscSender(cfg.smsc_login, cfg.smsc_password),
        "google": GoogleOAuthClient(cfg.google_client_id, cfg.google_client_secret),
        "tbank": TBankClient(
            cfg.tbank_terminal_key,
            cfg.tbank_password,
            base_url=cfg.store_base_url,
            production=cfg.production,
        ),
        "yookassa": YooKassaClient(cfg.yookassa_shop_id, cfg.yookassa_secret_key, base_url=cfg.store_base_url),
    }
    for name in list(overrides):
        if name in clients:
            clients[name] = overrides.pop(name)

    catalog_service = CatalogService()
    components = {
        **clients,
        "catalog": catalog_service,
        "cart": CartService(),
        "wishlist": WishlistService(),
        "orders": OrderService(notifier=clients["notifier"], mailer=clients["mailer"]),
        "payments": PaymentService(tbank=clients["tbank"], yookassa=clients["yookassa"], mailer=clients["mailer"]),
        "auth": AuthService(
            secret_key=cfg.secret_key,
            sms_sender=clients["sms"],
            mailer=clients["mailer"],
            google_client=clients["google"],
        ),
        "users": UserService(),
        "addresses": AddressService(),
        "reviews": ReviewService(),
        "chat": ChatService(notifier=clients["notifier"]),
        "product_admin": ProductAdminService(on_change=catalog_service.invalidate_cache),
        "attributes": AttributeService(),
        "analytics": AnalyticsService(),
        "pixels": PixelService(),
        "site_settings": SiteSettingsService(),
        "seo": SeoService(cfg.store_base_url),
        "images": ImageStorage(config.uploads_dir),
        "global_limiter": RateLimiter(config.global_rate_limit, 60),
        "admin_limiter": RateLimiter(config.admin_rate_limit, 60),
        "otp_limiter": RateLimiter(config.otp_rate_limit, 60),
    }
    components.update(overrides)
    return components


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(StoreError)
    def handle_store_error(exc: StoreError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(ValueError)
    def handle_value_error(exc: ValueError):
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Ошибка сервера"}), 500


def create_app(config: Optional[StoreConfig] = None, overrides: Optional[Dict[str, Any]] = None) -> Flask:
    """Build the app; ``overrides`` replaces named components (used by tests)."""

    config = config or StoreConfig.load()
    configure_logging(config.app.log_level)
    init_engine(config.database_url)
    init_db()

    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.secret_key
    app.config["TESTING"] = config.testing
    app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024
    app.config["STORE_CONFIG"] = config

    components = build_components(config, overrides)
    app.extensions["store_components"] = components
    components["site_settings"].initialize_defaults()

    @app.before_request
    def limit_requests():
        ip = get_client_ip(request.headers)
        result = components["global_limiter"].hit(ip)
        if not result.success:
            log_suspicious_activity("rate_limit", ip=ip, user_agent=request.headers.get("User-Agent"),
                                    path=request.path)
            return jsonify({"error": "Слишком много запросов"}), 429
        return None

    @app.after_request
    def add_security_headers(response):
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    _register_error_handlers(app)

    app.register_blueprint(catalog.catalog_bp)
    app.register_blueprint(cart.cart_bp)
    app.register_blueprint(orders.orders_bp)
    app.register_blueprint(payments.payments_bp)
    app.register_blueprint(auth.auth_bp)
    app.register_blueprint(account.account_bp)
    app.register_blueprint(chat.chat_bp)
    app.register_blueprint(admin.admin_bp)
    app.register_blueprint(seo.seo_bp)

    log_event("info", "app.started", database=config.database_url.split(":", 1)[0],
              production=config.app.production)
    return app


def main() -> None:
    app = create_app()
    app.run(host="0.0.0.0", port=5000, debug=False)


if __name__ == "__main__":
    main()
