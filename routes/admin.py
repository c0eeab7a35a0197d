"""Admin API: catalog, orders, users, chat, analytics and site configuration."""

from __future__ import annotations

import time

from flask import Blueprint, jsonify, request

from common.utils.pagination import parse_int

from .context import audit, client_ip, components, enforce_rate_limit, payload, require_admin


admin_bp = Blueprint("store_admin", __name__, url_prefix="/api/admin")


@admin_bp.before_request
def guard_private_routes():
    enforce_rate_limit("admin_limiter", f"admin:{client_ip()}")
    require_admin()


# -- products -------------------------------------------------------------

@admin_bp.get("/products")
def list_products():
    return jsonify({"products": components()["product_admin"].list_products()})


@admin_bp.post("/products")
def create_product():
    product = components()["product_admin"].create_product(payload(), audit=audit())
    return jsonify(product), 201


@admin_bp.get("/products/<product_id>")
def get_product(product_id: str):
    return jsonify(components()["product_admin"].get_product(product_id))


@admin_bp.put("/products/<product_id>")
def update_product(product_id: str):
    return jsonify(components()["product_admin"].update_product(product_id, payload(), audit=audit()))


@admin_bp.delete("/products/<product_id>")
def delete_product(product_id: str):
    result = components()["product_admin"].delete_product(product_id)
    if not result["soft_deleted"]:
        return "", 204
    return jsonify(result)


# -- colors & sizes -------------------------------------------------------

@admin_bp.get("/colors")
def list_colors():
    return jsonify(components()["attributes"].list_colors())


@admin_bp.post("/colors")
def create_color():
    body = payload()
    color = components()["attributes"].create_color(name=body.get("name"), hex_code=body.get("hexCode"))
    return jsonify(color), 201


@admin_bp.delete("/colors/<color_id>")
def delete_color(color_id: str):
    return jsonify(components()["attributes"].delete_color(color_id))


@admin_bp.get("/sizes")
def list_sizes():
    return jsonify(components()["attributes"].list_sizes())


@admin_bp.post("/sizes")
def create_size():
    body = payload()
    size = components()["attributes"].create_size(
        name=body.get("name"),
        russian_size=body.get("russianSize"),
        sort_order=body.get("sortOrder") or 0,
    )
    return jsonify(size), 201


@admin_bp.delete("/sizes/<size_id>")
def delete_size(size_id: str):
    return jsonify(components()["attributes"].delete_size(size_id))


# -- orders & users -------------------------------------------------------

@admin_bp.get("/orders")
def list_orders():
    result = components()["orders"].list_orders(
        status=request.args.get("status") or None,
        page=parse_int(request.args.get("page"), 1),
        limit=parse_int(request.args.get("limit"), 20),
    )
    return jsonify(result)


@admin_bp.patch("/orders/<order_id>")
def update_order(order_id: str):
    body = payload()
    order = components()["orders"].update_status(
        order_id=order_id, status=body.get("status"), message=body.get("message")
    )
    return jsonify(order)


@admin_bp.delete("/orders/<order_id>")
def delete_order(order_id: str):
    return jsonify(components()["orders"].delete_order(order_id=order_id))


@admin_bp.get("/users")
def list_users():
    return jsonify({"users": components()["users"].list_users()})


@admin_bp.patch("/users/<user_id>")
def change_user_role(user_id: str):
    admin = require_admin()
    user = components()["users"].change_role(actor_id=admin["id"], user_id=user_id, role=payload().get("role"))
    return jsonify(user)


# -- dashboards -----------------------------------------------------------

@admin_bp.get("/stats")
def stats():
    return jsonify(components()["analytics"].stats())


@admin_bp.get("/analytics")
def analytics():
    return jsonify(components()["analytics"].analytics(parse_int(request.args.get("range"), 7)))


@admin_bp.get("/analytics/sizes-colors")
def sizes_colors():
    return jsonify(components()["analytics"].sizes_colors(parse_int(request.args.get("range"), 30)))


# -- chat -----------------------------------------------------------------

@admin_bp.get("/chat")
def list_chat_sessions():
    result = components()["chat"].list_sessions(
        status=request.args.get("status") or None,
        page=parse_int(request.args.get("page"), 1),
        limit=parse_int(request.args.get("limit"), 20),
    )
    return jsonify(result)


@admin_bp.patch("/chat")
def update_chat_session():
    body = payload()
    result = components()["chat"].update_session(
        admin=require_admin(),
        session_id=body.get("sessionId"),
        action=body.get("action"),
        assigned_to=body.get("assignedTo"),
        status=body.get("status"),
        priority=body.get("priority"),
    )
    return jsonify(result)


# -- telegram -------------------------------------------------------------

@admin_bp.get("/telegram/status")
def telegram_status():
    return jsonify(components()["notifier"].status())


@admin_bp.post("/telegram/test-chat")
def telegram_test_chat():
    body = payload()
    sent = components()["notifier"].notify_chat_message(
        session_id=f"TEST-SESSION-{int(time.time() * 1000)}",
        sender_name=body.get("senderName") or "Тестовый пользователь",
        message=body.get("message") or "Это тестовое сообщение для проверки Telegram уведомлений!",
        is_from_user=False,
    )
    if not sent:
        return jsonify({"error": "Не удалось отправить уведомление"}), 500
    return jsonify({"success": True, "message": "Тестовое уведомление отправлено"})


@admin_bp.post("/telegram/test-order")
def telegram_test_order():
    test_order = {
        "orderNumber": f"TEST-{int(time.time() * 1000)}",
        "customerName": "Иван Тестовый",
        "customerPhone": "+7 900 123-45-67",
        "customerEmail": "test@example.com",
        "total": 4500,
        "items": [
            {"productName": "Тестовая куртка зимняя", "quantity": 1, "price": 3500},
            {"productName": "Тестовые перчатки", "quantity": 2, "price": 500},
        ],
        "address": "г. Москва, ул. Тестовая, д. 123, кв. 45",
        "paymentMethod": "Картой онлайн",
        "shippingMethod": "Курьерская доставка",
    }
    if not components()["notifier"].notify_new_order(test_order):
        return jsonify({"error": "Не удалось отправить уведомление"}), 500
    return jsonify({"success": True, "message": "Тестовое уведомление о заказе отправлено", "testData": test_order})


# -- site settings & pixels -----------------------------------------------

@admin_bp.get("/settings")
def get_settings():
    return jsonify({"settings": components()["site_settings"].list_detailed()})


@admin_bp.post("/settings")
def update_settings():
    body = payload()
    values = components()["site_settings"].update_settings(body.get("settings", body))
    return jsonify({"success": True, "settings": values})


@admin_bp.get("/pixels")
def list_pixels():
    return jsonify({"pixels": components()["pixels"].list_pixels()})


@admin_bp.post("/pixels")
def create_pixel():
    return jsonify(components()["pixels"].create_pixel(payload())), 201


@admin_bp.get("/pixels/<pixel_id>")
def get_pixel(pixel_id: str):
    return jsonify(components()["pixels"].get_pixel(pixel_id))


@admin_bp.put("/pixels/<pixel_id>")
def update_pixel(pixel_id: str):
    return jsonify(components()["pixels"].update_pixel(pixel_id, payload()))


@admin_bp.delete("/pixels/<pixel_id>")
def delete_pixel(pixel_id: str):
    return jsonify(components()["pixels"].delete_pixel(pixel_id))


# -- uploads --------------------------------------------------------------

@admin_bp.post("/upload")
def upload_image():
    result = components()["images"].save_upload(
        request.files.get("file"),
        mode="keep" if request.form.get("keepRatio") == "true" else "masonry",
        size_key=request.form.get("sizePreference") or None,
    )
    return jsonify(result)
