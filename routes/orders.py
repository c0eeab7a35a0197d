"""Customer order routes."""

from __future__ import annotations

from flask import Blueprint, jsonify

from .context import components, current_user, payload, require_admin, require_user


orders_bp = Blueprint("store_orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
def list_my_orders():
    user = require_user()
    return jsonify({"orders": components()["orders"].list_user_orders(user_id=user["id"])})


@orders_bp.post("")
def create_order():
    user = require_user()
    body = payload()
    order = components()["orders"].create_order(
        user_id=user["id"],
        items=body.get("items") or [],
        address=body.get("address"),
        shipping_method=body.get("shippingMethod"),
        payment_method=body.get("paymentMethod"),
        notes=body.get("notes"),
    )
    return jsonify(order), 201


@orders_bp.post("/simple")
def create_simple_order():
    user = current_user()
    body = payload()
    order = components()["orders"].create_simple_order(
        user_id=user["id"] if user else None,
        items=body.get("items") or [],
        address=body.get("address"),
        shipping_method=body.get("shippingMethod"),
        payment_method=body.get("paymentMethod"),
        comment=body.get("comment"),
        client_total=body.get("totalAmount"),
    )
    return jsonify({"success": True, "order": order}), 201


@orders_bp.post("/quick")
def create_quick_order():
    user = current_user()
    body = payload()
    order = components()["orders"].create_quick_order(
        user_id=user["id"] if user else None,
        customer_name=body.get("customerName"),
        customer_phone=body.get("customerPhone"),
        customer_address=body.get("customerAddress"),
        comment=body.get("comment"),
    )
    return jsonify({"success": True, "order": order, "message": "Заказ успешно создан"}), 201


@orders_bp.get("/<order_id>")
def get_order(order_id: str):
    user = require_user()
    return jsonify(components()["orders"].get_user_order(user_id=user["id"], order_id=order_id))


@orders_bp.patch("/<order_id>/status")
def update_order_status(order_id: str):
    require_admin()
    body = payload()
    order = components()["orders"].update_status(
        order_id=order_id, status=body.get("status"), message=body.get("message")
    )
    return jsonify(order)
