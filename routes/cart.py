"""Cart and wishlist routes."""

from __future__ import annotations

from flask import Blueprint, jsonify

from .context import components, current_user, payload, require_user


cart_bp = Blueprint("store_cart", __name__, url_prefix="/api")


@cart_bp.get("/cart")
def get_cart():
    user = current_user()
    if user is None:
        # guests keep their cart in the browser
        return jsonify({"items": [], "total": 0, "itemCount": 0})
    return jsonify(components()["cart"].get_cart(user_id=user["id"]))


@cart_bp.post("/cart")
def add_to_cart():
    body = payload()
    user = current_user()
    if user is None:
        return jsonify({"success": True, "guest": True, "item": body})
    item = components()["cart"].add_item(
        user_id=user["id"],
        product_id=body.get("productId"),
        quantity=body.get("quantity", 1),
        size_id=body.get("sizeId"),
    )
    return jsonify(item), 201


@cart_bp.put("/cart/<item_id>")
def update_cart_item(item_id: str):
    user = require_user()
    item = components()["cart"].update_item(
        user_id=user["id"], item_id=item_id, quantity=payload().get("quantity")
    )
    return jsonify(item)


@cart_bp.delete("/cart/<item_id>")
def remove_cart_item(item_id: str):
    user = require_user()
    return jsonify(components()["cart"].remove_item(user_id=user["id"], item_id=item_id))


@cart_bp.delete("/cart")
def clear_cart():
    user = require_user()
    return jsonify(components()["cart"].clear(user_id=user["id"]))


@cart_bp.get("/wishlist")
def list_wishlist():
    user = require_user()
    return jsonify({"items": components()["wishlist"].list_items(user_id=user["id"])})


@cart_bp.post("/wishlist")
def add_to_wishlist():
    user = require_user()
    item = components()["wishlist"].add(user_id=user["id"], product_id=payload().get("productId"))
    return jsonify(item), 201


@cart_bp.delete("/wishlist/<product_id>")
def remove_from_wishlist(product_id: str):
    user = require_user()
    return jsonify(components()["wishlist"].remove(user_id=user["id"], product_id=product_id))
