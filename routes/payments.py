"""Payment gateway routes: T-Bank and YooKassa."""

from __future__ import annotations

from flask import Blueprint, jsonify

from .context import components, current_user, payload


payments_bp = Blueprint("store_payments", __name__, url_prefix="/api")


@payments_bp.post("/tbank/create-payment")
def create_tbank_payment():
    user = current_user()
    body = payload()
    result = components()["payments"].create_payment(
        order_id=body.get("orderId"),
        user_id=user["id"] if user else None,
        amount=body.get("amount"),
        email=body.get("email"),
        phone=body.get("phone"),
    )
    return jsonify(result)


@payments_bp.post("/tbank/notification")
def tbank_notification():
    status = components()["payments"].handle_notification(payload())
    if status == 200:
        return "OK", 200, {"Content-Type": "text/plain; charset=utf-8"}
    return "ERROR", status, {"Content-Type": "text/plain; charset=utf-8"}


@payments_bp.post("/yookassa/create-payment")
def create_yookassa_payment():
    user = current_user()
    result = components()["payments"].create_yookassa_payment(
        order_id=payload().get("orderId"),
        user_id=user["id"] if user else None,
    )
    return jsonify(result)
