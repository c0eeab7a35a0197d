"""Saved delivery addresses of the signed-in user."""

from __future__ import annotations

from flask import Blueprint, jsonify

from .context import components, payload, require_user


account_bp = Blueprint("store_account", __name__, url_prefix="/api/user/addresses")


@account_bp.get("")
def list_addresses():
    user = require_user()
    return jsonify({"addresses": components()["addresses"].list_addresses(user_id=user["id"])})


@account_bp.post("")
def create_address():
    user = require_user()
    address = components()["addresses"].create(user_id=user["id"], data=payload())
    return jsonify(address), 201


@account_bp.put("/<address_id>")
def update_address(address_id: str):
    user = require_user()
    address = components()["addresses"].update(user_id=user["id"], address_id=address_id, data=payload())
    return jsonify(address)


@account_bp.delete("/<address_id>")
def delete_address(address_id: str):
    user = require_user()
    return jsonify(components()["addresses"].delete(user_id=user["id"], address_id=address_id))
