"""Support chat routes for visitors."""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from common.utils.pagination import parse_int

from .context import client_ip, components, current_user, payload


chat_bp = Blueprint("store_chat", __name__, url_prefix="/api/chat")


@chat_bp.post("/session")
def create_chat_session():
    body = payload()
    result = components()["chat"].create_session(
        user=current_user(),
        subject=body.get("subject"),
        message=body.get("message"),
        user_agent=request.headers.get("User-Agent"),
        ip=client_ip(),
        client_info=body.get("clientInfo"),
    )
    return jsonify(result), 201


@chat_bp.get("/session")
def get_chat_session():
    chat = components()["chat"].get_chat(request.args.get("sessionId"))
    return jsonify({"success": True, "session": chat})


@chat_bp.post("/messages")
def post_chat_message():
    body = payload()
    message = components()["chat"].post_message(
        session_id=body.get("sessionId"),
        content=body.get("content"),
        sender=current_user(),
        message_type=body.get("messageType") or "TEXT",
    )
    return jsonify({"success": True, "message": message}), 201


@chat_bp.get("/messages")
def list_chat_messages():
    messages = components()["chat"].list_messages(
        request.args.get("sessionId"),
        last_message_id=request.args.get("lastMessageId"),
        limit=parse_int(request.args.get("limit"), 50),
    )
    return jsonify({"success": True, "messages": messages})


@chat_bp.patch("/messages")
def mark_chat_read():
    body = payload()
    return jsonify(components()["chat"].mark_read(body.get("sessionId"), body.get("messageIds")))
