"""Sign-in, one-time codes, session and profile routes."""

from __future__ import annotations

import secrets

from flask import Blueprint, jsonify, redirect, request, session

from common.services.errors import AuthRequired

from .context import (
    client_ip,
    components,
    current_user,
    enforce_rate_limit,
    payload,
    require_user,
    store_config,
)


auth_bp = Blueprint("store_auth", __name__, url_prefix="/api")


def _google_redirect_uri() -> str:
    return f"{store_config().app.store_base_url}/api/auth/google/callback"


def _start_session(user: dict) -> dict:
    session.clear()
    session["user_id"] = user["id"]
    session.permanent = True
    return {"user": user, "token": components()["auth"].issue_token(user)}


@auth_bp.post("/auth/send-sms")
@auth_bp.post("/auth/send-code")
def send_sms_code():
    enforce_rate_limit("otp_limiter", f"otp:{client_ip()}")
    return jsonify(components()["auth"].send_sms_code(payload().get("phone")))


@auth_bp.post("/auth/send-email")
def send_email_code():
    enforce_rate_limit("otp_limiter", f"otp:{client_ip()}")
    return jsonify(components()["auth"].send_email_code(payload().get("email")))


@auth_bp.post("/auth/signin")
def sign_in():
    enforce_rate_limit("otp_limiter", f"signin:{client_ip()}")
    body = payload()
    user = components()["auth"].sign_in(
        body.get("provider") or "password",
        body,
        ip=client_ip(),
        user_agent=request.headers.get("User-Agent"),
    )
    return jsonify(_start_session(user))


@auth_bp.post("/auth/signout")
def sign_out():
    session.clear()
    return jsonify({"success": True})


@auth_bp.get("/auth/session")
def get_auth_session():
    return jsonify({"user": current_user()})


@auth_bp.get("/auth/google")
def google_start():
    state = secrets.token_urlsafe(24)
    session["oauth_state"] = state
    return redirect(components()["auth"].google_authorization_url(_google_redirect_uri(), state))


@auth_bp.get("/auth/google/callback")
def google_callback():
    expected = session.pop("oauth_state", None)
    if not expected or request.args.get("state") != expected:
        raise AuthRequired("Неверный параметр state")
    user = components()["auth"].sign_in(
        "google",
        {"code": request.args.get("code"), "redirectUri": _google_redirect_uri()},
        ip=client_ip(),
        user_agent=request.headers.get("User-Agent"),
    )
    _start_session(user)
    return redirect("/")


@auth_bp.post("/auth/set-password")
def set_password():
    user = require_user()
    return jsonify(components()["users"].set_password(user_id=user["id"], password=payload().get("password")))


@auth_bp.get("/profile")
def get_profile():
    user = require_user()
    return jsonify(components()["users"].get_profile(user_id=user["id"]))


@auth_bp.put("/profile")
def update_profile():
    user = require_user()
    body = payload()
    profile = components()["users"].update_profile(
        user_id=user["id"], name=body.get("name"), phone=body.get("phone")
    )
    return jsonify(profile)
