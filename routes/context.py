"""Request helpers shared by the blueprints."""

from __future__ import annotations

from typing import Any, Dict, Optional

from flask import current_app, g, request, session

from common.models.enums import Role
from common.services.errors import AccessDenied, AuthRequired, RateLimited
from common.utils.security import get_client_ip, log_suspicious_activity


def components() -> Dict[str, Any]:
    return current_app.extensions["store_components"]


def store_config():
    return current_app.config["STORE_CONFIG"]


def payload() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}


def client_ip() -> str:
    return get_client_ip(request.headers)


def _bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[7:].strip() or None
    return None


def current_user() -> Optional[Dict]:
    """Resolve the caller from a bearer token or the signed session cookie."""

    if "store_user" in g:
        return g.store_user
    user_id = None
    token = _bearer_token()
    if token:
        claims = components()["auth"].decode_token(token)
        user_id = claims.get("sub") if claims else None
    if user_id is None:
        user_id = session.get("user_id")
    user = components()["users"].get_user(user_id) if user_id else None
    g.store_user = user
    return user


def require_user() -> Dict:
    user = current_user()
    if user is None:
        raise AuthRequired("Необходима авторизация")
    return user


def require_admin() -> Dict:
    user = require_user()
    if user["role"] != Role.ADMIN.value:
        raise AccessDenied("Доступ запрещен")
    return user


def enforce_rate_limit(limiter_name: str, key: str) -> None:
    result = components()[limiter_name].hit(key)
    if not result.success:
        log_suspicious_activity(
            "rate_limit",
            ip=client_ip(),
            user_agent=request.headers.get("User-Agent"),
            path=request.path,
            data={"key": key},
        )
        raise RateLimited("Слишком много запросов")


def audit() -> Dict[str, Optional[str]]:
    user = current_user()
    return {
        "ip": client_ip(),
        "user_agent": request.headers.get("User-Agent"),
        "user_id": user["id"] if user else None,
        "path": request.path,
    }
