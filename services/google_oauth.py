"""Google OAuth 2.0 authorization-code flow."""

from __future__ import annotations

import logging
from typing import Dict
from urllib.parse import urlencode

import requests

from common.services.errors import AuthRequired


logger = logging.getLogger(__name__)


class GoogleOAuthClient:
    AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

    def __init__(self, client_id: str = "", client_secret: str = "", timeout: float = 10.0) -> None:
        self.client_id = client_id or ""
        self.client_secret = client_secret or ""
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def authorization_url(self, redirect_uri: str, state: str) -> str:
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "state": state,
            "access_type": "online",
            "prompt": "select_account",
        })
        return f"{self.AUTH_URL}?{query}"

    def exchange_code(self, code: str, redirect_uri: str) -> Dict:
        try:
            resp = requests.post(
                self.TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": redirect_uri,
                    "grant_type": "authorization_code",
                },
                timeout=self.timeout,
            )
            resp.raise_for_status()
            tokens = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Google token exchange failed: %s", exc)
            raise AuthRequired("Не удалось войти через Google") from exc
        if "access_token" not in tokens:
            raise AuthRequired("Не удалось войти через Google")
        return tokens

    def fetch_userinfo(self, access_token: str) -> Dict:
        try:
            resp = requests.get(
                self.USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            info = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Google userinfo request failed: %s", exc)
            raise AuthRequired("Не удалось получить профиль Google") from exc
        return {
            "sub": info.get("sub"),
            "email": info.get("email"),
            "name": info.get("name"),
            "picture": info.get("picture"),
        }
