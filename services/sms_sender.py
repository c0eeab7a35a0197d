"""SMSC.ru gateway used for one-time login codes."""

from __future__ import annotations

import logging

import requests

from common.services.logging import log_event


logger = logging.getLogger(__name__)


class SmscSender:
    API_URL = "https://smsc.ru/sys/send.php"

    def __init__(self, login: str = "", password: str = "", *, sender: str = "SMSC", timeout: float = 10.0) -> None:
        self.login = login or ""
        self.password = password or ""
        self.sender = sender
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.login and self.password)

    def send_code(self, phone: str, code: str) -> bool:
        if not self.configured:
            # Without credentials the code only goes to the log.
            log_event("warning", "sms.not_configured", phone=phone, code=code)
            return False
        params = {
            "login": self.login,
            "psw": self.password,
            "phones": phone,
            "mes": code,
            "fmt": 3,
            "sender": self.sender,
            "translit": 1,
        }
        try:
            resp = requests.get(self.API_URL, params=params, timeout=self.timeout)
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("SMSC request failed: %s", exc)
            return False
        if data.get("error_code"):
            log_event("error", "sms.send_failed", phone=phone,
                      error_code=data.get("error_code"), error=data.get("error"))
            return False
        log_event("info", "sms.sent", phone=phone, sms_id=data.get("id"))
        return True
