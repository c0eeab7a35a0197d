"""T-Bank (Tinkoff) acquiring API client."""

from __future__ import annotations

import hashlib
import logging
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

import requests

from common.services.errors import StoreError
from common.services.logging import log_event


logger = logging.getLogger(__name__)

PROD_URL = "https://securepay.tinkoff.ru/v2/"
TEST_URL = "https://rest-api-test.tinkoff.ru/v2/"

DEFAULT_EMAIL = "no-reply@naken-store.com"
DEFAULT_PHONE = "+79999999999"

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_UNSIGNED_KEYS = {"Token", "Receipt", "DATA"}


class PaymentGatewayError(StoreError):
    status_code = 502


def to_kopecks(amount: Any) -> int:
    value = Decimal(str(amount)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_phone(phone: Optional[str]) -> str:
    """Return ``+7XXXXXXXXXX`` style phone, falling back to a placeholder."""
    digits = re.sub(r"\D", "", phone or "")
    if not digits:
        return DEFAULT_PHONE
    if digits.startswith("8"):
        digits = "7" + digits[1:]
    return "+" + digits


def format_email(email: Optional[str]) -> str:
    if email and _EMAIL_RE.match(email):
        return email
    return DEFAULT_EMAIL


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def generate_token(params: Dict[str, Any], password: str) -> str:
    """Signature over root scalar params plus the terminal password."""
    signed: Dict[str, str] = {"Password": password}
    for key, value in params.items():
        if key in _UNSIGNED_KEYS or value is None:
            continue
        if isinstance(value, (dict, list)):
            continue
        signed[key] = _stringify(value)
    concatenated = "".join(signed[key] for key in sorted(signed) if signed[key] != "")
    return hashlib.sha256(concatenated.encode("utf-8")).hexdigest()


class TBankClient:
    def __init__(self, terminal_key: str = "", password: str = "", *, base_url: str = "",
                 production: bool = False, timeout: float = 15.0) -> None:
        self.terminal_key = terminal_key or ""
        self.password = password or ""
        self.base_url = (base_url or "").rstrip("/")
        self.production = production
        self.api_url = PROD_URL if production else TEST_URL
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.terminal_key and self.password)

    def build_receipt(self, amount_kopecks: int, items: Optional[Iterable[Dict]], shipping_cost: Any,
                      email: str, phone: str) -> Dict[str, Any]:
        lines: List[Dict[str, Any]] = []
        for item in items or []:
            price = to_kopecks(item.get("price", 0))
            quantity = int(item.get("quantity", 1))
            lines.append({
                "Name": str(item.get("name") or "Товар")[:128],
                "Price": price,
                "Quantity": quantity,
                "Amount": price * quantity,
                "Tax": "vat0",
                "PaymentMethod": "full_payment",
                "PaymentObject": "commodity",
            })
        shipping = to_kopecks(shipping_cost or 0)
        if lines and shipping > 0:
            lines.append({
                "Name": "Доставка",
                "Price": shipping,
                "Quantity": 1,
                "Amount": shipping,
                "Tax": "vat0",
                "PaymentMethod": "full_payment",
                "PaymentObject": "service",
            })
        if not lines:
            lines.append({
                "Name": "Товар из магазина NAKEN",
                "Price": amount_kopecks,
                "Quantity": 1,
                "Amount": amount_kopecks,
                "Tax": "vat0",
                "PaymentMethod": "full_payment",
                "PaymentObject": "commodity",
            })
        diff = amount_kopecks - sum(line["Amount"] for line in lines)
        if diff:
            last = lines[-1]
            last["Amount"] += diff
            last["Price"] = last["Amount"] // last["Quantity"]
        return {"Email": email, "Phone": phone, "Taxation": "usn_income", "Items": lines}

    def init_payment(self, *, order_id: str, amount: Any, customer_email: Optional[str] = None,
                     customer_phone: Optional[str] = None, items: Optional[Iterable[Dict]] = None,
                     shipping_cost: Any = 0) -> Dict[str, Any]:
        if not self.configured:
            raise PaymentGatewayError("Платежная система не настроена")
        amount_kopecks = to_kopecks(amount)
        params: Dict[str, Any] = {
            "TerminalKey": self.terminal_key,
            "Amount": amount_kopecks,
            "OrderId": order_id,
            "Description": f"Заказ #{order_id} в магазине NAKEN",
            "PayType": "O",
        }
        if self.base_url:
            params["NotificationURL"] = f"{self.base_url}/api/tbank/notification"
            params["SuccessURL"] = f"{self.base_url}/checkout/success?orderId={order_id}"
            params["FailURL"] = f"{self.base_url}/checkout/fail?orderId={order_id}"
        if self.production:
            email = format_email(customer_email)
            phone = format_phone(customer_phone)
            params["DATA"] = {"connection_type": "naken_store_api", "Email": email, "Phone": phone}
            params["Receipt"] = self.build_receipt(amount_kopecks, items, shipping_cost, email, phone)
        params["Token"] = generate_token(params, self.password)
        data = self._post("Init", params)
        if not data.get("Success"):
            log_event("error", "tbank.init_failed", order_id=order_id,
                      error_code=data.get("ErrorCode"), message=data.get("Message"))
            raise PaymentGatewayError(data.get("Message") or "Ошибка инициализации платежа",
                                      details={"errorCode": data.get("ErrorCode"),
                                               "details": data.get("Details")})
        return data

    def get_state(self, payment_id: str) -> Dict[str, Any]:
        params: Dict[str, Any] = {"TerminalKey": self.terminal_key, "PaymentId": payment_id}
        params["Token"] = generate_token(params, self.password)
        return self._post("GetState", params)

    def verify_notification(self, payload: Dict[str, Any]) -> bool:
        data = dict(payload)
        received = data.pop("Token", None)
        if not received or not self.password:
            return False
        return generate_token(data, self.password) == received

    def _post(self, method: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = requests.post(self.api_url + method, json=params, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("T-Bank %s request failed: %s", method, exc)
            raise PaymentGatewayError("Платежная система недоступна") from exc
