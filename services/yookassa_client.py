"""YooKassa payments API client."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict
from uuid import uuid4

import requests

from .tbank_client import PaymentGatewayError


logger = logging.getLogger(__name__)


class YooKassaClient:
    API_URL = "https://api.yookassa.ru/v3/payments"

    def __init__(self, shop_id: str = "", secret_key: str = "", *, base_url: str = "",
                 timeout: float = 15.0) -> None:
        self.shop_id = shop_id or ""
        self.secret_key = secret_key or ""
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.shop_id and self.secret_key)

    def create_payment(self, amount: Any, order_id: str) -> Dict[str, Any]:
        if not self.configured:
            raise PaymentGatewayError("Платежная система не настроена")
        payload = {
            "amount": {"value": f"{Decimal(str(amount)):.2f}", "currency": "RUB"},
            "confirmation": {
                "type": "redirect",
                "return_url": f"{self.base_url}/checkout/success?orderId={order_id}",
            },
            "capture": True,
            "description": f"Заказ #{order_id}",
            "metadata": {"orderId": order_id},
        }
        try:
            resp = requests.post(
                self.API_URL,
                json=payload,
                auth=(self.shop_id, self.secret_key),
                headers={"Idempotence-Key": str(uuid4())},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("YooKassa payment creation failed: %s", exc)
            raise PaymentGatewayError("Платежная система недоступна") from exc
