"""Telegram Bot API notifications for the store team."""

from __future__ import annotations

import html
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

import requests

from common.utils.seo import format_price


logger = logging.getLogger(__name__)

MOSCOW_TZ = timezone(timedelta(hours=3))

STATUS_EMOJIS = {
    "PENDING": "⏳",
    "CONFIRMED": "✅",
    "PROCESSING": "⚙️",
    "SHIPPED": "🚚",
    "DELIVERED": "📦",
    "CANCELLED": "❌",
}

STATUS_NAMES = {
    "PENDING": "Ожидает обработки",
    "CONFIRMED": "Подтвержден",
    "PROCESSING": "В обработке",
    "SHIPPED": "Отправлен",
    "DELIVERED": "Доставлен",
    "CANCELLED": "Отменен",
}


def _moscow_time(ts: Optional[datetime] = None) -> str:
    ts = ts or datetime.now(timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(MOSCOW_TZ).strftime("%d.%m.%Y, %H:%M")


def _esc(value: Any) -> str:
    return html.escape(str(value if value is not None else ""), quote=False)


class TelegramNotifier:
    """Posts HTML-formatted messages to one Telegram chat.

    Every public method returns ``True`` when Telegram accepted the message
    and ``False`` otherwise; network and API errors are logged, never raised.
    """

    API_BASE_URL = "https://api.telegram.org"

    def __init__(self, bot_token: str = "", chat_id: str = "", timeout: float = 10.0) -> None:
        self.bot_token = bot_token or ""
        self.chat_id = chat_id or ""
        self.timeout = timeout
        if not self.configured:
            logger.warning("Telegram bot token or chat id is not configured")

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    def status(self) -> Dict[str, Any]:
        return {
            "configured": self.configured,
            "hasToken": bool(self.bot_token),
            "hasChatId": bool(self.chat_id),
        }

    def send_message(self, text: str, *, disable_preview: bool = True) -> bool:
        if not self.configured:
            return False
        url = f"{self.API_BASE_URL}/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": disable_preview,
        }
        try:
            resp = requests.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Telegram request failed: %s", exc)
            return False
        if resp.status_code != 200:
            logger.error("Telegram API error %s: %s", resp.status_code, resp.text[:300])
            return False
        return True

    def notify_chat_message(self, *, session_id: str, sender_name: str, message: str, is_from_user: bool,
                            timestamp: Optional[datetime] = None) -> bool:
        emoji = "👤" if is_from_user else "👨‍💼"
        label = "КЛИЕНТ" if is_from_user else "МЕНЕДЖЕР"
        footer = "🔥 <b>Требуется ответ менеджера!</b>" if is_from_user else "✅ Ответ от менеджера"
        text = (
            f"{emoji} <b>НОВОЕ СООБЩЕНИЕ В ЧАТЕ</b>\n\n"
            f"<b>Тип:</b> {label}\n"
            f"<b>От:</b> {_esc(sender_name)}\n"
            f"<b>Время:</b> {_moscow_time(timestamp)}\n"
            f"<b>Сессия:</b> {_esc(session_id)}\n\n"
            f"<b>Сообщение:</b>\n{_esc(message)}\n\n"
            f"{footer}"
        )
        return self.send_message(text)

    @staticmethod
    def _items_block(items: Iterable[Dict]) -> str:
        lines = []
        for idx, item in enumerate(items, start=1):
            lines.append(
                f"{idx}. {_esc(item.get('productName') or 'Товар')}\n"
                f"   Кол-во: {item.get('quantity', 1)} шт.\n"
                f"   Цена: {format_price(item.get('price', 0))}"
            )
        return "\n\n".join(lines)

    def notify_new_order(self, order: Dict) -> bool:
        address = order.get("address") or ""
        if isinstance(address, dict):
            address_text = ", ".join(p for p in (address.get("street"), address.get("city")) if p)
        else:
            address_text = str(address)
        parts = [
            "🛒 <b>НОВЫЙ ЗАКАЗ!</b>\n",
            f"<b>Номер заказа:</b> {_esc(order.get('orderNumber'))}",
            f"<b>Время:</b> {_moscow_time()}\n",
            "<b>КЛИЕНТ:</b>",
            f"👤 <b>Имя:</b> {_esc(order.get('customerName') or 'Не указано')}",
        ]
        if order.get("customerPhone"):
            parts.append(f"📞 <b>Телефон:</b> {_esc(order['customerPhone'])}")
        if order.get("customerEmail"):
            parts.append(f"📧 <b>Email:</b> {_esc(order['customerEmail'])}")
        parts += [
            "",
            "<b>ТОВАРЫ:</b>",
            self._items_block(order.get("items") or []),
            "",
            f"<b>💰 ИТОГО: {format_price(order.get('total', 0))}</b>",
        ]
        if address_text:
            parts.append(f"\n<b>📦 Адрес доставки:</b>\n{_esc(address_text)}")
        if order.get("shippingMethod"):
            parts.append(f"<b>🚚 Способ доставки:</b> {_esc(order['shippingMethod'])}")
        if order.get("paymentMethod"):
            parts.append(f"<b>💳 Способ оплаты:</b> {_esc(order['paymentMethod'])}")
        parts.append("\n🔥 <b>Требуется обработка заказа!</b>")
        return self.send_message("\n".join(parts))

    def notify_order_status(self, order: Dict, old_status: str, new_status: str) -> bool:
        customer = order.get("customerName") or (order.get("user") or {}).get("name") or "Клиент"
        text = (
            "📋 <b>ИЗМЕНЕНИЕ СТАТУСА ЗАКАЗА</b>\n\n"
            f"<b>Заказ:</b> {_esc(order.get('orderNumber'))}\n"
            f"<b>Клиент:</b> {_esc(customer)}\n"
            f"<b>Время:</b> {_moscow_time()}\n\n"
            "<b>Статус изменен:</b>\n"
            f"{STATUS_EMOJIS.get(old_status, '⭕')} {STATUS_NAMES.get(old_status, old_status)} → "
            f"{STATUS_EMOJIS.get(new_status, '⭕')} {STATUS_NAMES.get(new_status, new_status)}"
        )
        return self.send_message(text, disable_preview=False)
