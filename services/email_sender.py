"""Outgoing mail over SMTP: login codes and order notifications."""

from __future__ import annotations

import html
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Dict, Optional

from common.utils.seo import format_price


logger = logging.getLogger(__name__)

STATUS_TITLES = {
    "PENDING": "Ожидает обработки",
    "CONFIRMED": "Подтвержден",
    "PROCESSING": "В обработке",
    "SHIPPED": "Отправлен",
    "DELIVERED": "Доставлен",
    "CANCELLED": "Отменен",
}

_LAYOUT = """<!DOCTYPE html>
<html><head><meta charset="utf-8"></head>
<body style="font-family:-apple-system,'Segoe UI',Roboto,sans-serif;color:#374151;padding:20px">
<div style="max-width:600px;margin:0 auto">
<h1 style="font-size:24px;color:#111827">NAKEN</h1>
{body}
<p style="color:#9ca3af;font-size:12px">Это письмо отправлено автоматически, не отвечайте на него.</p>
</div></body></html>"""


class EmailSender:
    def __init__(self, host: str = "", port: int = 587, user: str = "", password: str = "", *,
                 use_tls: bool = True, from_name: str = "Naken Store", timeout: float = 15.0) -> None:
        self.host = host or ""
        self.port = int(port or 587)
        self.user = user or ""
        self.password = password or ""
        self.use_tls = use_tls
        self.from_name = from_name
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.host and self.user and self.password)

    def send(self, to: str, subject: str, html_body: str, text_body: Optional[str] = None) -> bool:
        if not self.configured:
            logger.warning("SMTP is not configured, skipping mail to %s", to)
            return False
        msg = EmailMessage()
        msg["From"] = formataddr((self.from_name, self.user))
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text_body or subject)
        msg.add_alternative(_LAYOUT.format(body=html_body), subtype="html")
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                smtp.login(self.user, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send mail to %s: %s", to, exc)
            return False
        return True

    def send_login_code(self, email: str, code: str) -> bool:
        body = (
            "<p>Ваш код подтверждения для входа:</p>"
            f"<p style=\"font-size:32px;letter-spacing:8px;font-weight:bold\">{html.escape(code)}</p>"
            "<p>Код действителен 10 минут.</p>"
        )
        return self.send(email, "Код подтверждения для входа", body, f"Ваш код: {code}")

    def _items_table(self, order: Dict) -> str:
        rows = "".join(
            f"<tr><td>{html.escape(str(item.get('productName') or 'Товар'))}</td>"
            f"<td>{item.get('quantity', 1)}</td><td>{format_price(item.get('price', 0))}</td></tr>"
            for item in order.get("items") or []
        )
        return f"<table style=\"width:100%\">{rows}</table>"

    def send_order_confirmation(self, email: str, order: Dict) -> bool:
        number = order.get("orderNumber")
        body = (
            f"<h2>Заказ {html.escape(str(number))} оплачен</h2>"
            "<p>Спасибо за покупку! Мы уже начали собирать ваш заказ.</p>"
            f"{self._items_table(order)}"
            f"<p><b>Итого: {format_price(order.get('total', 0))}</b></p>"
        )
        return self.send(email, f"Заказ {number} подтвержден", body)

    def send_status_update(self, email: str, order: Dict, status: str, message: Optional[str] = None) -> bool:
        number = order.get("orderNumber")
        title = STATUS_TITLES.get(status, status)
        body = f"<h2>Статус заказа {html.escape(str(number))}: {title}</h2>"
        if message:
            body += f"<p>{html.escape(message)}</p>"
        return self.send(email, f"Заказ {number}: {title}", body)
