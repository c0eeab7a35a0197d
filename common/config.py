import os
from dataclasses import dataclass
from pathlib import Path
import json
import logging
from typing import Optional


logger = logging.getLogger(__name__)


@dataclass
class AppConfig:
    database_url: str
    secret_key: str
    log_level: str
    store_base_url: str
    currency: str
    production: bool = False
    tbank_terminal_key: str = ""
    tbank_password: str = ""
    yookassa_shop_id: str = ""
    yookassa_secret_key: str = ""
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    smsc_login: str = ""
    smsc_password: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    google_client_id: str = ""
    google_client_secret: str = ""


SMTP_HOSTS = {"gmail": "smtp.gmail.com", "yandex": "smtp.yandex.ru", "mail": "smtp.mail.ru"}


def validate_currency(value: Optional[str]) -> str:
    v = (value or "RUB").strip().upper()
    if len(v) != 3:
        raise ValueError("Invalid currency code: expected ISO4217 length 3")
    return v


def _load_settings_file(data_dir: Optional[Path] = None) -> dict:
    path = (data_dir or Path(__file__).resolve().parents[1] / "data") / "settings.json"
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable %s: %s", path, exc)
        return {}


def _flag(value) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on", "production"}


def load_env(data_dir: Optional[Path] = None) -> AppConfig:
    # data/settings.json wins, environment variables are the fallback
    s = _load_settings_file(data_dir)

    def pick(key: str, default: str = "") -> str:
        return str(s.get(key) or os.getenv(key) or default)

    smtp_host = pick("SMTP_HOST") or SMTP_HOSTS.get(pick("EMAIL_SERVICE", "gmail").lower(), "")
    return AppConfig(
        database_url=os.getenv("DATABASE_URL", "sqlite:///data/store.db"),
        secret_key=os.getenv("SECRET_KEY", "dev_secret"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        store_base_url=pick("STORE_BASE_URL", "http://127.0.0.1:5000").rstrip("/"),
        currency=validate_currency(s.get("CURRENCY") or os.getenv("CURRENCY")),
        production=_flag(pick("STORE_ENV")),
        tbank_terminal_key=pick("TBANK_TERMINAL_KEY"),
        tbank_password=pick("TBANK_PASSWORD"),
        yookassa_shop_id=pick("YOOKASSA_SHOP_ID"),
        yookassa_secret_key=pick("YOOKASSA_SECRET_KEY"),
        telegram_bot_token=pick("TELEGRAM_BOT_TOKEN"),
        telegram_chat_id=pick("TELEGRAM_CHAT_ID"),
        smsc_login=pick("SMSCENTER_LOGIN"),
        smsc_password=pick("SMSCENTER_PASSWORD"),
        smtp_host=smtp_host,
        smtp_port=int(pick("SMTP_PORT", "587")),
        smtp_user=pick("EMAIL_USER"),
        smtp_password=pick("EMAIL_PASSWORD"),
        google_client_id=pick("GOOGLE_CLIENT_ID"),
        google_client_secret=pick("GOOGLE_CLIENT_SECRET"),
    )
