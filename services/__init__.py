"""External integrations: payment gateways, messaging and image handling."""

from .email_sender import EmailSender
from .google_oauth import GoogleOAuthClient
from .image_storage import ImageStorage
from .sms_sender import SmscSender
from .tbank_client import PaymentGatewayError, TBankClient
from .telegram_notifier import TelegramNotifier
from .yookassa_client import YooKassaClient

__all__ = [
    "EmailSender",
    "GoogleOAuthClient",
    "ImageStorage",
    "PaymentGatewayError",
    "SmscSender",
    "TBankClient",
    "TelegramNotifier",
    "YooKassaClient",
]
