from enum import Enum


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class ChatStatus(str, Enum):
    ACTIVE = "ACTIVE"
    WAITING = "WAITING"
    CLOSED = "CLOSED"


class ChatPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class SenderType(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


class MessageType(str, Enum):
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    FILE = "FILE"
    SYSTEM = "SYSTEM"


class PixelType(str, Enum):
    FACEBOOK_PIXEL = "FACEBOOK_PIXEL"
    GOOGLE_ANALYTICS = "GOOGLE_ANALYTICS"
    YANDEX_METRIKA = "YANDEX_METRIKA"
    VK_PIXEL = "VK_PIXEL"
    CUSTOM_HTML = "CUSTOM_HTML"


class PixelPlacement(str, Enum):
    HEAD = "HEAD"
    BODY_START = "BODY_START"
    BODY_END = "BODY_END"


class AuthCodeType(str, Enum):
    SMS = "SMS"
    EMAIL = "EMAIL"
