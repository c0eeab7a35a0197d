"""ORM models; importing this package registers every table on ``Base.metadata``."""

from .base import Base
from .user import Account, User
from .auth_code import AuthCode
from .activity import AuthLog, UserActivity
from .color import Color
from .size import Size
from .product import Product, ProductSize
from .cart_item import CartItem
from .wishlist_item import WishlistItem
from .address import Address
from .order import Order, OrderItem
from .review import Review
from .chat import ChatMessage, ChatSession
from .tracking_pixel import TrackingPixel
from .site_setting import SiteSetting

__all__ = [
    "Base",
    "Account",
    "User",
    "AuthCode",
    "AuthLog",
    "UserActivity",
    "Color",
    "Size",
    "Product",
    "ProductSize",
    "CartItem",
    "WishlistItem",
    "Address",
    "Order",
    "OrderItem",
    "Review",
    "ChatMessage",
    "ChatSession",
    "TrackingPixel",
    "SiteSetting",
]
