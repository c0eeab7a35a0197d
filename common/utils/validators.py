import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# +7(999)123-45-67, 89991234567 and similar
RU_PHONE_RE = re.compile(r"^\+?[78]?\(?\d{3}\)?\d{3}-?\d{2}-?\d{2}$")


def ensure_positive_int(value: Any, field: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"{field} must be an integer")
    if number <= 0:
        raise ValueError(f"{field} must be > 0")
    return number


def parse_money(value: Any, field: str = "price", *, required: bool = True) -> Optional[Decimal]:
    if value is None or value == "":
        if required:
            raise ValueError(f"{field} required")
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValueError(f"{field} must be a number")
    if amount < 0:
        raise ValueError(f"{field} must be >= 0")
    return amount.quantize(Decimal("0.01"))


def amount_differs(value: Any, expected) -> bool:
    """Compare a client-reported amount with the server one; unparsable values differ."""
    try:
        return Decimal(str(value)) != Decimal(str(expected))
    except (InvalidOperation, ValueError, TypeError):
        return True


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and bool(EMAIL_RE.match(email))


def is_valid_ru_phone(phone: Optional[str]) -> bool:
    return bool(phone) and bool(RU_PHONE_RE.match(phone.strip()))


def normalize_phone(phone: Optional[str]) -> str:
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith("8"):
        digits = "7" + digits[1:]
    if len(digits) == 10:
        digits = "7" + digits
    return digits
