"""Request hardening helpers: rate limiting, client IP, input and upload checks."""

import re
import threading
import time
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from ..services.logging import log_event


SECURITY_HEADERS = {
    "X-XSS-Protection": "1; mode=block",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}

SQL_KEYWORDS = (
    "SELECT", "INSERT", "UPDATE", "DELETE", "DROP", "CREATE", "ALTER",
    "EXEC", "EXECUTE", "SCRIPT", "UNION", "OR 1=1", "OR 1", "OR TRUE",
    "--", "/*", "*/", "XP_", "SP_",
)

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
MAX_FILE_SIZE = 5 * 1024 * 1024
_BAD_FILENAME_RE = re.compile(r'[<>:"/\\|?*]')


@dataclass
class RateLimitResult:
    success: bool
    remaining: int
    reset_time: Optional[float] = None


class RateLimiter:
    """Fixed-window counter per key, kept in process memory.

    Counters are lost on restart and are not shared between workers.
    """

    def __init__(self, max_requests: int, window_seconds: float, sweep_interval: float = 300.0, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._entries: Dict[str, List[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def hit(self, key: str) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self._sweep_interval:
                self._sweep(now)
            entry = self._entries.get(key)
            if entry is None or now > entry[1]:
                self._entries[key] = [1, now + self.window_seconds]
                return RateLimitResult(True, self.max_requests - 1)
            entry[0] += 1
            if entry[0] > self.max_requests:
                return RateLimitResult(False, 0, entry[1])
            return RateLimitResult(True, self.max_requests - int(entry[0]))

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, reset) in self._entries.items() if now > reset]
        for k in expired:
            del self._entries[k]
        self._last_sweep = now

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def get_client_ip(headers: Mapping[str, str]) -> str:
    forwarded = headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    for name in ("X-Real-IP", "CF-Connecting-IP"):
        value = headers.get(name)
        if value:
            return value.strip()
    return "127.0.0.1"


def sanitize_input(value) -> str:
    if not isinstance(value, str):
        return ""
    return re.sub(r"[<>]", "", value.strip())[:1000]


def detect_sql_injection(value: Optional[str]) -> bool:
    if not value:
        return False
    upper = value.upper()
    return any(keyword in upper for keyword in SQL_KEYWORDS)


def validate_file(filename: str, content_type: str, size: int, *, max_size: int = MAX_FILE_SIZE) -> List[str]:
    errors = []
    if (content_type or "").lower() not in ALLOWED_IMAGE_TYPES:
        errors.append("Неподдерживаемый тип файла")
    if size > max_size:
        errors.append(f"Файл слишком большой (максимум {max_size // (1024 * 1024)}MB)")
    if _BAD_FILENAME_RE.search(filename or ""):
        errors.append("Недопустимые символы в имени файла")
    return errors


def log_suspicious_activity(kind: str, *, ip: str, user_agent: Optional[str] = None,
                            user_id: Optional[str] = None, path: Optional[str] = None, data=None) -> None:
    log_event(
        "warning",
        "security." + kind,
        ip=ip,
        user_agent=user_agent,
        user_id=user_id,
        path=path,
        data=data,
    )
