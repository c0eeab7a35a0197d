import json
import logging
import sys
from datetime import datetime


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def log_event(level: str, event: str, **fields) -> None:
    """Write one JSON line describing a business event to stdout."""
    payload = {
        "ts": datetime.utcnow().isoformat() + "Z",
        "level": level.lower(),
        "event": event,
    }
    payload.update({k: v for k, v in (fields or {}).items() if v is not None})
    try:
        sys.stdout.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
    except (TypeError, ValueError, OSError):
        logging.getLogger(__name__).warning("unserializable event %s", event)
