import json
import logging
import sys
from datetime import datetime, timezone


EVENT_LOGGER = "storefront.events"

_LOG_FORMAT = "%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=_LOG_FORMAT, handlers=[logging.StreamHandler(sys.stdout)])
    root.setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)


def log_event(level: str, event: str, **fields) -> None:
    payload = {
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "level": level.lower(),
        "event": event,
    }
    payload.update(fields or {})
    logger = logging.getLogger(EVENT_LOGGER)
    logger.log(
        logging.getLevelName(level.upper()),
        json.dumps(payload, ensure_ascii=False, default=str),
    )
