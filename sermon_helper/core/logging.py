import json
import logging
from datetime import UTC, datetime

LOGGED_FIELDS = (
    "request_id",
    "event",
    "tenant_id",
    "sermon_id",
    "feature",
    "model",
    "theology_tradition",
    "restricted_topics_count",
    "fallback",
    "political_content_detected",
    "method",
    "path",
    "status_code",
    "latency_ms",
    "token_in",
    "token_out",
    "cost_usd",
    "error",
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.now(tz=UTC).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        for field in LOGGED_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        return json.dumps(payload, ensure_ascii=True)


def configure_logging(log_level: str) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())
