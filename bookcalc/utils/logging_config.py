"""
Structured Logging Configuration

JSON log lines for the pricing service. Every line carries the request id
and the product being priced when they are known, so one booking cost call
can be followed from the HTTP access line down to the engine.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Per-request context, set by the request middleware and the pricing router
request_id_var: ContextVar[str] = ContextVar('request_id', default='')
product_id_var: ContextVar[str] = ContextVar('product_id', default='')

# LogRecord attributes copied into the JSON line when present
STRUCTURED_FIELDS = ("duration_ms", "data")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name, var in (("request_id", request_id_var), ("product_id", product_id_var)):
            value = var.get()
            if value:
                entry[name] = value

        for name in STRUCTURED_FIELDS:
            if hasattr(record, name):
                entry[name] = getattr(record, name)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """Adapter with one helper per structured event the service emits"""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs['extra'] = {**self.extra, **kwargs.get('extra', {})}
        return msg, kwargs

    def event(self, level: int, msg: str, duration_ms: Optional[float] = None, **data):
        extra: Dict[str, Any] = {"data": data}
        if duration_ms is not None:
            extra["duration_ms"] = duration_ms
        self.log(level, msg, extra=extra)

    def cost_calculated(
        self,
        product_id: str,
        blocks_booked: int,
        cost: Any,
        overrides: int = 0,
        duration_ms: Optional[float] = None
    ):
        self.event(
            logging.INFO,
            f"Booking cost calculated: {cost}",
            duration_ms=duration_ms,
            product_id=product_id,
            blocks_booked=blocks_booked,
            cost=str(cost),
            overrides=overrides
        )

    def api_request(self, method: str, path: str, status_code: int, duration_ms: float):
        self.event(
            logging.INFO,
            f"{method} {path} - {status_code}",
            duration_ms=duration_ms,
            method=method,
            path=path,
            status_code=status_code
        )


def setup_logging(level: str = "INFO", json_format: bool = True) -> None:
    """
    Route the service and uvicorn loggers to one stdout handler.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_format: JSON lines (production) or plain text (local runs)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    logging.getLogger("bookcalc").setLevel(log_level)
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).handlers = [handler]


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(logging.getLogger(name), {})


def set_request_context(request_id: str):
    request_id_var.set(request_id)


def set_product_context(product_id: str):
    """Tag the rest of this request's log lines with the priced product"""
    product_id_var.set(product_id)


def clear_request_context():
    request_id_var.set('')
    product_id_var.set('')
