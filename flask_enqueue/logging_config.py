from __future__ import annotations

import logging
import re
from typing import Iterable

from flask import Flask

DEV_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"
PROD_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
SECRET_PATTERNS = {
    # Asset URLs sometimes carry signed query strings (CDN tokens, api keys).
    "query": re.compile(r"([?&](?:token|sig|signature|api[_-]?key|key|secret)=)[^&\s#]+", re.IGNORECASE),
    "bearer": re.compile(r"Bearer\s+[A-Za-z0-9\-_.=:+/]+", re.IGNORECASE),
}


class SecretRedactionFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        msg = SECRET_PATTERNS["query"].sub(lambda m: f"{m.group(1)}[REDACTED]", msg)
        msg = SECRET_PATTERNS["bearer"].sub("Bearer [REDACTED]", msg)
        record.msg = msg
        record.args = ()
        return True


def configure_logging(app: Flask) -> None:
    level = _coerce_level(app.config.get("LOG_LEVEL", "DEBUG" if app.debug else "INFO"))
    logging.getLogger("flask_enqueue").setLevel(level)
    app.logger.setLevel(level)

    if level > logging.DEBUG:
        for noisy in ("urllib3", "requests", "werkzeug"):
            logging.getLogger(noisy).setLevel(logging.WARNING)

    is_production = app.config.get("FLASK_ENV") == "production" and not app.debug
    formatter = logging.Formatter(PROD_FORMAT if is_production else DEV_FORMAT)
    redact = app.config.get("LOG_REDACT_SECRETS", True)
    _apply_formatter(logging.getLogger().handlers, formatter, redact)
    _apply_formatter(app.logger.handlers, formatter, redact)


def _apply_formatter(handlers: Iterable[logging.Handler], formatter: logging.Formatter, redact: bool) -> None:
    for handler in handlers:
        handler.setFormatter(formatter)
        if redact and not any(isinstance(f, SecretRedactionFilter) for f in handler.filters):
            handler.addFilter(SecretRedactionFilter())


def _coerce_level(raw_level) -> int:
    if isinstance(raw_level, int):
        return raw_level
    if isinstance(raw_level, str):
        candidate = raw_level.strip().upper()
        return getattr(logging, candidate, logging.INFO)
    return logging.INFO
