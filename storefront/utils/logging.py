# storefront/utils/logging.py
import logging
import contextvars

from pythonjsonlogger.json import JsonFormatter

from storefront.utils.settings import LOG_LEVEL

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"


class RequestIdFilter(logging.Filter):
    """Copies the current request id onto every record so the formatter can print it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = REQUEST_ID_CTX.get()
        return True


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter(_FORMAT))
        handler.addFilter(RequestIdFilter())
        logger.addHandler(handler)
        logger.setLevel(LOG_LEVEL)
        logger.propagate = False
    return logger
