# bridge/utils/logging.py
"""JSON logging for the API.

Modules log through `logger` and attach identifiers with `extra=`; the
filter fills the standard ones so every line has the same keys.
"""
import logging
from logging.handlers import RotatingFileHandler

from pythonjsonlogger import jsonlogger

from bridge.config import settings

CONTEXT_FIELDS = ("request_id", "user_id", "document_id")


class ContextFilter(logging.Filter):
    def filter(self, record):
        for field in CONTEXT_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, None)
        record.service = settings.service_name
        return True


json_formatter = jsonlogger.JsonFormatter(
    "%(asctime)s %(levelname)s %(service)s %(name)s %(message)s "
    "%(exception)s %(request_id)s %(user_id)s %(document_id)s",
    rename_fields={"exception": "exception"}
)

logger = logging.getLogger("bridge")
logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
logger.addFilter(ContextFilter())

stream_handler = logging.StreamHandler()
stream_handler.setFormatter(json_formatter)
logger.addHandler(stream_handler)

if settings.log_to_file:
    file_handler = RotatingFileHandler(
        settings.log_dir / "bridge.log",
        maxBytes=10_000_000,
        backupCount=5,
        encoding="utf-8"
    )
    file_handler.setFormatter(json_formatter)
    logger.addHandler(file_handler)

logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
