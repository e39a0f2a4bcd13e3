import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Third-party loggers that should print through the root handler.
ROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "apscheduler", "sqlalchemy.engine")


def _level(name: Optional[str], default: int) -> int:
    return getattr(logging, (name or "").strip().upper(), default)


def configure_logging(level: str = "INFO", *, http_level: str = "WARNING", sql_level: str = "WARNING") -> None:
    """One stream handler on root; uvicorn/apscheduler/sqlalchemy propagate to it.

    httpx logs every request at INFO, so it has its own level, as does
    sqlalchemy.engine.
    """
    root_level = _level(level, logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(root_level)

    for name in ROUTED_LOGGERS:
        lg = logging.getLogger(name)
        lg.handlers.clear()
        lg.propagate = True
        lg.setLevel(root_level)

    logging.getLogger("sqlalchemy.engine").setLevel(_level(sql_level, logging.WARNING))
    logging.getLogger("httpx").setLevel(_level(http_level, logging.WARNING))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "picksboard")
