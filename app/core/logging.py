import logging
import sys
from typing import Any

from loguru import logger

from app.config import get_settings

# Libraries whose stdlib loggers are routed into loguru, with the minimum level kept
INTERCEPTED_LOGGERS: dict[str, int] = {
    "uvicorn": logging.INFO,
    "uvicorn.error": logging.INFO,
    "uvicorn.access": logging.INFO,
    "sqlalchemy.engine": logging.WARNING,
    # httpx logs one INFO line per request; sync would flood the output
    "httpx": logging.WARNING,
    "alembic": logging.INFO,
}

DEBUG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> | "
    "<level>{message}</level> | {extra}"
)
PLAIN_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]} | {message} | {extra}"


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk past logging internals so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore[assignment]
            depth += 1

        logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _drop_health_checks(record: dict[str, Any]) -> bool:
    """Load balancer probes hit /health constantly; keep them at DEBUG only."""
    if "/health" in record["message"]:
        return bool(record["level"].no <= logging.DEBUG)
    return True


def setup_logging() -> None:
    """Configure loguru once for the API, the CLI and Alembic runs."""
    settings = get_settings()

    logger.remove()
    logger.configure(extra={"name": "cronmirror"})

    if settings.debug:
        logger.add(sys.stderr, level="DEBUG", format=DEBUG_FORMAT, backtrace=True, diagnose=True)
    else:
        logger.add(
            sys.stderr,
            level="INFO",
            format=PLAIN_FORMAT,
            filter=_drop_health_checks,
            backtrace=True,
            diagnose=False,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name, level in INTERCEPTED_LOGGERS.items():
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [InterceptHandler()]
        stdlib_logger.setLevel(logging.DEBUG if settings.debug else level)
        stdlib_logger.propagate = False


def get_logger(name: str) -> Any:
    """Loguru logger carrying the module name; add event context with .bind()."""
    return logger.bind(name=name)
