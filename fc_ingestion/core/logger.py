# core/logger.py
import logging
from fc_ingestion.core.config import settings

_level = logging.DEBUG if settings.debug_enabled else logging.INFO

logger = logging.getLogger("fc-ingestion")
logger.setLevel(_level)
logger.propagate = False

# Console only; the container runtime ships stdout to CloudWatch
_console = logging.StreamHandler()
_console.setLevel(_level)
_console.setFormatter(logging.Formatter(
    fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S%z",
))
logger.addHandler(_console)
