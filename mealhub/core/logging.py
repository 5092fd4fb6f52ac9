# mealhub/core/logging.py
import logging

from mealhub.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging once for the process.

    The API app calls this in `mealhub.main`; a script that drives the
    client should call it before opening sessions. Module code only ever
    does `logging.getLogger(__name__)`.
    """
    level = level or get_settings().LOG_LEVEL
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
