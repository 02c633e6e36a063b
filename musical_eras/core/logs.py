# musical_eras/core/logs.py
"""
Logging setup shared by the app and scripts.

Call configure_logging() once at startup; later calls are no-ops unless
force=True.
"""
import logging
import os
import sys

_HANDLER_TAG = "_musical_eras_handler"
_FMT = "%(asctime)s | %(levelname)-5s | %(name)s | %(message)s"

_configured = False


def configure_logging(level: str = "INFO", force: bool = False) -> None:
    global _configured
    if _configured and not force:
        return

    level = os.getenv("LOG_LEVEL", level).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))

    for handler in root.handlers[:]:
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FMT, datefmt="%H:%M:%S"))
    setattr(handler, _HANDLER_TAG, True)
    root.addHandler(handler)

    # spotipy logs every HTTP error at ERROR; we report those ourselves
    logging.getLogger("spotipy").setLevel(logging.CRITICAL)
    _configured = True
