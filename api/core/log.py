"""
Process-wide logging setup.

Modules log through `logging.getLogger(__name__)`; this only installs the
root handler once.
"""

from __future__ import annotations

import logging
import sys

from . import settings

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def configure_logging() -> None:
    global _configured
    if _configured:
        return None

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(settings.log_level())
    _configured = True
