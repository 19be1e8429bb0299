from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once. Safe to call again (e.g. per test app).
    """
    root = logging.getLogger()
    if not any(getattr(h, "_marketplace", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._marketplace = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    root.setLevel((level or "INFO").upper())
