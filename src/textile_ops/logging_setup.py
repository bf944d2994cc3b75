from __future__ import annotations

import logging

from textile_ops.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging once for the CLI or API process.
    Level falls back to `TEXTILE_OPS_LOG_LEVEL`.
    """
    name = (level or get_settings().log_level).strip().upper()
    logging.basicConfig(level=getattr(logging, name, logging.INFO), format=LOG_FORMAT)
