"""Logging setup for tokentalk."""

import logging
from typing import Optional

from rich.logging import RichHandler

from tokentalk.config.settings import LogLevel, get_settings
from tokentalk.ui.console import err_console


def setup_logging(level: Optional[LogLevel] = None) -> None:
    """Route the tokentalk logger through a rich handler.

    Safe to call more than once; the handler is only attached the first time.
    """
    settings = get_settings()
    logger = logging.getLogger("tokentalk")
    logger.setLevel((level or settings.logging.level).value)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=err_console,
            show_path=settings.logging.show_path,
            markup=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(handler)
