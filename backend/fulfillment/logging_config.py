"""
Logging setup shared by the web app and the CLI.

Services log through module loggers (``logging.getLogger(__name__)``);
routes keep using ``current_app.logger`` which propagates to the same root
handler.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_NAME = "fulfillment-console"


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure the root logger once per process.

    Calling it again (e.g. a second ``create_app`` in tests) only adjusts the
    level instead of stacking handlers.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))

    if not any(h.get_name() == _HANDLER_NAME for h in root_logger.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.set_name(_HANDLER_NAME)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root_logger.addHandler(console_handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
