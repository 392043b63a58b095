import logging

from apisteps.config import get_settings


def configure_logging(level: str | None = None) -> None:
    """Send apisteps logs to stderr at the configured level."""
    level = (level or get_settings().log_level).upper()

    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Request lines are already logged by the dispatcher
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
