import logging
import sys


def configure_logging(level: int = logging.WARNING) -> None:
    """Configure logging for the command line. Call once at startup."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)
