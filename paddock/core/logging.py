import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    # Diagnostics go to stderr; stdout is reserved for the chat reply line.
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
