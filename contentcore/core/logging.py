import logging
from typing import Optional

ISO_FMT = "%Y-%m-%dT%H:%M:%S%z"

# Loggers de librerías que ensucian la salida en INFO
_NOISY = ("httpx", "httpcore", "passlib")


def configure_logging(level: Optional[int] = None, *, debug: bool = False) -> None:
    if level is None:
        level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s :: %(message)s",
        datefmt=ISO_FMT,
    )
    for name in _NOISY:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
