import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger with a single stdout handler.

    Existing handlers are cleared so repeated runs in one interpreter
    (notebook, tests) do not print every line twice.
    """
    lvl = level.upper()

    root = logging.getLogger()
    root.setLevel(lvl)
    if root.handlers:
        root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(handler)

    # Font lookups and PIL plugin discovery are noisy at DEBUG
    for name in ("matplotlib", "PIL"):
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))
