import logging, os
from logging.handlers import RotatingFileHandler

LOG_FILE = "devsetup.log"

def setup_logging(level: str = "INFO", logs_dir: str = "logs", console: bool = False) -> str:
    os.makedirs(logs_dir, exist_ok=True)
    path = os.path.join(logs_dir, LOG_FILE)
    fmt = '%(asctime)s | %(levelname)s | %(name)s | %(message)s'
    datefmt = '%Y-%m-%d %H:%M:%S'
    handlers: list[logging.Handler] = [
        RotatingFileHandler(path, maxBytes=2_000_000, backupCount=3, encoding="utf-8")
    ]
    # user-facing output already goes to stdout via utils.console
    if console:
        handlers.append(logging.StreamHandler())
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=fmt,
        datefmt=datefmt,
        handlers=handlers,
        force=True,
    )
    logging.getLogger("filelock").setLevel(logging.WARNING)
    return path
