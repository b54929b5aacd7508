# logging_config.py

import os
import logging
import logging.handlers

from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def setup_logger(name: str, filename: str, level: str = None) -> logging.Logger:
    """
    Return a named logger that writes to the console and to LOG_DIR/<filename>.

    Calling it again for the same name reuses the handlers attached the first time.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    log_dir = os.getenv('LOG_DIR', 'logs')
    try:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, filename),
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except OSError as ex:
        logger.warning(f"⚠️ File logging disabled for {filename}: {ex}")

    logger.propagate = False
    return logger
