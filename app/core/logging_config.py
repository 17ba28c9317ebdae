import logging
import logging.config
import os
from datetime import datetime
from typing import Any, Dict
from app.core.config import settings

LOG_SUB_DIRS = ("app", "access", "error", "celery", "inventory")
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 10

def rotating_handler(log_dir: str, sub_dir: str, level: str, formatter: str, date: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": formatter,
        "filename": os.path.join(log_dir, sub_dir, f"{sub_dir}-{date}.log"),
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": LOG_BACKUPS,
        "encoding": "utf-8",
    }

def build_logging_config(log_dir: str, log_level: str, date: str) -> Dict[str, Any]:
    """dictConfig for console output plus one rotating file per concern.

    Inventory service loggers also write to inventory/; worker loggers also
    write to celery/.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(module)s - %(funcName)s:%(lineno)d - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "access": {
                "format": "%(asctime)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "app_file": rotating_handler(log_dir, "app", log_level, "detailed", date),
            "error_file": rotating_handler(log_dir, "error", "ERROR", "detailed", date),
            "access_file": rotating_handler(log_dir, "access", "INFO", "access", date),
            "celery_file": rotating_handler(log_dir, "celery", "INFO", "detailed", date),
            "inventory_file": rotating_handler(log_dir, "inventory", "INFO", "default", date),
        },
        "loggers": {
            "": {
                "level": log_level,
                "handlers": ["console", "app_file", "error_file"],
            },
            "app.services.inventory": {
                "level": "INFO",
                "handlers": ["inventory_file"],
                "propagate": True,
            },
            "app.workers": {
                "level": "INFO",
                "handlers": ["celery_file"],
                "propagate": True,
            },
            "celery": {
                "level": "INFO",
                "handlers": ["celery_file", "console"],
                "propagate": False,
            },
            "access": {
                "level": "INFO",
                "handlers": ["access_file", "console"],
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "WARNING",  # LoggingMiddleware writes the access lines
                "handlers": ["access_file"],
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "level": "WARNING",
                "handlers": ["app_file"],
                "propagate": False,
            },
        },
    }

def setup_logging():
    """Setup application logging configuration"""
    log_dir = settings.LOG_DIR
    for sub_dir in LOG_SUB_DIRS:
        os.makedirs(os.path.join(log_dir, sub_dir), exist_ok=True)

    current_date = datetime.now().strftime("%Y-%m-%d")
    logging.config.dictConfig(build_logging_config(log_dir, settings.LOG_LEVEL, current_date))

    logger = logging.getLogger(__name__)
    logger.info(f"📦 Stocktake count pipeline - logging to {log_dir}/ at {settings.LOG_LEVEL}")
