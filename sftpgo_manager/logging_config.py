import contextvars
import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from typing import Optional

import yaml

# Context variable for trace ID
trace_id_var = contextvars.ContextVar("trace_id", default=None)

_RESERVED = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "taskName", "exc_info",
    "exc_text", "stack_info", "message", "component",
}


def get_trace_id() -> Optional[str]:
    """Get the current trace ID from context"""
    return trace_id_var.get()


class JsonFormatter(logging.Formatter):
    """JSON formatter with trace id and any `extra` fields"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "trace_id": get_trace_id(),
            "component": getattr(record, "component", "api"),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED and key not in log_entry:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def _default_config(log_format: str, log_level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JsonFormatter},
            "text": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": log_format,
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "sftpgo_manager": {"level": log_level, "propagate": True},
            "uvicorn": {"level": log_level, "propagate": True},
            "uvicorn.error": {"level": log_level, "propagate": True},
            "uvicorn.access": {"level": log_level, "propagate": True},
        },
        "root": {"level": log_level, "handlers": ["console"]},
    }


def setup_logging(config_path: str = "LOGGING.yaml") -> dict:
    """Setup logging configuration from YAML file or environment"""
    log_format = os.getenv("LOG_FORMAT", "json")
    log_level = os.getenv("LOG_LEVEL", "INFO")
    if log_format not in ("json", "text"):
        log_format = "json"

    config = None
    if os.path.exists(config_path):
        try:
            with open(config_path, "r") as f:
                config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            print(f"Warning: Could not load {config_path}: {e}")

    if not config:
        config = _default_config(log_format, log_level)

    # Environment level override wins over the file
    for logger_cfg in config.get("loggers", {}).values():
        logger_cfg["level"] = log_level

    logging.config.dictConfig(config)
    return config
