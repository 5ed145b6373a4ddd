# flask_app/utils/logging_config.py

"""
Logging setup driven by the monitoring configuration.

``app.logger`` stays a standard library logger; records are rendered by a
structlog ``ProcessorFormatter`` as JSON lines or as console text.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

import structlog
from flask import has_request_context, request

_HANDLER_MARKER = "_identity_handler"


def _app_info_adder(app_name, app_version):
    def add_app_info(logger, method_name, event_dict):
        if app_name:
            event_dict.setdefault("app", app_name)
        if app_version:
            event_dict.setdefault("version", app_version)
        return event_dict

    return add_app_info


def add_request_context(logger, method_name, event_dict):
    """Attach the current request's method, path and client address"""
    if has_request_context():
        event_dict.setdefault("method", request.method)
        event_dict.setdefault("path", request.path)
        event_dict.setdefault("remote_addr", request.remote_addr)
    return event_dict


def _shared_processors(app_name=None, app_version=None):
    return [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ),
        _app_info_adder(app_name, app_version),
        add_request_context,
    ]


def build_json_formatter(app_name=None, app_version=None):
    """Formatter emitting one JSON object per record"""
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(app_name, app_version),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )


def build_text_formatter():
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
    )


def _build_formatter(app):
    if str(app.config.get("LOG_FORMAT", "json")).lower() == "json":
        return build_json_formatter(app.config.get("APP_NAME"), app.config.get("APP_VERSION"))
    return build_text_formatter()


def _remove_managed_handlers(logger):
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)
            handler.close()


def setup_logging(app):
    """
    Configure app.logger handlers from LOG_* settings.

    Safe to call more than once; handlers added by a previous call are
    replaced rather than duplicated.
    """
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    formatter = _build_formatter(app)

    logger = app.logger
    _remove_managed_handlers(logger)
    logger.setLevel(level)

    if app.config.get("ENABLE_CONSOLE_LOGGING", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        setattr(console_handler, _HANDLER_MARKER, True)
        logger.addHandler(console_handler)

    if app.config.get("ENABLE_FILE_LOGGING", False):
        log_dir = app.config.get("LOG_DIR", "logs")
        try:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(log_dir, app.config.get("LOG_FILE_NAME", "identity.log")),
                maxBytes=app.config.get("LOG_FILE_MAX_BYTES", 10485760),
                backupCount=app.config.get("LOG_FILE_BACKUP_COUNT", 10),
            )
        except OSError as exc:
            logger.warning(f"File logging disabled, could not open log directory {log_dir}: {exc}")
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            setattr(file_handler, _HANDLER_MARKER, True)
            logger.addHandler(file_handler)

    logger.debug(f"Logging configured at {level_name} ({app.config.get('LOG_FORMAT', 'json')} format)")
    return logger
