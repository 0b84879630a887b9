#!/usr/bin/python3.7+
# -*- coding:utf-8 -*-
"""
@date: 2024-03-11
@desc: 日志配置

Package records go through uvicorn's ``DefaultFormatter``; access lines are
already formatted and only need ``%(message)s``.
"""
import copy
import logging
import logging.config

ACCESS_LOGGER_NAME = "yzaccesslog.access"

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "()": "uvicorn.logging.DefaultFormatter",
            "fmt": "%(levelprefix)s %(asctime)s %(name)s: %(message)s",
            "use_colors": None,
        },
        "access": {
            "format": "%(message)s",
        },
    },
    "handlers": {
        "default": {
            "formatter": "default",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
        "access": {
            "formatter": "access",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "yzaccesslog": {"handlers": ["default"], "level": "INFO", "propagate": False},
        ACCESS_LOGGER_NAME: {"handlers": ["access"], "level": "INFO", "propagate": False},
        # 由 AccessLogMiddleware 代替
        "uvicorn.access": {"level": "WARNING"},
    },
}


def InitLoggerConfig(app_name: str = "yzaccesslog", is_debug: bool = False, access_logger: str = None):
    """
    Apply ``LOGGING_CONFIG`` for ``app_name``.

    :param app_name: logger name that gets the default handler
    :param is_debug: DEBUG for ``app_name``, otherwise ``LOG_LEVEL`` from settings
    :param access_logger: logger receiving access lines, defaults to ``yzaccesslog.access``
    """
    from yzaccesslog.default_settings import default_setting as settings

    access_logger = access_logger or settings.ACCESS_LOG_LOGGER
    config = copy.deepcopy(LOGGING_CONFIG)
    level = "DEBUG" if is_debug else settings.LOG_LEVEL
    config["loggers"][app_name] = {"handlers": ["default"], "level": level, "propagate": False}
    if access_logger and access_logger != ACCESS_LOGGER_NAME:
        config["loggers"][access_logger] = config["loggers"].pop(ACCESS_LOGGER_NAME)
    logging.config.dictConfig(config)
    return config


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
