"""Logging set up for the stub processes"""
import copy
import logging
import os
from logging.config import dictConfig
from typing import Optional
from typing import Tuple

import yaml

from ipvstub.exception import ConfigurationError

LOGGING_CONF = "logging.yaml"

LOGGING_DEFAULT = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {"default": {"format": "%(asctime)s %(name)s %(levelname)s %(message)s"}},
    "handlers": {"default": {"class": "logging.StreamHandler", "formatter": "default"}},
    "root": {"handlers": ["default"], "level": "INFO"},
    # connection pool chatter from the orchestrator's outgoing requests
    "loggers": {"urllib3": {"level": "WARNING"}},
}


def _logging_dict(config: Optional[dict], filename: Optional[str]) -> Tuple[dict, str]:
    if config is not None:
        return copy.deepcopy(config), "dictionary"

    if filename and os.path.exists(filename):
        with open(filename, "rt") as file:
            _conf = yaml.safe_load(file)
        if not isinstance(_conf, dict):
            raise ConfigurationError("Logging configuration in {} is not a mapping".format(filename))
        return _conf, "file {}".format(filename)

    return copy.deepcopy(LOGGING_DEFAULT), "default"


def configure_logging(
    debug: Optional[bool] = False,
    config: Optional[dict] = None,
    filename: Optional[str] = LOGGING_CONF,
    level: Optional[str] = None,
) -> logging.Logger:
    """
    Configure logging from a dictConfig dictionary, a YAML file or the
    built in default, in that order of preference.

    :param debug: Root logger at DEBUG whatever the configuration says
    :param config: A dictConfig dictionary
    :param filename: A YAML file holding a dictConfig dictionary
    :param level: Root logger level name, e.g. from LOG_LEVEL
    :return: The root logger
    """
    config_dict, config_source = _logging_dict(config, filename)

    if debug:
        level = "DEBUG"
    if level:
        config_dict.setdefault("root", {})["level"] = level.upper()

    dictConfig(config_dict)
    logger = logging.getLogger()
    logger.debug("Configured logging using: {}".format(config_source))
    return logger
