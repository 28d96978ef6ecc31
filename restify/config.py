# Configuration settings should be set in app.config
# The RESTIFY class attributes hold the defaults, these can be overridden with the
# RESTIFY(app, **kwargs) arguments or with environment variables
import os
import logging
from flask import current_app
import restify
from typing import Any


def get_config(option: str) -> Any:
    """Retrieve a configuration parameter from the app
    :param option: configuration parameter
    :return: configuration value
    """
    try:
        result = current_app.config[option]
    except (KeyError, RuntimeError):
        # no app context or the option wasn't set in the app config
        result = getattr(restify.RESTIFY, option, None)
    if result is None:
        result = os.environ.get(option, None)
    return result


def get_int_config(option: str, default: int) -> int:
    """
    :param option: configuration parameter
    :param default: value used when the option is not set or invalid
    :return: integer configuration value
    """
    value = get_config(option)
    try:
        return int(value)
    except (TypeError, ValueError):
        restify.log.warning(f'Invalid integer value "{value}" for config option {option}')
        return default


def is_debug() -> bool:
    """
    We use the loglevel to check whether we're running in debug mode
    :return: whether the app is in debug mode
    :rtype: Boolean
    """
    return restify.log.getEffectiveLevel() < logging.INFO
