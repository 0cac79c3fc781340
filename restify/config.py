# Configuration settings should be set in app.config
# The RESTIFY class attributes hold the defaults, environment variables override them
import os
import logging
from flask import current_app
import restify
from typing import Any


def _coerce(value: str, default: Any) -> Any:
    """Convert an environment variable string to the type of the default setting"""
    if isinstance(default, bool):
        return value.lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(value)
    return value


def get_config(option: str) -> Any:
    """Retrieve a configuration parameter
    lookup order: flask app config, environment, RESTIFY class attribute
    :param option: configuration parameter
    :return: configuration value
    """
    try:
        return current_app.config[option]
    except (KeyError, RuntimeError):
        pass

    default = getattr(restify.RESTIFY, option, None)
    env_value = os.environ.get(option, None)
    if env_value is not None:
        try:
            return _coerce(env_value, default)
        except ValueError:  # pragma: no cover
            restify.log.warning(f'Invalid value for {option} in environment: "{env_value}"')
    return default


def is_debug() -> bool:
    """
    We use the loglevel to check whether we're running in debug mode
    :return: whether the app is in debug mode
    :rtype: Boolean
    """
    return restify.log.getEffectiveLevel() < logging.INFO
