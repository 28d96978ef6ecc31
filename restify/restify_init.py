import logging
import os
import sys
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from .request import RestifyRequest
from .response import RestifyResponse
import restify
import flask.app


class RESTIFY:
    """This class configures the Flask application to serve Repository classes
    :param app: a Flask application.
    :param LOGLEVEL: loglevel configuration variable, values from logging module (0: trace, .. 50: critical)
    """

    # Configuration settings are stored as class variables
    DEFAULT_PER_PAGE = 15
    MAX_PER_PAGE = 1000
    DEFAULT_RELATABLE_PER_PAGE = 15
    VALIDATION_STATUS_CODE = 422
    DEFAULT_DISK = "local"
    DISKS = {"local": {"root": "storage"}}
    # log level applied by init_app, unset keeps the DEBUG environment variable level
    LOGLEVEL = None

    def __init__(self, app: flask.app.Flask, *args, **kwargs) -> None:
        """
        Constructor
        """
        self.app = app
        if app is not None:
            self.init_app(app, *args, **kwargs)

    def init_app(self, app: flask.app.Flask, app_db: SQLAlchemy = None, **kwargs) -> None:
        """
        Application initialization
        """
        if not isinstance(app, Flask):  # pragma: no cover
            raise TypeError("'app' should be Flask.")

        if app_db is None:
            app_db = app.extensions["sqlalchemy"]

        restify.DB = self.db = app_db

        app.request_class = RestifyRequest
        app.response_class = RestifyResponse
        app.url_map.strict_slashes = False

        for conf_name, conf_val in kwargs.items():
            setattr(RESTIFY, conf_name, conf_val)

        loglevel = app.config.get("LOGLEVEL", RESTIFY.LOGLEVEL)
        if loglevel is None:
            loglevel = os.environ.get("LOGLEVEL")
        if loglevel is not None:
            log.setLevel(parse_loglevel(loglevel))
        if app.config.get("DEBUG", False):
            log.setLevel(logging.DEBUG)

        # pylint: disable=unused-argument,unused-variable
        @app.teardown_appcontext
        def shutdown_session(exception=None):
            """cfr. http://flask.pocoo.org/docs/0.12/patterns/sqlalchemy/"""
            self.db.session.remove()

    @staticmethod
    def init_logging(loglevel: int = logging.WARNING) -> logging.Logger:
        """
        Specify the log format used in the webserver logs
        The webserver will catch stdout so we redirect eveything to sys.stderr
        """
        log = logging.getLogger(__name__)
        if log.level == logging.NOTSET:
            handler = logging.StreamHandler(sys.stderr)
            formatter = logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s")
            handler.setFormatter(formatter)
            log.setLevel(loglevel)
            log.addHandler(handler)
        return log


def parse_loglevel(loglevel) -> int:
    """
    :param loglevel: logging level number, or name such as "info"
    :return: the level number
    """
    if isinstance(loglevel, int):
        return loglevel
    loglevel = str(loglevel).strip()
    if loglevel.isdigit():
        return int(loglevel)
    level = logging.getLevelName(loglevel.upper())
    if not isinstance(level, int):
        raise ValueError(f'Invalid log level "{loglevel}"')
    return level


#
# DB and logging initialization
#
DB = SQLAlchemy()

try:
    DEBUG = os.getenv("DEBUG", logging.WARNING)
    LOGLEVEL = int(DEBUG)
except ValueError:  # pragma: no cover
    print(f'Invalid LogLevel in DEBUG Environment Variable! "{DEBUG}"')
    LOGLEVEL = logging.INFO

log = RESTIFY.init_logging(LOGLEVEL)
