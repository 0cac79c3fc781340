import logging
import os
import sys
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from .request import RestifyRequest
import restify
import flask.app


class RESTIFY:
    """This class configures the Flask application to serve restify resources
    :param app: a Flask application.
    :param app_db: Flask-SQLAlchemy extension, defaults to app.extensions["sqlalchemy"]
    :param LOGLEVEL: loglevel configuration variable, values from logging module (0: trace, .. 50: critical)

    Keyword arguments override the class-level configuration settings below
    """

    # Configuration settings are stored as class variables
    API_PREFIX = "/admin/rest"
    MIN_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100
    BATCH_CHUNK_SIZE = 100
    # flush on every write and commit once at the end of the request
    # when False, every write point commits (batch chunks are committed one by one)
    ATOMIC_WRITES = True
    # compare every submitted field, zero values included, when matching Set rows
    SET_STRICT_EQUALITY = False
    DEEP_ASSOCIATION_DEPTH = 4
    MAX_TABLE_COUNT = 10**7  # paginated counts become slow for large tables, we log a warning above this
    LOGLEVEL = logging.WARNING
    ALL_ASSOCIATIONS = ("1", "true", "*")
    DEEP_ASSOCIATIONS = "deep"
    SQL_DEBUG_VALUE = "restify"

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
        app.url_map.strict_slashes = False

        if app.config.get("DEBUG", False):
            log.setLevel(logging.DEBUG)

        for conf_name, conf_val in kwargs.items():
            setattr(RESTIFY, conf_name, conf_val)

        # pylint: disable=unused-argument,unused-variable
        @app.teardown_appcontext
        def shutdown_session(exception=None):
            """cfr. https://flask.palletsprojects.com/en/latest/patterns/sqlalchemy/"""
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
