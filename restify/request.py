"""
Request class used by the restify endpoints

The query string carries the filter grammar (`column[operator]=value`) next to the
plain parameters (order, fields, associations, size, page, unsafe, return, ...).
The raw query string is kept so the filter parser sees the parameters in the order
the client sent them.
"""
from urllib.parse import unquote_plus
from flask import Request
from werkzeug.exceptions import BadRequest
from .errors import BadRequestError

TRUE_VALUES = ("1", "true", "yes")


# pylint: disable=too-many-ancestors
class RestifyRequest(Request):
    """
    Flask request with helpers for the restify query parameters and json body
    """

    language_header = "language"
    language_cookie = "l10n-language"

    @property
    def raw_query_string(self) -> str:
        """
        :return: the undecoded query string
        """
        return self.query_string.decode("latin-1")

    def param(self, name, default=""):
        """
        :return: query argument `name`, or `default`
        """
        return self.args.get(name, default)

    def flag(self, name) -> bool:
        """
        :return: True if the boolean query argument `name` is set, eg. ?unsafe=1
        """
        return unquote_plus(self.args.get(name, "")).lower() in TRUE_VALUES

    @property
    def is_unsafe(self) -> bool:
        return self.flag("unsafe")

    @property
    def wants_return(self) -> bool:
        return self.flag("return")

    @property
    def language(self):
        """
        :return: client language, from the `language` header or the `l10n-language` cookie
        """
        return self.headers.get(self.language_header) or self.cookies.get(self.language_cookie) or ""

    def get_payload(self):
        """
        :return: the decoded json body
        :raises BadRequestError: the body isn't valid json
        """
        try:
            return self.get_json(force=True)
        except BadRequest as exc:
            raise BadRequestError(f"invalid request body: {exc.description}")
