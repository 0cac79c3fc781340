# Exception Handlers
#
# The application loglevel determines the level of detail shown to the user
# for internal errors. If set to debug, too much sensitive info might be shown !
#
# The exceptions are converted into the response envelope by the endpoint pipeline:
# {
#      "success": false,
#      "error": "permission denied",
#      "code": 403,
#      ...
# }
#
import traceback
from http import HTTPStatus
from sqlalchemy.exc import DontWrapMixin
import restify
from .config import is_debug

HIDDEN_LOG = "(debug logging disabled)"


class RestifyError(Exception, DontWrapMixin):
    """
    Base class of the errors that are sent back to the client
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
    message = ""

    def __init__(self, message="", status_code=None):
        Exception.__init__(self, message or self.message)
        if status_code is not None:
            self.status_code = status_code
        if message:
            self.message = message

    def __str__(self):
        return self.message


class BadRequestError(RestifyError):
    """
    This exception is raised when the request can't be parsed:
    invalid json body, invalid query parameters, ...
    """

    status_code = HTTPStatus.BAD_REQUEST.value
    message = "bad request"

    def __init__(self, message="", status_code=HTTPStatus.BAD_REQUEST.value):
        super().__init__(message, status_code)
        restify.log.warning("BadRequest: %s", self.message)


class UnsafeRequestError(BadRequestError):
    """
    Raised for batch requests that would touch the whole table
    (no filter and no `unsafe=1` query parameter)
    """

    message = "unsafe request"


class ColumnNotExistError(BadRequestError):
    message = "column does not exist"


class InvalidFilterError(BadRequestError):
    message = "invalid filter condition"


class PermissionDeniedError(RestifyError):
    """
    This exception is raised when the permission gate refuses the request
    we use FORBIDDEN(403) instead of UNAUTHORIZED(401): authentication is the app's job
    """

    status_code = HTTPStatus.FORBIDDEN.value
    message = "permission denied"

    def __init__(self, message="", status_code=HTTPStatus.FORBIDDEN.value):
        super().__init__(message, status_code)
        restify.log.error("PermissionDenied: %s", self.message)


class NotFoundError(RestifyError):
    """
    This exception is raised when an item was not found
    """

    status_code = HTTPStatus.NOT_FOUND.value
    message = "object does not exist"

    def __init__(self, message="", status_code=HTTPStatus.NOT_FOUND.value):
        super().__init__(message, status_code)
        restify.log.info("Not found: %s", self.message)


class ValidationError(RestifyError):
    """
    This exception is raised when invalid input has been detected (client side input)
    Always send back the messages to the client in the response

    :param errors: list of {"field": ..., "error": ...} dicts
    """

    status_code = HTTPStatus.PRECONDITION_FAILED.value
    message = "validation error"

    def __init__(self, errors=None, message="", status_code=HTTPStatus.PRECONDITION_FAILED.value):
        self.errors = list(errors or [])
        if not message and self.errors:
            message = f"{self.errors[0]['field']}: {self.errors[0]['error']}"
        super().__init__(message, status_code)
        restify.log.warning("ValidationError: %s", self.errors or self.message)


class HookError(RestifyError):
    """
    Raised when a lifecycle hook fails with an unstructured exception,
    the hook's message is application defined so it's sent to the client
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value

    def __init__(self, message="", status_code=HTTPStatus.INTERNAL_SERVER_ERROR.value):
        super().__init__(str(message), status_code)
        restify.log.error("Hook Error: %s", self.message)


class GenericError(RestifyError):
    """
    This exception is raised when an internal error has been detected (mostly database errors)
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
    message = "Generic Error: "

    def __init__(self, message, status_code=HTTPStatus.INTERNAL_SERVER_ERROR.value):
        restify.log.error("Generic Error: %s", message)
        if is_debug():
            restify.log.debug(traceback.format_exc(120))
            message = self.message + str(message)
        else:
            message = self.message + HIDDEN_LOG
        super().__init__(message, status_code)
