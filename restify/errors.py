# Exception Handlers
#
# The application loglevel determines the level of detail shown to the user.
# If set to debug, too much sensitive info might be shown !
#
# The exceptions will be caught in http_method_decorator and formatted, for example:
# {
#     "errors": [
#         {
#             "title": "Authorization Error: ",
#             "detail": "Authorization Error: ",
#             "code": "403"
#         }
#     ]
# }
#
# Validation errors are formatted as a field-keyed map instead:
# {
#     "errors": {
#         "title": ["This field is required"]
#     }
# }
#
import traceback
from flask import has_request_context, request
from werkzeug.exceptions import NotFound
import restify
from sqlalchemy.exc import DontWrapMixin
from http import HTTPStatus
from .config import is_debug, get_config

HIDDEN_LOG = "(debug logging disabled)"


class JsonapiError(Exception, DontWrapMixin):
    """
    Base class of the errors that are translated to a structured http response
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
    message = ""

    def to_errors(self):
        """
        :return: the "errors" member of the response body
        """
        return [dict(title=self.message, detail=self.message, code=str(self.status_code))]


class NotFoundError(JsonapiError, NotFound):
    """
    This exception is raised when an item was not found
    """

    status_code = HTTPStatus.NOT_FOUND.value
    message = "NotFoundError "

    def __init__(self, message="", status_code=HTTPStatus.NOT_FOUND.value):
        """
        :param message: Message to be returned in the (json) body
        :param status_code: HTTP Status code
        """
        JsonapiError.__init__(self)
        self.status_code = status_code
        restify.log.error("Not found: %s", message)
        if is_debug():
            self.message += message
        else:
            self.message += HIDDEN_LOG


class UnAuthorizedError(JsonapiError):
    """
    This exception is raised when an authorization error occured
    we use FORBIDDEN(403) instead of UNAUTHORIZED(401) (old http status code descriptions were not clear)
    """

    status_code = HTTPStatus.FORBIDDEN.value
    message = "Authorization Error: "

    def __init__(self, message="", status_code=HTTPStatus.FORBIDDEN.value):
        Exception.__init__(self)
        self.status_code = status_code
        restify.log.error("UnAuthorizedError: %s", message)
        self.message += message


class GenericError(JsonapiError):
    """
    This exception is raised when an error has been detected
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value  # 500
    message = "Generic Error: "

    def __init__(self, message, status_code=HTTPStatus.INTERNAL_SERVER_ERROR.value):
        Exception.__init__(self)
        self.status_code = status_code
        restify.log.error("Generic Error: %s", message)
        if is_debug():
            if has_request_context():
                restify.log.info(f"Error in {request.url}")
            restify.log.debug(traceback.format_exc(120))
            self.message += str(message)
        else:
            self.message += HIDDEN_LOG


class BadRequestError(JsonapiError):
    """
    This exception is raised when the request can't be parsed (client side input)
    Always send back the message to the client in the response
    """

    status_code = HTTPStatus.BAD_REQUEST.value
    message = "Bad Request: "

    def __init__(self, message="", status_code=HTTPStatus.BAD_REQUEST.value):
        Exception.__init__(self)
        self.status_code = status_code
        restify.log.warning("BadRequestError: %s", message)
        self.message += message


class ValidationError(JsonapiError):
    """
    This exception is raised when the payload doesn't pass the validation rules
    `errors` maps the field names to the list of failure messages
    """

    status_code = HTTPStatus.UNPROCESSABLE_ENTITY.value
    message = "Validation Error: "

    def __init__(self, errors=None, message="", status_code=None):
        Exception.__init__(self)
        if status_code is None:
            status_code = get_config("VALIDATION_STATUS_CODE") or HTTPStatus.UNPROCESSABLE_ENTITY.value
        self.status_code = int(status_code)
        self.errors = errors if errors is not None else {}
        restify.log.warning("ValidationError: %s %s", message, self.errors)
        self.message += message

    def to_errors(self):
        return self.errors


class ConfigurationError(Exception):
    """
    Programmer error, e.g. a repository without model or a duplicate uri key
    These are raised when the repositories are exposed and are never translated to a response
    """

    def __init__(self, message):
        super().__init__(message)
        restify.log.critical("ConfigurationError: %s", message)
