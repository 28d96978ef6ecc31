# Response class
from flask import Response


class RestifyResponse(Response):
    """
    Response class, json is the default mimetype of the repository endpoints
    """

    default_mimetype = "application/json"
