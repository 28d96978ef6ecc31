# flake8: noqa: F401
#
# restify_init has to be imported first: it creates the DB and log module attributes
# used by the other modules
#
from .restify_init import DB, log, RESTIFY
from . import config
from .config import get_config, is_debug
from .errors import (
    JsonapiError,
    ValidationError,
    GenericError,
    UnAuthorizedError,
    NotFoundError,
    BadRequestError,
    ConfigurationError,
)
from .request import RestifyRequest
from .fields import Field, BelongsToMany
from .file_field import File
from .field_collection import FieldCollection
from .filters import Filter, BooleanFilter, SelectFilter, TimestampFilter
from .policy import Policy, Gate, gate, current_actor
from .validation import Validator
from .search import RepositorySearchService
from .serializer import RepositorySerializer
from .pagination import Paginator, paginate
from .casts import RepositoryCast
from .repository import Repository
from .registry import RepositoryRegistry
from .restify_api import RestifyAPI
from .tx import transaction
from .__about__ import __version__, __description__

__all__ = (
    "__version__",
    "__description__",
    #
    "RestifyAPI",
    "RESTIFY",
    # repositories:
    "Repository",
    "RepositoryRegistry",
    "RepositorySearchService",
    "RepositorySerializer",
    "RepositoryCast",
    # fields:
    "Field",
    "BelongsToMany",
    "File",
    "FieldCollection",
    # filters:
    "Filter",
    "BooleanFilter",
    "SelectFilter",
    "TimestampFilter",
    # authorization:
    "Policy",
    "Gate",
    "gate",
    "current_actor",
    # validation:
    "Validator",
    # pagination:
    "Paginator",
    "paginate",
    "transaction",
    # Errors:
    "JsonapiError",
    "ValidationError",
    "GenericError",
    "UnAuthorizedError",
    "NotFoundError",
    "BadRequestError",
    "ConfigurationError",
    # request
    "RestifyRequest",
)
