# flask_restful API subclass
from functools import wraps
from werkzeug.exceptions import HTTPException
from flask_restful import abort, Api
from flask import current_app
import restify
from .config import is_debug
from .errors import JsonapiError
from .json_encoder import RestifyJSONProvider
from .registry import RepositoryRegistry
from .resources import RepositoryRestAPI, RepositoryFiltersAPI, RepositoryAttachAPI, RepositoryDetachAPI
from flask.app import Flask
from flask_sqlalchemy import SQLAlchemy


class RestifyAPI(Api):
    """
    Subclass of the flask_restful API class where we add the expose method
    this method creates the API endpoints for the Repository classes
    """

    def __init__(self, app: Flask, prefix: str = "", app_db: SQLAlchemy = None, **kwargs) -> None:
        """
        :param app: Flask app
        :param prefix: url prefix of the repository endpoints
        :param app_db: Flask-SQLAlchemy instance, defaults to the one registered in the app
        :param kwargs: configuration overrides, e.g. DEFAULT_PER_PAGE=20
        """
        restify.RESTIFY(app, app_db=app_db, **kwargs)
        app.config.setdefault("ERROR_404_HELP", False)
        super().__init__(app, prefix=prefix)
        app.json = RestifyJSONProvider(app)
        self.registry = RepositoryRegistry()
        app.extensions["restify"] = self
        app.before_request(self.registry.freeze)

    def expose_repository(self, repository, url_prefix=""):
        """This methods creates the API url endpoints for a Repository
        :param repository: Repository subclass that we would like to expose
        :param url_prefix: url prefix, appended to the api prefix

        creates classes of the form

        @api_decorator
        class PostRepository_API(RepositoryRestAPI):
            repository = PostRepository

        and adds them as resources to /posts, /posts/<repository_id>, /posts/filters
        and /posts/<repository_id>/attach/<related>, /posts/<repository_id>/detach/<related>
        """
        self.registry.register(repository)
        uri_key = repository.uri_key
        repository.url_prefix = f"{self.prefix}{url_prefix}"
        properties = {"repository": repository}
        api_class_name = f"{repository.__name__}_API"

        url = f"{url_prefix}/{uri_key}"
        restify.log.info(f"Exposing {repository.__name__} on {self.prefix}{url}")
        api_class = api_decorator(type(api_class_name, (RepositoryRestAPI,), properties))
        self.add_resource(api_class, url, endpoint=f"{uri_key}", methods=["GET", "POST"])

        api_class = api_decorator(type(api_class_name + "_i", (RepositoryRestAPI,), properties))
        self.add_resource(
            api_class, f"{url}/<string:repository_id>", endpoint=f"{uri_key}_i", methods=["GET", "PUT", "PATCH", "DELETE"]
        )

        api_class = api_decorator(type(api_class_name + "_filters", (RepositoryFiltersAPI,), properties))
        self.add_resource(api_class, f"{url}/filters", endpoint=f"{uri_key}_filters", methods=["GET"])

        for action, resource in (("attach", RepositoryAttachAPI), ("detach", RepositoryDetachAPI)):
            api_class = api_decorator(type(f"{api_class_name}_{action}", (resource,), properties))
            self.add_resource(
                api_class,
                f"{url}/<string:repository_id>/{action}/<string:related>",
                endpoint=f"{uri_key}_{action}",
                methods=["POST"],
            )
        return repository

    def expose(self, *repositories, url_prefix=""):
        """
        Expose multiple repositories at once
        """
        for repository in repositories:
            self.expose_repository(repository, url_prefix)


def api_decorator(cls):
    """Decorator for the API views:
        - add generic exception handling
        - add the custom decorators of the repository

    :param cls: The class that will be decorated
    :return: decorated class
    """
    for method_name in ["patch", "post", "delete", "get", "put"]:  # HTTP methods
        method = getattr(cls, method_name, None)
        if not method:
            continue

        decorated_method = http_method_decorator(method)
        # Apply the custom decorators, specified as class variable list
        for custom_decorator in getattr(cls.repository, "decorators", []):
            decorated_method = custom_decorator(decorated_method)

        setattr(cls, method_name, decorated_method)
    return cls


def http_method_decorator(fun):
    """Decorator for the supported HTTP methods (get, post, put, patch, delete)
        - commit the database
        - convert the exceptions to a structured json response

    :param fun:
    :return: wrapped fun
    """

    @wraps(fun)
    def method_wrapper(*args, **kwargs):
        """Wrap the method and perform error handling
        :param *args:
        :param **kwargs:
        :return: result of the wrapped method
        """
        try:
            result = fun(*args, **kwargs)
            restify.DB.session.commit()
            return result

        except JsonapiError as exc:
            status_code = exc.status_code
            errors = exc.to_errors()

        except HTTPException as exc:
            status_code = exc.code
            errors = [dict(title=exc.name, detail=exc.description, code=str(exc.code))]

        except Exception as exc:
            status_code = 500
            restify.log.exception(exc)
            message = str(exc) if is_debug() else "Logging Disabled"
            errors = [dict(title="Internal Server Error", detail=message, code="500")]

        restify.DB.session.rollback()
        if current_app.debug:
            restify.log.debug(f"Request failed with {status_code}: {errors}")
        abort(status_code, errors=errors)

    return method_wrapper
