# -*- coding: utf-8 -*-
#
# Repository: the declarative definition of a REST resource backed by a sqla model
#
# pylint: disable=logging-format-interpolation,too-many-public-methods
#
"""
Example:

    class PostRepository(Repository):
        model = Post
        search = ["title", "description"]
        match = {"category": "text", "is_active": "bool"}
        sort = ["id", "title"]
        related = ["user"]

        def fields(self, request):
            return [
                Field("title").rules("required", "max:255"),
                Field("description").hide_from_index(),
                File("image").path("posts").prunable(),
            ]

        def filters(self, request):
            return [ActiveFilter()]

    api.expose(PostRepository)   # => /posts, /posts/<id>, /posts/filters, /posts/<id>/attach/<related>, ..
    PostRepository.store_plain({"title": "Hello"})  # the same lifecycle, without an http request
"""
from http import HTTPStatus
from flask import current_app, jsonify, make_response
from werkzeug.test import EnvironBuilder
import restify
from . import db
from .attr_parse import parse_attr
from .casts import RepositoryCast
from .errors import BadRequestError, UnAuthorizedError, ValidationError
from .field_collection import FieldCollection
from .fields import Field
from .pagination import paginate
from .policy import CREATE, DELETE, UPDATE as UPDATE_ACTION, VIEW, VIEW_ANY, current_actor, gate
from .request import DESTROY, INDEX, SHOW, STORE, UPDATE, RestifyRequest
from .search import RepositorySearchService
from .serializer import RepositorySerializer
from .tx import transaction
from .util import classproperty, kebab_case, plural
from .validation import Validator


class Repository:
    """
    Base class of the exposed repositories, the instances wrap one model instance (`resource`)
    """

    model = None
    # searchable columns
    search = ()
    # {column: type} of the match[column] arguments
    match = {}
    # sortable columns
    sort = ()
    # relationships the client may request with related=...
    related = ()
    default_per_page = None
    default_relatable_per_page = None
    # bulk create flush size
    chunk_size = 100
    # expose the fillable model columns that have no declared field
    mergeable = False
    policy = None
    search_service_class = RepositorySearchService
    serializer_class = RepositorySerializer
    # converts the index pages and the related collections
    cast = RepositoryCast
    validator_class = Validator
    # custom decorators for the http methods
    decorators = []
    # set when the repository is exposed
    url_prefix = ""

    def __init__(self, resource=None):
        self.resource = resource

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.resource!r}>"

    @classproperty
    def uri_key(cls):
        name = cls.__name__
        if name.endswith("Repository") and name != "Repository":
            name = name[: -len("Repository")]
        return plural(kebab_case(name))

    #
    # Model helpers
    #
    @classmethod
    def new_model(cls):
        return cls.model()

    @classmethod
    def query(cls):
        return db.query(cls.model)

    def resolve_with(self, model):
        """
        :return: a repository wrapping `model`
        """
        return type(self)(model)

    @classmethod
    def uri_to(cls, model):
        return f"{cls.url_prefix}/{cls.uri_key}/{db.instance_id(model)}"

    @property
    def serializer(self):
        return self.serializer_class(self)

    #
    # Hooks, overridden by the subclasses
    #
    def fields(self, request):
        return []

    def fields_for_index(self, request):
        return self.fields(request)

    def fields_for_show(self, request):
        return self.fields(request)

    def fields_for_store(self, request):
        return self.fields(request)

    def fields_for_update(self, request):
        return self.fields(request)

    def filters(self, request):
        return []

    def index_query(self, request, query):
        return query

    def detail_query(self, request, query):
        return query

    def stored(self, model, request):
        pass

    def updated(self, model, request):
        pass

    def deleted(self, status, request):
        pass

    #
    # Fields
    #
    def collect_fields(self, request, phase):
        """
        :param phase: index, show, store or update
        :return: FieldCollection with the fields visible in the phase
        """
        phase_fields = {
            INDEX: self.fields_for_index,
            SHOW: self.fields_for_show,
            STORE: self.fields_for_store,
            UPDATE: self.fields_for_update,
        }
        fields = FieldCollection(phase_fields[phase](request))
        if self.mergeable:
            fields = fields.merge(Field(attribute) for attribute in db.fillable_attributes(self.model))
        return fields.for_phase(phase, request, self)

    def resolve_filters(self, request):
        """
        :return: the filter instances bound to this repository
        """
        result = []
        for filter_ in self.filters(request):
            if isinstance(filter_, type):
                filter_ = filter_()
            filter_.repository = self
            result.append(filter_)
        return result

    def resolve_related(self, request):
        return [name for name in request.related if name in self.related]

    def available_filters(self, request):
        """
        :return: the serialized filters, `include=matches,sortables` adds the match and sort columns
        """
        result = [filter_.serialize(request) for filter_ in self.resolve_filters(request)]
        includes = request.includes
        if "matches" in includes:
            result += [{"key": "matches", "column": column, "type": type_} for column, type_ in (self.match or {}).items()]
        if "sortables" in includes or "sortable" in includes:
            result += [{"key": "sortables", "column": column} for column in self.sort or ()]
        return result

    #
    # Authorization
    #
    def get_policy(self):
        if self.policy is not None:
            return self.policy
        return gate.policy_for(self.model)

    def authorized_to(self, request, action, entity=None):
        policy = self.get_policy()
        if policy is None:
            return True
        if entity is None:
            entity = self.resource if action in (VIEW, UPDATE_ACTION, DELETE) else self.model
        return policy.allows(current_actor(), action, entity)

    def authorized_to_view_any(self, request):
        return self.authorized_to(request, VIEW_ANY, self.model)

    def authorized_to_show(self, request):
        return self.authorized_to(request, VIEW)

    def authorized_to_store(self, request):
        return self.authorized_to(request, CREATE, self.model)

    def authorized_to_update(self, request):
        return self.authorized_to(request, UPDATE_ACTION)

    def authorized_to_delete(self, request):
        return self.authorized_to(request, DELETE)

    def authorize(self, request, action):
        """
        :raises UnAuthorizedError: the policy denied the action
        """
        checks = {
            VIEW_ANY: self.authorized_to_view_any,
            VIEW: self.authorized_to_show,
            CREATE: self.authorized_to_store,
            UPDATE_ACTION: self.authorized_to_update,
            DELETE: self.authorized_to_delete,
        }
        if not checks[action](request):
            raise UnAuthorizedError(f"{action} {self.uri_key}")

    def resolve_details_meta(self, request):
        return {
            "authorizedToShow": self.authorized_to_show(request),
            "authorizedToStore": self.authorized_to_store(request),
            "authorizedToUpdate": self.authorized_to_update(request),
            "authorizedToDelete": self.authorized_to_delete(request),
        }

    def resolve_relationships(self, request):
        """
        :return: {relationship: serialized}, the collections are limited to the relatable page size
        """
        relatable_per_page = request.get_relatable_per_page(self.default_relatable_per_page)
        result = {}
        for name in self.resolve_related(request):
            value = getattr(self.resource, name, None)
            if value is None:
                result[name] = None
            elif isinstance(value, (list, tuple, set)) or hasattr(value, "__iter__"):
                models = self.cast.from_relation(request, value)[:relatable_per_page]
                result[name] = [self.serialize_related(request, item) for item in models]
            else:
                result[name] = self.serialize_related(request, value)
        return result

    @staticmethod
    def serialize_related(request, item):
        """
        Serialize a related model with its exposed repository, or with its column values
        """
        api = current_app.extensions.get("restify")
        related_repository = api.registry.for_model(type(item)) if api is not None else None
        if related_repository is None:
            return db.to_dict(item)
        return related_repository(item).serializer.serialize_for_index(request)

    #
    # Validation
    #
    def validator(self, fields, phase):
        rules = {}
        messages = {}
        for field in fields:
            field_rules = field.get_rules(phase)
            if field_rules:
                rules[field.attribute] = field_rules
            # a bare rule key only applies to the field that declared it
            for key, message in field.get_messages().items():
                messages[key if "." in key else f"{field.attribute}.{key}"] = message
        return self.validator_class(rules, messages)

    #
    # Lifecycle
    #
    @staticmethod
    def response(body, status=HTTPStatus.OK.value, headers=None):
        if body is None:
            response = make_response("", status)
        else:
            response = make_response(jsonify(body), status)
        for key, value in (headers or {}).items():
            response.headers[key] = value
        return response

    def index(self, request):
        """
        GET /{uri_key}
        """
        query = self.search_service_class().search(request, self)
        query = self.index_query(request, query)
        per_page = request.get_per_page(self.default_per_page)
        paginator = paginate(query, per_page, request.page, request.base_url, request.args.items(multi=True))
        items = [self.resolve_with(model) for model in self.cast.from_page(request, paginator.items)]
        self.authorize(request, VIEW_ANY)
        items = [item for item in items if item.authorized_to_show(request)]
        restify.log.debug(f"{self.uri_key}: {len(items)} of {paginator.total} items")
        return self.response(self.serializer_class.format_collection(request, paginator, items))

    def find(self, request, repository_id):
        """
        :return: the repository wrapping the model with the given id
        :raises NotFoundError:
        """
        query = self.search_service_class.apply_related(request, self, self.query())
        query = self.detail_query(request, query)
        return self.resolve_with(db.get_instance(self.model, repository_id, query))

    def show(self, request, repository_id):
        """
        GET /{uri_key}/{id}
        """
        repository = self.find(request, repository_id)
        repository.authorize(request, VIEW)
        return self.response({"data": repository.serializer.serialize_for_show(request)})

    def fill(self, request, model, fields, payload):
        """
        Fill the model, then call the post fill callbacks and the after store/update callbacks
        """
        callbacks = [field.fill_attribute(request, model, payload) for field in fields]
        for callback in callbacks:
            if callable(callback):
                callback()
        for field in fields:
            field.invoke_after(model, request)
        return model

    def store(self, request):
        """
        POST /{uri_key}
        """
        self.authorize(request, CREATE)
        payload = request.get_payload()
        if isinstance(payload, list):
            return self.store_bulk(request, payload)

        model = self.store_model(request, payload)
        repository = self.resolve_with(model)
        restify.log.info(f"Created {repository.uri_to(model)}")
        return self.response(
            {"data": repository.serializer.serialize_for_show(request)},
            HTTPStatus.CREATED.value,
            {"Location": repository.uri_to(model)},
        )

    def store_model(self, request, payload):
        """
        Validate the payload, then create and fill the model in one transaction
        :return: the stored model
        """
        if not isinstance(payload, dict):
            raise BadRequestError("Invalid JSON Payload")
        fields = self.collect_fields(request, STORE)
        self.validator(fields, STORE).validate(payload)
        with transaction() as session:
            model = self.new_model()
            session.add(model)
            self.fill(request, model, fields, payload)
            session.flush()
        self.stored(model, request)
        return model

    def store_bulk(self, request, rows):
        """
        POST /{uri_key} with a list of payloads, the rows are flushed by `chunk_size`
        """
        fields = self.collect_fields(request, STORE)
        self.validator(fields, STORE).validate_many(rows)
        models = []
        with transaction() as session:
            for index, row in enumerate(rows, 1):
                model = self.new_model()
                session.add(model)
                self.fill(request, model, fields, row)
                models.append(model)
                if index % self.chunk_size == 0:
                    session.flush()
            session.flush()
        for model in models:
            self.stored(model, request)
        restify.log.info(f"Created {len(models)} {self.uri_key}")
        data = [self.resolve_with(model).serializer.serialize_for_show(request) for model in models]
        return self.response({"data": data}, HTTPStatus.CREATED.value)

    def update(self, request, repository_id):
        """
        PUT/PATCH /{uri_key}/{id}
        """
        repository = self.find(request, repository_id)
        repository.authorize(request, UPDATE_ACTION)
        repository.update_model(request, request.get_payload())
        return self.response({"data": repository.serializer.serialize_for_show(request)})

    def update_model(self, request, payload):
        """
        Validate the payload and fill the wrapped model in one transaction
        :return: the updated model
        """
        if not isinstance(payload, dict):
            raise BadRequestError("Invalid JSON Payload")
        model = self.resource
        fields = self.collect_fields(request, UPDATE)
        self.validator(fields, UPDATE).validate(payload)
        with transaction() as session:
            self.fill(request, model, fields, payload)
            session.flush()
        self.updated(model, request)
        return model

    def destroy(self, request, repository_id):
        """
        DELETE /{uri_key}/{id}
        """
        repository = self.find(request, repository_id)
        repository.authorize(request, DELETE)
        repository.destroy_model(request)
        restify.log.info(f"Deleted {self.uri_key} {repository_id}")
        return self.response(None, HTTPStatus.NO_CONTENT.value)

    def destroy_model(self, request):
        """
        Remove the stored files of the deletable fields and delete the wrapped model in one transaction
        """
        model = self.resource
        with transaction() as session:
            for field in FieldCollection(self.fields(request)).deletable():
                for attribute, value in (field.delete_stored(request, model) or {}).items():
                    setattr(model, attribute, value)
            db.delete(model)
            session.flush()
        self.deleted(True, request)
        return True

    #
    # Relationships
    #
    def attachable(self, request, related):
        """
        :return: (field, relationship) of a many-to-many relationship declared as a field
        :raises BadRequestError: `related` isn't such a relationship
        """
        field = FieldCollection(self.fields(request)).first_where(related)
        relationship = db.many_to_many(self.model, related)
        if field is None or relationship is None:
            raise BadRequestError(f'"{related}" is not an attachable relationship of {self.uri_key}')
        return field, relationship

    def pivots(self, relationship, payload, related):
        """
        :param payload: {related: id or [ids], pivot column: value, ..}
        :return: the pivot rows linking the wrapped model and the related models
        :raises NotFoundError: a related id doesn't exist
        """
        if not isinstance(payload, dict) or payload.get(related) is None:
            raise BadRequestError(f'Missing "{related}" in the payload')
        related_ids = payload[related]
        if not isinstance(related_ids, list):
            related_ids = [related_ids]

        key_names = {column.name for _, column in relationship.synchronize_pairs}
        key_names |= {column.name for _, column in relationship.secondary_synchronize_pairs}
        values = {}
        for name, value in payload.items():
            if name == related or name in key_names or name not in relationship.secondary.c:
                continue
            try:
                values[name] = parse_attr(relationship.secondary.c[name], value)
            except (TypeError, ValueError):
                raise ValidationError({name: [f"The {name.replace('_', ' ')} is invalid."]})

        related_model = relationship.mapper.class_
        rows = []
        for related_id in related_ids:
            related_instance = db.get_instance(related_model, related_id)
            rows.append(dict(values, **db.pivot_keys(relationship, self.resource, related_instance)))
        return rows

    def attach(self, request, repository_id, related):
        """
        POST /{uri_key}/{id}/attach/{related}
        """
        repository = self.find(request, repository_id)
        repository.authorize(request, UPDATE_ACTION)
        field, relationship = repository.attachable(request, related)
        rows = repository.pivots(relationship, request.get_payload(), related)
        for row in rows:
            if not field.authorized_to_attach(request, row):
                raise UnAuthorizedError(f"attach {related} to {self.uri_key}")
        with transaction() as session:
            rows = db.attach(relationship, rows)
            session.expire(repository.resource, [related])
        restify.log.info(f"Attached {len(rows)} {related} to {repository.uri_to(repository.resource)}")
        return self.response({"data": rows}, HTTPStatus.CREATED.value)

    def detach(self, request, repository_id, related):
        """
        POST /{uri_key}/{id}/detach/{related}
        """
        repository = self.find(request, repository_id)
        repository.authorize(request, UPDATE_ACTION)
        field, relationship = repository.attachable(request, related)
        rows = repository.pivots(relationship, request.get_payload(), related)
        for row in rows:
            if not field.authorized_to_detach(request, row):
                raise UnAuthorizedError(f"detach {related} from {self.uri_key}")
        with transaction() as session:
            db.detach(relationship, rows)
            session.expire(repository.resource, [related])
        restify.log.info(f"Detached {len(rows)} {related} from {repository.uri_to(repository.resource)}")
        return self.response(None, HTTPStatus.NO_CONTENT.value)

    #
    # The lifecycle called from code: the same authorization, validation and transaction
    # as the http endpoints, on a request without arguments
    #
    @classmethod
    def plain_request(cls, phase, repository_id=None):
        methods = {STORE: "POST", SHOW: "GET", UPDATE: "PATCH", DESTROY: "DELETE"}
        path = f"{cls.url_prefix}/{cls.uri_key}"
        if repository_id is not None:
            path = f"{path}/{repository_id}"
        request = RestifyRequest(EnvironBuilder(path=path, method=methods[phase]).get_environ())
        request.phase = phase
        return request

    @classmethod
    def store_plain(cls, payload):
        """
        PostRepository.store_plain({"title": "Hello"})
        :return: the stored model
        :raises ValidationError, UnAuthorizedError:
        """
        request = cls.plain_request(STORE)
        repository = cls()
        repository.authorize(request, CREATE)
        return repository.store_model(request, payload)

    @classmethod
    def update_plain(cls, payload, repository_id):
        """
        :return: the updated model
        :raises NotFoundError, ValidationError, UnAuthorizedError:
        """
        request = cls.plain_request(UPDATE, repository_id)
        repository = cls().find(request, repository_id)
        repository.authorize(request, UPDATE_ACTION)
        return repository.update_model(request, payload)

    @classmethod
    def show_plain(cls, repository_id):
        """
        :return: the model, once the policy allowed viewing it
        """
        request = cls.plain_request(SHOW, repository_id)
        repository = cls().find(request, repository_id)
        repository.authorize(request, VIEW)
        return repository.resource

    @classmethod
    def destroy_plain(cls, repository_id):
        request = cls.plain_request(DESTROY, repository_id)
        repository = cls().find(request, repository_id)
        repository.authorize(request, DELETE)
        return repository.destroy_model(request)
