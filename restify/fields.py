# -*- coding: utf-8 -*-
"""
Field descriptors: a field declares how one attribute of a repository is
resolved for the index and show responses, filled from the request payload on store and update,
validated and authorized.

Example:
    def fields(self, request):
        return [
            Field("title").rules("required", "max:255"),
            Field("description").hide_from_index(),
            Field(lambda post: post.title.upper()),  # computed
        ]
"""
from typing import Any, Callable, Dict, List, Optional
import restify
from .attr_parse import parse_attr
from .db import get_column, instance_id
from .errors import ValidationError
from .request import STORE, UPDATE
from .validation import normalize_rules


def _flatten(rules):
    result = []
    for rule in rules:
        if isinstance(rule, (list, tuple)):
            result.extend(rule)
        else:
            result.append(rule)
    return result


def data_get(target: Any, path: str) -> Any:
    """
    Walk a dotted attribute path, e.g. "author.name"
    :return: the value or None when one of the steps is missing
    """
    value = target
    for step in path.split("."):
        if value is None:
            return None
        if isinstance(value, dict):
            value = value.get(step)
        else:
            value = getattr(value, step, None)
    return value


def _entity(repository):
    # fields resolve against a repository wrapping a model, or against the model itself
    if hasattr(repository, "resolve_with"):
        return repository.resource
    return repository


def _check(flag, *args):
    if callable(flag):
        return bool(flag(*args))
    return bool(flag)


class Field:
    """
    A field of a repository
    :param attribute: model attribute name or a compute callback `cb(model)`
    :param resolve_callback: `cb(value, model, attribute)` returning the serialized value
    """

    COMPUTED = "Computed"

    def __init__(self, attribute, resolve_callback: Optional[Callable] = None) -> None:
        self.compute_callback = None
        if callable(attribute):
            self.compute_callback = attribute
            attribute = self.COMPUTED
        self.attribute = attribute
        self.resolve_callback = resolve_callback
        self.value = None
        self._rules: List[Any] = []
        self._storing_rules: List[Any] = []
        self._updating_rules: List[Any] = []
        self._messages: Dict[str, str] = {}
        self._index_callback = None
        self._show_callback = None
        self._fill_callback = None
        self._store_callback = None
        self._update_callback = None
        self._after_store = None
        self._after_update = None
        self._default = None
        self._see_callback = True
        self._store_auth_callback = True
        self._update_auth_callback = True
        self._attach_callback = True
        self._detach_callback = True
        self._event_callback = None
        self._hidden_on_index = False
        self._hidden_on_show = False
        self._readonly = False
        self._label = None

    @classmethod
    def new(cls, *args, **kwargs):
        return cls(*args, **kwargs)

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.attribute}>"

    #
    # Configuration
    #
    def rules(self, *rules):
        """
        Rules applied on store and update
        """
        self._rules.extend(_flatten(rules))
        return self

    def storing_rules(self, *rules):
        self._storing_rules.extend(_flatten(rules))
        return self

    store_rules = storing_rules

    def updating_rules(self, *rules):
        self._updating_rules.extend(_flatten(rules))
        return self

    update_rules = updating_rules

    def messages(self, messages: Dict[str, str]):
        """
        Custom validation messages, keyed by rule name or "<attribute>.<rule>"
        """
        self._messages.update(messages)
        return self

    def resolve_using(self, callback):
        self.resolve_callback = callback
        return self

    def index_callback(self, callback):
        self._index_callback = callback
        return self

    def show_callback(self, callback):
        self._show_callback = callback
        return self

    def fill_callback(self, callback):
        """
        `cb(request, model, attribute)` takes over filling the attribute from the request,
        the store and update callbacks are ignored
        """
        self._fill_callback = callback
        return self

    def store_callback(self, callback):
        """
        `cb(request, model, attribute)` returns the value stored when creating a model
        """
        self._store_callback = callback
        return self

    def update_callback(self, callback):
        self._update_callback = callback
        return self

    def after_store(self, callback):
        """
        `cb(model, request)` called after the model was filled, within the store transaction
        """
        self._after_store = callback
        return self

    def after_update(self, callback):
        self._after_update = callback
        return self

    def default(self, value):
        """
        Value serialized when the resolved value is None, a callable is called with the request
        """
        self._default = value
        return self

    def can_see(self, callback):
        self._see_callback = callback
        return self

    def can_store(self, callback):
        self._store_auth_callback = callback
        return self

    def can_update(self, callback):
        self._update_auth_callback = callback
        return self

    def can_attach(self, callback):
        """
        `cb(request, pivot)` authorizes attaching a related model, `pivot` is the dict of the pivot row values
        """
        self._attach_callback = callback
        return self

    def can_detach(self, callback):
        self._detach_callback = callback
        return self

    def event(self, callback):
        """
        `cb(request, model, old_value)` called when filling changed the attribute value
        """
        self._event_callback = callback
        return self

    def hide_from_index(self, callback=True):
        self._hidden_on_index = callback
        return self

    def hide_from_show(self, callback=True):
        self._hidden_on_show = callback
        return self

    def readonly(self, callback=True):
        self._readonly = callback
        return self

    def label(self, label: str):
        self._label = label
        return self

    #
    # Introspection
    #
    def get_label(self):
        if self._label is not None:
            return self._label
        return str(self.attribute).replace("_", " ").capitalize()

    def get_messages(self):
        return dict(self._messages)

    def is_computed(self):
        return self.compute_callback is not None

    def get_storing_rules(self):
        """
        :return: general rules followed by the storing rules, without duplicates
        """
        return normalize_rules(self._rules + self._storing_rules)

    def get_updating_rules(self):
        return normalize_rules(self._rules + self._updating_rules)

    def get_rules(self, phase):
        return self.get_updating_rules() if phase == UPDATE else self.get_storing_rules()

    def authorize(self, request) -> bool:
        """
        :return: whether the field may be seen by the current request
        """
        return _check(self._see_callback, request)

    def authorized_to_store(self, request) -> bool:
        return self.authorize(request) and _check(self._store_auth_callback, request)

    def authorized_to_update(self, request) -> bool:
        return self.authorize(request) and _check(self._update_auth_callback, request)

    def authorized_to_attach(self, request, pivot) -> bool:
        return self.authorize(request) and _check(self._attach_callback, request, pivot)

    def authorized_to_detach(self, request, pivot) -> bool:
        return self.authorize(request) and _check(self._detach_callback, request, pivot)

    def is_hidden_on_index(self, request, repository=None) -> bool:
        return _check(self._hidden_on_index, request, repository)

    def is_hidden_on_show(self, request, repository=None) -> bool:
        return _check(self._hidden_on_show, request, repository)

    def is_readonly(self, request, repository=None) -> bool:
        return _check(self._readonly, request, repository)

    def is_shown_on_store(self, request, repository=None) -> bool:
        return not self.is_computed() and not self.is_readonly(request, repository)

    def is_shown_on_update(self, request, repository=None) -> bool:
        return not self.is_computed() and not self.is_readonly(request, repository)

    #
    # Resolving
    #
    def resolve_attribute(self, repository, attribute=None):
        if self.is_computed():
            return None
        return data_get(_entity(repository), attribute or self.attribute)

    def resolve(self, repository, attribute=None):
        """
        Resolve the field value from the model wrapped by the repository
        """
        attribute = attribute or self.attribute
        entity = _entity(repository)
        if self.is_computed():
            self.value = self.compute_callback(entity)
        elif self.resolve_callback is not None:
            self.value = self.resolve_callback(self.resolve_attribute(repository, attribute), entity, attribute)
        else:
            self.value = self.resolve_attribute(repository, attribute)
        return self

    def _resolve_for(self, callback, repository, attribute):
        if callback is None:
            return self.resolve(repository, attribute)
        attribute = attribute or self.attribute
        entity = _entity(repository)
        if self.is_computed():
            value = self.compute_callback(entity)
        else:
            value = self.resolve_attribute(repository, attribute)
        self.value = callback(value, entity, attribute)
        return self

    def resolve_for_index(self, repository, attribute=None):
        return self._resolve_for(self._index_callback, repository, attribute)

    def resolve_for_show(self, repository, attribute=None):
        return self._resolve_for(self._show_callback, repository, attribute)

    def resolve_default_value(self, request):
        if callable(self._default):
            return self._default(request)
        return self._default

    def serialize_to_value(self, request) -> Dict[str, Any]:
        """
        :return: {attribute: value}
        """
        value = self.value
        if value is None:
            value = self.resolve_default_value(request)
        return {self.attribute: value}

    #
    # Filling
    #
    def fill_attribute(self, request, model, payload=None):
        """
        Fill the model attribute from the request payload
        :param payload: the attributes to fill from, defaults to the request payload
        :return: None, or a callable that's called once all fields were filled
        """
        if self._fill_callback is not None:
            return self._fill_callback(request, model, self.attribute)
        if self.is_computed():
            return None
        if payload is None:
            payload = request.get_payload()
        if self.attribute not in payload:
            return None

        callback = self._update_callback if request.phase == UPDATE else self._store_callback
        if callback is not None:
            value = callback(request, model, self.attribute)
        else:
            value = payload[self.attribute]
        old_value = getattr(model, self.attribute, None)
        self.fill_value(model, value)
        if self._event_callback is not None and getattr(model, self.attribute, None) != old_value:
            self._event_callback(request, model, old_value)
        return None

    def fill_value(self, model, value):
        """
        Assign the value, converted to the column type
        """
        column = get_column(type(model), self.attribute)
        try:
            value = parse_attr(column, value)
        except (TypeError, ValueError) as exc:
            restify.log.debug(f"Failed to parse {self.attribute}: {exc}")
            raise ValidationError({self.attribute: [f"The {self.attribute.replace('_', ' ')} is invalid."]})
        setattr(model, self.attribute, value)

    def invoke_after(self, model, request):
        """
        Call the after_store or after_update callback for the request phase
        """
        if request.phase == STORE and self._after_store is not None:
            return self._after_store(model, request)
        if request.phase == UPDATE and self._after_update is not None:
            return self._after_update(model, request)
        return None


class BelongsToMany(Field):
    """
    Many-to-many relationship serialized as the list of the related ids.
    It's never filled from the payload, the links are changed with the attach and detach endpoints
    """

    def resolve_attribute(self, repository, attribute=None):
        related = super().resolve_attribute(repository, attribute)
        if related is None:
            return []
        return [instance_id(item) for item in related]

    def is_shown_on_store(self, request, repository=None) -> bool:
        return False

    def is_shown_on_update(self, request, repository=None) -> bool:
        return False


class Deletable:
    """
    Mixin for the fields that own stored data which must be removed when the model is deleted
    """

    _delete_callback = None

    def delete(self, callback):
        """
        `cb(request, model)` replaces the default delete behavior,
        it returns a dict with the attribute values to assign (e.g. {"image": None})
        """
        self._delete_callback = callback
        return self

    def is_deletable(self):
        return True

    def delete_stored(self, request, model):  # pragma: no cover
        raise NotImplementedError
