# -*- coding: utf-8 -*-
"""
Filters declared by a repository and selected by the client with the `filters` argument:

    filters=base64(json([{"class": "ActiveFilter", "value": {"is_active": false}}]))

A filter spec "class" matches a filter by class name, key or qualified name.

Example:
    class CreatedAfterFilter(TimestampFilter):
        column = "created_at"

    class PostRepository(Repository):
        def filters(self, request):
            return [CreatedAfterFilter()]
"""
import restify
from .attr_parse import parse_bool, parse_datetime
from .util import classproperty, kebab_case


class Filter:
    """
    Base filter, subclasses implement `filter(request, query, value)` and return the filtered query.
    """

    type = "value"
    column = None
    # value used when the client doesn't send one
    value = None
    title = None

    def __init__(self, column=None, repository=None):
        if column is not None:
            self.column = column
        self.repository = repository

    @classproperty
    def key(cls):
        return kebab_case(cls.__name__)

    @classmethod
    def qualified_name(cls):
        return f"{cls.__module__}.{cls.__qualname__}"

    @classmethod
    def matches(cls, name):
        """
        :param name: the "class" of the filter specification sent by the client
        """
        return name in (cls.__name__, cls.__qualname__, cls.qualified_name(), cls.key)

    def model_column(self, column=None):
        """
        :return: the sqla column attribute of the repository model
        """
        column = column or self.column
        model = self.repository.model
        attr = getattr(model, column, None) if column else None
        if attr is None:
            restify.log.warning(f'Filter {self.key}: unknown column "{column}" for {model.__name__}')
        return attr

    def resolve(self, request, query, value=None):
        """
        Apply the filter with the client value or the default value
        """
        if value is None:
            value = self.value
        return self.filter(request, query, value)

    def filter(self, request, query, value):
        raise NotImplementedError(f"{self.__class__.__name__}.filter")

    def options(self, request):
        """
        :return: the options the client can choose from, e.g. {"Movie": "movie"}
        """
        return {}

    def get_title(self):
        return self.title or self.__class__.__name__

    def serialize(self, request=None):
        return {
            "class": self.qualified_name(),
            "key": self.key,
            "type": self.type,
            "column": self.column,
            "title": self.get_title(),
            "options": self.options(request),
        }


class BooleanFilter(Filter):
    """
    value: {column: bool, ...}, without value the filter column should be true
    """

    type = "boolean"

    def filter(self, request, query, value):
        if value is None:
            column = self.model_column()
            return query if column is None else query.filter(column.is_(True))
        if not isinstance(value, dict):
            value = {self.column: value}
        for column_name, column_value in value.items():
            column = self.model_column(column_name)
            if column is None:
                continue
            try:
                query = query.filter(column == parse_bool(column_value))
            except ValueError:
                restify.log.warning(f"Filter {self.key}: invalid boolean value {column_value}")
        return query


class SelectFilter(Filter):
    """
    column == value, the choices are returned by `options(request)`
    """

    type = "select"

    def filter(self, request, query, value):
        column = self.model_column()
        if column is None or value is None:
            return query
        return query.filter(column == value)


class TimestampFilter(Filter):
    """
    column >= value, the value is an epoch timestamp or an iso formatted date
    """

    type = "timestamp"

    def filter(self, request, query, value):
        column = self.model_column()
        if column is None or value in (None, ""):
            return query
        try:
            timestamp = parse_datetime(value)
        except (TypeError, ValueError, OverflowError):
            restify.log.warning(f"Filter {self.key}: invalid timestamp {value}")
            return query
        return query.filter(column >= timestamp)
