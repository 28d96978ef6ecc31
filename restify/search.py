# -*- coding: utf-8 -*-
#
# Search, match, filter and sort pipeline of the repository index queries
#
# Unknown columns, relationships and filters are ignored: clients get the unfiltered
# results instead of an error
#
from sqlalchemy import or_, String, cast
from sqlalchemy.orm import joinedload, selectinload
from sqlalchemy.orm.properties import RelationshipProperty
from sqlalchemy import inspect as sqla_inspect
import restify
from .attr_parse import parse_match_value
from .db import primary_key_name


class RepositorySearchService:
    """
    Builds the index query of a repository from the request arguments
    """

    def search(self, request, repository, query=None):
        """
        :param request: RestifyRequest
        :param repository: Repository class or instance
        :param query: base query, defaults to the repository query
        :return: sqla query object
        """
        if query is None:
            query = repository.query()
        query = self.apply_matches(request, repository, query)
        query = self.apply_search(request, repository, query)
        query = self.apply_filters(request, repository, query)
        query = self.apply_sort(request, repository, query)
        query = self.apply_related(request, repository, query)
        return query

    @staticmethod
    def apply_search(request, repository, query):
        """
        Case insensitive LIKE over the searchable columns, OR combined
        """
        term = request.search_term
        if not term or not repository.search:
            return query
        model = repository.model
        # the LIKE wildcards in the term match literally
        term = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        clauses = []
        for column_name in repository.search:
            column = getattr(model, column_name, None)
            if column is None:
                restify.log.warning(f'Search: unknown column "{column_name}" for {model.__name__}')
                continue
            clauses.append(cast(column, String).ilike(f"%{term}%", escape="\\"))
        if not clauses:
            return query
        return query.filter(or_(*clauses))

    @staticmethod
    def apply_matches(request, repository, query):
        """
        match[column]=value exact matches, "null" matches NULL and a "-column" negates the match
        """
        model = repository.model
        match = repository.match or {}
        for key, raw_value in request.matches.items():
            negate = key.startswith("-")
            column_name = key[1:] if negate else key
            if column_name not in match:
                restify.log.debug(f'Match: ignoring "{key}", not a match column')
                continue
            column = getattr(model, column_name, None)
            if column is None:
                restify.log.warning(f'Match: unknown column "{column_name}" for {model.__name__}')
                continue
            if raw_value is None or raw_value.lower() == "null":
                clause = column.is_(None)
            else:
                try:
                    value = parse_match_value(match[column_name], raw_value)
                except (TypeError, ValueError):
                    restify.log.debug(f'Match: ignoring invalid value "{raw_value}" for {column_name}')
                    continue
                clause = column == value
            query = query.filter(~clause if negate else clause)
        return query

    @staticmethod
    def apply_filters(request, repository, query):
        """
        Apply the filter specifications of the request, in order
        """
        specs = request.filters
        if not specs:
            return query
        available = repository.resolve_filters(request)
        for spec in specs:
            name = str(spec.get("class"))
            filter_ = next((f for f in available if f.matches(name)), None)
            if filter_ is None:
                restify.log.debug(f'Filters: ignoring unknown filter "{name}"')
                continue
            query = filter_.resolve(request, query, spec.get("value"))
        return query

    @staticmethod
    def apply_sort(request, repository, query):
        """
        sort=col,-col, the default order is the primary key ascending
        """
        model = repository.model
        sortable = repository.sort or []
        orderings = []
        for item in request.sorts:
            descending = item.startswith("-")
            column_name = item.lstrip("-+")
            if column_name not in sortable:
                restify.log.debug(f'Sort: ignoring "{item}", not a sortable column')
                continue
            column = getattr(model, column_name, None)
            if column is None:
                restify.log.warning(f'Sort: unknown column "{column_name}" for {model.__name__}')
                continue
            orderings.append(column.desc() if descending else column.asc())
        if not orderings:
            orderings.append(getattr(model, primary_key_name(model)).asc())
        return query.order_by(*orderings)

    @staticmethod
    def apply_related(request, repository, query):
        """
        Eager load the requested relationships
        """
        model = repository.model
        relationships = sqla_inspect(model).relationships
        for name in repository.resolve_related(request):
            rel = relationships.get(name)
            if not isinstance(rel, RelationshipProperty) or rel.lazy == "dynamic":
                continue
            if rel.uselist:
                query = query.options(selectinload(getattr(model, name)))
            else:
                query = query.options(joinedload(getattr(model, name)))
        return query
