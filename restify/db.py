# -*- coding: utf-8 -*-
"""
    db.py: SQLAlchemy helpers used by the repositories to talk to the data store

    The repositories never issue raw storage commands, they compose queries and
    call through these helpers (lookup-by-key, column introspection, delete)
"""
#
# pylint: disable=protected-access
from typing import Any, Dict, List, Optional
import sqlalchemy
from sqlalchemy import inspect as sqla_inspect
from sqlalchemy.orm import Query

# restify dependencies:
import restify
from .attr_parse import parse_attr
from .errors import NotFoundError, GenericError


def query(model) -> Query:
    """
    :param model: sqla model class
    :return: sqla query object
    """
    return restify.DB.session.query(model)


def column_attr_names(model) -> List[str]:
    """
    :return: the attribute names of the mapped columns, in declaration order
    """
    return [attr.key for attr in sqla_inspect(model).column_attrs]


def get_column(model, attr_name: str) -> Optional[sqlalchemy.Column]:
    """
    :return: the column mapped to `attr_name` or None
    """
    prop = sqla_inspect(model).column_attrs.get(attr_name)
    if prop is None:
        return None
    return prop.columns[0]


def primary_key_name(model) -> str:
    """
    :return: attribute name of the (first) primary key
    """
    mapper = sqla_inspect(model)
    pk_column = mapper.primary_key[0]
    return mapper.get_property_by_column(pk_column).key


def fillable_attributes(model) -> List[str]:
    """
    The attributes that may be written from a request:
    the model `__fillable__` list if it's declared, otherwise all columns except the primary keys
    """
    fillable = getattr(model, "__fillable__", None)
    if fillable is not None:
        return list(fillable)
    mapper = sqla_inspect(model)
    pk_names = {mapper.get_property_by_column(col).key for col in mapper.primary_key}
    return [name for name in column_attr_names(model) if name not in pk_names]


def is_fillable(model_or_instance, attr_name: str) -> bool:
    """
    :param model_or_instance: sqla model class or instance
    :param attr_name: attribute name
    """
    model = model_or_instance if isinstance(model_or_instance, type) else type(model_or_instance)
    return attr_name in fillable_attributes(model)


def parse_id(model, item_id: Any) -> Any:
    """
    Convert the url id to the primary key python type
    :raises NotFoundError: the id can't be converted, so it can't exist
    """
    column = get_column(model, primary_key_name(model))
    try:
        return parse_attr(column, item_id)
    except (TypeError, ValueError):
        raise NotFoundError(f'Invalid "{model.__name__}" ID "{item_id}"')


def get_instance(model, item_id: Any, base_query: Optional[Query] = None):
    """
    :param model: sqla model class
    :param item_id: primary key value (as passed in the url)
    :param base_query: query to lookup the instance with
    :return: the instance
    :raises NotFoundError: no instance with the given id exists
    """
    if base_query is None:
        base_query = query(model)
    pk_value = parse_id(model, item_id)
    pk_attr = getattr(model, primary_key_name(model))
    try:
        instance = base_query.filter(pk_attr == pk_value).first()
    except sqlalchemy.exc.SQLAlchemyError as exc:  # pragma: no cover
        restify.log.error(f"Failed to get instance {model.__name__} {item_id}")
        raise GenericError(f"get_instance : {exc}")

    if instance is None:
        raise NotFoundError(f'Invalid "{model.__name__}" ID "{item_id}"')
    return instance


def instance_id(instance) -> Optional[str]:
    """
    :return: the primary key as a string, the way it's shown in the responses and urls
    """
    value = getattr(instance, primary_key_name(type(instance)), None)
    return None if value is None else str(value)


def to_dict(instance) -> Dict[str, Any]:
    """
    :return: dictionary with the column values of `instance`
    """
    return {name: getattr(instance, name) for name in column_attr_names(type(instance))}


def delete(instance) -> None:
    """
    Delete the instance from the database
    """
    restify.DB.session.delete(instance)


def many_to_many(model, rel_name: str):
    """
    :return: the relationship property when `rel_name` is a relationship with a secondary (pivot) table, otherwise None
    """
    prop = sqla_inspect(model).relationships.get(rel_name)
    if prop is None or prop.secondary is None:
        return None
    return prop


def pivot_keys(relationship, parent, related) -> Dict[str, Any]:
    """
    :return: {pivot column name: key value} of the row linking `parent` and `related`
    """
    result = {}
    for pairs, instance in ((relationship.synchronize_pairs, parent), (relationship.secondary_synchronize_pairs, related)):
        mapper = sqla_inspect(type(instance))
        for key_column, pivot_column in pairs:
            result[pivot_column.name] = getattr(instance, mapper.get_property_by_column(key_column).key)
    return result


def _pivot_clause(relationship, row):
    pairs = list(relationship.synchronize_pairs) + list(relationship.secondary_synchronize_pairs)
    return sqlalchemy.and_(*(pivot_column == row[pivot_column.name] for _, pivot_column in pairs))


def attach(relationship, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Insert the pivot rows, the rows linking instances that are already linked are skipped
    :return: the inserted rows
    """
    session = restify.DB.session
    table = relationship.secondary
    inserted = []
    for row in rows:
        if row in inserted:
            continue
        if session.execute(sqlalchemy.select(table).where(_pivot_clause(relationship, row))).first() is not None:
            restify.log.debug(f"{table.name}: {row} is already attached")
            continue
        inserted.append(row)
    if inserted:
        session.execute(table.insert(), inserted)
    return inserted


def detach(relationship, rows: List[Dict[str, Any]]) -> None:
    """
    Delete the pivot rows
    """
    table = relationship.secondary
    for row in rows:
        restify.DB.session.execute(table.delete().where(_pivot_clause(relationship, row)))
