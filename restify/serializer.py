"""
Serialization of the repositories:

{
    "id": "1",
    "type": "posts",
    "attributes": {"title": "Hello"},
    "relationships": {"user": {...}},   # only when related=user was requested
    "meta": {"authorizedToShow": true, ...}
}
"""
from .db import instance_id
from .request import INDEX, SHOW


def resource_type(model) -> str:
    """
    :return: the type of the serialized models, the table name
    """
    return getattr(model, "__tablename__", None) or model.__name__.lower()


class RepositorySerializer:
    """
    Serializes the model wrapped by a repository
    """

    def __init__(self, repository):
        self.repository = repository

    def serialize(self, request, phase):
        repository = self.repository
        model = repository.resource
        attributes = {}
        for field in repository.collect_fields(request, phase):
            if phase == INDEX:
                field.resolve_for_index(repository)
            else:
                field.resolve_for_show(repository)
            attributes.update(field.serialize_to_value(request))

        result = {"id": instance_id(model), "type": resource_type(type(model)), "attributes": attributes}
        if repository.resolve_related(request):
            result["relationships"] = repository.resolve_relationships(request)
        result["meta"] = repository.resolve_details_meta(request)
        return result

    def serialize_for_index(self, request):
        return self.serialize(request, INDEX)

    def serialize_for_show(self, request):
        return self.serialize(request, SHOW)

    @staticmethod
    def format_collection(request, paginator, items):
        """
        :param paginator: Paginator
        :param items: the repositories of the page, after authorization
        :return: {meta, links, data}
        """
        return {
            "meta": paginator.meta(),
            "links": paginator.links(),
            "data": [item.serializer.serialize_for_index(request) for item in items],
        }
