# -*- coding: utf-8 -*-
#
# Flask-RESTful resources, the http methods are mapped onto the repository lifecycle operations
#
from flask import request, jsonify
from flask_restful import Resource


class RepositoryRestAPI(Resource):
    """
    Resource of the repository collection (/{uri_key}) and instance (/{uri_key}/{id}) urls.
    The `repository` class attribute is set in the subclasses created by RestifyAPI.expose_repository
    """

    repository = None

    def get(self, repository_id=None):
        """
        HTTP GET: list the collection, or show the instance when an id is given
        """
        repository = self.repository()
        if repository_id is None:
            return repository.index(request)
        return repository.show(request, repository_id)

    def post(self):
        """
        HTTP POST: create one instance, or a list of instances
        """
        return self.repository().store(request)

    def put(self, repository_id):
        return self.repository().update(request, repository_id)

    def patch(self, repository_id):
        return self.repository().update(request, repository_id)

    def delete(self, repository_id):
        return self.repository().destroy(request, repository_id)


class RepositoryFiltersAPI(Resource):
    """
    /{uri_key}/filters : the filters the client can apply
    """

    repository = None

    def get(self):
        return jsonify({"data": self.repository().available_filters(request)})


class RepositoryAttachAPI(Resource):
    """
    /{uri_key}/{id}/attach/{related} : link related models of a many-to-many relationship
    """

    repository = None

    def post(self, repository_id, related):
        return self.repository().attach(request, repository_id, related)


class RepositoryDetachAPI(Resource):
    """
    /{uri_key}/{id}/detach/{related}
    """

    repository = None

    def post(self, repository_id, related):
        return self.repository().detach(request, repository_id, related)
