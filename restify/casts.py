"""
Collection casts: a repository converts the models of an index page and of a related
collection with its `cast` class before they're wrapped in repositories and serialized

Example:
    class NewestFirst(RepositoryCast):
        @classmethod
        def from_relation(cls, request, models):
            return sorted(models, key=lambda model: model.id, reverse=True)

    class UserRepository(Repository):
        cast = NewestFirst
"""


class RepositoryCast:
    """
    The default cast keeps the models as they were loaded
    """

    @classmethod
    def from_page(cls, request, models):
        """
        :param models: the models of the requested index page
        :return: list of models
        """
        return list(models)

    @classmethod
    def from_relation(cls, request, models):
        """
        :param models: the related collection, before it's limited to the relatable page size
        :return: list of models
        """
        return list(models)
