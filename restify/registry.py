"""
Registry of the exposed repositories, keyed by uri key
"""
import restify
from .errors import ConfigurationError, NotFoundError


class RepositoryRegistry:
    """
    Maps the uri keys to the repository classes.
    The registry is frozen before the first request is handled.
    """

    def __init__(self):
        self._repositories = {}
        self.frozen = False

    def register(self, repository):
        """
        :param repository: Repository subclass
        :raises ConfigurationError: missing model, duplicate uri key or frozen registry
        """
        if self.frozen:
            raise ConfigurationError(f"Can't register {repository.__name__}: repositories are already being served")
        if getattr(repository, "model", None) is None:
            raise ConfigurationError(f"{repository.__name__} has no model")
        uri_key = repository.uri_key
        if not uri_key:
            raise ConfigurationError(f"{repository.__name__} has no uri key")
        if uri_key in self._repositories:
            other = self._repositories[uri_key]
            raise ConfigurationError(f'Duplicate uri key "{uri_key}": {repository.__name__} and {other.__name__}')
        self._repositories[uri_key] = repository
        restify.log.debug(f"Registered {repository.__name__} as {uri_key}")
        return repository

    def freeze(self):
        self.frozen = True

    def get(self, uri_key):
        """
        :raises NotFoundError: unknown uri key
        """
        try:
            return self._repositories[uri_key]
        except KeyError:
            raise NotFoundError(f'Repository "{uri_key}" not found')

    def for_model(self, model):
        """
        :return: the first repository registered for the model class, or None
        """
        for repository in self._repositories.values():
            if repository.model is model:
                return repository
        return None

    def __contains__(self, uri_key):
        return uri_key in self._repositories

    def __iter__(self):
        return iter(self._repositories.values())

    def __len__(self):
        return len(self._repositories)
