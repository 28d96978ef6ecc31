"""
Immutable ordered collection of fields, the phase filters return new collections
"""
from collections.abc import Sequence
from .fields import Field, Deletable
from .request import INDEX, SHOW, STORE, UPDATE


class FieldCollection(Sequence):
    """
    Ordered, immutable sequence of Field instances
    """

    def __init__(self, fields=()):
        self._fields = tuple(fields)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return FieldCollection(self._fields[index])
        return self._fields[index]

    def __len__(self):
        return len(self._fields)

    def __repr__(self):
        return f"<FieldCollection {list(self.attributes())}>"

    def filter(self, predicate):
        return FieldCollection(field for field in self._fields if predicate(field))

    def unique(self):
        """
        :return: collection where the first field declared for an attribute wins
        """
        seen = set()
        result = []
        for field in self._fields:
            if field.attribute != Field.COMPUTED:
                if field.attribute in seen:
                    continue
                seen.add(field.attribute)
            result.append(field)
        return FieldCollection(result)

    def authorized(self, request):
        return self.filter(lambda field: field.authorize(request))

    def for_index(self, request, repository=None):
        return self.filter(lambda field: not field.is_hidden_on_index(request, repository) and field.authorize(request)).unique()

    def for_show(self, request, repository=None):
        return self.filter(lambda field: not field.is_hidden_on_show(request, repository) and field.authorize(request)).unique()

    def for_store(self, request, repository=None):
        return self.filter(
            lambda field: field.is_shown_on_store(request, repository) and field.authorized_to_store(request)
        ).unique()

    def for_update(self, request, repository=None):
        return self.filter(
            lambda field: field.is_shown_on_update(request, repository) and field.authorized_to_update(request)
        ).unique()

    def for_phase(self, phase, request, repository=None):
        """
        :param phase: index, show, store or update
        """
        phases = {INDEX: self.for_index, SHOW: self.for_show, STORE: self.for_store, UPDATE: self.for_update}
        if phase not in phases:
            raise ValueError(f"Invalid phase {phase}")
        return phases[phase](request, repository)

    def first_where(self, attribute):
        for field in self._fields:
            if field.attribute == attribute:
                return field
        return None

    def attributes(self):
        return tuple(field.attribute for field in self._fields)

    def without_computed(self):
        return self.filter(lambda field: not field.is_computed())

    def deletable(self):
        return self.filter(lambda field: isinstance(field, Deletable) and field.is_deletable()).unique()

    def merge(self, extra_fields):
        """
        Append the fields whose attribute isn't declared yet
        """
        declared = set(self.attributes())
        extra = []
        for field in extra_fields:
            if field.attribute in declared:
                continue
            declared.add(field.attribute)
            extra.append(field)
        return FieldCollection(self._fields + tuple(extra))
