from types import SimpleNamespace

import pytest

from restify import Field, File, FieldCollection


@pytest.fixture
def req():
    return SimpleNamespace()


def _collection():
    return FieldCollection(
        [
            Field("title"),
            Field("description").hide_from_index(),
            Field("category").readonly(),
            Field(lambda post: "computed"),
            Field("secret").can_see(False),
            File("image"),
        ]
    )


def test_phase_filters_return_new_collections(req) -> None:
    fields = _collection()
    index_fields = fields.for_index(req)
    assert index_fields.attributes() == ("title", "category", Field.COMPUTED, "image")
    assert fields.for_show(req).attributes() == ("title", "description", "category", Field.COMPUTED, "image")
    assert fields.for_store(req).attributes() == ("title", "description", "image")
    assert fields.for_update(req).attributes() == fields.for_phase("update", req).attributes()
    # the original collection is untouched
    assert len(fields) == 6
    assert isinstance(index_fields, FieldCollection)


def test_invalid_phase(req) -> None:
    with pytest.raises(ValueError):
        _collection().for_phase("destroy", req)


def test_first_declaration_wins_within_a_phase(req) -> None:
    first = Field("title").label("First")
    fields = FieldCollection([first, Field("title").label("Second")])
    assert len(fields) == 2
    assert fields.for_show(req)[0] is first
    assert len(fields.for_show(req)) == 1
    assert fields.first_where("title") is first
    assert fields.first_where("missing") is None


def test_collection_helpers(req) -> None:
    fields = _collection()
    assert fields.authorized(req).attributes() == ("title", "description", "category", Field.COMPUTED, "image")
    assert Field.COMPUTED not in fields.without_computed().attributes()
    assert fields.deletable().attributes() == ("image",)


def test_merge_never_overwrites_explicit_fields() -> None:
    title = Field("title").label("Custom")
    fields = FieldCollection([title]).merge([Field("id"), Field("title"), Field("category")])
    assert fields.attributes() == ("title", "id", "category")
    assert fields[0] is title
    assert isinstance(fields[1:], FieldCollection)
