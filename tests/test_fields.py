from types import SimpleNamespace

import pytest
from flask import request

from restify import BelongsToMany, Field, ValidationError
from conftest import Post, PostRepository, Tag, User


def test_resolve_reads_the_model_attribute() -> None:
    post = Post(title="Hello")
    assert Field("title").resolve(PostRepository(post)).value == "Hello"
    # a bare model works as well
    assert Field("title").resolve(post).value == "Hello"


def test_resolve_walks_dotted_paths() -> None:
    post = Post(title="Hello", user=User(name="Ann"))
    assert Field("user.name").resolve(post).value == "Ann"
    assert Field("user.name").resolve(Post(title="orphan")).value is None


def test_computed_field() -> None:
    field = Field(lambda post: post.title.upper())
    assert field.attribute == Field.COMPUTED
    assert field.is_computed()
    assert field.resolve(PostRepository(Post(title="hello"))).value == "HELLO"


def test_resolve_callback_receives_value_model_and_attribute() -> None:
    calls = []

    def resolve(value, model, attribute):
        calls.append((value, model, attribute))
        return f"{value}!"

    post = Post(title="Hello")
    field = Field("title", resolve)
    assert field.resolve(post).value == "Hello!"
    assert calls == [("Hello", post, "title")]
    assert Field("title").resolve_using(resolve).resolve(post).value == "Hello!"


def test_phase_callbacks(app) -> None:
    post = Post(title="Hello")
    field = Field("title").index_callback(lambda value, model, attribute: "index").show_callback(lambda value, model, attribute: "show")
    assert field.resolve_for_index(post).value == "index"
    assert field.resolve_for_show(post).value == "show"
    # without phase callbacks the plain resolve is used
    assert Field("title").resolve_for_index(post).value == "Hello"


def test_serialize_to_value_uses_the_default(app) -> None:
    with app.test_request_context("/posts"):
        field = Field("category").default("none").resolve(Post())
        assert field.serialize_to_value(request) == {"category": "none"}

        field = Field("category").default(lambda req: req.path).resolve(Post())
        assert field.serialize_to_value(request) == {"category": "/posts"}

        assert Field("category").resolve(Post()).serialize_to_value(request) == {"category": None}
        assert Field("category").default("none").resolve(Post(category="movie")).serialize_to_value(request) == {"category": "movie"}


def test_serialize_is_idempotent(app) -> None:
    post = Post(title="Hello")
    field = Field("title").resolve_using(lambda value, model, attribute: value.lower())
    with app.test_request_context("/posts"):
        first = field.resolve(post).serialize_to_value(request)
        second = field.resolve(post).serialize_to_value(request)
    assert first == second == {"title": "hello"}


def test_fill_attribute_from_payload(app) -> None:
    post = Post(title="old")
    with app.test_request_context("/posts", method="POST", json={"title": "new", "is_active": "0", "user_id": "7"}):
        assert Field("title").fill_attribute(request, post) is None
        Field("is_active").fill_attribute(request, post)
        Field("user_id").fill_attribute(request, post)
        Field("description").fill_attribute(request, post)
    assert post.title == "new"
    assert post.is_active is False
    assert post.user_id == 7
    assert post.description is None


def test_fill_callback_owns_the_write(app) -> None:
    post = Post(title="old")
    calls = []
    field = Field("title").fill_callback(lambda req, model, attribute: calls.append(attribute))
    field.store_callback(lambda req, model, attribute: "from store callback")
    with app.test_request_context("/posts", method="POST", json={"title": "new"}):
        field.fill_attribute(request, post)
    assert post.title == "old"
    assert calls == ["title"]


def test_fill_callback_may_return_a_post_fill_callable(app) -> None:
    post = Post()
    field = Field("title").fill_callback(lambda req, model, attribute: lambda: setattr(model, attribute, "later"))
    with app.test_request_context("/posts", method="POST", json={}):
        callback = field.fill_attribute(request, post)
    assert post.title is None
    callback()
    assert post.title == "later"


def test_store_and_update_callbacks_depend_on_the_phase(app) -> None:
    field = (
        Field("title")
        .store_callback(lambda req, model, attribute: req.get_payload()[attribute].upper())
        .update_callback(lambda req, model, attribute: req.get_payload()[attribute].lower())
    )
    post = Post()
    with app.test_request_context("/posts", method="POST", json={"title": "Hello"}):
        field.fill_attribute(request, post)
    assert post.title == "HELLO"
    with app.test_request_context("/posts/1", method="PATCH", json={"title": "Hello"}):
        field.fill_attribute(request, post)
    assert post.title == "hello"


def test_computed_fields_never_write(app) -> None:
    post = Post(title="Hello")
    with app.test_request_context("/posts", method="POST", json={"Computed": "x"}):
        assert Field(lambda model: "computed").fill_attribute(request, post) is None
    assert not hasattr(post, "Computed")


def test_invalid_values_raise_a_validation_error(app) -> None:
    with app.test_request_context("/posts", method="POST", json={"user_id": "abc"}):
        with pytest.raises(ValidationError) as exc_info:
            Field("user_id").fill_attribute(request, Post())
    assert "user_id" in exc_info.value.errors


def test_fill_from_explicit_payload(app) -> None:
    post = Post()
    with app.test_request_context("/posts", method="POST", json=[{"title": "row"}]):
        Field("title").fill_attribute(request, post, {"title": "row"})
    assert post.title == "row"


def test_authorization_callbacks() -> None:
    req = SimpleNamespace(user="ann")
    assert Field("title").authorize(req)
    assert not Field("title").can_see(lambda r: r.user == "bob").authorize(req)
    assert not Field("title").can_store(lambda r: False).authorized_to_store(req)
    assert Field("title").can_store(lambda r: False).authorized_to_update(req)
    assert not Field("title").can_update(False).authorized_to_update(req)
    # a field that can't be seen can't be stored either
    assert not Field("title").can_see(False).authorized_to_store(req)


def test_attach_callbacks() -> None:
    req = SimpleNamespace(user="ann")
    pivot = {"post_id": 1, "tag_id": 2}
    field = Field("tags")
    assert field.authorized_to_attach(req, pivot)
    assert field.authorized_to_detach(req, pivot)
    field.can_attach(lambda r, row: row["tag_id"] == 1).can_detach(False)
    assert not field.authorized_to_attach(req, pivot)
    assert field.authorized_to_attach(req, {"post_id": 1, "tag_id": 1})
    assert not field.authorized_to_detach(req, pivot)
    assert not Field("tags").can_see(False).authorized_to_attach(req, pivot)


def test_belongs_to_many_resolves_the_related_ids() -> None:
    post = Post(title="Hello", tags=[Tag(id=3), Tag(id=5)])
    assert BelongsToMany("tags").resolve(post).value == ["3", "5"]
    assert BelongsToMany("tags").resolve(Post()).value == []
    req = SimpleNamespace()
    assert not BelongsToMany("tags").is_shown_on_store(req, None)
    assert not BelongsToMany("tags").is_shown_on_update(req, None)


def test_visibility() -> None:
    req = SimpleNamespace()
    assert not Field("title").is_hidden_on_index(req, None)
    assert Field("title").hide_from_index().is_hidden_on_index(req, None)
    assert not Field("title").hide_from_index().is_hidden_on_show(req, None)
    assert Field("title").hide_from_show(lambda r, repository: True).is_hidden_on_show(req, None)
    assert not Field("title").readonly().is_shown_on_store(req, None)
    assert not Field("title").readonly(lambda r, repository: True).is_shown_on_update(req, None)
    assert not Field(lambda model: 1).is_shown_on_store(req, None)
    assert Field("title").is_shown_on_store(req, None)


def test_rules_are_merged_without_duplicates() -> None:
    field = Field("title").rules("required", "max:10").storing_rules("required", "string").update_rules(["sometimes"])
    assert field.get_storing_rules() == ["required", "max:10", "string"]
    assert field.get_updating_rules() == ["required", "max:10", "sometimes"]
    assert Field("title").store_rules("required|email").get_storing_rules() == ["required", "email"]


def test_invoke_after(app) -> None:
    calls = []
    field = Field("title").after_store(lambda model, req: calls.append("store")).after_update(lambda model, req: calls.append("update"))
    with app.test_request_context("/posts", method="POST"):
        field.invoke_after(Post(), request)
    with app.test_request_context("/posts/1", method="PUT"):
        field.invoke_after(Post(), request)
    with app.test_request_context("/posts/1", method="GET"):
        field.invoke_after(Post(), request)
    assert calls == ["store", "update"]


def test_label() -> None:
    assert Field("is_active").get_label() == "Is active"
    assert Field("is_active").label("Active").get_label() == "Active"
    assert isinstance(Field.new("title"), Field)
