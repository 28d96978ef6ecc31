from sqlalchemy import select

from restify import BelongsToMany, Field, RepositoryCast
from conftest import DB, Post, PostRepository, Tag, User, UserRepository, post_tags


class TaggedPostRepository(PostRepository):
    uri_key = "posts"

    def fields(self, request):
        return [
            Field("title").rules("required"),
            BelongsToMany("tags")
            .can_attach(lambda request, pivot: pivot["tag_id"] != 3)
            .can_detach(lambda request, pivot: pivot["tag_id"] != 2),
        ]


def _tagged_app(make_app):
    app = make_app(TaggedPostRepository)
    with app.app_context():
        DB.session.add(Post(title="Hello"))
        DB.session.add_all([Tag(name="news"), Tag(name="sport"), Tag(name="secret")])
        DB.session.commit()
    return app


def _tag_ids(app, post_id=1):
    with app.app_context():
        return [tag.id for tag in DB.session.get(Post, post_id).tags]


def _pivots(app):
    with app.app_context():
        return [tuple(row) for row in DB.session.execute(select(post_tags).order_by(post_tags.c.tag_id))]


def test_attach(make_app) -> None:
    app = _tagged_app(make_app)
    client = app.test_client()
    response = client.post("/posts/1/attach/tags", json={"tags": [1, 2], "position": "4"})
    assert response.status_code == 201
    assert response.get_json()["data"] == [
        {"position": 4, "post_id": 1, "tag_id": 1},
        {"position": 4, "post_id": 1, "tag_id": 2},
    ]
    assert _pivots(app) == [(1, 1, 4), (1, 2, 4)]

    # already attached tags are skipped
    response = client.post("/posts/1/attach/tags", json={"tags": 1})
    assert response.status_code == 201
    assert response.get_json()["data"] == []
    assert _tag_ids(app) == [1, 2]

    data = client.get("/posts/1").get_json()["data"]
    assert data["attributes"]["tags"] == ["1", "2"]


def test_attach_authorization(make_app) -> None:
    app = _tagged_app(make_app)
    client = app.test_client()
    response = client.post("/posts/1/attach/tags", json={"tags": [1, 3]})
    assert response.status_code == 403
    assert _pivots(app) == []


def test_attach_errors(make_app) -> None:
    app = _tagged_app(make_app)
    client = app.test_client()
    assert client.post("/posts/1/attach/tags", json={"tags": [1, 42]}).status_code == 404
    assert client.post("/posts/9/attach/tags", json={"tags": [1]}).status_code == 404
    assert client.post("/posts/1/attach/tags", json={"other": [1]}).status_code == 400
    # not declared as a field, or not a many-to-many relationship
    assert client.post("/posts/1/attach/user", json={"user": [1]}).status_code == 400
    assert client.post("/posts/1/attach/title", json={"title": [1]}).status_code == 400
    response = client.post("/posts/1/attach/tags", json={"tags": [1], "position": "first"})
    assert response.status_code == 422
    assert response.get_json()["errors"] == {"position": ["The position is invalid."]}
    assert _pivots(app) == []


def test_detach(make_app) -> None:
    app = _tagged_app(make_app)
    client = app.test_client()
    client.post("/posts/1/attach/tags", json={"tags": [1, 2]})

    response = client.post("/posts/1/detach/tags", json={"tags": [2]})
    assert response.status_code == 403
    assert _tag_ids(app) == [1, 2]

    response = client.post("/posts/1/detach/tags", json={"tags": [1]})
    assert response.status_code == 204
    assert _tag_ids(app) == [2]
    with app.app_context():
        assert DB.session.query(Tag).count() == 3


def test_tags_are_not_filled_from_the_payload(make_app) -> None:
    app = _tagged_app(make_app)
    response = app.test_client().patch("/posts/1", json={"title": "Changed", "tags": [1]})
    assert response.status_code == 200
    assert response.get_json()["data"]["attributes"]["tags"] == []
    assert _tag_ids(app) == []


def test_cast(make_app) -> None:
    class Reversed(RepositoryCast):
        @classmethod
        def from_page(cls, request, models):
            return list(reversed(models))

        @classmethod
        def from_relation(cls, request, models):
            return sorted(models, key=lambda model: model.id, reverse=True)

    class ReversedUserRepository(UserRepository):
        uri_key = "users"
        cast = Reversed

    app = make_app(ReversedUserRepository, PostRepository)
    with app.app_context():
        DB.session.add(User(name="Ann", posts=[Post(title="first"), Post(title="second")]))
        DB.session.add(User(name="Bob"))
        DB.session.commit()
    client = app.test_client()

    data = client.get("/users").get_json()["data"]
    assert [item["attributes"]["name"] for item in data] == ["Bob", "Ann"]

    data = client.get("/users/1?related=posts&relatablePerPage=1").get_json()["data"]
    assert [post["attributes"]["title"] for post in data["relationships"]["posts"]] == ["second"]
