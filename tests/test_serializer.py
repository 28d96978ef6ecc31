import datetime
import decimal
import uuid

from flask import request

from restify import Field, RepositorySerializer
from restify.serializer import resource_type
from conftest import Post, PostRepository, User


class TitleRepository(PostRepository):
    uri_key = "posts"

    def fields(self, request):
        return [
            Field("title").show_callback(lambda value, post, attribute: value.title()),
            Field("category").default("uncategorized"),
            Field("description").hide_from_show(),
            Field(lambda post: len(post.title)),
        ]


def test_resource_type() -> None:
    assert resource_type(Post) == "posts"
    assert resource_type(User) == "users"

    class NoTable:
        pass

    assert resource_type(NoTable) == "notable"


def test_serialize(app) -> None:
    post = Post(id=7, title="hello world", description="text")
    with app.test_request_context("/posts/7"):
        serializer = TitleRepository(post).serializer
        assert isinstance(serializer, RepositorySerializer)
        result = serializer.serialize_for_show(request)
        assert result["id"] == "7"
        assert result["type"] == "posts"
        assert result["attributes"] == {"title": "Hello World", "category": "uncategorized", "Computed": 11}
        assert "relationships" not in result
        assert result["meta"]["authorizedToDelete"] is True

        index = serializer.serialize_for_index(request)
        assert index["attributes"]["title"] == "hello world"
        assert index["attributes"]["description"] == "text"


def test_relationships_are_serialized_on_request(app) -> None:
    user = User(id=3, name="Ann", email="ann@example.com")
    post = Post(id=7, title="Hello", user=user)
    with app.test_request_context("/posts/7?related=user"):
        result = PostRepository(post).serializer.serialize_for_show(request)
        assert result["relationships"]["user"]["id"] == "3"
        assert result["relationships"]["user"]["attributes"] == {"name": "Ann", "email": "ann@example.com"}

    with app.test_request_context("/users/3?related=posts&relatablePerPage=1"):
        user.posts.append(Post(id=8, title="Second"))
        result = PostRepository.serialize_related(request, user)
        assert result["type"] == "users"
        assert [item["id"] for item in result["relationships"]["posts"]] == ["7"]
        relationships = PostRepository(Post(id=9, title="x", user=None)).resolve_relationships(request)
        assert relationships == {}


def test_json_provider(app) -> None:
    moment = datetime.datetime(2020, 1, 2, 3, 4, 5)
    identifier = uuid.UUID("12345678123456781234567812345678")
    with app.app_context():
        encoded = app.json.loads(
            app.json.dumps(
                {
                    "moment": moment,
                    "day": moment.date(),
                    "price": decimal.Decimal("1.5"),
                    "id": identifier,
                    "tags": {"a"},
                    "duration": datetime.timedelta(minutes=1),
                }
            )
        )
    assert encoded == {
        "moment": "2020-01-02 03:04:05",
        "day": "2020-01-02",
        "price": 1.5,
        "id": str(identifier),
        "tags": ["a"],
        "duration": "0:01:00",
    }
    # the keys keep the insertion order
    assert app.json.dumps({"b": 1, "a": 2}) == '{"b": 1, "a": 2}'
