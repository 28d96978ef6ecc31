import datetime
from typing import Callable

import pytest
from flask import Flask

import restify
from restify import RestifyAPI, Repository, Field, File, BooleanFilter, SelectFilter, TimestampFilter
from restify import storage
from restify.storage import Disk

DB = restify.DB


class User(DB.Model):
    __tablename__ = "users"
    id = DB.Column(DB.Integer, primary_key=True)
    name = DB.Column(DB.String(64))
    email = DB.Column(DB.String(128))
    posts = DB.relationship("Post", back_populates="user")


post_tags = DB.Table(
    "post_tags",
    DB.Column("post_id", DB.Integer, DB.ForeignKey("posts.id"), primary_key=True),
    DB.Column("tag_id", DB.Integer, DB.ForeignKey("tags.id"), primary_key=True),
    DB.Column("position", DB.Integer),
)


class Tag(DB.Model):
    __tablename__ = "tags"
    id = DB.Column(DB.Integer, primary_key=True)
    name = DB.Column(DB.String(32))


class Post(DB.Model):
    __tablename__ = "posts"
    id = DB.Column(DB.Integer, primary_key=True)
    user_id = DB.Column(DB.Integer, DB.ForeignKey("users.id"))
    title = DB.Column(DB.String(255))
    description = DB.Column(DB.Text)
    category = DB.Column(DB.String(32))
    is_active = DB.Column(DB.Boolean, default=True)
    created_at = DB.Column(DB.DateTime, default=datetime.datetime.utcnow)
    image = DB.Column(DB.String(255))
    image_original_name = DB.Column(DB.String(255))
    image_size = DB.Column(DB.Integer)
    user = DB.relationship("User", back_populates="posts")
    tags = DB.relationship("Tag", secondary=post_tags, order_by="Tag.id")


class ActiveFilter(BooleanFilter):
    column = "is_active"


class CategoryFilter(SelectFilter):
    column = "category"

    def options(self, request):
        return {"Movie": "movie", "Article": "article"}


class CreatedAfterFilter(TimestampFilter):
    column = "created_at"


class PostRepository(Repository):
    model = Post
    search = ["title", "description"]
    match = {"category": "text", "is_active": "bool", "user_id": "int"}
    sort = ["id", "title", "created_at"]
    related = ["user"]

    def fields(self, request):
        return [
            Field("title").rules("required", "max:255"),
            Field("description").hide_from_index(),
            Field("category"),
            Field("is_active"),
            Field("user_id"),
            File("image").path("posts").store_original_name("image_original_name").store_size("image_size"),
        ]

    def filters(self, request):
        return [ActiveFilter(), CategoryFilter(), CreatedAfterFilter()]


class UserRepository(Repository):
    model = User
    search = ["name", "email"]
    sort = ["name"]
    related = ["posts"]

    def fields(self, request):
        return [Field("name").rules("required"), Field("email").storing_rules("email")]


class FakeDisk(Disk):
    """
    In memory disk, records the stored and deleted paths
    """

    def __init__(self) -> None:
        self.files = {}
        self.deleted = []

    def put(self, upload, directory="", filename=None):
        filename = filename or upload.filename
        path = f"{directory}/{filename}" if directory else filename
        self.files[path] = upload.read()
        return path

    def delete(self, path):
        self.deleted.append(path)
        return self.files.pop(path, None) is not None

    def exists(self, path):
        return path in self.files


@pytest.fixture
def disk():
    fake_disk = FakeDisk()
    storage.register_disk("local", fake_disk)
    yield fake_disk
    storage.unregister_disk("local")


@pytest.fixture
def make_app(disk) -> Callable:
    """
    Factory creating a Flask app on an in-memory sqlite database with the given repositories exposed
    """

    def _make_app(*repositories, prefix: str = "", **config):
        app = Flask(__name__)
        app.config.update(SQLALCHEMY_DATABASE_URI="sqlite://", TESTING=True)
        app.config.update(config)
        DB.init_app(app)
        api = RestifyAPI(app, prefix=prefix)
        with app.app_context():
            DB.create_all()
            api.expose(*(repositories or (PostRepository, UserRepository)))
        return app

    return _make_app


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def create_post(app) -> Callable:
    def _create_post(**attributes):
        with app.app_context():
            post = Post(**attributes)
            DB.session.add(post)
            DB.session.commit()
            return post.id

    return _create_post
