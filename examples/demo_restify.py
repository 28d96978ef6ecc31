#!/usr/bin/env python
#
# Demonstrate:
#   - repositories with fields, filters, search, match and sort columns
#   - a policy registered on the gate
#   - file uploads stored on the local disk
#
# run:
# $ python demo_restify.py [HOST]
# $ curl "http://localhost:5000/api/posts?search=hello&sort=-id&related=user"
#
import sys
from flask import Flask, g
from flask_sqlalchemy import SQLAlchemy
from restify import RestifyAPI, Repository, Field, File, Policy, BooleanFilter, SelectFilter, gate

db = SQLAlchemy()


class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), default="")
    email = db.Column(db.String(128), default="")
    posts = db.relationship("Post", back_populates="user")


class Post(db.Model):
    __tablename__ = "posts"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    title = db.Column(db.String(255))
    description = db.Column(db.Text)
    category = db.Column(db.String(32))
    is_active = db.Column(db.Boolean, default=True)
    image = db.Column(db.String(255))
    user = db.relationship("User", back_populates="posts")


class PostPolicy(Policy):
    """
    Only the author may change a post
    """

    def update(self, actor, entity):
        return actor is not None and entity.user_id == actor.id

    def delete(self, actor, entity):
        return self.update(actor, entity)


class ActiveFilter(BooleanFilter):
    column = "is_active"


class CategoryFilter(SelectFilter):
    column = "category"
    title = "Category"

    def options(self, request):
        return {"Movie": "movie", "Article": "article"}


class PostRepository(Repository):
    model = Post
    search = ["title", "description"]
    match = {"category": "text", "is_active": "bool"}
    sort = ["id", "title"]
    related = ["user"]

    def fields(self, request):
        return [
            Field("title").rules("required", "max:255"),
            Field("description").hide_from_index(),
            Field("category").rules("nullable", "in:movie,article"),
            Field("is_active").rules("boolean"),
            Field("user_id").readonly(),
            Field(lambda post: len(post.description or "")).label("Length"),
            File("image").path("posts").types("jpg", "png").prunable(),
        ]

    def filters(self, request):
        return [ActiveFilter(), CategoryFilter()]

    def stored(self, model, request):
        if g.get("user") is not None:
            model.user_id = g.user.id


class UserRepository(Repository):
    model = User
    search = ["name", "email"]
    sort = ["name"]
    related = ["posts"]

    def fields(self, request):
        return [Field("name").rules("required"), Field("email").rules("email")]


def create_app(host="127.0.0.1"):
    app = Flask("restify demo")
    app.config.update(SQLALCHEMY_DATABASE_URI="sqlite:///demo_restify.sqlitedb", DEFAULT_PER_PAGE=10)
    db.init_app(app)

    @app.before_request
    def load_user():
        # authentication is left to the application, the policies receive g.user
        g.user = db.session.get(User, 1)

    with app.app_context():
        db.create_all()
        if not db.session.query(User).count():
            db.session.add(User(name="demo", email="demo@example.com"))
            db.session.commit()
        api = RestifyAPI(app, prefix="/api")
        gate.register(Post, PostPolicy)
        api.expose(PostRepository, UserRepository)
        print(f"Starting API: http://{host}:5000/api/posts")
    return app


if __name__ == "__main__":
    HOST = sys.argv[1] if len(sys.argv) > 1 else "127.0.0.1"
    create_app(HOST).run(host=HOST)
