from types import SimpleNamespace

import pytest
from flask import g

from restify import Gate, Policy, current_actor
from conftest import Post, PostRepository


class OwnerPolicy(Policy):
    def update(self, actor, entity):
        return actor is not None and entity.user_id == actor.id

    def create(self, actor, model):
        return actor is not None


def test_policy_defaults_allow_everything() -> None:
    policy = Policy()
    for action in ("view_any", "view", "create", "update", "delete"):
        assert policy.allows(None, action, Post)
    with pytest.raises(ValueError):
        policy.allows(None, "publish", Post)


def test_gate() -> None:
    gate = Gate()
    actor = SimpleNamespace(id=1)
    assert gate.allows(actor, "update", Post(user_id=2))
    policy = gate.register(Post, OwnerPolicy)
    assert isinstance(policy, OwnerPolicy)
    assert gate.policy_for(Post()) is policy
    assert gate.allows(actor, "update", Post(user_id=1))
    assert not gate.allows(actor, "update", Post(user_id=2))
    assert not gate.allows(None, "create", Post)
    gate.clear()
    assert gate.policy_for(Post) is None


def test_current_actor(app) -> None:
    assert current_actor() is None
    with app.app_context():
        assert current_actor() is None
        g.user = "ann"
        assert current_actor() == "ann"


def test_repository_uses_the_global_gate(app, monkeypatch) -> None:
    gate = Gate()
    monkeypatch.setattr("restify.repository.gate", gate)
    gate.register(Post, OwnerPolicy)
    with app.test_request_context("/posts/1", method="PATCH"):
        g.user = SimpleNamespace(id=1)
        assert PostRepository(Post(user_id=1)).authorized_to_update(None)
        assert not PostRepository(Post(user_id=3)).authorized_to_update(None)
        assert PostRepository(Post(user_id=3)).authorized_to_delete(None)


def test_repository_policy_attribute_wins(app, monkeypatch) -> None:
    class DenyAll(Policy):
        def view(self, actor, entity):
            return False

    class LockedPostRepository(PostRepository):
        policy = DenyAll()

    gate = Gate()
    monkeypatch.setattr("restify.repository.gate", gate)
    gate.register(Post, OwnerPolicy)
    with app.app_context():
        repository = LockedPostRepository(Post(user_id=1))
        assert not repository.authorized_to_show(None)
        assert repository.authorized_to_update(None)
        assert repository.resolve_details_meta(None) == {
            "authorizedToShow": False,
            "authorizedToStore": True,
            "authorizedToUpdate": True,
            "authorizedToDelete": True,
        }
