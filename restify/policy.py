"""
Authorization: the repositories ask a policy whether the current actor may perform an action.

A repository uses its own `policy` attribute, else the policy registered in the Gate
for its model, else everything is allowed.
"""
from flask import g, has_app_context
import restify

VIEW_ANY = "view_any"
VIEW = "view"
CREATE = "create"
UPDATE = "update"
DELETE = "delete"
ACTIONS = (VIEW_ANY, VIEW, CREATE, UPDATE, DELETE)


def current_actor():
    """
    :return: the authenticated user, as set on `flask.g.user` by the app
    """
    if not has_app_context():
        return None
    return g.get("user")


class Policy:
    """
    Policy base class, subclasses override the actions they restrict.
    Each action returns a truthy value to allow it.
    `entity` is the model instance (view, update, delete) or the model class (view_any, create)
    """

    def view_any(self, actor, model):
        return True

    def view(self, actor, entity):
        return True

    def create(self, actor, model):
        return True

    def update(self, actor, entity):
        return True

    def delete(self, actor, entity):
        return True

    def allows(self, actor, action, entity):
        """
        :param actor: the current user (or None)
        :param action: one of view_any, view, create, update, delete
        :param entity: model instance or model class
        """
        if action not in ACTIONS:
            raise ValueError(f"Unknown policy action {action}")
        return bool(getattr(self, action)(actor, entity))


class Gate:
    """
    Maps model classes to policies
    """

    def __init__(self):
        self._policies = {}

    def register(self, model, policy):
        """
        :param model: sqla model class
        :param policy: Policy instance (or class, which is instantiated)
        """
        if isinstance(policy, type):
            policy = policy()
        self._policies[model] = policy
        return policy

    def policy_for(self, model_or_entity):
        model = model_or_entity if isinstance(model_or_entity, type) else type(model_or_entity)
        for klass in model.__mro__:
            if klass in self._policies:
                return self._policies[klass]
        return None

    def allows(self, actor, action, entity_or_type):
        """
        :return: True when no policy was registered for the model or when the policy allows the action
        """
        policy = self.policy_for(entity_or_type)
        if policy is None:
            return True
        result = policy.allows(actor, action, entity_or_type)
        if not result:
            restify.log.debug(f"Gate denied {action} on {entity_or_type}")
        return result

    def clear(self):
        self._policies.clear()


gate = Gate()
