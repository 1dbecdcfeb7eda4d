"""
Who is the current actor, and what can they do.

The actor lives in a context var, set per request by the API middleware or
by hand with `acting_as`.
"""

import contextlib
import contextvars
import hmac
import logging
from typing import Iterator

from pieces.config import SecurityConfig
from pieces.ports import ActorContext, PermissionChecker
from pieces.types import Actor

logger = logging.getLogger(__name__)

actor_var: contextvars.ContextVar[Actor | None] = contextvars.ContextVar(
    "actor", default=None
)


@contextlib.contextmanager
def acting_as(actor: Actor | None) -> Iterator[Actor | None]:
    """
    Run a block of code as the given actor.
    """
    token = actor_var.set(actor)
    try:
        yield actor
    finally:
        actor_var.reset(token)


class ContextActorProvider(ActorContext):
    """
    Reads the actor from the context var.
    """

    def has_actor(self) -> bool:
        return actor_var.get() is not None

    def get_actor(self) -> Actor | None:
        return actor_var.get()


class RolePermissions(PermissionChecker):
    """
    Grants permissions by role, as configured. The `*` permission grants all.
    """

    def __init__(self, config: SecurityConfig, actors: ActorContext):
        self.config = config
        self.actors = actors

    def allows(self, permission: str) -> bool:
        actor = self.actors.get_actor()
        if actor is None:
            return False

        for role in actor.roles:
            granted = self.config.roles.get(role, [])
            if permission in granted or "*" in granted:
                return True

        logger.debug(
            "Permission=%s denied to actor=%s roles=%s",
            permission,
            actor.name,
            actor.roles,
        )
        return False


class TokenAuthenticator:
    """
    Maps API tokens to actors, using the tokens from the config.
    """

    def __init__(self, config: SecurityConfig):
        self.tokens = [
            (str(item["token"]), Actor.from_dict(item)) for item in config.tokens
        ]

    def authenticate(self, token: str | None) -> Actor | None:
        if not token:
            return None
        for known, actor in self.tokens:
            if hmac.compare_digest(known.encode(), token.encode()):
                return actor
        logger.warning("Unknown API token used")
        return None

    def authenticate_header(self, authorization: str | None) -> Actor | None:
        """
        Authenticate from an `Authorization: Bearer <token>` header value.
        """
        if not authorization:
            return None
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer":
            return None
        return self.authenticate(token.strip())
