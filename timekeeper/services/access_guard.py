"""Enforcement adapter between request handlers and the resolver.

Handlers never inspect roles themselves. Single-row operations go through
``check`` / ``guard``; list operations go through ``scoped_list`` so the
resolver's predicate filters the query at the database.

A deny (including a fail-closed deny caused by a store failure) always
surfaces as ``Denied``. Store failures are additionally logged at ERROR with
``authz_failure`` set so they can be told apart from ordinary denials.
"""

import logging
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.orm import Query, Session

from ..core.access import Action, Actor, Decision, Predicate, ResourceType
from ..exceptions import Denied, ResolverError
from ..models import Profile, Project, ProjectManagerGrant, ProjectMember, TimeEntry
from .permission_service import AccessStores, enumerate_visible, evaluate

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MODELS = {
    ResourceType.PROJECT: Project,
    ResourceType.MEMBERSHIP: ProjectMember,
    ResourceType.GRANT: ProjectManagerGrant,
    ResourceType.TIME_ENTRY: TimeEntry,
    ResourceType.PROFILE: Profile,
}


class AccessGuard:
    """Wraps the resolver for one database session."""

    def __init__(self, db: Optional[Session] = None, stores: Optional[AccessStores] = None):
        if stores is None:
            if db is None:
                raise ValueError("AccessGuard needs a session or explicit stores")
            stores = AccessStores.from_session(db)
        self.stores = stores

    def decide(self, actor: Actor, action: Action, resource: Any) -> Decision:
        return evaluate(self.stores, actor, action, resource)

    def can(self, actor: Actor, action: Action, resource: Any) -> bool:
        """Non-raising form of ``check`` for capability hints in responses."""
        decision = self.decide(actor, action, resource)
        if decision.error is not None:
            self._log_failure(actor, action.value, resource.resource_type, decision.error)
        return decision.allowed

    def check(self, actor: Actor, action: Action, resource: Any) -> None:
        """Raise ``Denied`` unless the resolver allows the operation."""
        decision = self.decide(actor, action, resource)
        if decision.allowed:
            return

        resource_type = resource.resource_type
        if decision.error is not None:
            self._log_failure(actor, action.value, resource_type, decision.error)
        else:
            logger.info(
                "Access denied",
                extra={
                    "actor_id": actor.user_id,
                    "action": action.value,
                    "resource_type": resource_type.value,
                    "rule": decision.rule,
                },
            )
        raise Denied(actor.user_id, action.value, resource_type.value)

    def guard(self, actor: Actor, action: Action, resource: Any, proceed: Callable[[], T]) -> T:
        """Run *proceed* only if the resolver allows the operation."""
        self.check(actor, action, resource)
        return proceed()

    def visible(self, actor: Actor, resource_type: ResourceType) -> Predicate:
        try:
            return enumerate_visible(self.stores, actor, resource_type)
        except ResolverError as e:
            self._log_failure(actor, Action.READ.value, resource_type, e)
            raise Denied(actor.user_id, Action.READ.value, resource_type.value) from e

    def scoped_list(self, actor: Actor, resource_type: ResourceType, base_query: Query) -> Query:
        """Restrict *base_query* to the rows the actor may read.

        A resolver failure raises ``Denied`` rather than returning an empty
        list, so callers can tell "nothing visible" from "could not decide".
        """
        predicate = self.visible(actor, resource_type)
        if predicate.is_empty:
            logger.debug(
                "Nothing visible", extra={"actor_id": actor.user_id, "resource_type": resource_type.value}
            )
        return base_query.filter(predicate.to_clause(_MODELS[resource_type]))

    @staticmethod
    def _log_failure(actor: Actor, action: str, resource_type: ResourceType, error: Exception) -> None:
        logger.error(
            "Authorization failed closed: %s",
            error,
            extra={
                "actor_id": actor.user_id,
                "action": action,
                "resource_type": resource_type.value,
                "authz_failure": True,
                "details": getattr(error, "details", {}),
            },
        )
