"""Visibility resolver: the one place access rules are defined.

Two questions are answered from the same ordered rule list:

    evaluate(stores, actor, action, resource) -> Decision
        May *actor* perform *action* on this one row?

    enumerate_visible(stores, actor, resource_type) -> Predicate
        Which rows of this type may *actor* list?

Rules run in a fixed order and the first one with an opinion wins:

    1. SelfAccess     -- the actor owns / created / is the row. No store reads.
    2. AdminOverride  -- global admin. One identity lookup.
    3. MembershipRule -- project membership role and flags.
    4. GrantRule      -- admin-issued manager grant; role re-checked here.
    5. DefaultDeny

Each rule also contributes a ``Predicate`` fragment for list scoping, and the
union of fragments is exactly the set of rows ``evaluate`` would allow for
``read``. Rules only read *downward* into the stores; no store ever calls back
into this module, so evaluation cannot recurse.

Store failures never escape as raw exceptions: ``evaluate`` returns a
fail-closed deny carrying a ``ResolverError`` and ``enumerate_visible``
raises ``ResolverError``. The enforcement adapter logs both and answers
``Denied``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Protocol

from sqlalchemy.orm import Session

from ..core.access import (
    Action,
    Actor,
    Capability,
    Decision,
    Effect,
    GlobalRole,
    PRIVILEGED_FIELDS,
    PROJECT_EDITOR_ROLES,
    Predicate,
    ProjectRole,
    ResourceType,
    SCOPE_COLUMNS,
)
from ..exceptions import ResolverError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Store interfaces (read-only from the resolver's side)
# ---------------------------------------------------------------------------


class IdentityStore(Protocol):
    def get_role(self, user_id: str) -> Optional[GlobalRole]: ...

    def is_active(self, user_id: str) -> bool: ...


class MembershipStore(Protocol):
    def membership_of(self, project_id: str, user_id: str) -> Any: ...

    def project_ids_for(
        self, user_id: str, roles: Optional[Iterable[ProjectRole]] = None
    ) -> set[str]: ...


class GrantStore(Protocol):
    def grant_for(self, manager_id: str, project_id: str) -> Any: ...

    def project_ids_for(
        self, manager_id: str, capability: Optional[Capability] = None
    ) -> set[str]: ...


class ActivityStore(Protocol):
    """Entry ownership, used to decide which profiles a manager can see."""

    def owner_ids_in(self, project_ids: Iterable[str]) -> set[str]: ...

    def has_entry_in(self, user_id: str, project_ids: Iterable[str]) -> bool: ...


@dataclass(frozen=True)
class AccessStores:
    identity: IdentityStore
    memberships: MembershipStore
    grants: GrantStore
    activity: ActivityStore

    @classmethod
    def from_session(cls, db: Session) -> "AccessStores":
        from ..repositories import (
            GrantRepository,
            IdentityRepository,
            MembershipRepository,
            TimeEntryRepository,
        )

        return cls(
            identity=IdentityRepository(db),
            memberships=MembershipRepository(db),
            grants=GrantRepository(db),
            activity=TimeEntryRepository(db),
        )


# ---------------------------------------------------------------------------
# Evaluation context
# ---------------------------------------------------------------------------

_UNSET = object()


class _Context:
    """Per-call cache so one evaluation reads the actor's role at most once."""

    def __init__(self, stores: AccessStores, actor: Actor):
        self.stores = stores
        self.actor = actor
        self._role: Any = _UNSET

    @property
    def actor_id(self) -> str:
        return self.actor.user_id

    def role(self) -> Optional[GlobalRole]:
        if self._role is _UNSET:
            self._role = self.stores.identity.get_role(self.actor_id)
        return self._role

    def is_manager(self) -> bool:
        return self.role() == GlobalRole.MANAGER

    def membership(self, project_id: str) -> Any:
        return self.stores.memberships.membership_of(project_id, self.actor_id)

    def editor_projects(self) -> set[str]:
        return self.stores.memberships.project_ids_for(self.actor_id, PROJECT_EDITOR_ROLES)


def _project_role(membership: Any) -> Optional[ProjectRole]:
    try:
        return ProjectRole(membership.role)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


class Rule:
    """One step of the ordered rule list.

    ``decide`` returns ``Effect.ALLOW`` to short-circuit, or ``None`` to pass
    the question to the next rule. ``visible`` returns the rows of a type this
    rule alone would allow the actor to read.
    """

    name = "rule"

    def decide(self, ctx: _Context, action: Action, resource: Any) -> Optional[Effect]:
        return None

    def visible(self, ctx: _Context, resource_type: ResourceType) -> Predicate:
        return Predicate.nothing(resource_type)


class SelfAccess(Rule):
    """The actor is the row's subject: owner, profile, creator, member, grantee."""

    name = "self_access"

    _ACTIONS: dict[ResourceType, frozenset[Action]] = {
        ResourceType.TIME_ENTRY: frozenset({Action.READ, Action.WRITE, Action.DELETE}),
        ResourceType.PROFILE: frozenset({Action.READ, Action.WRITE}),
        ResourceType.PROJECT: frozenset({Action.READ, Action.WRITE, Action.DELETE}),
        # Leaving a project is allowed; changing one's own role is not.
        ResourceType.MEMBERSHIP: frozenset({Action.READ, Action.DELETE}),
        ResourceType.GRANT: frozenset({Action.READ}),
    }

    def decide(self, ctx, action, resource):
        subject = resource.subject_id
        if subject is None or subject != ctx.actor_id:
            return None
        if action not in self._ACTIONS.get(resource.resource_type, frozenset()):
            return None
        privileged = PRIVILEGED_FIELDS.get(resource.resource_type, frozenset())
        if action != Action.READ and getattr(resource, "field", None) in privileged:
            return None
        return Effect.ALLOW

    def visible(self, ctx, resource_type):
        if Action.READ not in self._ACTIONS.get(resource_type, frozenset()):
            return Predicate.nothing(resource_type)
        return Predicate(resource_type, subject_ids=frozenset({ctx.actor_id}))


class AdminOverride(Rule):
    name = "admin_override"

    def decide(self, ctx, action, resource):
        return Effect.ALLOW if ctx.role() == GlobalRole.ADMIN else None

    def visible(self, ctx, resource_type):
        if ctx.role() == GlobalRole.ADMIN:
            return Predicate.everything(resource_type)
        return Predicate.nothing(resource_type)


class MembershipRule(Rule):
    """Access through a project membership row.

    Any membership shows the project and its member list. Only owner and
    manager memberships expose other people's time entries, allow editing
    them, and manage members. Their ``can_edit_project`` flag gates editing
    the project record and ``can_view_reports`` gates report aggregates.
    """

    name = "membership"

    def decide(self, ctx, action, resource):
        resource_type = resource.resource_type

        if resource_type == ResourceType.PROFILE:
            if action != Action.READ or not ctx.is_manager():
                return None
            projects = ctx.editor_projects()
            if ctx.stores.activity.has_entry_in(resource.subject_id, projects):
                return Effect.ALLOW
            return None

        if resource_type == ResourceType.GRANT:
            return None

        project_id = resource.scope_project_id
        if project_id is None:
            return None
        membership = ctx.membership(project_id)
        if membership is None:
            return None

        is_editor = _project_role(membership) in PROJECT_EDITOR_ROLES

        if resource_type == ResourceType.PROJECT:
            if action == Action.READ:
                return Effect.ALLOW
            if action == Action.WRITE and is_editor and membership.can_edit_project:
                return Effect.ALLOW
            return None

        if resource_type == ResourceType.MEMBERSHIP:
            if action == Action.READ or is_editor:
                return Effect.ALLOW
            return None

        if resource_type == ResourceType.TIME_ENTRY:
            return Effect.ALLOW if is_editor else None

        if resource_type == ResourceType.REPORT:
            if action == Action.READ and is_editor and membership.can_view_reports:
                return Effect.ALLOW
            return None

        return None

    def visible(self, ctx, resource_type):
        memberships = ctx.stores.memberships

        if resource_type in (ResourceType.PROJECT, ResourceType.MEMBERSHIP):
            return Predicate(
                resource_type,
                project_ids=frozenset(memberships.project_ids_for(ctx.actor_id)),
            )

        if resource_type == ResourceType.TIME_ENTRY:
            return Predicate(resource_type, project_ids=frozenset(ctx.editor_projects()))

        if resource_type == ResourceType.PROFILE and ctx.is_manager():
            owners = ctx.stores.activity.owner_ids_in(ctx.editor_projects())
            return Predicate(resource_type, subject_ids=frozenset(owners))

        return Predicate.nothing(resource_type)


class GrantRule(Rule):
    """Access through an admin-issued manager grant.

    The actor must hold the manager role *now*; a grant left behind after a
    demotion (or a promotion to admin) is ignored here.
    """

    name = "delegated_grant"

    # (resource type, action) -> capability flag required on the grant.
    # PROJECT/READ is absent on purpose: any capability makes the project visible.
    _REQUIRED: dict[tuple[ResourceType, Action], Capability] = {
        (ResourceType.PROJECT, Action.WRITE): Capability.EDIT_PROJECT,
        (ResourceType.TIME_ENTRY, Action.READ): Capability.VIEW_ENTRIES,
        (ResourceType.TIME_ENTRY, Action.WRITE): Capability.EDIT_ENTRIES,
        (ResourceType.TIME_ENTRY, Action.DELETE): Capability.EDIT_ENTRIES,
        (ResourceType.REPORT, Action.READ): Capability.VIEW_REPORTS,
    }

    def decide(self, ctx, action, resource):
        if not ctx.is_manager():
            return None

        resource_type = resource.resource_type
        grants = ctx.stores.grants

        if resource_type == ResourceType.PROFILE:
            if action != Action.READ:
                return None
            projects = grants.project_ids_for(ctx.actor_id, Capability.VIEW_ENTRIES)
            if ctx.stores.activity.has_entry_in(resource.subject_id, projects):
                return Effect.ALLOW
            return None

        if resource_type not in (ResourceType.PROJECT, ResourceType.TIME_ENTRY, ResourceType.REPORT):
            return None

        grant = grants.grant_for(ctx.actor_id, resource.scope_project_id)
        if grant is None:
            return None

        if resource_type == ResourceType.PROJECT and action == Action.READ:
            return Effect.ALLOW if grant.has_any_capability else None

        capability = self._REQUIRED.get((resource_type, action))
        if capability is not None and grant.has(capability):
            return Effect.ALLOW
        return None

    def visible(self, ctx, resource_type):
        if not ctx.is_manager():
            return Predicate.nothing(resource_type)

        grants = ctx.stores.grants

        if resource_type == ResourceType.PROJECT:
            return Predicate(resource_type, project_ids=frozenset(grants.project_ids_for(ctx.actor_id)))

        if resource_type == ResourceType.TIME_ENTRY:
            projects = grants.project_ids_for(ctx.actor_id, Capability.VIEW_ENTRIES)
            return Predicate(resource_type, project_ids=frozenset(projects))

        if resource_type == ResourceType.PROFILE:
            projects = grants.project_ids_for(ctx.actor_id, Capability.VIEW_ENTRIES)
            owners = ctx.stores.activity.owner_ids_in(projects)
            return Predicate(resource_type, subject_ids=frozenset(owners))

        return Predicate.nothing(resource_type)


class DefaultDeny(Rule):
    name = "default_deny"

    def decide(self, ctx, action, resource):
        return Effect.DENY


RULES: tuple[Rule, ...] = (
    SelfAccess(),
    AdminOverride(),
    MembershipRule(),
    GrantRule(),
    DefaultDeny(),
)


# ---------------------------------------------------------------------------
# Public interface
# ---------------------------------------------------------------------------


def evaluate(stores: AccessStores, actor: Actor, action: Action, resource: Any) -> Decision:
    """Decide whether *actor* may perform *action* on *resource*.

    Pure with respect to its inputs: reads the stores, writes nothing.
    Any failure while reading a store yields a deny whose ``error`` holds the
    wrapped ``ResolverError``.
    """
    ctx = _Context(stores, actor)
    try:
        for rule in RULES:
            effect = rule.decide(ctx, action, resource)
            if effect is not None:
                decision = Decision(effect, rule.name)
                break
        else:
            decision = Decision(Effect.DENY, DefaultDeny.name)
    except Exception as exc:
        error = ResolverError(
            f"Access check failed while evaluating {action.value} on {resource.resource_type.value}",
            original_error=exc,
        )
        return Decision(Effect.DENY, "resolver_error", error=error)

    logger.debug(
        "Access %s",
        decision.effect.value,
        extra={
            "actor_id": actor.user_id,
            "action": action.value,
            "resource_type": resource.resource_type.value,
            "rule": decision.rule,
        },
    )
    return decision


def enumerate_visible(stores: AccessStores, actor: Actor, resource_type: ResourceType) -> Predicate:
    """Build the predicate selecting every row of *resource_type* the actor may read.

    Raises:
        ValueError: *resource_type* is not a listable type.
        ResolverError: a store failed while building the predicate.
    """
    if resource_type not in SCOPE_COLUMNS:
        raise ValueError(f"{resource_type.value} rows cannot be listed")

    ctx = _Context(stores, actor)
    predicate = Predicate.nothing(resource_type)
    try:
        for rule in RULES:
            predicate = predicate.union(rule.visible(ctx, resource_type))
            if predicate.match_all:
                break
    except Exception as exc:
        raise ResolverError(
            f"Access scope could not be built for {resource_type.value}",
            original_error=exc,
        ) from exc
    return predicate
