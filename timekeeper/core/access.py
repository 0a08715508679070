"""Access-control vocabulary shared by models, the resolver and the API.

Roles, actions, resource records and the two values the resolver hands back
(``Decision`` for a single row, ``Predicate`` for a list query). Nothing in
this module touches the database; resource records are plain snapshots of the
columns the rules look at.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from sqlalchemy import false, or_, true


class GlobalRole(str, Enum):
    """Account-wide role held by exactly one value per actor."""

    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"


class ProjectRole(str, Enum):
    """Project-scoped role carried by a membership row."""

    OWNER = "owner"
    MANAGER = "manager"
    MEMBER = "member"
    VIEWER = "viewer"


# Membership roles allowed to edit other people's rows inside a project.
PROJECT_EDITOR_ROLES = frozenset({ProjectRole.OWNER, ProjectRole.MANAGER})


class Action(str, Enum):
    READ = "read"
    WRITE = "write"
    DELETE = "delete"


class ResourceType(str, Enum):
    PROJECT = "project"
    MEMBERSHIP = "membership"
    GRANT = "grant"
    TIME_ENTRY = "time_entry"
    PROFILE = "profile"
    REPORT = "report"
    AUDIT_LOG = "audit_log"


class Capability(str, Enum):
    """Flags on a delegated manager grant."""

    VIEW_ENTRIES = "can_view_entries"
    EDIT_ENTRIES = "can_edit_entries"
    VIEW_REPORTS = "can_view_reports"
    EDIT_PROJECT = "can_edit_project"


# Fields whose modification is never covered by self-access.
PRIVILEGED_FIELDS: dict[ResourceType, frozenset[str]] = {
    ResourceType.PROFILE: frozenset({"role", "is_active"}),
    ResourceType.TIME_ENTRY: frozenset({"user_id"}),
}


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, passed explicitly into every check.

    ``role`` is the value loaded at authentication time. The resolver never
    trusts it for decisions; it re-reads the role from the identity store.
    """

    user_id: str
    role: str = GlobalRole.MEMBER.value
    is_active: bool = True


# ---------------------------------------------------------------------------
# Resource records
# ---------------------------------------------------------------------------
#
# Every record exposes two keys used by list scoping:
#   subject_id        -- the actor a row belongs to (owner, member, grantee...)
#   scope_project_id  -- the project a row is visible through, if any


@dataclass(frozen=True)
class ProjectRecord:
    project_id: str
    created_by: Optional[str] = None
    resource_type = ResourceType.PROJECT

    @property
    def subject_id(self) -> Optional[str]:
        return self.created_by

    @property
    def scope_project_id(self) -> Optional[str]:
        return self.project_id

    @classmethod
    def from_row(cls, project: Any) -> "ProjectRecord":
        return cls(project_id=project.id, created_by=project.created_by)


@dataclass(frozen=True)
class TimeEntryRecord:
    owner_id: str
    project_id: str
    field: Optional[str] = None
    resource_type = ResourceType.TIME_ENTRY

    @property
    def subject_id(self) -> Optional[str]:
        return self.owner_id

    @property
    def scope_project_id(self) -> Optional[str]:
        return self.project_id

    @classmethod
    def from_row(cls, entry: Any, field: Optional[str] = None) -> "TimeEntryRecord":
        return cls(owner_id=entry.user_id, project_id=entry.project_id, field=field)


@dataclass(frozen=True)
class ProfileRecord:
    subject_id: str
    field: Optional[str] = None
    resource_type = ResourceType.PROFILE

    @property
    def scope_project_id(self) -> Optional[str]:
        return None

    @classmethod
    def from_row(cls, profile: Any, field: Optional[str] = None) -> "ProfileRecord":
        return cls(subject_id=profile.user_id, field=field)


@dataclass(frozen=True)
class MembershipRecord:
    project_id: str
    user_id: Optional[str] = None
    resource_type = ResourceType.MEMBERSHIP

    @property
    def subject_id(self) -> Optional[str]:
        return self.user_id

    @property
    def scope_project_id(self) -> Optional[str]:
        return self.project_id

    @classmethod
    def from_row(cls, membership: Any) -> "MembershipRecord":
        return cls(project_id=membership.project_id, user_id=membership.user_id)


@dataclass(frozen=True)
class GrantRecord:
    manager_id: Optional[str] = None
    project_id: Optional[str] = None
    resource_type = ResourceType.GRANT

    @property
    def subject_id(self) -> Optional[str]:
        return self.manager_id

    @property
    def scope_project_id(self) -> Optional[str]:
        # Grants are never visible through project scope, only to the grantee.
        return None

    @classmethod
    def from_row(cls, grant: Any) -> "GrantRecord":
        return cls(manager_id=grant.manager_id, project_id=grant.project_id)


@dataclass(frozen=True)
class ReportRecord:
    project_id: str
    resource_type = ResourceType.REPORT

    @property
    def subject_id(self) -> Optional[str]:
        return None

    @property
    def scope_project_id(self) -> Optional[str]:
        return self.project_id


@dataclass(frozen=True)
class AuditLogRecord:
    """The audit trail as a whole. Only admins read it."""

    resource_type = ResourceType.AUDIT_LOG

    @property
    def subject_id(self) -> Optional[str]:
        return None

    @property
    def scope_project_id(self) -> Optional[str]:
        return None


# ---------------------------------------------------------------------------
# Resolver outputs
# ---------------------------------------------------------------------------


class Effect(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class Decision:
    """Outcome of a single evaluation.

    ``rule`` names the rule that produced the effect. ``error`` is set only
    when the decision is a fail-closed deny caused by a store failure.
    """

    effect: Effect
    rule: str
    error: Optional[Exception] = None

    @property
    def allowed(self) -> bool:
        return self.effect == Effect.ALLOW


# Which ORM attribute holds each key, per listable resource type.
# (subject column, project column); None means the key does not apply.
SCOPE_COLUMNS: dict[ResourceType, tuple[str, Optional[str]]] = {
    ResourceType.PROJECT: ("created_by", "id"),
    ResourceType.TIME_ENTRY: ("user_id", "project_id"),
    ResourceType.MEMBERSHIP: ("user_id", "project_id"),
    ResourceType.GRANT: ("manager_id", None),
    ResourceType.PROFILE: ("user_id", None),
}


@dataclass(frozen=True)
class Predicate:
    """Row filter produced by ``enumerate``.

    A row matches when ``match_all`` is set, or its subject is in
    ``subject_ids``, or it is scoped to a project in ``project_ids``.
    The same predicate can test an in-memory record (``matches``) or be
    compiled into a SQL clause (``to_clause``) so lists are filtered at
    the source.
    """

    resource_type: ResourceType
    match_all: bool = False
    subject_ids: frozenset[str] = field(default_factory=frozenset)
    project_ids: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def nothing(cls, resource_type: ResourceType) -> "Predicate":
        return cls(resource_type)

    @classmethod
    def everything(cls, resource_type: ResourceType) -> "Predicate":
        return cls(resource_type, match_all=True)

    @property
    def is_empty(self) -> bool:
        return not (self.match_all or self.subject_ids or self.project_ids)

    def union(self, other: "Predicate") -> "Predicate":
        if other.resource_type != self.resource_type:
            raise ValueError(
                f"Cannot combine {self.resource_type.value} and {other.resource_type.value} predicates"
            )
        return Predicate(
            self.resource_type,
            match_all=self.match_all or other.match_all,
            subject_ids=self.subject_ids | other.subject_ids,
            project_ids=self.project_ids | other.project_ids,
        )

    def matches(self, record: Any) -> bool:
        if record.resource_type != self.resource_type:
            return False
        if self.match_all:
            return True
        if record.subject_id is not None and record.subject_id in self.subject_ids:
            return True
        project_id = record.scope_project_id
        return project_id is not None and project_id in self.project_ids

    def to_clause(self, model: Any):
        """Compile into a SQLAlchemy boolean expression over *model*."""
        if self.match_all:
            return true()

        subject_attr, project_attr = SCOPE_COLUMNS[self.resource_type]
        clauses = []
        if self.subject_ids:
            clauses.append(getattr(model, subject_attr).in_(sorted(self.subject_ids)))
        if self.project_ids and project_attr is not None:
            clauses.append(getattr(model, project_attr).in_(sorted(self.project_ids)))

        if not clauses:
            return false()
        return or_(*clauses)
