"""Grant scopes, roles and permission levels.

The resolver functions here are total: every input, including values
outside the enums, maps to a result rather than an error.
"""

from enum import StrEnum


class InvitationType(StrEnum):
    """Scope an invitation grants access to."""

    WORKSPACE = "workspace"
    SPACE = "space"
    FOLDER = "folder"
    PROJECT = "project"
    TEAM = "team"
    TASK = "task"


class GrantRole(StrEnum):
    """Role granted on acceptance."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    LIMITED_MEMBER = "limited_member"
    GUEST = "guest"


class PermissionLevel(StrEnum):
    """Coarse access tier attached to a grant."""

    FULL_EDIT = "full_edit"
    EDIT = "edit"
    COMMENT = "comment"
    VIEW_ONLY = "view_only"


class Capability(StrEnum):
    """Granular capability flags an invitation may carry."""

    EDIT_TASKS = "can_edit_tasks"
    CREATE_TASKS = "can_create_tasks"
    DELETE_TASKS = "can_delete_tasks"
    COMMENT = "can_comment"
    CREATE_SUBTASKS = "can_create_subtasks"
    ASSIGN = "can_assign"
    SEE_TIME_SPENT = "can_see_time_spent"
    TRACK_TIME = "can_track_time"
    ADD_TAGS = "can_add_tags"
    CREATE_VIEWS = "can_create_views"
    INVITE_OTHERS = "can_invite_others"
    MANAGE_SPRINTS = "can_manage_sprints"
    VIEW_REPORTS = "can_view_reports"
    EXPORT = "can_export"


_ROLE_PERMISSIONS: dict[GrantRole, PermissionLevel] = {
    GrantRole.OWNER: PermissionLevel.FULL_EDIT,
    GrantRole.ADMIN: PermissionLevel.FULL_EDIT,
    GrantRole.MEMBER: PermissionLevel.EDIT,
    GrantRole.LIMITED_MEMBER: PermissionLevel.COMMENT,
    GrantRole.GUEST: PermissionLevel.VIEW_ONLY,
}

_SUBTREE_ROLES = frozenset({GrantRole.MEMBER, GrantRole.LIMITED_MEMBER, GrantRole.GUEST})

_TYPE_ROLES: dict[InvitationType, frozenset[GrantRole]] = {
    InvitationType.WORKSPACE: frozenset(
        {GrantRole.ADMIN, GrantRole.MEMBER, GrantRole.LIMITED_MEMBER, GrantRole.GUEST}
    ),
    InvitationType.SPACE: _SUBTREE_ROLES,
    InvitationType.FOLDER: _SUBTREE_ROLES,
    InvitationType.PROJECT: _SUBTREE_ROLES,
    InvitationType.TEAM: frozenset({GrantRole.MEMBER}),
    InvitationType.TASK: frozenset({GrantRole.GUEST, GrantRole.LIMITED_MEMBER}),
}

_FALLBACK_ROLES = frozenset({GrantRole.MEMBER})

_EDIT_EXCLUDED = frozenset(
    {Capability.DELETE_TASKS, Capability.INVITE_OTHERS, Capability.MANAGE_SPRINTS}
)

_LEVEL_CAPABILITIES: dict[PermissionLevel, frozenset[Capability]] = {
    PermissionLevel.FULL_EDIT: frozenset(Capability),
    PermissionLevel.EDIT: frozenset(Capability) - _EDIT_EXCLUDED,
    PermissionLevel.COMMENT: frozenset({Capability.COMMENT}),
    PermissionLevel.VIEW_ONLY: frozenset(),
}


def default_permission_for_role(role: str) -> PermissionLevel:
    """Return the permission level a role implies. Unknown roles get view-only."""
    try:
        return _ROLE_PERMISSIONS[GrantRole(role)]
    except ValueError:
        return PermissionLevel.VIEW_ONLY


def valid_roles_for_type(invitation_type: str) -> frozenset[GrantRole]:
    """Return the roles that may be granted on a scope. Unknown scopes allow member."""
    try:
        return _TYPE_ROLES[InvitationType(invitation_type)]
    except ValueError:
        return _FALLBACK_ROLES


def is_role_valid_for_type(role: str, invitation_type: str) -> bool:
    """Check whether a role may be granted on a scope."""
    return role in valid_roles_for_type(invitation_type)


def default_capabilities(level: str) -> frozenset[Capability]:
    """Return the capability flags a permission level implies.

    Unknown levels are treated as view-only.
    """
    try:
        return _LEVEL_CAPABILITIES[PermissionLevel(level)]
    except ValueError:
        return frozenset()
