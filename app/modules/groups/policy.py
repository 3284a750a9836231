"""
Group role policy.

Pure decisions over ``GroupRole``; no store access. The guards in
``app.core.dependencies`` resolve the membership and the routes/services call
these functions with the resolved roles. Every function names each role
explicitly so that adding a role forces a decision here.
"""
from enum import Enum

from app.core.exceptions import (
    ForbiddenError, InsufficientGroupRoleError, NotGroupOwnerError, ValidationFailedError
)


class GroupRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


# Listing order for members: owner first, then admins, then members
ROLE_RANK = {
    GroupRole.OWNER: 0,
    GroupRole.ADMIN: 1,
    GroupRole.MEMBER: 2,
}

ASSIGNABLE_ROLES = (GroupRole.ADMIN, GroupRole.MEMBER)


def is_admin_role(role: GroupRole) -> bool:
    if role is GroupRole.OWNER or role is GroupRole.ADMIN:
        return True
    if role is GroupRole.MEMBER:
        return False
    raise ValueError(f"Unknown role: {role}")


def can_manage_members(role: GroupRole) -> bool:
    return is_admin_role(role)


def can_change_roles(role: GroupRole) -> bool:
    if role is GroupRole.OWNER:
        return True
    if role is GroupRole.ADMIN or role is GroupRole.MEMBER:
        return False
    raise ValueError(f"Unknown role: {role}")


def can_update_group(role: GroupRole) -> bool:
    # Renaming and deleting a group are owner-only, same as role changes
    return can_change_roles(role)


def check_role_change(actor_role: GroupRole, target_role: GroupRole, new_role: GroupRole) -> None:
    """Raise unless ``actor_role`` may move a ``target_role`` member to ``new_role``.

    Only the owner changes roles, only between ADMIN and MEMBER, and the owner
    row itself is never touched.
    """
    if not can_change_roles(actor_role):
        raise NotGroupOwnerError()
    if target_role is GroupRole.OWNER:
        raise ValidationFailedError("Cannot change the role of the group owner")
    if new_role not in ASSIGNABLE_ROLES:
        raise ValidationFailedError("Role must be ADMIN or MEMBER")


def check_member_removal(actor_role: GroupRole, target_role: GroupRole, is_self: bool) -> None:
    """Raise unless ``actor_role`` may remove a ``target_role`` member.

    OWNER removes ADMIN or MEMBER; ADMIN removes MEMBER or themself; MEMBER
    removes only themself. Nobody removes the OWNER.
    """
    if target_role is GroupRole.OWNER:
        raise ValidationFailedError("Cannot remove the group owner")

    if actor_role is GroupRole.OWNER:
        return
    if actor_role is GroupRole.ADMIN:
        if target_role is GroupRole.MEMBER or is_self:
            return
        raise ForbiddenError("Only owner can remove admins")
    if actor_role is GroupRole.MEMBER:
        if is_self:
            return
        raise InsufficientGroupRoleError()
    raise ValueError(f"Unknown role: {actor_role}")
