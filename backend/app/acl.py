"""Role and audience policy for portal messaging.

The portal knows four roles.  This module defines them, the audience tags
a broadcast may target, which roles each role may pick as a direct
recipient, and which audiences each role may broadcast to.  Having these
values in one place makes it easy to audit and update the policy.
"""

ROLE_ADMIN = "admin"
ROLE_TEACHER = "teacher"
ROLE_PARENT = "parent"
ROLE_STUDENT = "student"

ALL_ROLES = [ROLE_ADMIN, ROLE_TEACHER, ROLE_PARENT, ROLE_STUDENT]

AUDIENCE_ALL = "all"

# Tags accepted in ``Message.target_role``
AUDIENCE_TAGS = [ROLE_TEACHER, ROLE_PARENT, ROLE_STUDENT, AUDIENCE_ALL]

# Roles offered as direct recipients in the compose form.  This only
# populates choices; compose itself does not check it.
ROLE_RECIPIENT_ROLES = {
    ROLE_ADMIN: ALL_ROLES,
    ROLE_TEACHER: [ROLE_ADMIN, ROLE_PARENT],
    ROLE_PARENT: [ROLE_ADMIN, ROLE_TEACHER],
    ROLE_STUDENT: [ROLE_ADMIN, ROLE_TEACHER],
}

# Only admins may address every audience tag.
ROLE_BROADCAST_AUDIENCES = {
    ROLE_ADMIN: AUDIENCE_TAGS,
    ROLE_TEACHER: [ROLE_PARENT, ROLE_STUDENT],
}


def get_recipient_roles_for_role(role: str) -> list[str]:
    return ROLE_RECIPIENT_ROLES.get(role, [])


def get_broadcast_audiences_for_role(role: str) -> list[str]:
    return ROLE_BROADCAST_AUDIENCES.get(role, [])


def can_broadcast(role: str, audience: str) -> bool:
    return audience in get_broadcast_audiences_for_role(role)
