"""
Collaborator roles and their default permission bundles.

``ROLE_CONFIG`` is the single source of truth for what a role may do by
default. Bundles are copied onto a collaborator row on invite and on role
change; after that the row's flags are independent of the table.
"""

from dataclasses import dataclass
from typing import Dict

from django.db import models


class CollaboratorRole(models.TextChoices):
    OWNER = 'owner', 'Owner'
    CO_OWNER = 'co_owner', 'Co-Owner'
    SUPPORTING = 'supporting', 'Supporting'
    REVIEWER = 'reviewer', 'Reviewer'
    OBSERVER = 'observer', 'Observer'


PERMISSION_FLAGS = ('can_edit', 'can_message', 'can_upload', 'can_approve', 'can_delete')


@dataclass(frozen=True)
class PermissionBundle:
    can_edit: bool
    can_message: bool
    can_upload: bool
    can_approve: bool
    can_delete: bool

    def as_dict(self) -> Dict[str, bool]:
        return {flag: getattr(self, flag) for flag in PERMISSION_FLAGS}


@dataclass(frozen=True)
class RoleConfig:
    label: str
    description: str
    default_permissions: PermissionBundle


ROLE_CONFIG: Dict[str, RoleConfig] = {
    CollaboratorRole.OWNER.value: RoleConfig(
        label='Owner',
        description='Full control over the case',
        default_permissions=PermissionBundle(
            can_edit=True, can_message=True, can_upload=True, can_approve=True, can_delete=True
        ),
    ),
    CollaboratorRole.CO_OWNER.value: RoleConfig(
        label='Co-Owner',
        description='Almost full access, cannot delete case',
        default_permissions=PermissionBundle(
            can_edit=True, can_message=True, can_upload=True, can_approve=True, can_delete=False
        ),
    ),
    CollaboratorRole.SUPPORTING.value: RoleConfig(
        label='Supporting',
        description='Work on tasks, upload docs, comment',
        default_permissions=PermissionBundle(
            can_edit=True, can_message=True, can_upload=True, can_approve=False, can_delete=False
        ),
    ),
    CollaboratorRole.REVIEWER.value: RoleConfig(
        label='Reviewer',
        description='Approve decisions, cannot edit',
        default_permissions=PermissionBundle(
            can_edit=False, can_message=True, can_upload=False, can_approve=True, can_delete=False
        ),
    ),
    CollaboratorRole.OBSERVER.value: RoleConfig(
        label='Observer',
        description='View only, no actions',
        default_permissions=PermissionBundle(
            can_edit=False, can_message=False, can_upload=False, can_approve=False, can_delete=False
        ),
    ),
}

# Roles whose holders count as case administrators.
OWNER_ROLES = (CollaboratorRole.OWNER, CollaboratorRole.CO_OWNER)
APPROVER_ROLES = (CollaboratorRole.OWNER, CollaboratorRole.CO_OWNER, CollaboratorRole.REVIEWER)


def get_role_config(role: str) -> RoleConfig:
    """Look up a role's configuration. Raises KeyError for unknown roles."""
    return ROLE_CONFIG[str(role)]


def is_valid_role(role) -> bool:
    return role in CollaboratorRole.values
