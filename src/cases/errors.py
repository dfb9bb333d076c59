"""
Enumerated rejection reasons for collaboration operations.

Each code maps to the message shown to the caller, so clients can branch on
``code`` while users read ``detail``.
"""

from django.db import models


class ErrorCode(models.TextChoices):
    # Authentication / authorization
    AUTHENTICATION_REQUIRED = 'authentication_required', 'Authentication required'
    NO_CASE_ACCESS = 'no_case_access', 'You do not have access to this case'
    OWNER_OR_CO_OWNER_REQUIRED = (
        'owner_or_co_owner_required', 'Only owners and co-owners can add collaborators'
    )
    OWNER_ONLY_ROLE_CHANGE = 'owner_only_role_change', 'Only the owner can change roles'
    OWNER_REQUIRED = 'owner_required', 'Only the owner can remove collaborators'
    OWNER_ONLY_PERMISSIONS = (
        'owner_only_permissions', 'Only the owner can change collaborator permissions'
    )
    NOT_OWN_INVITE = 'not_own_invite', 'You can only respond to your own invites'
    INVITE_NOT_PENDING = 'invite_not_pending', 'This invite is no longer pending'
    EDIT_FORBIDDEN = 'edit_forbidden', 'You do not have permission to edit milestones'
    APPROVE_FORBIDDEN = 'approve_forbidden', 'You do not have permission to approve milestones'
    MESSAGE_FORBIDDEN = 'message_forbidden', 'You do not have permission to post comments'
    UPLOAD_FORBIDDEN = 'upload_forbidden', 'You do not have permission to upload documents'

    # Missing entities
    CASE_NOT_FOUND = 'case_not_found', 'Case not found'
    COLLABORATOR_NOT_FOUND = 'collaborator_not_found', 'Collaborator not found'
    MILESTONE_NOT_FOUND = 'milestone_not_found', 'Milestone not found'
    BROKER_NOT_FOUND = (
        'broker_not_found', 'No broker found with this email. They must have a broker account.'
    )

    # Conflicts
    ALREADY_COLLABORATOR = (
        'already_collaborator', 'This broker is already a collaborator on this case'
    )
    CANNOT_INVITE_SELF = 'cannot_invite_self', 'You cannot add yourself as a collaborator'
    OWNER_NOT_REMOVABLE = 'owner_not_removable', 'Cannot remove the case owner'
    COLLABORATOR_ALREADY_REMOVED = (
        'collaborator_already_removed', 'This collaborator has already been removed'
    )
    OWNER_ROW_LOCKED = 'owner_row_locked', "The case owner's role and permissions cannot be changed"
    MILESTONE_TERMINAL = (
        'milestone_terminal', 'Completed or cancelled milestones cannot be reviewed'
    )
    STALE_MILESTONE = (
        'stale_milestone', 'This milestone was changed by someone else. Reload and try again.'
    )

    # Bad input
    INVALID_ROLE = 'invalid_role', 'Invalid role'
    OWNER_ROLE_NOT_ASSIGNABLE = (
        'owner_role_not_assignable', 'The owner role cannot be assigned to a collaborator'
    )
    INVALID_PERMISSIONS = 'invalid_permissions', 'Permissions must map known flags to true or false'
    EMAIL_AND_ROLE_REQUIRED = 'email_and_role_required', 'Email and role are required'
    INVALID_STATUS = 'invalid_status', 'Invalid milestone status'
    INVALID_PRIORITY = 'invalid_priority', 'Invalid milestone priority'
    INVALID_REVIEW_ACTION = (
        'invalid_review_action', 'Invalid action. Must be: approve, reject, or request_changes'
    )
    TITLE_REQUIRED = 'title_required', 'Title is required'
    CONTENT_REQUIRED = 'content_required', 'Content is required'
    FILE_REQUIRED = 'file_required', 'No file provided'
    FILE_TOO_LARGE = 'file_too_large', 'File size must be under 10MB'
    UNSUPPORTED_FILE_TYPE = (
        'unsupported_file_type', 'Unsupported file type. Allowed: PDF, images, Word, Excel, CSV, text.'
    )
    UPLOAD_FAILED = 'upload_failed', 'Failed to upload file'
    NO_DUE_DATE = 'no_due_date', 'Milestone has no due date'
    TIMELINE_WRITE_FAILED = (
        'timeline_write_failed', 'File uploaded but failed to create timeline entry'
    )
