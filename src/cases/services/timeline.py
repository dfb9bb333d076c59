"""
Timeline log service.

The timeline is append-only: ``append`` is the only write path and every
other mutation in the collaboration engine calls it after its own change.
"""

import logging
import re
import time
from typing import Any, Dict, List, Optional

from django.core.files.storage import default_storage
from django.db import transaction

from accounts.models import User
from ..conf import get_setting
from ..errors import ErrorCode
from ..models import Case, Milestone, TimelineEntry, TimelineEntryType
from .base import BaseService, ServiceError, ValidationServiceError
from .permissions import CasePermissionResolver, accessible_case_ids, get_case_for

logger = logging.getLogger(__name__)


def append(case: Case, author: Optional[User], entry_type: str, content: str = '',
           metadata: Optional[Dict[str, Any]] = None, milestone: Optional[Milestone] = None,
           mentions: Optional[List[Dict[str, Any]]] = None, is_internal: bool = False,
           fatal: bool = False) -> Optional[TimelineEntry]:
    """
    Append one entry to a case timeline.

    The write runs in its own savepoint so a failure cannot poison the
    caller's transaction. Failures are logged and ``None`` is returned,
    unless ``fatal`` is set, in which case a ``ServiceError`` is raised.
    """
    try:
        with transaction.atomic():
            return TimelineEntry.objects.create(
                case=case,
                author=author,
                entry_type=entry_type,
                content=content or '',
                metadata=metadata or {},
                milestone=milestone,
                mentions=mentions or [],
                is_internal=is_internal,
            )
    except Exception:
        logger.exception(
            f"Timeline append failed: case={case.pk} type={entry_type} "
            f"author={getattr(author, 'pk', None)}"
        )
        if fatal:
            raise ServiceError(ErrorCode.TIMELINE_WRITE_FAILED)
        return None


def file_type_for(content_type: str) -> str:
    """Map a MIME type onto the document kind shown on the timeline."""
    if content_type.startswith('image/'):
        return 'image'
    if content_type == 'application/pdf':
        return 'pdf'
    return 'doc'


def sanitize_file_name(name: str) -> str:
    return re.sub(r'_+', '_', re.sub(r'[^a-zA-Z0-9.-]', '_', name))


class TimelineService(BaseService):
    """Reads of the timeline, and the entries brokers write directly."""

    def list_for_case(self, case_id) -> List[TimelineEntry]:
        """
        Entries for a case in ascending creation order.

        Only the most recent ``TIMELINE_LIMIT`` entries are returned.
        """
        case = get_case_for(self.user, case_id)
        limit = get_setting('TIMELINE_LIMIT')
        entries = list(
            TimelineEntry.objects.filter(case=case)
            .select_related('author', 'milestone')
            .order_by('-created_at')[:limit]
        )
        entries.reverse()
        return entries

    def feed(self) -> List[TimelineEntry]:
        """Most recent entries across every case the caller can access."""
        broker = self._require_user()
        limit = get_setting('TEAM_FEED_LIMIT')
        return list(
            TimelineEntry.objects.filter(case_id__in=accessible_case_ids(broker))
            .select_related('case', 'author', 'milestone')
            .order_by('-created_at')[:limit]
        )

    def add_comment(self, case_id, content: str, mentions: Optional[List[Dict]] = None,
                    is_internal: bool = False) -> TimelineEntry:
        """
        Post a comment, or a mention when anyone is mentioned.

        Raises:
            PermissionServiceError: If the caller cannot message on the case
            ValidationServiceError: If the content is blank
        """
        case = get_case_for(self.user, case_id)
        CasePermissionResolver(case, self.user).require('can_message', ErrorCode.MESSAGE_FORBIDDEN)

        if not content or not content.strip():
            raise ValidationServiceError(ErrorCode.CONTENT_REQUIRED)

        mentions = mentions or []
        entry_type = TimelineEntryType.MENTION if mentions else TimelineEntryType.COMMENT
        entry = append(
            case, self.user, entry_type, content.strip(),
            mentions=mentions, is_internal=is_internal, fatal=True
        )
        self._log_operation('add_comment', {'case': str(case.pk), 'type': entry_type})
        return entry

    def record_document_upload(self, case_id, uploaded_file, description: str = '') -> Dict[str, Any]:
        """
        Store an uploaded document and record it on the timeline.

        The timeline entry is the upload's only record, so a failed append is
        reported to the caller.

        Returns:
            Dict with the created ``entry`` and the stored ``file_url``
        """
        case = get_case_for(self.user, case_id)
        CasePermissionResolver(case, self.user).require('can_upload', ErrorCode.UPLOAD_FORBIDDEN)

        if uploaded_file is None:
            raise ValidationServiceError(ErrorCode.FILE_REQUIRED)
        if uploaded_file.size > get_setting('MAX_UPLOAD_SIZE'):
            raise ValidationServiceError(ErrorCode.FILE_TOO_LARGE)
        content_type = getattr(uploaded_file, 'content_type', '') or ''
        if content_type not in get_setting('ALLOWED_UPLOAD_TYPES'):
            raise ValidationServiceError(ErrorCode.UNSUPPORTED_FILE_TYPE)

        safe_name = sanitize_file_name(uploaded_file.name)
        storage_path = f"{case.pk}/timeline/{int(time.time() * 1000)}_{safe_name}"
        try:
            storage_path = default_storage.save(storage_path, uploaded_file)
            file_url = default_storage.url(storage_path)
        except Exception as e:
            logger.error(f"Upload to storage failed for case {case.pk}: {str(e)}")
            raise ServiceError(ErrorCode.UPLOAD_FAILED)

        if description:
            content = f'uploaded document "{uploaded_file.name}" — {description}'
        else:
            content = f'uploaded document "{uploaded_file.name}"'

        entry = append(
            case, self.user, TimelineEntryType.DOCUMENT_UPLOADED, content,
            metadata={
                'file_name': uploaded_file.name,
                'file_url': file_url,
                'file_size': uploaded_file.size,
                'file_type': file_type_for(content_type),
                'storage_path': storage_path,
                'description': description or None,
            },
            fatal=True
        )
        self._log_operation('record_document_upload', {'case': str(case.pk), 'path': storage_path})
        return {'entry': entry, 'file_url': file_url}
