"""
Access to the ``CASE_COLLABORATION_CONFIG`` module settings.
"""

from django.conf import settings

DEFAULTS = {
    "APP_NAME": "Case Collaboration",
    "TEAM_FEED_LIMIT": 20,
    "TIMELINE_LIMIT": 100,
    "NOTIFICATIONS_ENABLED": True,
    "APP_BASE_URL": "http://localhost:3000",
    "MAX_UPLOAD_SIZE": 10 * 1024 * 1024,
    "ALLOWED_UPLOAD_TYPES": [
        "application/pdf",
        "image/jpeg", "image/png", "image/gif", "image/webp",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "text/plain", "text/csv",
    ],
    "CALENDAR_EVENT_DURATION_MINUTES": 30,
    "MILESTONE_REMINDER_MINUTES": [1440, 60],
    "REMINDER_WINDOW_MINUTES": 6,
}


def get_setting(name):
    """Return a module setting, falling back to the built-in default."""
    config = getattr(settings, 'CASE_COLLABORATION_CONFIG', {})
    if name in config:
        return config[name]
    return DEFAULTS[name]
