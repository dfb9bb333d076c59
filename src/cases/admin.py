"""
Admin configuration for the cases app.
"""

from django.contrib import admin

from .models import CalendarEvent, Case, Collaborator, Milestone, TimelineEntry


class CollaboratorInline(admin.TabularInline):
    model = Collaborator
    fk_name = 'case'
    extra = 0
    fields = ['broker', 'role', 'status', 'invited_by', 'invited_at', 'accepted_at']
    readonly_fields = ['status', 'invited_at', 'accepted_at']
    raw_id_fields = ['broker', 'invited_by']


@admin.register(Case)
class CaseAdmin(admin.ModelAdmin):
    """Admin interface for Case model."""

    list_display = ['name', 'email', 'onboarding_status', 'primary_owner', 'created_at']
    list_filter = ['onboarding_status', 'created_at']
    search_fields = ['name', 'email', 'primary_owner__email']
    readonly_fields = ['id', 'created_at', 'updated_at']
    raw_id_fields = ['primary_owner']
    inlines = [CollaboratorInline]


@admin.register(Collaborator)
class CollaboratorAdmin(admin.ModelAdmin):
    """Admin interface for Collaborator model."""

    list_display = ['case', 'broker', 'role', 'status', 'invited_at', 'accepted_at']
    list_filter = ['role', 'status']
    search_fields = ['case__name', 'broker__email', 'broker__first_name', 'broker__last_name']
    readonly_fields = ['id', 'status', 'invited_at', 'accepted_at', 'created_at', 'updated_at']
    raw_id_fields = ['case', 'broker', 'invited_by']

    fieldsets = (
        ('Grant', {
            'fields': ('id', 'case', 'broker', 'role', 'status')
        }),
        ('Permissions', {
            'fields': ('can_edit', 'can_message', 'can_upload', 'can_approve', 'can_delete')
        }),
        ('Invite', {
            'fields': ('invited_by', 'invited_at', 'accepted_at')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at')
        })
    )


@admin.register(Milestone)
class MilestoneAdmin(admin.ModelAdmin):
    """Admin interface for Milestone model."""

    list_display = ['title', 'case', 'status', 'priority', 'owner', 'due_date', 'sort_order']
    list_filter = ['status', 'priority', 'due_date']
    search_fields = ['title', 'description', 'case__name']
    readonly_fields = [
        'id', 'started_at', 'completed_at', 'completed_by', 'version',
        'created_at', 'updated_at'
    ]
    raw_id_fields = ['case', 'owner']


@admin.register(TimelineEntry)
class TimelineEntryAdmin(admin.ModelAdmin):
    """Read-only admin for the append-only timeline."""

    list_display = ['case', 'entry_type', 'author', 'milestone', 'is_internal', 'created_at']
    list_filter = ['entry_type', 'is_internal', 'created_at']
    search_fields = ['content', 'case__name', 'author__email']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(CalendarEvent)
class CalendarEventAdmin(admin.ModelAdmin):
    """Admin interface for projected calendar events."""

    list_display = ['title', 'broker', 'case', 'start_time', 'status']
    list_filter = ['status', 'event_type', 'start_time']
    search_fields = ['title', 'broker__email', 'case__name']
    readonly_fields = ['id', 'reminders_sent', 'created_at', 'updated_at']
    raw_id_fields = ['broker', 'case', 'milestone']
