"""
Serializers for case collaboration models.
"""

from rest_framework import serializers

from accounts.models import User
from accounts.identity import profile_payload
from .models import CalendarEvent, Case, Collaborator, Milestone, TimelineEntry
from .services.permissions import CasePermissionResolver


class ProfileSerializer(serializers.ModelSerializer):
    """Public broker profile."""
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'full_name', 'email', 'avatar_url']
        read_only_fields = fields


class CaseSummarySerializer(serializers.ModelSerializer):
    """Case fields shown alongside collaborators and feed entries."""

    class Meta:
        model = Case
        fields = ['id', 'name', 'email', 'onboarding_status', 'created_at']
        read_only_fields = fields


class CaseSerializer(serializers.ModelSerializer):
    """Case detail with the caller's resolved capabilities."""
    onboarding_status_display = serializers.CharField(
        source='get_onboarding_status_display',
        read_only=True
    )
    permissions = serializers.SerializerMethodField()

    class Meta:
        model = Case
        fields = [
            'id', 'name', 'email', 'onboarding_status', 'onboarding_status_display',
            'permissions', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_permissions(self, obj):
        request = self.context.get('request')
        if request is None:
            return None
        return CasePermissionResolver(obj, request.user).summary()


class CollaboratorSerializer(serializers.ModelSerializer):
    """Serializer for case collaborators."""
    broker = ProfileSerializer(read_only=True)
    invited_by = ProfileSerializer(read_only=True)
    role_label = serializers.CharField(read_only=True)
    permissions = serializers.DictField(child=serializers.BooleanField(), read_only=True)

    class Meta:
        model = Collaborator
        fields = [
            'id', 'case', 'broker', 'role', 'role_label', 'status',
            'permissions', 'invited_by', 'invited_at', 'accepted_at'
        ]
        read_only_fields = fields


class PendingInviteSerializer(CollaboratorSerializer):
    """A pending invite with the case it grants access to."""
    case = CaseSummarySerializer(read_only=True)


class InviteSerializer(serializers.Serializer):
    """Input for inviting a broker onto a case."""
    email = serializers.CharField(required=False, allow_blank=True, default='')
    role = serializers.CharField(required=False, allow_blank=True, default='')


class CollaboratorUpdateSerializer(serializers.Serializer):
    """Input for a role change or a permission override."""
    role = serializers.CharField(required=False)
    permissions = serializers.DictField(child=serializers.BooleanField(), required=False)

    def validate(self, attrs):
        if 'role' not in attrs and 'permissions' not in attrs:
            raise serializers.ValidationError("Provide either a role or permissions")
        if 'role' in attrs and 'permissions' in attrs:
            raise serializers.ValidationError("Change the role or the permissions, not both")
        return attrs


class MilestoneSerializer(serializers.ModelSerializer):
    """Serializer for case milestones."""
    owner = ProfileSerializer(read_only=True)
    completed_by = ProfileSerializer(read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    priority_display = serializers.CharField(source='get_priority_display', read_only=True)
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = Milestone
        fields = [
            'id', 'case', 'title', 'description', 'status', 'status_display',
            'priority', 'priority_display', 'owner', 'due_date', 'sort_order',
            'started_at', 'completed_at', 'completed_by', 'version',
            'is_overdue', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class MilestoneWriteSerializer(serializers.Serializer):
    """
    Input for creating or editing a milestone.

    Only keys present in the request end up in ``validated_data``; an
    explicit ``owner_id: null`` unassigns the milestone.
    """
    title = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    priority = serializers.CharField(required=False)
    status = serializers.CharField(required=False)
    owner_id = serializers.PrimaryKeyRelatedField(
        source='owner',
        queryset=User.objects.filter(is_active=True),
        required=False,
        allow_null=True
    )
    due_date = serializers.DateField(required=False, allow_null=True)
    expected_version = serializers.IntegerField(required=False, min_value=1)


class ReviewSerializer(serializers.Serializer):
    """Input for a reviewer action."""
    action = serializers.CharField()
    reason = serializers.CharField(required=False, allow_blank=True, default='')
    expected_version = serializers.IntegerField(required=False, min_value=1)


class TransitionsSerializer(serializers.Serializer):
    status = serializers.CharField()
    version = serializers.IntegerField()
    editor_transitions = serializers.ListField(child=serializers.CharField())
    review_actions = serializers.ListField(child=serializers.CharField())


class TimelineEntrySerializer(serializers.ModelSerializer):
    """Serializer for timeline entries."""
    type = serializers.CharField(source='entry_type', read_only=True)
    type_display = serializers.CharField(source='get_entry_type_display', read_only=True)
    author = ProfileSerializer(read_only=True)
    milestone = serializers.SerializerMethodField()

    class Meta:
        model = TimelineEntry
        fields = [
            'id', 'case', 'author', 'type', 'type_display', 'content',
            'metadata', 'mentions', 'milestone', 'is_internal', 'created_at'
        ]
        read_only_fields = fields

    def get_milestone(self, obj):
        if obj.milestone is None:
            return None
        return {'id': str(obj.milestone.id), 'title': obj.milestone.title}


class FeedEntrySerializer(TimelineEntrySerializer):
    """A timeline entry in the cross-case feed."""
    case = CaseSummarySerializer(read_only=True)


class MentionSerializer(serializers.Serializer):
    user_id = serializers.CharField()
    display_name = serializers.CharField()


class CommentSerializer(serializers.Serializer):
    """Input for a timeline comment."""
    content = serializers.CharField(required=False, allow_blank=True, default='', trim_whitespace=False)
    mentions = MentionSerializer(many=True, required=False)
    is_internal = serializers.BooleanField(required=False, default=False)


class DocumentUploadSerializer(serializers.Serializer):
    """Multipart input for a timeline document upload."""
    file = serializers.FileField(required=False, allow_empty_file=True)
    description = serializers.CharField(required=False, allow_blank=True, default='')


class CalendarEventSerializer(serializers.ModelSerializer):
    """Serializer for projected calendar events."""
    broker = serializers.SerializerMethodField()

    class Meta:
        model = CalendarEvent
        fields = [
            'id', 'broker', 'case', 'milestone', 'title', 'description',
            'start_time', 'end_time', 'event_type', 'status', 'completed_at',
            'reminders'
        ]
        read_only_fields = fields

    def get_broker(self, obj):
        return profile_payload(obj.broker)


class OwnedCaseTeamSerializer(serializers.Serializer):
    case = CaseSummarySerializer()
    collaborators = CollaboratorSerializer(many=True)


class OverviewSummarySerializer(serializers.Serializer):
    total_owned_team_members = serializers.IntegerField()
    active_collaborations_on_others = serializers.IntegerField()
    owned_cases_with_teams = serializers.IntegerField()
    total_team_cases = serializers.IntegerField()


class OverviewSerializer(serializers.Serializer):
    """The caller's collaboration overview."""
    collaborations = PendingInviteSerializer(many=True)
    owned_cases = CaseSummarySerializer(many=True)
    owned_with_collaborators = OwnedCaseTeamSerializer(many=True)
    summary = OverviewSummarySerializer()


class StatsSerializer(serializers.Serializer):
    """Dashboard collaboration counters."""
    total_collaborations = serializers.IntegerField()
    pending_invites = serializers.IntegerField()
    milestones_due_today = serializers.IntegerField()
    blocked_milestones = serializers.IntegerField()
