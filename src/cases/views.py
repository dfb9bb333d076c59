"""
ViewSets for case collaboration API endpoints.

Views parse input and render output; authorization and state changes live
in ``cases.services``.
"""

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .filters import MilestoneFilter
from .models import CalendarEvent, Case, Collaborator, Milestone
from .serializers import (
    CalendarEventSerializer,
    CaseSerializer,
    CollaboratorSerializer,
    CollaboratorUpdateSerializer,
    CommentSerializer,
    DocumentUploadSerializer,
    FeedEntrySerializer,
    InviteSerializer,
    MilestoneSerializer,
    MilestoneWriteSerializer,
    OverviewSerializer,
    PendingInviteSerializer,
    ReviewSerializer,
    StatsSerializer,
    TimelineEntrySerializer,
    TransitionsSerializer,
)
from .services import (
    CollaboratorRegistry,
    MilestoneService,
    TimelineService,
    accessible_cases,
    get_case_for,
)


class CaseViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for cases the caller can access, and the collaboration
    resources nested under each case.
    """
    serializer_class = CaseSerializer
    permission_classes = [IsAuthenticated]
    queryset = Case.objects.none()

    def get_queryset(self):
        return accessible_cases(self.request.user).order_by('-created_at')

    def retrieve(self, request, pk=None):
        case = get_case_for(request.user, pk)
        serializer = self.get_serializer(case)
        return Response(serializer.data)

    # Caller-centric collections

    @extend_schema(responses=PendingInviteSerializer(many=True))
    @action(detail=False, methods=['get'])
    def invites(self, request):
        """Get the caller's pending invites."""
        invites = CollaboratorRegistry(request.user).pending_invites()
        return Response(PendingInviteSerializer(invites, many=True).data)

    @extend_schema(responses=OverviewSerializer)
    @action(detail=False, methods=['get'])
    def overview(self, request):
        """Get the caller's collaborations and the teams on their own cases."""
        overview = CollaboratorRegistry(request.user).overview()
        return Response(OverviewSerializer(overview).data)

    @extend_schema(responses=StatsSerializer)
    @action(detail=False, methods=['get'])
    def stats(self, request):
        """Get dashboard collaboration counters."""
        stats = CollaboratorRegistry(request.user).stats()
        return Response(StatsSerializer(stats).data)

    @extend_schema(responses=FeedEntrySerializer(many=True))
    @action(detail=False, methods=['get'])
    def feed(self, request):
        """Get recent activity across every accessible case, newest first."""
        entries = TimelineService(request.user).feed()
        return Response(FeedEntrySerializer(entries, many=True).data)

    # Case-scoped resources

    @extend_schema(
        methods=['GET'],
        responses=CollaboratorSerializer(many=True)
    )
    @extend_schema(
        methods=['POST'],
        request=InviteSerializer,
        responses={201: CollaboratorSerializer}
    )
    @action(detail=True, methods=['get', 'post'])
    def collaborators(self, request, pk=None):
        """List collaborators, or invite a broker by email."""
        registry = CollaboratorRegistry(request.user)
        if request.method == 'GET':
            collaborators = registry.list_for_case(pk)
            return Response(CollaboratorSerializer(collaborators, many=True).data)

        serializer = InviteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        collaborator = registry.invite(
            pk,
            email=serializer.validated_data['email'],
            role=serializer.validated_data['role']
        )
        return Response(
            CollaboratorSerializer(collaborator).data,
            status=status.HTTP_201_CREATED
        )

    @extend_schema(
        methods=['GET'],
        parameters=[
            OpenApiParameter('status', OpenApiTypes.STR, many=True),
            OpenApiParameter('priority', OpenApiTypes.STR, many=True),
            OpenApiParameter('owner', OpenApiTypes.UUID),
        ],
        responses=MilestoneSerializer(many=True)
    )
    @extend_schema(
        methods=['POST'],
        request=MilestoneWriteSerializer,
        responses={201: MilestoneSerializer}
    )
    @action(detail=True, methods=['get', 'post'])
    def milestones(self, request, pk=None):
        """List milestones in order, or create one."""
        service = MilestoneService(request.user)
        if request.method == 'GET':
            milestones = MilestoneFilter(
                request.query_params,
                queryset=service.list_for_case(pk)
            ).qs
            return Response(MilestoneSerializer(milestones, many=True).data)

        serializer = MilestoneWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data.pop('expected_version', None)
        milestone = service.create(pk, data)
        return Response(
            MilestoneSerializer(milestone).data,
            status=status.HTTP_201_CREATED
        )

    @extend_schema(
        methods=['GET'],
        responses=TimelineEntrySerializer(many=True)
    )
    @extend_schema(
        methods=['POST'],
        request=CommentSerializer,
        responses={201: TimelineEntrySerializer}
    )
    @action(detail=True, methods=['get', 'post'])
    def timeline(self, request, pk=None):
        """List timeline entries oldest first, or post a comment."""
        service = TimelineService(request.user)
        if request.method == 'GET':
            entries = service.list_for_case(pk)
            return Response(TimelineEntrySerializer(entries, many=True).data)

        serializer = CommentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry = service.add_comment(
            pk,
            content=serializer.validated_data['content'],
            mentions=[dict(mention) for mention in serializer.validated_data.get('mentions', [])],
            is_internal=serializer.validated_data['is_internal']
        )
        return Response(
            TimelineEntrySerializer(entry).data,
            status=status.HTTP_201_CREATED
        )

    @extend_schema(request=DocumentUploadSerializer, responses={201: TimelineEntrySerializer})
    @action(
        detail=True,
        methods=['post'],
        url_path='timeline/upload',
        parser_classes=[MultiPartParser, FormParser]
    )
    def upload(self, request, pk=None):
        """Upload a document and record it on the timeline."""
        serializer = DocumentUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = TimelineService(request.user).record_document_upload(
            pk,
            serializer.validated_data.get('file'),
            description=serializer.validated_data['description']
        )
        return Response(
            {
                'entry': TimelineEntrySerializer(result['entry']).data,
                'file_url': result['file_url'],
            },
            status=status.HTTP_201_CREATED
        )


class CollaboratorViewSet(viewsets.GenericViewSet):
    """ViewSet for changing, removing and responding to collaborator rows."""
    serializer_class = CollaboratorSerializer
    permission_classes = [IsAuthenticated]
    queryset = Collaborator.objects.none()

    @extend_schema(request=CollaboratorUpdateSerializer, responses=CollaboratorSerializer)
    def partial_update(self, request, pk=None):
        """Change a collaborator's role, or override permission flags."""
        serializer = CollaboratorUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        registry = CollaboratorRegistry(request.user)

        if 'role' in serializer.validated_data:
            collaborator = registry.change_role(pk, serializer.validated_data['role'])
        else:
            collaborator = registry.update_permissions(pk, serializer.validated_data['permissions'])
        return Response(CollaboratorSerializer(collaborator).data)

    def destroy(self, request, pk=None):
        """Remove a collaborator from the case."""
        CollaboratorRegistry(request.user).remove(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=None, responses=CollaboratorSerializer)
    @action(detail=True, methods=['post'])
    def accept(self, request, pk=None):
        """Accept the caller's own pending invite."""
        collaborator = CollaboratorRegistry(request.user).accept(pk)
        return Response(CollaboratorSerializer(collaborator).data)

    @extend_schema(request=None, responses=CollaboratorSerializer)
    @action(detail=True, methods=['post'])
    def decline(self, request, pk=None):
        """Decline the caller's own pending invite."""
        collaborator = CollaboratorRegistry(request.user).decline(pk)
        return Response(CollaboratorSerializer(collaborator).data)


class MilestoneViewSet(viewsets.GenericViewSet):
    """ViewSet for a single milestone: edits, reviews and calendar sync."""
    serializer_class = MilestoneSerializer
    permission_classes = [IsAuthenticated]
    queryset = Milestone.objects.none()

    def retrieve(self, request, pk=None):
        milestone = MilestoneService(request.user).get(pk)
        return Response(MilestoneSerializer(milestone).data)

    @extend_schema(request=MilestoneWriteSerializer, responses=MilestoneSerializer)
    def partial_update(self, request, pk=None):
        """Edit fields and/or set the status (editor path)."""
        serializer = MilestoneWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        expected_version = data.pop('expected_version', None)
        milestone = MilestoneService(request.user).update(
            pk, data, expected_version=expected_version
        )
        return Response(MilestoneSerializer(milestone).data)

    def destroy(self, request, pk=None):
        """Hard delete a milestone."""
        MilestoneService(request.user).delete(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=ReviewSerializer, responses=MilestoneSerializer)
    @action(detail=True, methods=['post'])
    def review(self, request, pk=None):
        """Approve, reject or request changes (reviewer path)."""
        serializer = ReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = MilestoneService(request.user).review(
            pk,
            serializer.validated_data['action'],
            reason=serializer.validated_data['reason'],
            expected_version=serializer.validated_data.get('expected_version')
        )
        return Response({
            'milestone': MilestoneSerializer(result['milestone']).data,
            'timeline_entry': (
                TimelineEntrySerializer(result['timeline_entry']).data
                if result['timeline_entry'] else None
            ),
            'action': result['action'],
        })

    @extend_schema(responses=TransitionsSerializer)
    @action(detail=True, methods=['get'])
    def transitions(self, request, pk=None):
        """Get the transitions available to the caller."""
        data = MilestoneService(request.user).available_transitions(pk)
        return Response(TransitionsSerializer(data).data)

    @extend_schema(request=None, responses=CalendarEventSerializer(many=True))
    @action(detail=True, methods=['post'], url_path='sync-calendar')
    def sync_calendar(self, request, pk=None):
        """Re-project the milestone's deadline onto calendars."""
        result = MilestoneService(request.user).sync_calendar(pk)
        events = CalendarEvent.objects.filter(
            milestone=result['milestone']
        ).select_related('broker')
        return Response({
            'created': result['created'],
            'events': CalendarEventSerializer(events, many=True).data,
        })
