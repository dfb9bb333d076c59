import uuid

import django.db.models.deletion
import django.utils.timezone
import django_fsm
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Case',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('email', models.EmailField(blank=True, default='', max_length=254)),
                ('onboarding_status', models.CharField(choices=[('invited', 'Invited'), ('in_progress', 'In Progress'), ('submitted', 'Submitted'), ('completed', 'Completed'), ('archived', 'Archived')], default='invited', help_text='Managed by the onboarding flow; informational here', max_length=20)),
                ('primary_owner', models.ForeignKey(blank=True, help_text='Legacy single owner, immutable once set', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='owned_cases', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Case',
                'verbose_name_plural': 'Cases',
                'db_table': 'cases',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Milestone',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True, null=True)),
                ('status', models.CharField(choices=[('not_started', 'Not Started'), ('in_progress', 'In Progress'), ('blocked', 'Blocked'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='not_started', max_length=20)),
                ('priority', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent')], default='medium', max_length=20)),
                ('due_date', models.DateField(blank=True, null=True)),
                ('sort_order', models.PositiveIntegerField(default=1)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('version', models.PositiveIntegerField(default=1)),
                ('case', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='milestones', to='cases.case')),
                ('completed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='completed_milestones', to=settings.AUTH_USER_MODEL)),
                ('owner', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_milestones', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Case Milestone',
                'verbose_name_plural': 'Case Milestones',
                'db_table': 'case_milestones',
                'ordering': ['sort_order', 'created_at'],
                'indexes': [
                    models.Index(fields=['case', 'status'], name='case_ms_case_status_idx'),
                    models.Index(fields=['due_date', 'status'], name='case_ms_due_status_idx'),
                    models.Index(fields=['owner', 'status'], name='case_ms_owner_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Collaborator',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('role', models.CharField(choices=[('owner', 'Owner'), ('co_owner', 'Co-Owner'), ('supporting', 'Supporting'), ('reviewer', 'Reviewer'), ('observer', 'Observer')], default='supporting', max_length=20)),
                ('status', django_fsm.FSMField(choices=[('pending', 'Pending'), ('active', 'Active'), ('removed', 'Removed')], default='pending', max_length=20)),
                ('can_edit', models.BooleanField(default=False)),
                ('can_message', models.BooleanField(default=False)),
                ('can_upload', models.BooleanField(default=False)),
                ('can_approve', models.BooleanField(default=False)),
                ('can_delete', models.BooleanField(default=False)),
                ('invited_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('accepted_at', models.DateTimeField(blank=True, null=True)),
                ('broker', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='case_collaborations', to=settings.AUTH_USER_MODEL)),
                ('case', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='collaborators', to='cases.case')),
                ('invited_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='case_invites_sent', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Case Collaborator',
                'verbose_name_plural': 'Case Collaborators',
                'db_table': 'case_collaborators',
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['broker', 'status'], name='case_collab_broker_status_idx'),
                    models.Index(fields=['case', 'status'], name='case_collab_case_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('case', 'broker'), name='unique_case_collaborator'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TimelineEntry',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('entry_type', models.CharField(choices=[('comment', 'Comment'), ('mention', 'Mention'), ('milestone_created', 'Milestone Created'), ('milestone_completed', 'Milestone Completed'), ('document_uploaded', 'Document Uploaded'), ('document_verified', 'Document Verified'), ('status_change', 'Status Change'), ('collaborator_added', 'Collaborator Added'), ('collaborator_removed', 'Collaborator Removed'), ('system', 'System')], max_length=30)),
                ('content', models.TextField(blank=True, default='')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('mentions', models.JSONField(blank=True, default=list, help_text='List of {user_id, display_name}')),
                ('is_internal', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('author', models.ForeignKey(blank=True, help_text='Null for system-generated entries', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='timeline_entries', to=settings.AUTH_USER_MODEL)),
                ('case', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='timeline_entries', to='cases.case')),
                ('milestone', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='timeline_entries', to='cases.milestone')),
            ],
            options={
                'verbose_name': 'Timeline Entry',
                'verbose_name_plural': 'Timeline Entries',
                'db_table': 'case_timeline',
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['case', 'created_at'], name='case_tl_case_created_idx'),
                    models.Index(fields=['entry_type', 'created_at'], name='case_tl_type_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='CalendarEvent',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, default='')),
                ('start_time', models.DateTimeField()),
                ('end_time', models.DateTimeField()),
                ('event_type', models.CharField(choices=[('deadline', 'Deadline')], default='deadline', max_length=20)),
                ('status', models.CharField(choices=[('scheduled', 'Scheduled'), ('completed', 'Completed')], default='scheduled', max_length=20)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('reminders', models.JSONField(blank=True, default=list)),
                ('reminders_sent', models.JSONField(blank=True, default=list)),
                ('broker', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='calendar_events', to=settings.AUTH_USER_MODEL)),
                ('case', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='calendar_events', to='cases.case')),
                ('milestone', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='calendar_events', to='cases.milestone')),
            ],
            options={
                'verbose_name': 'Calendar Event',
                'verbose_name_plural': 'Calendar Events',
                'db_table': 'case_calendar_events',
                'ordering': ['start_time'],
                'indexes': [
                    models.Index(fields=['broker', 'start_time'], name='case_cal_broker_start_idx'),
                    models.Index(fields=['status', 'start_time'], name='case_cal_status_start_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('milestone', 'broker'), name='unique_milestone_calendar_event'),
                ],
            },
        ),
    ]
