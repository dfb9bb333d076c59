"""
Filters for case collaboration list endpoints.
"""

import django_filters

from .models import Milestone


class MilestoneFilter(django_filters.FilterSet):
    status = django_filters.MultipleChoiceFilter(choices=Milestone.Status.choices)
    priority = django_filters.MultipleChoiceFilter(choices=Milestone.Priority.choices)
    owner = django_filters.UUIDFilter(field_name='owner_id')
    unassigned = django_filters.BooleanFilter(field_name='owner', lookup_expr='isnull')
    due_before = django_filters.DateFilter(field_name='due_date', lookup_expr='lte')

    class Meta:
        model = Milestone
        fields = ['status', 'priority', 'owner']

