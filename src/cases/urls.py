"""
URL configuration for case collaboration endpoints.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import CaseViewSet, CollaboratorViewSet, MilestoneViewSet

app_name = 'cases'

router = DefaultRouter()
router.register(r'cases', CaseViewSet, basename='case')
router.register(r'collaborators', CollaboratorViewSet, basename='collaborator')
router.register(r'milestones', MilestoneViewSet, basename='milestone')

urlpatterns = [
    path('', include(router.urls)),
]
