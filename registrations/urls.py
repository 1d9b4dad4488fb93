"""URL configuration for the registrations API."""

from django.urls import path
from rest_framework.routers import DefaultRouter

from .api import FestivalSettingsView, RegistrationViewSet, ScoreboardView, StudentUsageView

router = DefaultRouter()
router.register(r"registrations", RegistrationViewSet, basename="registration")

urlpatterns = [
    path("students/<int:student_id>/usage/", StudentUsageView.as_view(), name="student-usage"),
    path("settings/", FestivalSettingsView.as_view(), name="festival-settings"),
    path("scoreboard/", ScoreboardView.as_view(), name="scoreboard"),
]
urlpatterns += router.urls
