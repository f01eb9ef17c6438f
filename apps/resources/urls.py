"""URL routing for the resource registry."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import ResourceAvailabilityView

urlpatterns = [
    path(
        "resources/<uuid:resource_id>/availability/",
        ResourceAvailabilityView.as_view(),
        name="resource-availability",
    ),
]
