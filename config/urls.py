"""URL configuration for the booking engine.

The `urlpatterns` list routes URLs to views. Every API route lives under
the versioned `/api/v1/` prefix; the health probe and the OpenAPI schema
sit outside it.
"""
from django.urls import include, path  # type: ignore
from drf_spectacular.views import SpectacularAPIView  # type: ignore

from config.health import healthz

# API versioning. v1 is our initial version; future versions can be added here.

urlpatterns = [
    path('healthz/', healthz, name='healthz'),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    # Application URLs
    path('api/v1/', include('apps.bookings.urls')),
    path('api/v1/', include('apps.resources.urls')),
]
