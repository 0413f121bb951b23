"""Root URL configuration."""
from __future__ import annotations

from django.urls import include, path

# The frontend calls the service under /api/; bare paths are kept for probes.
urlpatterns = [
    path("api/", include("backend.api.urls")),
    path("", include("backend.api.urls")),
]
